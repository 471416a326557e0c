"""
Client for the auth backend's current-user endpoint, used to bind navigation
codes to a signed-in user. Any failure means "anonymous".
"""
import logging
from typing import Optional

import httpx

import config

logger = logging.getLogger("secure_routing.user_lookup")


class CurrentUserClient:
    """Looks up the signed-in user's id by forwarding the caller's cookies."""

    def __init__(self, url: Optional[str] = config.AUTH_USER_URL, timeout: float = config.HTTP_TIMEOUT):
        self.url = url
        self.timeout = timeout
        self.enabled = bool(url)

        if not self.enabled:
            logger.warning("AUTH_USER_URL not set - codes will not be bound to users")

    async def fetch_user_id(self, cookie_header: Optional[str] = None) -> Optional[str]:
        if not self.enabled:
            return None

        headers = {"Accept": "application/json"}
        if cookie_header:
            headers["Cookie"] = cookie_header

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.url, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException:
            logger.warning(f"Timeout looking up current user at {self.url}")
            return None
        except httpx.HTTPStatusError as e:
            if e.response.status_code not in (401, 403):
                logger.warning(f"HTTP error looking up current user: {e.response.status_code}")
            return None
        except httpx.HTTPError as e:
            logger.warning(f"Current user lookup failed: {e}")
            return None
        except ValueError:
            logger.warning("Current user lookup returned a non-JSON body")
            return None

        if not isinstance(data, dict) or data.get("id") is None:
            return None
        return str(data["id"])
