import logging

from fastapi import Request, status
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from fingerprint import current_signals, signals_from_headers
from navigation import classify_location

logger = logging.getLogger("secure_routing.middleware")


def is_page_navigation(request: Request) -> bool:
    """True for top-level browser page loads, as opposed to fetches and assets."""
    return request.method == "GET" and "text/html" in request.headers.get("accept", "")


class SecureRoutingMiddleware(BaseHTTPMiddleware):
    """
    Binds the request's device signals for fingerprinting and redirects plain
    page loads to their obfuscated form. The redirect replaces the navigation,
    so no extra history entry is created. Obfuscated and excluded paths pass
    straight through.
    """

    async def dispatch(self, request: Request, call_next):
        token = current_signals.set(signals_from_headers(request.headers))
        try:
            if is_page_navigation(request):
                state = request.app.state
                path = request.url.path
                outcome = classify_location(path, state.transformer.prefix, state.excluded_prefixes)
                if outcome is None:
                    user_id = await state.user_client.fetch_user_id(request.headers.get("cookie"))
                    secure_url = state.transformer.to_secure_path(path, user_id)
                    logger.info(f"Redirecting page load {path} to secure form")
                    return RedirectResponse(url=secure_url, status_code=status.HTTP_302_FOUND)
            return await call_next(request)
        finally:
            current_signals.reset(token)
