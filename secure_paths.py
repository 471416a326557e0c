"""
Bidirectional mapping between logical application paths and obfuscated URLs.

    /article/42  <->  /v2/?code=<16 alnum>&errorCode=<6 alnum>#article/42

The logical path travels in the URL fragment; `code` is a fresh token from the
CodeStore and `errorCode` is throwaway randomness nothing downstream checks.
This is an obfuscation scheme, not access control.
"""
import re
import random
import secrets
import logging
from typing import Callable, Optional

import config
from code_store import CodeStore
from models import ExtractedPath, SecurePathInfo

logger = logging.getLogger("secure_routing.paths")

# Old links carried the path inside the code itself: ?code=<token>/<path>
LEGACY_CODE_PATTERN = re.compile(r"^[^/]+/(.*)$")


class PathTransformer:
    """Turns logical paths into obfuscated URLs and back."""

    def __init__(
        self,
        store: CodeStore,
        version: str = config.VERSION,
        sweep_probability: float = config.SWEEP_PROBABILITY,
        error_code_length: int = config.ERROR_CODE_LENGTH,
        rng: Callable[[], float] = random.random,
    ):
        self.store = store
        self.version = version
        self.prefix = f"/{version}/"
        self.sweep_probability = sweep_probability
        self.error_code_length = error_code_length
        self._rng = rng
        self._pattern = re.compile(
            rf"/{re.escape(version)}/\?code=([^&]+)(?:&errorCode=([^#]+))?#(.*)"
        )

    def _error_code(self) -> str:
        return "".join(secrets.choice(config.ERROR_CODE_CHARS) for _ in range(self.error_code_length))

    def to_secure_path(self, path: str, user_id: Optional[str] = None, force_new: bool = True) -> str:
        """
        Builds the obfuscated URL for a logical path.

        With force_new (the default every navigation uses) a brand-new code is
        minted on each call; codes are never reused across clicks. Roughly one
        call in ten also sweeps expired codes from the store.
        """
        if self._rng() < self.sweep_probability:
            self.store.sweep_expired()

        if force_new:
            code = self.store.generate_code(user_id)
        else:
            code = self.store.get_current_or_new_code(user_id)

        clean_path = path[1:] if path.startswith("/") else path
        secure_url = f"{self.prefix}?code={code}&errorCode={self._error_code()}#{clean_path}"

        logger.debug(f"to_secure_path: {path} -> {secure_url}")
        return secure_url

    def generate_secure_link(self, path: str, user_id: Optional[str] = None) -> str:
        """Link generation always forces a new code."""
        return self.to_secure_path(path, user_id, force_new=True)

    def from_secure_path(self, secure_url: str) -> Optional[ExtractedPath]:
        """Recovers the logical path, or None when the URL is not in secure form."""
        if not isinstance(secure_url, str):
            return None
        match = self._pattern.fullmatch(secure_url)
        if not match:
            return None
        code, error_code, fragment = match.groups()
        return ExtractedPath(path="/" + fragment, code=code, error_code=error_code)

    def is_secure_location(self, location: str) -> bool:
        return location.startswith(self.prefix)

    def describe_location(self, location: str) -> SecurePathInfo:
        """Summary of a location: its logical path and code, if it has one."""
        extracted = self.from_secure_path(location)
        return SecurePathInfo(
            secure_path=location,
            original_path=extracted.path if extracted else location,
            code=extracted.code if extracted else None,
            error_code=extracted.error_code if extracted else None,
            is_secure=extracted is not None,
        )


def resolve_location(code: Optional[str], error_code: Optional[str], fragment: Optional[str]) -> str:
    """
    Logical path for a request to the secure shell, given its query and hash.

    A non-empty fragment wins. Without one, a legacy code of the form
    "<token>/<path>" (and no errorCode) yields "/<path>". Everything else is
    the root.
    """
    if fragment:
        return fragment if fragment.startswith("/") else "/" + fragment
    if code and not error_code:
        match = LEGACY_CODE_PATTERN.match(code)
        if match:
            return "/" + match.group(1)
    return "/"


def match_route(current_path: str, route_path: str) -> bool:
    """Matches a path against a route pattern with ":param" segments."""
    if current_path == route_path:
        return True
    if ":" not in route_path:
        return False

    current_segments = [s for s in current_path.split("/") if s]
    route_segments = [s for s in route_path.split("/") if s]
    if len(current_segments) != len(route_segments):
        return False

    return all(
        route.startswith(":") or route == current
        for route, current in zip(route_segments, current_segments)
    )
