"""
Navigation interception: decides, per location change, whether the visible URL
should be rewritten into its obfuscated form, and handles secure link clicks.

Timers go through a Scheduler and URL changes through a History/Navigator so
the same logic runs against a real event loop or a fake one in tests.
"""
import asyncio
import enum
import logging
from typing import Callable, List, Optional, Protocol, Sequence

import config
from secure_paths import PathTransformer

logger = logging.getLogger("secure_routing.navigation")


# --- PORTS ---

class History(Protocol):
    def replace_state(self, url: str) -> None: ...


class Navigator(Protocol):
    def assign(self, url: str) -> None: ...


class Router(Protocol):
    def push_state(self, url: str) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> None: ...


class ClickEvent(Protocol):
    def prevent_default(self) -> None: ...


class AsyncioScheduler:
    """Schedules callbacks on the running event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        asyncio.get_running_loop().call_later(delay, callback)


class BrowserHistory:
    """
    In-memory session history. `assign` is a full navigation and `push_state`
    a client-side one; both add an entry. `replace_state` swaps the current
    entry in place.
    """

    def __init__(self, initial: str = "/"):
        self.entries: List[str] = [initial]

    @property
    def location(self) -> str:
        return self.entries[-1]

    def assign(self, url: str) -> None:
        self.entries.append(url)

    def push_state(self, url: str) -> None:
        self.entries.append(url)

    def replace_state(self, url: str) -> None:
        self.entries[-1] = url

    def __len__(self) -> int:
        return len(self.entries)


# --- GUARD STATE MACHINE ---

class GuardState(enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    COMMITTED = "committed"


class NavigationGuard:
    """idle -> pending -> committed, and reset() back to idle."""

    def __init__(self):
        self.state = GuardState.IDLE

    @property
    def idle(self) -> bool:
        return self.state is GuardState.IDLE

    def begin(self) -> None:
        if self.state is not GuardState.IDLE:
            raise RuntimeError(f"Cannot begin from state {self.state.value}")
        self.state = GuardState.PENDING

    def commit(self) -> None:
        self.state = GuardState.COMMITTED

    def reset(self) -> None:
        self.state = GuardState.IDLE


# --- DECISION ---

class InterceptOutcome(enum.Enum):
    ALREADY_SECURE = "already_secure"
    EXCLUDED = "excluded"
    HANDLED = "handled"
    SCHEDULED = "scheduled"


def is_excluded(location: str, excluded_prefixes: Sequence[str] = config.EXCLUDED_PREFIXES) -> bool:
    return any(location.startswith(prefix) for prefix in excluded_prefixes)


def classify_location(
    location: str,
    secure_prefix: str = config.SECURE_PREFIX,
    excluded_prefixes: Sequence[str] = config.EXCLUDED_PREFIXES,
) -> Optional[InterceptOutcome]:
    """Returns the bypass outcome for a location, or None if it needs transforming."""
    if location.startswith(secure_prefix) or location == secure_prefix.rstrip("/"):
        return InterceptOutcome.ALREADY_SECURE
    if is_excluded(location, excluded_prefixes):
        return InterceptOutcome.EXCLUDED
    return None


# --- INTERCEPTOR ---

class NavigationInterceptor:
    """
    Evaluated on every location change. Already-obfuscated and excluded
    locations are left alone; anything else is rewritten in place (no new
    history entry) after a short debounce. A scheduled rewrite is never
    cancelled.
    """

    def __init__(
        self,
        transformer: PathTransformer,
        history: History,
        scheduler: Scheduler,
        debounce: float = config.REPLACE_DEBOUNCE_SECONDS,
        excluded_prefixes: Sequence[str] = config.EXCLUDED_PREFIXES,
    ):
        self.transformer = transformer
        self.history = history
        self.scheduler = scheduler
        self.debounce = debounce
        self.excluded_prefixes = tuple(excluded_prefixes)
        self.guard = NavigationGuard()
        self._location: Optional[str] = None

    def on_location_change(self, location: str, user_id: Optional[str] = None) -> InterceptOutcome:
        if location != self._location:
            self._location = location
            self.guard.reset()

        if not self.guard.idle:
            return InterceptOutcome.HANDLED

        outcome = classify_location(location, self.transformer.prefix, self.excluded_prefixes)
        if outcome is not None:
            self.guard.commit()
            return outcome

        logger.debug(f"Secure URL transformation: {location}")
        secure_url = self.transformer.to_secure_path(location, user_id)
        self.guard.begin()
        self.scheduler.call_later(self.debounce, lambda: self._replace(secure_url))
        return InterceptOutcome.SCHEDULED

    def _replace(self, secure_url: str) -> None:
        self.history.replace_state(secure_url)
        self.guard.commit()


# --- LINKS ---

class SecureLink:
    """
    A navigable element wrapping a logical path. Activation performs a full
    navigation to a freshly minted obfuscated URL; repeat activations inside
    the cooldown window are ignored.
    """

    def __init__(
        self,
        href: str,
        transformer: PathTransformer,
        navigator: Navigator,
        scheduler: Scheduler,
        cooldown: float = config.LINK_COOLDOWN_SECONDS,
    ):
        self.href = href
        self.transformer = transformer
        self.navigator = navigator
        self.scheduler = scheduler
        self.cooldown = cooldown
        self.guard = NavigationGuard()

    def activate(self, user_id: Optional[str] = None, event: Optional[ClickEvent] = None) -> Optional[str]:
        """Returns the URL navigated to, or None when the click was debounced."""
        if event is not None:
            event.prevent_default()

        if not self.guard.idle:
            return None
        self.guard.begin()

        secure_url = self.transformer.generate_secure_link(self.href, user_id)
        logger.debug(f"SecureLink navigation: {self.href} -> {secure_url}")
        self.navigator.assign(secure_url)
        self.guard.commit()

        self.scheduler.call_later(self.cooldown, self.guard.reset)
        return secure_url


class SecureNavigator:
    """
    Programmatic navigation for collaborators: pushes the obfuscated form of
    a path as a client-side route change, without a full page load. Every
    call mints a new code.
    """

    def __init__(self, transformer: PathTransformer, router: Router):
        self.transformer = transformer
        self.router = router

    def navigate(self, path: str, user_id: Optional[str] = None) -> str:
        secure_url = self.transformer.to_secure_path(path, user_id, force_new=True)
        self.router.push_state(secure_url)
        return secure_url
