"""
Best-effort device fingerprinting used to softly bind a navigation code to the
browser that requested it.

The fingerprint is the base64 of the "|"-joined device signals, truncated to a
fixed length. It is reproducible for identical signals but is not a security
boundary: anyone can replay the same headers.
"""
import base64
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

import config


@dataclass(frozen=True)
class DeviceSignals:
    """Stable browser/environment signals a fingerprint is derived from."""
    user_agent: str = ""
    language: str = ""
    screen_width: int = 0
    screen_height: int = 0
    timezone_offset: int = 0
    canvas_data: str = ""


def compute_fingerprint(signals: DeviceSignals, length: int = config.FINGERPRINT_LENGTH) -> str:
    """Derives the truncated base64 fingerprint for a set of signals."""
    raw = "|".join([
        signals.user_agent,
        signals.language,
        f"{signals.screen_width}x{signals.screen_height}",
        str(signals.timezone_offset),
        signals.canvas_data,
    ])
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")[:length]


def _parse_int(value: Optional[str]) -> int:
    try:
        return int(value.strip()) if value else 0
    except ValueError:
        return 0


def signals_from_headers(headers: Mapping[str, str]) -> DeviceSignals:
    """
    Builds DeviceSignals from HTTP request headers.

    Screen size, timezone offset and the canvas snapshot are not sent by
    browsers on their own; the client shell forwards them as
    X-Screen-Size ("1920x1080"), X-Timezone-Offset and X-Canvas-Fingerprint.
    Missing or malformed values fall back to empty/zero.
    """
    accept_language = headers.get("accept-language", "")
    language = accept_language.split(",")[0].split(";")[0].strip()

    width, height = 0, 0
    screen = headers.get("x-screen-size", "")
    if "x" in screen:
        w, _, h = screen.partition("x")
        width, height = _parse_int(w), _parse_int(h)

    return DeviceSignals(
        user_agent=headers.get("user-agent", ""),
        language=language,
        screen_width=width,
        screen_height=height,
        timezone_offset=_parse_int(headers.get("x-timezone-offset")),
        canvas_data=headers.get("x-canvas-fingerprint", ""),
    )


# --- REQUEST-BOUND SIGNALS ---

current_signals: ContextVar[DeviceSignals] = ContextVar("current_signals", default=DeviceSignals())


def current_fingerprint() -> str:
    """Fingerprint of the signals bound to the current context (request)."""
    return compute_fingerprint(current_signals.get())


FingerprintProvider = Callable[[], str]
