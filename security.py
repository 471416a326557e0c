"""
Small request-hygiene helpers served alongside secure pages: CSRF tokens,
HTML escaping of user input, and the response headers for the secure shell.
"""
import base64
import time
import uuid
from typing import Dict

import config


def generate_csrf_token() -> str:
    raw = f"{uuid.uuid4()}{int(time.time() * 1000)}"
    token = base64.b64encode(raw.encode("ascii")).decode("ascii")
    return token.replace("+", "").replace("/", "").replace("=", "")


def sanitize_input(text: str) -> str:
    """Escapes HTML-significant characters. '&' goes first so entities are not double-escaped."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#x27;")
    )


def get_security_headers(code: str) -> Dict[str, str]:
    return {
        "X-Security-Version": config.VERSION,
        "X-Security-Code": code,
        "X-CSRF-Token": generate_csrf_token(),
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "1; mode=block",
    }
