import logging
import os
import re
from logging.handlers import RotatingFileHandler

import pytest

import config
from core_logic import setup_logging
from security import generate_csrf_token, get_security_headers, sanitize_input


def test_default_config_is_valid():
    config.Config.validate()
    assert config.SECURE_PREFIX == "/v2/"
    assert config.CODE_EXPIRY_SECONDS == 1800


@pytest.mark.parametrize("attr, value", [
    ("VERSION", "v-2"),
    ("VERSION", ""),
    ("CODE_LENGTH", 4),
    ("SWEEP_PROBABILITY", 1.5),
])
def test_invalid_config_is_rejected(monkeypatch, attr, value):
    monkeypatch.setattr(config.Config, attr, value)
    with pytest.raises(ValueError):
        config.Config.validate()


def test_sanitize_input_escapes_markup():
    assert sanitize_input('<a href="x">Tom & Jerry\'s</a>') == (
        "&lt;a href=&quot;x&quot;&gt;Tom &amp; Jerry&#x27;s&lt;/a&gt;"
    )


def test_csrf_token_is_url_safe_and_unique():
    token = generate_csrf_token()
    assert re.fullmatch(r"[A-Za-z0-9]+", token)
    assert token != generate_csrf_token()


def test_security_headers():
    headers = get_security_headers("ABCDEFGHIJKLMNOP")
    assert headers["X-Security-Version"] == "v2"
    assert headers["X-Security-Code"] == "ABCDEFGHIJKLMNOP"
    assert headers["X-Frame-Options"] == "DENY"
    assert headers["X-Content-Type-Options"] == "nosniff"
    assert headers["X-XSS-Protection"] == "1; mode=block"
    assert headers["X-CSRF-Token"]


def test_setup_logging_writes_rotating_file(tmp_path):
    logger = setup_logging("secure_routing.test_logs", str(tmp_path), "debug")
    try:
        assert logger.level == logging.DEBUG
        file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].baseFilename == os.path.join(str(tmp_path), "app.log")
        assert file_handlers[0].maxBytes == config.LOG_MAX_BYTES
        assert file_handlers[0].backupCount == config.LOG_BACKUP_COUNT

        # A second call reconfigures the level without stacking handlers
        count = len(logger.handlers)
        setup_logging("secure_routing.test_logs", str(tmp_path), "warning")
        assert len(logger.handlers) == count
        assert logger.level == logging.WARNING
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
