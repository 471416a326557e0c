import os
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from fastapi import HTTPException, status

import config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'

# --- LOGGING SETUP ---

def setup_logging(
    name: str = "secure_routing",
    log_dir: Optional[str] = None,
    level: Optional[str] = None,
) -> logging.Logger:
    """
    Configures the service logger once: console output plus a rotating
    `app.log` under LOG_DIR. Child loggers (`secure_routing.*`) propagate here.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, (level or config.LOG_LEVEL).upper(), logging.INFO))

    if logger.handlers:
        return logger

    log_dir = log_dir or config.LOG_DIR
    os.makedirs(log_dir, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT)
    handlers = [
        logging.StreamHandler(),
        RotatingFileHandler(
            os.path.join(log_dir, "app.log"),
            maxBytes=config.LOG_MAX_BYTES,
            backupCount=config.LOG_BACKUP_COUNT,
        ),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger

logger = setup_logging()

# --- CUSTOM EXCEPTIONS (REQUIRED BY ROUTERS) ---

class ValidationException(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
