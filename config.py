import os
import string

# ============================================================================
# CONFIGURATION CLASS
# ============================================================================

class Config:
    """Centralized configuration with validation"""
    # Secure URL shape
    VERSION: str = os.getenv("SECURE_ROUTE_VERSION", "v2")
    CODE_LENGTH: int = 16
    ERROR_CODE_LENGTH: int = 6
    ALLOWED_CHARS: str = string.ascii_uppercase + string.ascii_lowercase + string.digits
    ERROR_CODE_CHARS: str = string.digits + string.ascii_lowercase

    # Code store
    CODE_EXPIRY_SECONDS: int = 60 * 30  # 30 minutes
    FINGERPRINT_LENGTH: int = 32
    SWEEP_PROBABILITY: float = 0.1

    # Navigation
    REPLACE_DEBOUNCE_SECONDS: float = 0.05
    LINK_COOLDOWN_SECONDS: float = 1.0
    MAX_PATH_LENGTH: int = 2048
    EXCLUDED_PREFIXES: tuple[str, ...] = (
        "/auth",
        "/login",
        "/register",
        "/api/",
        "/favicon.ico",
        "/uploads/",
        "/static/",
        "/_vite/",
        "/docs",
        "/redoc",
        "/openapi.json",
        "/health",
    )

    # Current-user lookup
    AUTH_USER_URL: str | None = os.getenv("AUTH_USER_URL")
    HTTP_TIMEOUT: float = 5.0

    # Rate limiting
    RATE_LIMIT_TRANSFORM: str = os.getenv("RATE_LIMIT_TRANSFORM", "120/minute")
    RATE_LIMIT_VALIDATE: str = os.getenv("RATE_LIMIT_VALIDATE", "60/minute")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: str = os.getenv("LOG_DIR", os.path.join(os.path.dirname(__file__), "logs"))
    LOG_MAX_BYTES: int = 10_485_760
    LOG_BACKUP_COUNT: int = 5

    # CORS
    CORS_ORIGINS: list[str] = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    @classmethod
    def validate(cls):
        """Validate configuration on startup"""
        if not cls.VERSION or not cls.VERSION.isalnum():
            raise ValueError("VERSION must be a non-empty alphanumeric string")
        if cls.CODE_LENGTH < 8 or cls.CODE_LENGTH > 64:
            raise ValueError("CODE_LENGTH must be between 8 and 64")
        if not 0.0 <= cls.SWEEP_PROBABILITY <= 1.0:
            raise ValueError("SWEEP_PROBABILITY must be between 0 and 1")

# ============================================================================
# SINGLETON INSTANCE & DERIVED CONSTANTS
# ============================================================================

config = Config()

# --- Expose class attributes as module constants for convenience ---
for attr in [a for a in dir(config) if not a.startswith('__') and not callable(getattr(config, a))]:
    globals()[attr] = getattr(config, attr)

# Prefix every obfuscated location starts with, e.g. "/v2/"
SECURE_PREFIX: str = f"/{VERSION}/"
config.SECURE_PREFIX = SECURE_PREFIX
