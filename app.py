import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles

from slowapi import _rate_limit_exceeded_handler, errors

# Import core modules
import config
from core_logic import logger
from code_store import CodeStore
from limiter import limiter
from middleware import SecureRoutingMiddleware
from router import api_router, ui_router
from secure_paths import PathTransformer
from user_lookup import CurrentUserClient

# --- LIFESPAN AND APP SETUP ---

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager. Builds the code store and its collaborators once per app run."""
    try:
        config.config.validate()

        store = CodeStore(
            expiry_seconds=config.CODE_EXPIRY_SECONDS,
            code_length=config.CODE_LENGTH,
            alphabet=config.ALLOWED_CHARS,
        )
        app.state.store = store
        app.state.transformer = PathTransformer(
            store,
            version=config.VERSION,
            sweep_probability=config.SWEEP_PROBABILITY,
        )
        app.state.user_client = CurrentUserClient(config.AUTH_USER_URL, timeout=config.HTTP_TIMEOUT)
        app.state.excluded_prefixes = tuple(config.EXCLUDED_PREFIXES)

        logger.info("Application started successfully")
        yield

    finally:
        logger.info("Application shutdown complete")

# Main app instance
app = FastAPI(
    title="Queit Secure Routing",
    lifespan=lifespan
)

# --- MIDDLEWARE ---
app.add_middleware(SecureRoutingMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.limiter = limiter
app.add_exception_handler(errors.RateLimitExceeded, _rate_limit_exceeded_handler)

# --- STATIC FILES SETUP ---
app.mount("/static", StaticFiles(directory=os.path.join(os.path.dirname(__file__), "static")), name="static")

# --- ROUTERS ---
app.include_router(api_router)
app.include_router(ui_router)


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
