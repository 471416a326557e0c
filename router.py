import os
import re
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

import config
from core_logic import ValidationException
from limiter import limiter
from models import (
    SecureLinkPayload, SecureLinkResponse, ResolvePayload, SecurePathInfo,
    CodeValidationPayload, CodeValidationResponse,
)
from secure_paths import PathTransformer, resolve_location
from security import get_security_headers

# --- Router Setup ---

api_router = APIRouter(
    prefix="/api/v1",
    tags=["Secure Links"],
)

ui_router = APIRouter(
    tags=["UI"],
)

templates = Jinja2Templates(directory=os.path.join(os.path.dirname(__file__), "templates"))

logger = logging.getLogger("secure_routing.router")

# Only well-formed codes are echoed back in response headers.
HEADER_SAFE_CODE = re.compile(r"[A-Za-z0-9]{1,64}")

# --- Dependencies ---

def get_transformer(request: Request) -> PathTransformer:
    return request.app.state.transformer


async def get_current_user_id(request: Request) -> Optional[str]:
    return await request.app.state.user_client.fetch_user_id(request.headers.get("cookie"))

# --- UI Routes ---

@ui_router.get(
    f"/{config.VERSION}/",
    response_class=HTMLResponse,
    summary="Serve the secure routing shell",
    name="secure_shell",
)
async def secure_shell(
    request: Request,
    code: Optional[str] = None,
    error_code: Optional[str] = Query(None, alias="errorCode"),
):
    """
    Serves the page shell for obfuscated URLs. The fragment never reaches the
    server, so the shell resolves the logical path client-side; the legacy
    code-embedded format is resolved here.
    """
    server_path = resolve_location(code, error_code, None)
    response = templates.TemplateResponse(request, "secure_shell.html", {
        "server_path": server_path,
        "secure_prefix": config.SECURE_PREFIX,
        "api_base": "/api/v1",
    })
    if code and HEADER_SAFE_CODE.fullmatch(code):
        response.headers.update(get_security_headers(code))
    return response


@ui_router.get("/health", summary="Health Check", tags=["Monitoring"])
async def health_check(request: Request):
    """Reports liveness and the size of the in-memory code store."""
    return {
        "status": "healthy",
        "codes_tracked": len(request.app.state.store),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

# --- API Routes ---

@api_router.post(
    "/secure-links",
    response_model=SecureLinkResponse,
    status_code=201,
    summary="Mint an obfuscated URL for a logical path",
)
@limiter.limit(config.RATE_LIMIT_TRANSFORM)
async def create_secure_link(
    request: Request,
    payload: SecureLinkPayload,
    transformer: PathTransformer = Depends(get_transformer),
    user_id: Optional[str] = Depends(get_current_user_id),
):
    path = payload.path.strip()
    if not path.startswith("/"):
        raise ValidationException("Path must start with '/'")
    if len(path) > config.MAX_PATH_LENGTH:
        raise ValidationException(f"Path exceeds maximum length of {config.MAX_PATH_LENGTH}")
    if "#" in path:
        raise ValidationException("Path must not contain '#'")

    secure_url = transformer.to_secure_path(path, user_id, force_new=payload.force_new)
    extracted = transformer.from_secure_path(secure_url)

    return SecureLinkResponse(
        path=extracted.path,
        secure_url=secure_url,
        code=extracted.code,
        error_code=extracted.error_code,
    )


@api_router.post(
    "/secure-links/resolve",
    response_model=SecurePathInfo,
    summary="Recover the logical path from an obfuscated URL",
)
async def resolve_secure_link(
    payload: ResolvePayload,
    transformer: PathTransformer = Depends(get_transformer),
):
    """Input that is not an obfuscated URL is returned as its own logical path."""
    return transformer.describe_location(payload.url.strip())


@api_router.post(
    "/codes/validate",
    response_model=CodeValidationResponse,
    summary="Check a navigation code against expiry, owner and device",
)
@limiter.limit(config.RATE_LIMIT_VALIDATE)
async def validate_code(
    request: Request,
    payload: CodeValidationPayload,
    user_id: Optional[str] = Depends(get_current_user_id),
):
    valid = request.app.state.store.validate(payload.code, user_id)
    if not valid:
        logger.info("Code validation failed")
    return CodeValidationResponse(valid=valid)
