from typing import Optional
from pydantic import BaseModel, Field

import config


class ExtractedPath(BaseModel):
    """Logical path and tokens recovered from an obfuscated URL."""
    path: str
    code: str
    error_code: Optional[str] = None


class SecurePathInfo(BaseModel):
    secure_path: str
    original_path: str
    code: Optional[str] = None
    error_code: Optional[str] = None
    is_secure: bool = False


class SecureLinkPayload(BaseModel):
    """Request model for minting an obfuscated link."""
    path: str = Field(..., min_length=1)
    force_new: bool = True


class SecureLinkResponse(BaseModel):
    path: str
    secure_url: str
    code: str
    error_code: Optional[str] = None


class ResolvePayload(BaseModel):
    url: str = Field(..., min_length=1, max_length=config.MAX_PATH_LENGTH * 2)


class CodeValidationPayload(BaseModel):
    code: str = Field(..., min_length=1, max_length=128)


class CodeValidationResponse(BaseModel):
    valid: bool
