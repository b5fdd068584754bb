"""
Request helpers for the analysis routes: credential resolution, client IP
extraction, and building an ImageSubject from uploaded bytes.
"""

import logging
import mimetypes
import os
from typing import Optional

from fastapi import HTTPException, Request

from authlens.config import settings
from authlens.detection.metadata_scorer import probe_dimensions
from authlens.schemas.analysis import ImageSubject

logger = logging.getLogger(__name__)


def resolve_credential(authorization: Optional[str]) -> str:
    """Bearer token from the request, else the server's configured token."""
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
        raise HTTPException(status_code=401, detail="Malformed Authorization header")

    if settings.hf_api_token:
        return settings.hf_api_token

    raise HTTPException(
        status_code=401,
        detail={"code": "CREDENTIAL_REQUIRED", "message": "Inference API token needed"}
    )


def get_client_ip(request: Request) -> str:
    """Extracts the real client IP from headers, falling back to host."""
    cf_ip = request.headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip

    x_forwarded = request.headers.get("x-forwarded-for")
    if x_forwarded:
        return x_forwarded.split(",")[0].strip()

    return request.client.host if request.client else "127.0.0.1"


def resolve_mime_type(filename: str, content_type: Optional[str]) -> str:
    if content_type and content_type.startswith("image/"):
        return content_type
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or ""


def build_image_subject(content: bytes, filename: str, content_type: Optional[str]) -> ImageSubject:
    mime_type = resolve_mime_type(filename, content_type)
    dimensions = probe_dimensions(content)
    logger.info(
        f"[UPLOAD] {os.path.basename(filename)}: {len(content)} bytes, "
        f"{mime_type or 'unknown type'}, dims={dimensions}"
    )
    return ImageSubject(data=content, declared_mime_type=mime_type, decoded_dimensions=dimensions)
