"""
Analysis routes: /analyze/text and /analyze/image

Text arrives as JSON { "text": "..." }; images as multipart/form-data with a
'file' field. The inference credential comes from `Authorization: Bearer`
or, when absent, from the server configuration.
"""

import logging
import time
from typing import Optional

from fastapi import APIRouter, File, Header, HTTPException, Request, UploadFile

from authlens.config import settings
from authlens.core.file_validator import validate_image
from authlens.core.rate_limiter import check_rate_limit
from authlens.detection.pipeline import InvalidSubjectError, analyze_image, analyze_text
from authlens.schemas.analysis import ImageAnalysisReport, TextAnalysisReport, TextAnalysisRequest
from authlens.services.analysis_service import build_image_subject, get_client_ip, resolve_credential

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Analysis"])


@router.post("/analyze/text", response_model=TextAnalysisReport)
async def analyze_text_route(
    request: Request,
    payload: TextAnalysisRequest,
    authorization: Optional[str] = Header(None),
):
    """Score a piece of text for AI authorship and misinformation rhetoric."""
    check_rate_limit(get_client_ip(request))
    credential = resolve_credential(authorization)

    text = payload.text.strip()
    if len(text) < settings.min_text_chars:
        raise HTTPException(
            status_code=400,
            detail=f"Please provide at least {settings.min_text_chars} characters for accurate analysis"
        )

    start_time = time.time()
    try:
        report = await analyze_text(text, credential)
    except InvalidSubjectError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"[ROUTE] Text analysis finished in {time.time() - start_time:.2f}s: {report.overall_score}")
    return report


@router.post("/analyze/image", response_model=ImageAnalysisReport)
async def analyze_image_route(
    request: Request,
    file: UploadFile = File(...),
    authorization: Optional[str] = Header(None),
):
    """Score an uploaded image for AI generation, deepfake and manipulation hints."""
    check_rate_limit(get_client_ip(request))
    credential = resolve_credential(authorization)

    content = await file.read()
    filename = file.filename or "uploaded_image"
    validate_image(filename, len(content), content)

    subject = build_image_subject(content, filename, file.content_type)

    start_time = time.time()
    try:
        report = await analyze_image(subject, credential)
    except InvalidSubjectError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"[ROUTE] Image analysis finished in {time.time() - start_time:.2f}s: {report.overall_score}")
    return report
