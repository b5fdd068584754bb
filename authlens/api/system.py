"""
Service health: liveness plus the inference wiring this instance uses.
"""

from fastapi import APIRouter

from authlens.config import settings
from authlens.integrations import http_client

router = APIRouter(tags=["System"])


@router.get("/health")
async def health():
    shared = http_client.session
    return {
        "status": "healthy",
        "inference": {
            "base_url": settings.inference_base_url,
            "shared_session": bool(shared and not shared.closed),
            "credential_configured": bool(settings.hf_api_token),
        },
        "models": {
            "text_detector": settings.text_detector_model,
            "text_alternate": settings.text_alternate_model,
            "image_detector": settings.image_detector_model,
            "deepfake_detector": settings.deepfake_detector_model,
        },
    }
