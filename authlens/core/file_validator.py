"""
Upload validation and log sanitization utilities.

Uploads are checked by extension, size, and finally by letting Pillow parse
the bytes so a renamed non-image never reaches the analysis pipeline.
"""

import io
import os
import re
import logging
from typing import Optional

from fastapi import HTTPException
from PIL import Image

from authlens.config import settings

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ['.jpg', '.jpeg', '.png', '.webp', '.gif', '.tiff', '.tif', '.bmp']
IMAGE_FORMATS = ['jpg', 'png', 'webp', 'gif', 'tiff', 'bmp', 'mpo']


def validate_image(filename: str, filesize: int, content: Optional[bytes] = None) -> bool:
    """Check file extension, size, and (when given) that the bytes decode as an image."""
    ext = os.path.splitext(filename)[1].lower()

    if ext not in IMAGE_EXTENSIONS:
        raise HTTPException(status_code=415, detail="Unsupported file format.")

    if filesize > settings.max_image_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Image too large. Max {settings.max_image_upload_bytes // 1024 // 1024}MB allowed."
        )

    if content is not None:
        try:
            with Image.open(io.BytesIO(content)) as img:
                img.verify()
            with Image.open(io.BytesIO(content)) as img2:
                actual_format = img2.format.lower()
                if actual_format == 'jpeg':
                    actual_format = 'jpg'
                if actual_format not in IMAGE_FORMATS:
                    raise ValueError(f"Format mismatch: {actual_format}")
        except Exception as e:
            logger.error(f"Corrupted or disguised upload ({sanitize_log_message(filename)}): {e}")
            raise HTTPException(status_code=400, detail="Invalid file content or format mismatch.")

    return True


def sanitize_log_message(message: str) -> str:
    """Strip file paths and bearer tokens from log messages."""
    msg = re.sub(r'\/[^\s]+\/tmp[a-zA-Z0-9_]+', '[TEMP_FILE]', message)
    msg = re.sub(r'\/[^\s]+\/([^\/\s]+)', r'.../\1', msg)
    msg = re.sub(r'(Bearer\s+)\S+', r'\1[REDACTED]', msg)
    msg = re.sub(r'\bhf_[A-Za-z0-9]+', '[REDACTED]', msg)
    return msg
