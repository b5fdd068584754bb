"""
Content-level metadata scoring, independent of pixel values.

Functions:
  - probe_dimensions: Reads (width, height) from the image header.
  - get_size_integrity_score: File-size heuristic → integrity score + signals.
  - get_dimension_score: Generator-typical output sizes → metadata score + signals.
  - analyze_metadata: Both of the above for an ImageSubject.
"""

import io
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from PIL import Image

from authlens.detection.scoring import clamp
from authlens.schemas.analysis import ImageSubject

logger = logging.getLogger(__name__)

INTEGRITY_START = 70
METADATA_START = 65
META_MIN, META_MAX = 10, 95

SMALL_FILE_BYTES = 10_000
LARGE_FILE_BYTES = 5 * 1024 * 1024

# Native output sizes of the common diffusion / GAN pipelines
AI_TYPICAL_SIZES = (512, 768, 1024, 256, 2048)


@dataclass
class MetadataProfile:
    integrity_score: int
    metadata_score: int
    warnings: List[str] = field(default_factory=list)
    width: Optional[int] = None
    height: Optional[int] = None
    fell_back: bool = False  # dimensions unreadable; metadata score is the base value


def probe_dimensions(data: bytes) -> Optional[Tuple[int, int]]:
    """Header-only read; returns None when Pillow cannot identify the image."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.size
    except Exception as e:
        logger.info(f"[META] Could not read image dimensions: {e}")
        return None


def get_size_integrity_score(file_size: int) -> Tuple[int, List[str]]:
    score = INTEGRITY_START
    signals = []

    if file_size > 0:
        if file_size < SMALL_FILE_BYTES:
            score -= 10
            signals.append("Very small file size may indicate heavy compression or modification")
        if file_size > LARGE_FILE_BYTES:
            score += 5

    return clamp(score, META_MIN, META_MAX), signals


def get_dimension_score(width: int, height: int) -> Tuple[int, List[str]]:
    score = METADATA_START
    signals = []

    if width in AI_TYPICAL_SIZES and height in AI_TYPICAL_SIZES:
        score -= 15
        signals.append(f"Image dimensions ({width}×{height}) match common AI generation sizes")

    if width == height and width in AI_TYPICAL_SIZES:
        score -= 10
        signals.append("Perfect square dimensions common in AI-generated images")

    return clamp(score, META_MIN, META_MAX), signals


def analyze_metadata(subject: ImageSubject) -> MetadataProfile:
    integrity_score, warnings = get_size_integrity_score(len(subject.data))

    dimensions = subject.decoded_dimensions or probe_dimensions(subject.data)
    if dimensions is None:
        return MetadataProfile(
            integrity_score=integrity_score,
            metadata_score=METADATA_START,
            warnings=warnings,
            fell_back=True,
        )

    width, height = dimensions
    metadata_score, dimension_signals = get_dimension_score(width, height)
    warnings.extend(dimension_signals)

    logger.info(
        f"[META] {width}x{height}, {len(subject.data)} bytes: "
        f"integrity={integrity_score}, metadata={metadata_score}"
    )

    return MetadataProfile(
        integrity_score=integrity_score,
        metadata_score=metadata_score,
        warnings=warnings,
        width=width,
        height=height,
    )
