"""
Pixel-level statistics for AI-generation / manipulation hints.

The image is decoded with Pillow, converted to RGBA and downscaled so that
neither side exceeds `settings.pixel_analysis_max_side`. Three checks then
subtract from a starting score of 70:

  - brightness histogram smoothness (generated images trend smoother)
  - edge density on the red channel (over-smoothing)
  - strided pixel repetition (tiling / copy artifacts)

Sets PIL.Image.MAX_IMAGE_PIXELS so oversized payloads fail fast instead of
decompressing into memory; that failure lands on the fixed fallback score.
"""

import io
import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
from PIL import Image

from authlens.config import settings
from authlens.detection.scoring import clamp

Image.MAX_IMAGE_PIXELS = settings.pil_max_image_pixels

logger = logging.getLogger(__name__)

PIXEL_START = 70
PIXEL_MIN, PIXEL_MAX = 10, 95
PIXEL_FALLBACK = 60

SMOOTHNESS_THRESHOLD = 0.3
SMOOTHNESS_PENALTY = 10
EDGE_GRADIENT_THRESHOLD = 50
EDGE_DENSITY_THRESHOLD = 0.05
EDGE_PENALTY = 8
REPEAT_RATIO_THRESHOLD = 0.3
REPEAT_PENALTY = 10


@dataclass
class PixelProfile:
    score: int
    warnings: List[str] = field(default_factory=list)
    smoothness: Optional[float] = None
    edge_density: Optional[float] = None
    repeat_ratio: Optional[float] = None
    analyzed_size: Optional[tuple] = None  # (width, height) after downscale
    fell_back: bool = False


# Modes Pillow resizes bilinearly as-is; anything else is converted first
RESIZABLE_MODES = ("RGB", "RGBA", "L", "LA")


def decode_pixels(data: bytes, max_side: int) -> np.ndarray:
    """
    Decode to an (h, w, 4) uint8 RGBA array no larger than max_side per side.

    The downscale happens before the RGBA conversion so the full-resolution
    frame is never expanded to four channels. JPEGs are additionally decoded
    at the smallest DCT scale that still covers the target size.
    """
    with Image.open(io.BytesIO(data)) as img:
        width, height = img.size
        scale = min(max_side / width, max_side / height, 1)
        target = (max(1, math.floor(width * scale)), max(1, math.floor(height * scale)))

        if target == img.size:
            rgba = img.convert("RGBA")
        else:
            img.draft("RGB", target)  # no-op for non-JPEG formats
            frame = img if img.mode in RESIZABLE_MODES else img.convert("RGBA")
            rgba = frame.resize(target, Image.Resampling.BILINEAR).convert("RGBA")

    return np.asarray(rgba, dtype=np.uint8)


def brightness_smoothness(pixels: np.ndarray) -> float:
    """Sum of |h[i] - h[i-1]| over the 256-bucket brightness histogram, per pixel."""
    rgb = pixels[..., :3].astype(np.int32)
    # round((r + g + b) / 3) without float error; the sum is never x.5
    brightness = (rgb.sum(axis=-1) + 1) // 3
    histogram = np.bincount(brightness.ravel(), minlength=256)
    total_diff = np.abs(np.diff(histogram[:255])).sum()
    return float(total_diff) / brightness.size


def edge_density(pixels: np.ndarray) -> float:
    """Share of pixels whose 4-neighbour red-channel gradient exceeds 50."""
    red = pixels[..., 0].astype(np.int32)
    height, width = red.shape
    if height < 3 or width < 3:
        return 0.0

    gx = red[1:-1, 2:] - red[1:-1, :-2]
    gy = red[2:, 1:-1] - red[:-2, 1:-1]
    edges = np.count_nonzero(gx * gx + gy * gy > EDGE_GRADIENT_THRESHOLD ** 2)
    return edges / (height * width)


def repeat_ratio(pixels: np.ndarray, sample_size: int) -> float:
    """Compare evenly strided samples with the pixel one stride further on."""
    flat = pixels[..., :3].reshape(-1, 3)
    total = flat.shape[0]
    samples = min(sample_size, total)
    if samples == 0:
        return 0.0

    step = total // samples
    positions = np.arange(samples) * step
    positions = positions[positions + step < total]
    if positions.size == 0:
        return 0.0

    repeats = np.all(flat[positions] == flat[positions + step], axis=1)
    return np.count_nonzero(repeats) / samples


def analyze_pixel_patterns(data: bytes) -> PixelProfile:
    """Score 10–95; decode or analysis failure yields 60 with no warnings."""
    try:
        pixels = decode_pixels(data, settings.pixel_analysis_max_side)
        smoothness = brightness_smoothness(pixels)
        density = edge_density(pixels)
        repeats = repeat_ratio(pixels, settings.pixel_repeat_sample_size)
    except Exception as e:
        logger.warning(f"[PIXELS] Pixel analysis failed: {e}")
        return PixelProfile(score=PIXEL_FALLBACK, fell_back=True)

    score = PIXEL_START
    warnings = []

    if smoothness < SMOOTHNESS_THRESHOLD:
        score -= SMOOTHNESS_PENALTY
        warnings.append("Unusually smooth color distribution (potential AI generation indicator)")

    if density < EDGE_DENSITY_THRESHOLD:
        score -= EDGE_PENALTY
        warnings.append("Low edge density detected (possible over-smoothing)")

    if repeats > REPEAT_RATIO_THRESHOLD:
        score -= REPEAT_PENALTY
        warnings.append("Repeating pixel patterns detected")

    height, width = pixels.shape[:2]
    logger.info(
        f"[PIXELS] {width}x{height}: smoothness={smoothness:.3f}, "
        f"edges={density:.3f}, repeats={repeats:.3f}, score={score}"
    )

    return PixelProfile(
        score=clamp(score, PIXEL_MIN, PIXEL_MAX),
        warnings=warnings,
        smoothness=smoothness,
        edge_density=density,
        repeat_ratio=repeats,
        analyzed_size=(width, height),
    )
