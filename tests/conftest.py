"""
Shared pytest fixtures for all test modules.

The loading-retry delay is forced to zero for every test so scripted
"model is loading" responses do not stall the suite.
"""

import io

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from authlens.config import settings
from authlens.main import app


# ---------------------------------------------------------------------------
# Core infrastructure fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    monkeypatch.setattr(settings, "inference_loading_retry_delay_sec", 0.0)
    monkeypatch.setattr(settings, "inference_max_loading_retries", None)


@pytest.fixture
def client():
    """FastAPI TestClient with a clean rate-limit table."""
    from authlens.core.rate_limiter import _rate_limits

    _rate_limits.clear()
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    _rate_limits.clear()


# ---------------------------------------------------------------------------
# Shared test-data helpers
# ---------------------------------------------------------------------------

# 40 words, sentence lengths 3 / 25 / 4 / 8, no formal, sensational or absolute markers
NEUTRAL_TEXT = (
    "Rain fell hard. "
    "We waited under the old bridge while trucks rumbled overhead and a stray dog "
    "sniffed around our boots looking for scraps of bread we saved. "
    "Then sunlight broke through. "
    "My sister laughed and pointed at the rainbow."
)


def encode_image(img: Image.Image, fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def make_gray_png(width: int = 512, height: int = 512) -> bytes:
    return encode_image(Image.new("RGB", (width, height), color=(128, 128, 128)))


def make_noise_png(width: int = 200, height: int = 150, seed: int = 7) -> bytes:
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    return encode_image(Image.fromarray(pixels))


def make_tiny_jpeg() -> bytes:
    """Create a minimal 10×10 JPEG in memory."""
    return encode_image(Image.new("RGB", (10, 10), color=(128, 128, 128)), fmt="JPEG")
