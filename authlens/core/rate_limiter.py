"""
Rate limiting: in-memory sliding window per client identifier.

Each analysis can hold several remote model calls open for a long time
(a cold model answers "loading" for minutes), so clients are capped on
request count per window.
"""

import time
import logging
from typing import Dict

from fastapi import HTTPException

from authlens.config import settings

logger = logging.getLogger(__name__)

# In-memory store: {identifier: [timestamp, ...]}
_rate_limits: Dict[str, list] = {}


def check_rate_limit(identifier: str) -> None:
    """Simple sliding-window in-memory rate limiting."""
    now = time.time()
    window = settings.rate_limit_request_window_sec

    if len(_rate_limits) > settings.rate_limit_memory_limit:
        _cleanup_all_limits(now)

    if identifier not in _rate_limits:
        _rate_limits[identifier] = []

    _rate_limits[identifier] = [
        t for t in _rate_limits[identifier]
        if now - t < window
    ]

    if len(_rate_limits[identifier]) >= settings.rate_limit_max_requests:
        logger.warning(f"Rate limit exceeded for {identifier}")
        raise HTTPException(
            status_code=429,
            detail="Too many requests. Please try again in a minute."
        )

    _rate_limits[identifier].append(now)


def _cleanup_all_limits(now: float) -> None:
    """Remove all identifiers that have been idle for the full window."""
    window = settings.rate_limit_request_window_sec
    expired_keys = [
        k for k, v in _rate_limits.items()
        if not v or now - v[-1] > window
    ]
    for k in expired_keys:
        del _rate_limits[k]
    logger.info(f"Rate limit cleanup: removed {len(expired_keys)} inactive sessions.")
