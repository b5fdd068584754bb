"""
Shared aiohttp ClientSession, initialized once during FastAPI lifespan.

Reusing a single session avoids a TCP/TLS handshake on every inference call;
a text analysis alone can hit two models, an image analysis two more.

Usage:
    async with http_client.request_session() as sess:
        async with sess.post(url, data=payload) as response:
            ...

The context manager yields the shared session when available, otherwise
creates and closes a temporary one (covers library callers and tests).
"""

import logging
from contextlib import asynccontextmanager

import aiohttp

from authlens.config import settings

logger = logging.getLogger(__name__)

session: aiohttp.ClientSession | None = None


def _timeout() -> aiohttp.ClientTimeout:
    return aiohttp.ClientTimeout(total=settings.inference_http_timeout_sec)


async def initialize() -> None:
    global session
    session = aiohttp.ClientSession(timeout=_timeout())
    logger.info("[STARTUP] Shared HTTP session initialized")


async def close() -> None:
    global session
    if session and not session.closed:
        await session.close()
        session = None
        logger.info("[SHUTDOWN] Shared HTTP session closed")


@asynccontextmanager
async def request_session():
    """
    Async context manager that yields the shared session if available,
    otherwise creates and closes a temporary one.

    Never closes the shared session; http_client.close() handles that.
    """
    if session and not session.closed:
        yield session
    else:
        tmp = aiohttp.ClientSession(timeout=_timeout())
        try:
            yield tmp
        finally:
            await tmp.close()
