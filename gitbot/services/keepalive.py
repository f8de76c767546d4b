"""
Keep-alive Pinger

Free hosting tiers put idle services to sleep. When KEEPALIVE_URL is set,
the application pings it on a fixed interval for as long as it runs.
"""

import asyncio
from typing import Optional

import httpx

from gitbot.logging_config import get_logger

logger = get_logger(__name__)


async def ping_once(url: str, client: httpx.AsyncClient) -> bool:
    """
    Send a single keep-alive GET.

    Returns:
        True if the URL answered with a non-error status
    """
    try:
        response = await client.get(url)
    except httpx.HTTPError as e:
        logger.warning("Keep-alive ping failed", url=url, error=str(e))
        return False

    if response.status_code >= 400:
        logger.warning("Keep-alive ping rejected", url=url, status_code=response.status_code)
        return False

    logger.debug("Keep-alive ping ok", url=url, status_code=response.status_code)
    return True


async def keepalive_loop(
    url: str,
    interval: float,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> None:
    """Ping url every interval seconds until cancelled."""
    logger.info("Starting keep-alive pinger", url=url, interval=interval)
    async with httpx.AsyncClient(timeout=10.0, transport=transport) as client:
        while True:
            await asyncio.sleep(interval)
            await ping_once(url, client)


def start_keepalive(url: Optional[str], interval: float) -> Optional[asyncio.Task]:
    """Schedule the keep-alive loop if a URL is configured."""
    if not url:
        return None
    return asyncio.create_task(keepalive_loop(url, interval))
