"""
Upstream HTTP helper.

Thin aiohttp wrapper shared by the price and balance providers. Every
failure (non-2xx, timeout, connection problem, undecodable body) surfaces as
an UpstreamError tagged with the provider name.
"""
import asyncio
import logging
import time
from typing import Any, Dict, Optional

import aiohttp

from app.config import settings
from app.errors import UpstreamError

logger = logging.getLogger(__name__)

USER_AGENT = "Walletfolio/1.0"


async def fetch_json(
    url: str,
    provider: str,
    method: str = "GET",
    params: Optional[Dict[str, Any]] = None,
    json_body: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout_seconds: Optional[float] = None
) -> Any:
    """
    Perform a request and decode the JSON answer.

    Args:
        url: Absolute URL
        provider: Provider name used in errors and logs
        method: HTTP method
        params: Query parameters
        json_body: JSON request body
        headers: Extra request headers
        timeout_seconds: Total timeout; defaults to the provider timeout setting

    Returns:
        Decoded JSON document

    Raises:
        UpstreamError: on any transport or HTTP failure
    """
    timeout = aiohttp.ClientTimeout(total=timeout_seconds or settings.provider_request_timeout_seconds)
    request_headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
    if headers:
        request_headers.update(headers)

    start_time = time.time()
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                headers=request_headers
            ) as response:
                response_time = int((time.time() - start_time) * 1000)

                if response.status < 200 or response.status >= 300:
                    error_text = await response.text()
                    logger.warning(
                        f"Error from {provider}: HTTP {response.status} for {url} "
                        f"({response_time}ms): {error_text[:200]}"
                    )
                    raise UpstreamError(f"{provider} returned HTTP {response.status}", provider=provider)

                logger.debug(f"Success from {provider} for {url} ({response_time}ms)")
                return await response.json(content_type=None)

    except asyncio.TimeoutError:
        logger.warning(f"Timeout from {provider} for {url}")
        raise UpstreamError(f"{provider} request timed out", provider=provider)
    except aiohttp.ClientError as e:
        logger.warning(f"Request to {provider} failed: {e}")
        raise UpstreamError(f"{provider} request failed", provider=provider)
    except ValueError as e:
        logger.warning(f"Invalid JSON from {provider}: {e}")
        raise UpstreamError(f"{provider} returned invalid JSON", provider=provider)
