"""
Resilient Fetcher

One GET per attempt, bounded by the configured timeout, retried with a
fixed delay until the attempt budget is spent.
"""

import asyncio
from typing import Any

import httpx

from .config import FinderOptions, finder_logger
from .exceptions import FetchError, RequestTimeoutError, TransportError

JSON_HEADERS = {"Accept": "application/json"}


async def _attempt(client: httpx.AsyncClient, url: str, options: FinderOptions, attempt: int) -> Any:
    try:
        response = await asyncio.wait_for(
            client.get(url, headers=JSON_HEADERS),
            timeout=options.timeout_seconds
        )
    except (TimeoutError, httpx.TimeoutException) as e:
        raise RequestTimeoutError(url, options.timeout_ms, attempts=attempt) from e
    except httpx.HTTPError as e:
        raise TransportError(url, f"Network error: {e}", attempts=attempt) from e

    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        raise TransportError(url, f"HTTP error! status: {status}", attempts=attempt, status_code=status) from e

    try:
        return response.json()
    except ValueError as e:
        raise TransportError(url, f"Response body is not valid JSON: {e}", attempts=attempt,
                             status_code=response.status_code) from e


async def fetch_with_retry(client: httpx.AsyncClient, url: str, options: FinderOptions | None = None) -> Any:
    """
    Fetch a URL and decode its JSON body, retrying failed attempts.

    Args:
        client: HTTP client used for every attempt
        url: Absolute URL to GET
        options: Timeout and retry settings (defaults when omitted)

    Returns:
        The decoded JSON value of the first successful attempt

    Raises:
        FetchError: The error from the last attempt once all attempts failed
    """
    options = options or FinderOptions()
    last_error: FetchError | None = None

    for attempt in range(1, options.total_attempts + 1):
        try:
            return await _attempt(client, url, options, attempt)
        except FetchError as e:
            last_error = e
            finder_logger.debug(f"Attempt {attempt}/{options.total_attempts} failed for {url}: {e}")

        if attempt < options.total_attempts:
            await asyncio.sleep(options.retry_delay_seconds)

    raise last_error
