"""Asynchronous fetcher for the HTTP read endpoint using httpx."""

import logging
from typing import Optional

import httpx

from ..core.config import DEFAULT_TIMEOUT
from ..core.model import InvalidRangeError, ObjectNotFoundError, RangeNotSupportedError, TransientReadError

logger = logging.getLogger(__name__)


class HTTPRangeFetcher:
    """Reads ranges from a running read endpoint (`GET url?start=&length=`)."""

    def __init__(self, url: str, timeout: float = DEFAULT_TIMEOUT, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.bytes_fetched = 0
        self.requests_made = 0
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)

    async def fetch(self, offset: int, length: int) -> bytes:
        """Return up to `length` bytes starting at absolute offset `offset`."""
        params = {"start": offset, "length": length}
        try:
            self.requests_made += 1
            response = await self._client.get(self.url, params=params)
        except httpx.TimeoutException as e:
            raise TransientReadError(f"range request timed out at {offset}: {e}") from e
        except httpx.RequestError as e:
            raise TransientReadError(f"range request failed at {offset}: {e}") from e

        if response.status_code == 200:
            data = response.content
            self.bytes_fetched += len(data)
            logger.debug("fetched %d bytes at %d", len(data), offset)
            return data
        if response.status_code == 400:
            raise InvalidRangeError(f"server rejected range ({offset}, {length})")
        if response.status_code == 404:
            raise ObjectNotFoundError(f"{self.url} reports the backing object is missing")
        if response.status_code == 502 and response.text == "Range not supported":
            raise RangeNotSupportedError(f"{self.url} is backed by a store that ignores Range")
        raise TransientReadError(f"range request at {offset} failed with status {response.status_code}")

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()


def open_http_fetcher(url: str, timeout: float = DEFAULT_TIMEOUT) -> HTTPRangeFetcher:
    """Create an asynchronous fetcher for a read endpoint."""
    return HTTPRangeFetcher(url, timeout=timeout)
