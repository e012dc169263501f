"""In-process fetcher - thin async wrapper around a RangeService."""

import asyncio

from ..core.model import InvalidRangeError
from ..service import RangeService


class ServiceRangeFetcher:
    """Asynchronous fetcher that calls a RangeService directly."""

    def __init__(self, service: RangeService, key: str):
        self.service = service
        self.key = key
        self.bytes_fetched = 0
        self.requests_made = 0

    async def fetch(self, offset: int, length: int) -> bytes:
        """Return up to `length` bytes starting at absolute offset `offset`."""
        # the service would clamp silently, and a clamped read looks like the end
        if length > self.service.max_range:
            raise InvalidRangeError(f"length {length} exceeds max_range {self.service.max_range}")
        self.requests_made += 1
        result = await asyncio.to_thread(self.service.read, self.key, offset, length)
        self.bytes_fetched += len(result.data)
        return result.data
