"""Fetcher protocol consumed by the prefetch manager."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class AsyncRangeFetcher(Protocol):
    """Protocol for asynchronous range fetchers."""

    bytes_fetched: int  # running total
    requests_made: int

    async def fetch(self, offset: int, length: int) -> bytes:
        """Return up to `length` bytes starting at absolute offset `offset`.

        Fewer bytes (possibly none) means the sequence ends inside the window.
        Raises InvalidRangeError, ObjectNotFoundError or TransientReadError.
        """
        ...
