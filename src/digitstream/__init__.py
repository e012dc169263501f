"""digitstream - serve and incrementally read very large immutable digit sequences."""

from .core.config import DEFAULT_KEY, DEFAULT_TIMEOUT, MAX_RANGE, Settings  # re-export
from .core.model import (                                                   # re-export
    DigitStreamError, Drained, DrainKind, InvalidRangeError, ObjectNotFoundError,
    RangeNotSupportedError, ReadResult, SessionState, SessionStatus, TransientReadError,
)
from .service import RangeService
from .store import open_store
from .client import HTTPRangeFetcher, PrefetchBufferManager, ServiceRangeFetcher


def read_range(source, offset: int, length: int, *, key: str = DEFAULT_KEY, max_range: int = MAX_RANGE) -> ReadResult:
    """Read one bounded range of `key` straight from a store (path, URL, or s3:// location)."""
    service = RangeService(open_store(source), max_range=max_range)
    return service.read(key, offset, length)


def open_session(url: str, *, timeout: float = DEFAULT_TIMEOUT, **manager_options) -> PrefetchBufferManager:
    """Create a prefetch session reading from a read endpoint at `url`."""
    fetcher = HTTPRangeFetcher(url, timeout=timeout)
    return PrefetchBufferManager(fetcher, timeout=timeout, **manager_options)


__all__ = [
    "read_range", "open_session",
    "RangeService", "PrefetchBufferManager", "HTTPRangeFetcher", "ServiceRangeFetcher",
    "ReadResult", "Drained", "DrainKind", "SessionState", "SessionStatus", "Settings",
    "DigitStreamError", "InvalidRangeError", "ObjectNotFoundError",
    "TransientReadError", "RangeNotSupportedError",
]
