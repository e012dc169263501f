"""Client side - range fetchers and the prefetch buffer manager."""

# Re-export these for import convenience
from .base import AsyncRangeFetcher
from .http import HTTPRangeFetcher, open_http_fetcher
from .local import ServiceRangeFetcher
from .prefetch import PrefetchBufferManager
