"""HTTP(S) object store using Range requests."""

import logging
from typing import Optional

import requests

from ..core.config import RANGE_FALLBACK_MAX
from ..core.model import RangeNotSupportedError
from .base import StoredObject

logger = logging.getLogger(__name__)

# Module-level session for connection pooling
_session = None


def _get_session():
    """Get or create the global requests session."""
    global _session
    if _session is None:
        _session = requests.Session()
    return _session


def _total_from_content_range(header: Optional[str]) -> Optional[int]:
    """Pull the total size out of `bytes a-b/total` (or `bytes */total`)."""
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1].strip()
    return int(total) if total.isdigit() else None


class HTTPObjectStore:
    """Object store served over plain HTTP, e.g. a public bucket URL.

    Keys are appended to `base_url`. Servers that ignore Range are tolerated
    only for objects smaller than RANGE_FALLBACK_MAX.
    """

    def __init__(self, base_url: str, timeout: float = 30):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.requests_made = 0
        self.bytes_fetched = 0
        self._session = _get_session()

    def _url(self, key: str) -> str:
        return f"{self.base_url}/{key.lstrip('/')}"

    def get(self, key: str, offset: int, length: int) -> Optional[StoredObject]:
        """Return the bytes of `key` in [offset, offset+length), or None if absent."""
        end = offset + length - 1
        headers = {'Range': f'bytes={offset}-{end}'}
        url = self._url(key)

        try:
            self.requests_made += 1
            with self._session.get(url, headers=headers, timeout=self.timeout, stream=True) as response:
                if response.status_code == 404:
                    logger.debug("http miss for %s", url)
                    return None

                if response.status_code == 416:
                    # Range starts past the end of the object
                    size = _total_from_content_range(response.headers.get('content-range'))
                    return StoredObject(offset=offset, body=b"", size=size)

                if response.status_code == 206:
                    data = response.content
                    self.bytes_fetched += len(data)
                    size = _total_from_content_range(response.headers.get('content-range'))
                    return StoredObject(offset=offset, body=data[:length], size=size)

                if response.status_code == 200:
                    # Server doesn't support ranges, got full content
                    content_length = response.headers.get('content-length', '').strip()
                    if not content_length.isdigit() or int(content_length) >= RANGE_FALLBACK_MAX:
                        raise RangeNotSupportedError(f"{url} ignores Range and is too large to download")
                    full = response.content
                    self.bytes_fetched += len(full)
                    return StoredObject(offset=offset, body=full[offset:offset + length], size=len(full))

                raise IOError(f"Range request for {url} failed with status {response.status_code}")

        except requests.RequestException as e:
            raise IOError(f"Range request for {url} failed: {e}") from e


def open_http_store(base_url: str) -> HTTPObjectStore:
    """Create an HTTP object store."""
    return HTTPObjectStore(base_url)
