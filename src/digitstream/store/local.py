"""Directory-backed object store using mmap."""

import logging
import mmap
from pathlib import Path
from typing import Optional, Union

from .base import StoredObject

logger = logging.getLogger(__name__)


class LocalObjectStore:
    """Object store where each key is a file under `root`.

    Files are mapped rather than read so a request only touches the pages
    of the window it asks for.
    """

    def __init__(self, root: Union[Path, str]):
        self.root = Path(root).resolve()
        self.requests_made = 0
        self.bytes_fetched = 0

    def _path(self, key: str) -> Optional[Path]:
        path = (self.root / key).resolve()
        # keys must not escape the store root
        if self.root not in path.parents:
            return None
        return path

    def get(self, key: str, offset: int, length: int) -> Optional[StoredObject]:
        """Return the bytes of `key` in [offset, offset+length), or None if absent."""
        self.requests_made += 1
        path = self._path(key)
        if path is None or not path.is_file():
            logger.debug("local miss for %s under %s", key, self.root)
            return None

        try:
            with open(path, "rb") as f:
                f.seek(0, 2)  # Seek to end
                size = f.tell()
                if size == 0 or offset >= size:
                    # mmap refuses empty files; nothing to read past the end anyway
                    return StoredObject(offset=offset, body=b"", size=size)
                with mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ) as mm:
                    data = mm[offset:offset + length]
        except FileNotFoundError:
            # removed between the check and the open
            return None

        self.bytes_fetched += len(data)
        return StoredObject(offset=offset, body=data, size=size)


def open_local_store(root: Union[Path, str]) -> LocalObjectStore:
    """Create a directory-backed object store."""
    return LocalObjectStore(root)
