"""Base protocols and shared types for object stores."""

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


@dataclass(slots=True, frozen=True)
class StoredObject:
    """A window of an object's content as returned by a store."""

    offset: int
    body: bytes
    size: Optional[int] = None  # total object size, when the store knows it


@runtime_checkable
class ObjectStore(Protocol):
    """Protocol for range-readable object stores."""

    requests_made: int  # running total

    def get(self, key: str, offset: int, length: int) -> Optional[StoredObject]:
        """Return the bytes of `key` in [offset, offset+length).

        None means the object itself does not exist. A range past the end
        yields an empty body. Other failures raise OSError.
        """
        ...
