from __future__ import annotations
from dataclasses import dataclass
from enum import Enum


@dataclass(slots=True, frozen=True)
class ReadResult:
    offset: int
    requested: int             # length after clamping to max_range
    data: bytes

    @property
    def end_of_stream(self) -> bool:
        """True when the read came back short, i.e. the sequence ends inside this window."""
        return len(self.data) < self.requested


class SessionState(str, Enum):
    IDLE = "idle"
    PREFETCHING = "prefetching"
    END_OF_STREAM = "end_of_stream"
    FAILED = "failed"
    CLOSED = "closed"


class DrainKind(str, Enum):
    CHUNK = "chunk"
    NOT_READY = "not_ready"
    END = "end"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class Drained:
    """One answer to a demand signal from the presentation layer."""
    kind: DrainKind
    data: bytes = b""
    error: Exception | None = None


NOT_READY = Drained(DrainKind.NOT_READY)
END = Drained(DrainKind.END)


@dataclass(slots=True, frozen=True)
class SessionStatus:
    state: SessionState
    consumed_position: int
    next_fetch_position: int
    buffered: int
    in_flight: int
    retrying: bool


class DigitStreamError(RuntimeError):
    """Base class for every error raised by digitstream."""
    pass


class InvalidRangeError(DigitStreamError, ValueError):
    """Raised when offset/length violate the read contract. Never retried."""
    pass


class ObjectNotFoundError(DigitStreamError):
    """Raised when the backing object itself is absent. Fatal for a session."""
    pass


class TransientReadError(DigitStreamError, IOError):
    """Raised on store or network hiccups and timeouts. Safe to retry."""
    pass


class RangeNotSupportedError(DigitStreamError):
    """Raised when a server ignores Range and the object is larger than RANGE_FALLBACK_MAX."""
    pass
