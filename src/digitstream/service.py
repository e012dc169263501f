"""Range Service - validated, bounded reads against an object store."""

from __future__ import annotations

import logging

from .core.config import MAX_RANGE, check_max_range
from .core.model import InvalidRangeError, ObjectNotFoundError, ReadResult, TransientReadError
from .store.base import ObjectStore

logger = logging.getLogger(__name__)


def validate_range(offset, length) -> None:
    """Raise InvalidRangeError unless offset >= 0 and length > 0 are integers."""
    # bool is an int subclass but never a meaningful offset
    for name, value in (("offset", offset), ("length", length)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidRangeError(f"{name} must be an integer, got {value!r}")
    if offset < 0:
        raise InvalidRangeError(f"offset cannot be negative: {offset}")
    if length <= 0:
        raise InvalidRangeError(f"length must be positive: {length}")


class RangeService:
    """Serves bounded byte-range reads of objects held in a store.

    The service keeps no per-request state, so one instance can be shared by
    any number of concurrent callers. It never retries; a TransientReadError
    is the caller's to retry.
    """

    def __init__(self, store: ObjectStore, max_range: int = MAX_RANGE):
        self.store = store
        self.max_range = check_max_range(max_range)

    def read(self, key: str, offset: int, length: int) -> ReadResult:
        validate_range(offset, length)

        if length > self.max_range:
            logger.warning("clamping read of %s at %d from %d to %d bytes", key, offset, length, self.max_range)
            length = self.max_range

        try:
            obj = self.store.get(key, offset, length)
        except OSError as e:
            raise TransientReadError(f"reading {key} [{offset}, {offset + length}) failed: {e}") from e

        if obj is None:
            raise ObjectNotFoundError(f"object {key!r} not found")

        # stores may hand back more than asked for; never pass that on
        data = bytes(obj.body[:length])
        logger.debug("read %s [%d, %d) -> %d bytes", key, offset, offset + length, len(data))
        return ReadResult(offset=offset, requested=length, data=data)
