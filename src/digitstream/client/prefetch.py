"""Prefetch Buffer Manager - keeps a lookahead of fetched bytes ahead of the reader."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Dict, Optional, Set

from ..core.config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CONCURRENCY,
    DEFAULT_LOOKAHEAD,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    MAX_RANGE_LIMIT,
)
from ..core.model import (
    END,
    NOT_READY,
    DrainKind,
    Drained,
    SessionState,
    SessionStatus,
    TransientReadError,
)
from .base import AsyncRangeFetcher

logger = logging.getLogger(__name__)


class PrefetchBufferManager:
    """Client-side session that reads a sequence ahead of its consumer.

    All methods must be called from the event loop that runs the session;
    completions and drains are therefore never concurrent with each other.
    Up to `concurrency` fetches may be in flight. They are issued at
    consecutive offsets and their results are parked by offset and
    reassembled in order, so the buffer always holds exactly
    ``sequence[consumed_position:next_fetch_position]``.
    """

    def __init__(
        self,
        fetcher: AsyncRangeFetcher,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        concurrency: int = DEFAULT_CONCURRENCY,
        lookahead_factor: int = DEFAULT_LOOKAHEAD,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        max_retries: Optional[int] = None,
        start_position: int = 0,
    ):
        if not 0 < chunk_size <= MAX_RANGE_LIMIT:
            raise ValueError(f"chunk_size must be in 1..{MAX_RANGE_LIMIT}, got {chunk_size}")
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        if lookahead_factor < 1:
            raise ValueError(f"lookahead_factor must be at least 1, got {lookahead_factor}")
        if retry_delay < 0:
            raise ValueError(f"retry_delay cannot be negative, got {retry_delay}")
        if max_retries is not None and max_retries < 0:
            raise ValueError(f"max_retries cannot be negative, got {max_retries}")
        if start_position < 0:
            raise ValueError(f"start_position cannot be negative, got {start_position}")

        self.fetcher = fetcher
        self.chunk_size = chunk_size
        self.concurrency = concurrency
        self.lookahead = chunk_size * lookahead_factor
        self.low_water = self.lookahead // 2
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.max_retries = max_retries

        self._state = SessionState.IDLE
        self._buffer = bytearray()
        self._consumed = start_position
        self._fetched = start_position      # end of the contiguous fetched prefix
        self._issued = start_position       # optimistic: advanced when a task is issued
        self._end: Optional[int] = None     # sequence length, once a short read reveals it
        self._parked: Dict[int, bytes] = {}
        self._tasks: Dict[int, asyncio.Task] = {}
        self._retrying: Set[int] = set()
        self._error: Optional[BaseException] = None
        self._error_reported = False

    # --- cursor / state ---
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def consumed_position(self) -> int:
        return self._consumed

    @property
    def next_fetch_position(self) -> int:
        return self._fetched

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    def status(self) -> SessionStatus:
        """Snapshot for the presentation layer (loading / error / done indicators)."""
        return SessionStatus(
            state=self._state,
            consumed_position=self._consumed,
            next_fetch_position=self._fetched,
            buffered=len(self._buffer),
            in_flight=len(self._tasks),
            retrying=bool(self._retrying),
        )

    # --- lifecycle ---
    def start(self) -> None:
        """Begin prefetching. Needs a running event loop."""
        if self._state is not SessionState.IDLE:
            return
        self._set_state(SessionState.PREFETCHING)
        self._refill()

    def close(self) -> None:
        """End the session: stop issuing and drop whatever is still in flight."""
        if self._state is SessionState.CLOSED:
            return
        self._set_state(SessionState.CLOSED)
        self._cancel_tasks()
        self._parked.clear()
        self._buffer.clear()

    async def aclose(self) -> None:
        tasks = list(self._tasks.values())
        self.close()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        closer = getattr(self.fetcher, "aclose", None)
        if closer is not None:
            await closer()

    async def __aenter__(self):
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    # --- demand signal ---
    def request_more(self) -> Drained:
        """Answer one demand signal without blocking.

        Returns a CHUNK of up to chunk_size bytes, NOT_READY while fetches are
        still outstanding, FAILED once after a fatal error, and END otherwise.
        """
        if self._state is SessionState.CLOSED:
            return END
        if self._state is SessionState.IDLE:
            self.start()

        if self._buffer:
            n = min(self.chunk_size, len(self._buffer))
            data = bytes(self._buffer[:n])
            del self._buffer[:n]
            self._consumed += n
            self._refill()
            return Drained(DrainKind.CHUNK, data)

        if self._state is SessionState.FAILED:
            if not self._error_reported:
                self._error_reported = True
                return Drained(DrainKind.FAILED, error=self._error)
            return END
        if self._state is SessionState.END_OF_STREAM:
            return END

        self._refill()
        return NOT_READY

    async def chunks(self, poll_interval: float = DEFAULT_POLL_INTERVAL) -> AsyncIterator[bytes]:
        """Drive request_more() until the end, sleeping while nothing is ready."""
        while True:
            drained = self.request_more()
            if drained.kind is DrainKind.CHUNK:
                yield drained.data
            elif drained.kind is DrainKind.NOT_READY:
                await asyncio.sleep(poll_interval)
            elif drained.kind is DrainKind.FAILED:
                raise drained.error
            else:
                return

    # --- scheduling ---
    def _set_state(self, state: SessionState) -> None:
        if state is not self._state:
            logger.info("session %s -> %s at consumed=%d fetched=%d",
                        self._state.value, state.value, self._consumed, self._fetched)
            self._state = state

    def _refill(self) -> None:
        """Top the lookahead back up once the buffer drops below the low-water mark."""
        if self._state is not SessionState.PREFETCHING or self._end is not None:
            return
        if len(self._buffer) >= self.low_water:
            return
        # everything between consumed and issued is buffered, parked or in flight
        while len(self._tasks) < self.concurrency and self._issued - self._consumed < self.lookahead:
            offset = self._issued
            self._issued += self.chunk_size
            task = asyncio.get_running_loop().create_task(self._run_fetch(offset, self.chunk_size))
            self._tasks[offset] = task
            logger.debug("issued fetch [%d, %d), %d in flight", offset, offset + self.chunk_size, len(self._tasks))

    async def _run_fetch(self, offset: int, length: int) -> None:
        attempts = 0
        try:
            while True:
                try:
                    data = await asyncio.wait_for(self.fetcher.fetch(offset, length), self.timeout)
                    break
                except (OSError, asyncio.TimeoutError) as e:
                    attempts += 1
                    if self.max_retries is not None and attempts > self.max_retries:
                        self._tasks.pop(offset, None)
                        self._fail(TransientReadError(f"fetch at {offset} failed after {attempts} attempts: {e!r}"))
                        return
                    logger.warning("fetch at %d failed (attempt %d), retrying in %.1fs: %r",
                                   offset, attempts, self.retry_delay, e)
                    self._retrying.add(offset)
                    await asyncio.sleep(self.retry_delay)
                except Exception as e:
                    self._tasks.pop(offset, None)
                    self._fail(e)
                    return
        finally:
            self._retrying.discard(offset)

        # off the in-flight list before completing, so the refill sees a free slot
        self._tasks.pop(offset, None)
        self._complete(offset, length, data)

    def _complete(self, offset: int, length: int, data: bytes) -> None:
        if self._state in (SessionState.CLOSED, SessionState.FAILED):
            return

        if len(data) > length:
            logger.warning("fetch at %d returned %d bytes for %d requested, trimming", offset, len(data), length)
            data = data[:length]

        if len(data) < length:
            end = offset + len(data)
            if self._end is None or end < self._end:
                logger.info("sequence ends at %d", end)
                self._end = end
                self._drop_beyond(end)

        if self._end is None or offset < self._end:
            self._parked[offset] = data

        # reassemble in offset order
        while self._fetched in self._parked:
            chunk = self._parked.pop(self._fetched)
            self._buffer += chunk
            self._fetched += len(chunk)

        if self._end is not None and self._fetched >= self._end:
            self._parked.clear()
            self._set_state(SessionState.END_OF_STREAM)
            return
        self._refill()

    def _drop_beyond(self, end: int) -> None:
        for offset in [o for o in self._tasks if o >= end]:
            self._tasks.pop(offset).cancel()
        for offset in [o for o in self._parked if o >= end]:
            del self._parked[offset]

    def _fail(self, error: BaseException) -> None:
        if self._state in (SessionState.CLOSED, SessionState.FAILED):
            return
        logger.error("session failed at fetched=%d: %r", self._fetched, error)
        self._error = error
        self._set_state(SessionState.FAILED)
        self._cancel_tasks()
        self._parked.clear()

    def _cancel_tasks(self) -> None:
        tasks, self._tasks = self._tasks, {}
        for task in tasks.values():
            task.cancel()
