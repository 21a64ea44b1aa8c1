"""Debounced batching of outgoing requests.

Calls issued within one window are sent together as a single JSON array.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from ..protocol.errors import TransportError

logger = logging.getLogger(__name__)

# send(payload, ids): performs one exchange for the given envelopes
BatchSender = Callable[[list[dict[str, Any]], list[int | str]], Coroutine[Any, Any, None]]
# abort(ids, cause): rejects the given pending ids
AbortHandler = Callable[[list[int | str], BaseException], None]


class BatchScheduler:
    """Accumulates request envelopes and flushes them once per window.

    The first envelope enqueued on an empty queue starts a timer of `window`
    seconds. When it fires the queue is detached and reset before the send
    begins, so calls made while a batch is in flight open a fresh window.
    """

    def __init__(self, window: float, send: BatchSender, abort: AbortHandler) -> None:
        if window < 0:
            raise ValueError(f"Batch window must be non-negative, got {window}")
        self.window = window
        self._send = send
        self._abort = abort
        self._queue: list[dict[str, Any]] = []
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def enabled(self) -> bool:
        """Batching is off when the window is zero."""
        return self.window > 0

    @property
    def queued(self) -> int:
        """Number of envelopes waiting for the current window to close."""
        return len(self._queue)

    def enqueue(self, envelope: dict[str, Any]) -> None:
        """Add an envelope to the current window, starting it if needed."""
        self._queue.append(envelope)
        if self._timer is None:
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(self.window, self.flush)

    def flush(self) -> asyncio.Task[None] | None:
        """Detach the current window and send it as one batch."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        calls, self._queue = self._queue, []
        if not calls:
            return None

        ids = [call["id"] for call in calls]
        logger.debug(f"Flushing batch of {len(calls)} request(s): ids={ids}")

        task = asyncio.get_running_loop().create_task(self._send_batch(calls, ids))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _send_batch(self, calls: list[dict[str, Any]], ids: list[int | str]) -> None:
        try:
            await self._send(calls, ids)
        except Exception as e:
            logger.warning(f"Batch send failed for ids={ids}: {e}")
            cause = e if isinstance(e, TransportError) else TransportError(str(e))
            self._abort(ids, cause)

    async def drain(self) -> None:
        """Wait for batches already handed to the transport."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
