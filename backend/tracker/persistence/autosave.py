"""Debounced single-flight autosave queue.

- `schedule(value)` replaces the pending payload and restarts the delay timer
- At most one flush runs at a time; a payload scheduled during a flush is
  flushed right after it, without another delay
- Intermediate payloads are coalesced: only the latest one is flushed
- `cancel()` drops the timer and the pending payload but never aborts an
  in-flight flush; `wait_idle()` waits for that flush to settle
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AutosaveStatus(str, Enum):
    """Queue state reported to observers."""

    idle = "idle"
    scheduled = "scheduled"
    saving = "saving"
    error = "error"


StatusCallback = Callable[[AutosaveStatus, BaseException | None], None]


class AutosaveQueue(Generic[T]):
    """Generic debounce-and-single-flight task scheduler."""

    def __init__(
        self,
        on_flush: Callable[[T], Awaitable[None]],
        *,
        delay: float = 0.3,
        on_status_change: StatusCallback | None = None,
    ) -> None:
        """Initialize queue.

        Args:
            on_flush: Coroutine function persisting one payload
            delay: Debounce delay in seconds
            on_status_change: Optional observer of status transitions
        """
        self._on_flush = on_flush
        self._delay = delay
        self._on_status_change = on_status_change

        self._timer: asyncio.TimerHandle | None = None
        self._pending: T | None = None
        self._has_pending = False
        self._inflight: asyncio.Task[None] | None = None
        self._last_error: BaseException | None = None

    @property
    def is_flushing(self) -> bool:
        return self._inflight is not None

    @property
    def has_pending(self) -> bool:
        return self._has_pending

    def _notify(self, status: AutosaveStatus, error: BaseException | None = None) -> None:
        if status == AutosaveStatus.error:
            self._last_error = error
        elif status != AutosaveStatus.scheduled:
            self._last_error = None
        if self._on_status_change is not None:
            self._on_status_change(status, error)

    def _clear_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def schedule(self, value: T) -> None:
        """Record `value` as the latest payload and restart the delay timer.

        Must be called from within a running event loop.
        """
        self._pending = value
        self._has_pending = True
        self._clear_timer()
        self._notify(AutosaveStatus.scheduled, self._last_error)

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._delay, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        if self._inflight is not None:
            # Picked up when the in-flight flush finishes
            return
        self._start_flush()

    def _start_flush(self) -> asyncio.Task[None] | None:
        if not self._has_pending:
            return None

        value = self._pending
        self._pending = None
        self._has_pending = False

        self._notify(AutosaveStatus.saving)
        task = asyncio.get_running_loop().create_task(self._run(value))  # type: ignore[arg-type]
        task.add_done_callback(self._on_task_done)
        self._inflight = task
        return task

    async def _run(self, value: T) -> None:
        try:
            await self._on_flush(value)
        except Exception as e:
            self._notify(AutosaveStatus.error, e)
            raise
        else:
            self._notify(AutosaveStatus.idle)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        if self._inflight is task:
            self._inflight = None

        # Timer-triggered failures are reported via status only
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Autosave flush failed: %s", task.exception())

        if self._has_pending and self._inflight is None:
            self._clear_timer()
            self._start_flush()

    async def flush_now(self) -> None:
        """Flush the pending payload immediately and wait for all flushes.

        Raises:
            Exception: Whatever the flush callback raised
        """
        self._clear_timer()
        while True:
            if self._inflight is not None:
                task = self._inflight
                await asyncio.shield(task)
                # Let the done callback clear state and chain the next flush
                if self._inflight is task:
                    await asyncio.sleep(0)
            elif self._has_pending:
                self._start_flush()
            else:
                return

    def cancel(self) -> None:
        """Drop the pending timer and payload; an in-flight flush continues."""
        self._clear_timer()
        self._pending = None
        self._has_pending = False

    async def wait_idle(self) -> None:
        """Wait until no flush is in flight, without starting pending ones.

        Flush failures are not raised here; they were already reported
        through the status callback.
        """
        while self._inflight is not None:
            task = self._inflight
            await asyncio.wait({task})
            if self._inflight is task:
                await asyncio.sleep(0)
