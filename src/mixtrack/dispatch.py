# src/mixtrack/dispatch.py
"""Dispatcher: ordered, fire-and-forget delivery to the sink.

Every sink call made after the sink is ready goes through one asyncio queue
consumed by one worker task. Sink calls therefore happen strictly in the
order they were submitted, and a drained backlog (submitted in one
synchronous step when the sink becomes ready) always reaches the sink
before any event tracked afterwards.

Callers never await anything: submit() enqueues and returns. Completion is
observable only through the optional callback passed with an event.

Failed sink calls are logged and counted, never retried.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from mixtrack.adapter import Callback, SinkAdapter
from mixtrack.errors import SinkError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class _Job:
    operation: str
    label: str
    call: Callable[[], Awaitable[None]]


class Dispatcher:
    """Serialize sink calls on a single worker task.

    Example:
        dispatcher = Dispatcher(adapter)
        dispatcher.start()
        dispatcher.submit("FeedbackSubmitted", payload, callback=on_done)
        await dispatcher.flush()
        await dispatcher.close()
    """

    def __init__(self, adapter: SinkAdapter) -> None:
        self._adapter = adapter
        self._queue: asyncio.Queue[_Job | None] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._closed = False

        # Health metrics
        self._completed = 0
        self._failed = 0

    def start(self) -> None:
        """Start the worker task on the running event loop.

        Idempotent. Does nothing once the dispatcher has been closed.
        """
        if self._task is not None or self._closed:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="mixtrack-dispatch")

    @property
    def started(self) -> bool:
        return self._task is not None

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                if job is None:  # Shutdown sentinel
                    break
                await job.call()
                self._completed += 1
                logger.debug("Sink call completed", operation=job.operation, label=job.label)
            except SinkError as e:
                self._failed += 1
                logger.warning("Sink call failed", operation=job.operation, label=job.label, error=str(e))
            except Exception as e:
                self._failed += 1
                logger.error("Dispatch failed unexpectedly", operation=job.operation, label=job.label, error=str(e))
            finally:
                self._queue.task_done()

    def _put(self, job: _Job) -> None:
        if self._closed:
            raise RuntimeError(f"Dispatcher is closed, cannot {job.operation} '{job.label}'")
        self._queue.put_nowait(job)

    def submit(self, kind: str, payload: dict[str, Any], callback: Callback | None = None) -> None:
        """Schedule an event send. The callback runs after the send completes or fails.

        Raises:
            RuntimeError: If the dispatcher has been closed.
        """
        self._put(_Job("send", kind, lambda: self._adapter.send(kind, payload, callback)))

    def submit_identify(self, user_id: str, properties: dict[str, Any] | None = None) -> None:
        """Schedule an identify call, ordered with surrounding events."""
        self._put(_Job("identify", user_id, lambda: self._adapter.identify(user_id, properties)))

    def submit_reset(self) -> None:
        """Schedule a reset call, ordered with surrounding events."""
        self._put(_Job("reset", "-", self._adapter.reset))

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def health_metrics(self) -> dict[str, Any]:
        return {
            "calls_completed": self._completed,
            "calls_failed": self._failed,
            "calls_pending": self._queue.qsize(),
        }

    async def flush(self) -> None:
        """Wait until every submitted call has completed or failed."""
        if self._task is None:
            return
        await self._queue.join()

    async def close(self, timeout: float = 5.0) -> None:
        """Process remaining calls, then stop the worker.

        New submissions are rejected from this point on.
        """
        if self._closed:
            return
        self._closed = True
        if self._task is None:
            return

        self._queue.put_nowait(None)
        try:
            await asyncio.wait_for(self._task, timeout=timeout)
        except TimeoutError:
            logger.error("Dispatcher did not exit cleanly within timeout", pending=self._queue.qsize())
            self._task.cancel()
