# src/mixtrack/controller.py
"""InitializationController: sink initialization with exponential backoff.

Owns the one piece of process-wide mutable state the tracker consults:
whether the sink is ready. Transitions are monotonic:

    NOT_READY -> INITIALIZING -> READY
                              -> FAILED_PERMANENTLY
                              -> STOPPED

READY, FAILED_PERMANENTLY and STOPPED are terminal; there is no way back to
INITIALIZING for a controller instance. A fresh process (or a fresh
controller) is the only recovery from FAILED_PERMANENTLY.

Backoff:
    max_attempts is the TOTAL number of initialize() calls, not the number
    of retries. After the n-th failed attempt the controller waits
    base_delay * 2**n seconds, so the defaults (3 attempts, 1s base) try at
    t=0, t=2s and t=6s. Attempts never overlap: the whole retry loop runs
    inside a single task and sleeps between attempts.

On success the controller registers default properties with the sink,
starts the dispatcher and drains the backlog into it - all without an
await in between, so no event tracked afterwards can overtake the backlog.
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt

from mixtrack.adapter import SinkAdapter
from mixtrack.backlog import BacklogQueue
from mixtrack.dispatch import Dispatcher
from mixtrack.errors import SinkInitializationError

if TYPE_CHECKING:
    from mixtrack.config import TrackingSettings

logger = structlog.get_logger(__name__)


class ReadinessState(StrEnum):
    """Lifecycle of the sink as seen by the tracker."""

    NOT_READY = "not_ready"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED_PERMANENTLY = "failed_permanently"
    STOPPED = "stopped"


class InitializationController:
    """Drive sink initialization and publish readiness.

    Example:
        controller = InitializationController(adapter, backlog, dispatcher)
        controller.start(settings)          # returns immediately
        ...
        state = await controller.wait()     # READY or FAILED_PERMANENTLY
        await controller.stop()             # at shutdown
    """

    def __init__(
        self,
        adapter: SinkAdapter,
        backlog: BacklogQueue,
        dispatcher: Dispatcher,
        *,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        default_properties: dict[str, Any] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize in NOT_READY state.

        Args:
            adapter: Sink adapter to initialize
            backlog: Backlog drained once the sink is ready
            dispatcher: Dispatcher started once the sink is ready
            max_attempts: Total initialization attempts before giving up
            base_delay: Base backoff delay in seconds
            default_properties: Registered with the sink after initialize()
            sleep: Awaitable sleep, injectable for tests

        Raises:
            ValueError: If max_attempts < 1 or base_delay < 0.
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        if base_delay < 0:
            raise ValueError(f"base_delay must be >= 0, got {base_delay}")
        self._adapter = adapter
        self._backlog = backlog
        self._dispatcher = dispatcher
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._default_properties = dict(default_properties or {})
        self._sleep = sleep

        self._state = ReadinessState.NOT_READY
        self._attempts = 0
        self._task: asyncio.Task[ReadinessState] | None = None

    @property
    def adapter(self) -> SinkAdapter:
        return self._adapter

    @property
    def state(self) -> ReadinessState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == ReadinessState.READY

    @property
    def attempts(self) -> int:
        """Number of initialize() calls made so far."""
        return self._attempts

    def backoff_delay(self, failures: int) -> float:
        """Seconds to wait after the given number of failed attempts."""
        return self._base_delay * 2**failures

    def start(self, settings: "TrackingSettings") -> asyncio.Task[ReadinessState]:
        """Begin initialization on the running event loop.

        Only the first call has an effect; later calls log a warning and
        return the task created by the first one.

        Returns:
            The task running the attempt loop. Callers don't need to await it.

        Raises:
            RuntimeError: If called without a running event loop.
        """
        if self._task is not None:
            logger.warning("Initialization already started", state=self._state.value)
            return self._task

        loop = asyncio.get_running_loop()
        self._state = ReadinessState.INITIALIZING
        self._task = loop.create_task(self._run(settings), name="mixtrack-init")
        return self._task

    async def wait(self) -> ReadinessState:
        """Wait for initialization to settle and return the final state.

        Cancelling the waiter does not cancel initialization.
        """
        if self._task is not None:
            await asyncio.wait([self._task])
        return self._state

    async def stop(self) -> None:
        """Cancel initialization if it is still running.

        The controller ends in STOPPED: the sink is never initialized again,
        the dispatcher is not started and the backlog is not drained. A
        controller that was never started or has already settled is left
        unchanged.
        """
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        await asyncio.wait([self._task])
        if self._state == ReadinessState.INITIALIZING:
            # Cancelled before the attempt loop ran
            self._state = ReadinessState.STOPPED

    def _wait_strategy(self, retry_state: RetryCallState) -> float:
        return self.backoff_delay(retry_state.attempt_number)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else None
        logger.info(
            "Retrying sink initialization",
            sink=self._adapter.name,
            attempt=retry_state.attempt_number,
            max_attempts=self._max_attempts,
            delay_seconds=delay,
        )

    async def _run(self, settings: "TrackingSettings") -> ReadinessState:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=self._wait_strategy,
            retry=retry_if_exception_type(SinkInitializationError),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    await self._attempt(settings)
        except asyncio.CancelledError:
            self._state = ReadinessState.STOPPED
            logger.info("Sink initialization stopped", sink=self._adapter.name, attempts=self._attempts)
            raise
        except Exception as e:
            self._state = ReadinessState.FAILED_PERMANENTLY
            logger.error(
                "Sink initialization failed permanently",
                sink=self._adapter.name,
                attempts=self._attempts,
                backlog_size=len(self._backlog),
                error=str(e),
            )
            return self._state

        self._become_ready()
        return self._state

    async def _attempt(self, settings: "TrackingSettings") -> None:
        self._attempts += 1
        logger.debug("Initializing sink", sink=self._adapter.name, attempt=self._attempts)
        try:
            await self._adapter.initialize(settings)
            self._adapter.register(self._default_properties)
        except SinkInitializationError as e:
            logger.warning(
                "Sink initialization attempt failed",
                sink=self._adapter.name,
                attempt=self._attempts,
                error=str(e),
            )
            raise

    def _become_ready(self) -> None:
        # No await between the state change and the drain
        self._state = ReadinessState.READY
        self._dispatcher.start()
        drained = self._backlog.drain(self._dispatcher.submit)
        logger.info(
            "Sink initialized",
            sink=self._adapter.name,
            attempts=self._attempts,
            drained=drained,
        )
