# tests/helpers.py
"""Test doubles and builders shared across the test suite.

- RecordingSleep: Awaitable sleep that records requested delays instead of
  waiting, so backoff tests run instantly and can assert on the schedule
- GatedSleep: Awaitable sleep that blocks until released, for acting on the
  tracker while initialization is between attempts
- make_settings(): TrackingSettings with a token and the in-memory sink
- make_tracker(): Build a Tracker around a sink; initialization not started
- start_and_settle(): Start initialization and wait for a terminal state
"""

import asyncio

from mixtrack.config import TrackingSettings
from mixtrack.factory import create_tracker
from mixtrack.protocols import SinkProtocol
from mixtrack.tracker import Tracker


class RecordingSleep:
    """Awaitable sleep replacement that records delays and only yields once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class GatedSleep:
    """Awaitable sleep that blocks until release() is called."""

    def __init__(self) -> None:
        self.delays: list[float] = []
        self.entered = asyncio.Event()
        self._gate = asyncio.Event()

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        self.entered.set()
        await self._gate.wait()

    def release(self) -> None:
        self._gate.set()


def make_settings(**overrides: object) -> TrackingSettings:
    """TrackingSettings with a token and the in-memory sink by default."""
    values: dict[str, object] = {"token": "test-token", "sink": "memory"}
    values.update(overrides)
    return TrackingSettings(**values)  # type: ignore[arg-type]


def make_tracker(
    sink: SinkProtocol,
    /,
    *,
    sleep: RecordingSleep | GatedSleep | None = None,
    **overrides: object,
) -> Tracker:
    """Build a Tracker around sink. Initialization is not started."""
    return create_tracker(make_settings(**overrides), sink=sink, sleep=sleep or RecordingSleep())


async def start_and_settle(tracker: Tracker, **overrides: object) -> None:
    """Start initialization and wait until READY or FAILED_PERMANENTLY."""
    tracker.controller.start(make_settings(**overrides))
    await tracker.controller.wait()
