# src/mixtrack/backlog.py
"""Bounded backlog for events tracked before the sink is ready.

Events are held in arrival order and handed out exactly once by drain().
Capacity protects memory, not event importance: when the backlog is full,
the default policy drops the NEW event and keeps everything already queued.
DROP_OLDEST is available for recency-biased deployments.

Drops are logged per event at debug level and aggregated every
_LOG_INTERVAL drops at warning level.
"""

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class OverflowPolicy(StrEnum):
    """What happens to an enqueue when the backlog is full.

    Values:
        DROP_NEWEST: Reject the incoming event, keep the queue unchanged
        DROP_OLDEST: Evict the head of the queue, append the incoming event
    """

    DROP_NEWEST = "drop_newest"
    DROP_OLDEST = "drop_oldest"


@dataclass(frozen=True, slots=True)
class QueuedEvent:
    """An enriched event waiting for the sink.

    Attributes:
        kind: Event kind name
        payload: Enriched payload (includes event_category and timestamp)
    """

    kind: str
    payload: dict[str, Any]


class BacklogQueue:
    """FIFO queue of QueuedEvent with a hard capacity.

    Thread Safety:
        NOT thread-safe. The tracker runs on a single event loop and never
        touches the backlog from another thread.

    Example:
        backlog = BacklogQueue(capacity=50)
        backlog.enqueue("FeedbackSubmitted", {"feedback_text": "great app"})
        backlog.drain(lambda kind, payload: dispatcher.submit(kind, payload))
    """

    _LOG_INTERVAL = 10

    def __init__(self, capacity: int = 50, overflow: OverflowPolicy = OverflowPolicy.DROP_NEWEST) -> None:
        """Initialize an empty backlog.

        Args:
            capacity: Maximum number of queued events. Defaults to 50.
            overflow: Policy applied when an event arrives at capacity.

        Raises:
            ValueError: If capacity < 1.
        """
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._entries: deque[QueuedEvent] = deque()
        self._capacity = capacity
        self._overflow = overflow
        self._dropped_count = 0
        self._last_logged_drop_count = 0

    def enqueue(self, kind: str, payload: dict[str, Any]) -> bool:
        """Append an event at the tail.

        Args:
            kind: Event kind name
            payload: Enriched payload

        Returns:
            True if the event was queued, False if it was dropped.
        """
        if len(self._entries) < self._capacity:
            self._entries.append(QueuedEvent(kind, payload))
            logger.debug("Queued event", kind=kind, backlog_size=len(self._entries))
            return True

        if self._overflow == OverflowPolicy.DROP_OLDEST:
            evicted = self._entries.popleft()
            self._entries.append(QueuedEvent(kind, payload))
            self._record_drop(evicted.kind)
            return True

        self._record_drop(kind)
        return False

    def _record_drop(self, kind: str) -> None:
        self._dropped_count += 1
        logger.debug(
            "Backlog full - event dropped",
            kind=kind,
            capacity=self._capacity,
            overflow=self._overflow.value,
        )
        if self._dropped_count - self._last_logged_drop_count >= self._LOG_INTERVAL:
            logger.warning(
                "Backlog overflow - events dropped",
                dropped_since_last_log=self._dropped_count - self._last_logged_drop_count,
                dropped_total=self._dropped_count,
                capacity=self._capacity,
                hint="Sink is not ready; check token and network",
            )
            self._last_logged_drop_count = self._dropped_count

    def drain(self, deliver: Callable[[str, dict[str, Any]], object]) -> int:
        """Hand every queued event to deliver(), oldest first.

        Each entry is removed before deliver() is called, so an entry is
        never handed out twice. A failing deliver() loses that entry only;
        draining continues with the next one.

        Args:
            deliver: Called as deliver(kind, payload) for each entry.

        Returns:
            Number of entries delivered without error.
        """
        if not self._entries:
            return 0

        logger.debug("Draining backlog", backlog_size=len(self._entries))
        delivered = 0
        while self._entries:
            entry = self._entries.popleft()
            try:
                deliver(entry.kind, entry.payload)
            except Exception as e:
                logger.error("Failed to deliver queued event", kind=entry.kind, error=str(e))
                continue
            delivered += 1
        return delivered

    def size(self) -> int:
        """Current number of queued events."""
        return len(self._entries)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def dropped_count(self) -> int:
        """Number of events lost to the capacity limit."""
        return self._dropped_count

    def __len__(self) -> int:
        return len(self._entries)
