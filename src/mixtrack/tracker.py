# src/mixtrack/tracker.py
"""Tracker: the public entry point for recording events and identities.

Every public operation is synchronous and never raises. Failures are logged
and swallowed at this boundary - analytics must never break the host
application's user-facing flow. Callbacks passed to track_event() are
always invoked exactly once: immediately when the event is queued or
rejected, or after the sink call when the sink is ready.

Routing:
- Sink not ready: events go to the backlog (subject to its capacity);
  identify_user() and reset_user() are skipped with a warning, because
  replaying identity changes after an arbitrary delay is not safe.
- Sink ready: everything is submitted to the dispatcher, which calls the
  sink in submission order.
"""

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

import structlog

from mixtrack.adapter import Callback, run_callback
from mixtrack.backlog import BacklogQueue
from mixtrack.catalog import CATALOG, EventKind, resolve_kind, validate_payload
from mixtrack.controller import InitializationController
from mixtrack.dispatch import Dispatcher
from mixtrack.errors import PreconditionViolation
from mixtrack.helpers import AIEvents, DecisionEvents, FeedbackEvents, SessionEvents

logger = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision, e.g. 2026-01-30T12:00:00.000Z."""
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Tracker:
    """Record analytics events without ever interrupting the caller.

    Example:
        tracker = init_mixpanel(token, debug=True)
        tracker.track_event("FeedbackSubmitted", {"feedback_text": "great app"})
        tracker.session.start(user_type="Guest", platform="web")
        tracker.identify_user("u1", {"email": "a@b.com"})
    """

    def __init__(
        self,
        controller: InitializationController,
        backlog: BacklogQueue,
        dispatcher: Dispatcher,
        *,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._controller = controller
        self._backlog = backlog
        self._dispatcher = dispatcher
        self._now = now

        self.session = SessionEvents(self)
        self.decision = DecisionEvents(self)
        self.ai = AIEvents(self)
        self.feedback = FeedbackEvents(self)

    @property
    def controller(self) -> InitializationController:
        return self._controller

    @property
    def backlog(self) -> BacklogQueue:
        return self._backlog

    def _enrich(self, kind: EventKind, payload: Mapping[str, Any] | None) -> dict[str, Any]:
        data = dict(payload or {})
        # Always derived from the kind; a caller-supplied value is replaced
        data.pop("event_category", None)
        timestamp = data.pop("timestamp", None) or format_timestamp(self._now())
        validated = validate_payload(kind, {**data, "timestamp": timestamp})
        validated.pop("timestamp")
        return {
            **validated,
            "event_category": CATALOG[kind].category.value,
            "timestamp": timestamp,
        }

    def track_event(
        self,
        kind: EventKind | str,
        payload: Mapping[str, Any] | None = None,
        callback: Callback | None = None,
    ) -> None:
        """Track an event, queueing it if the sink is not ready yet.

        Adds ``event_category`` and, if absent, ``timestamp`` to the payload
        and validates it against the catalog. Invalid events are logged and
        dropped.

        Args:
            kind: Event kind (EventKind member or its string value)
            payload: Event properties required by the kind's catalog entry
            callback: Invoked once tracking is done, whatever the outcome
        """
        try:
            event_kind = resolve_kind(kind)
            enriched = self._enrich(event_kind, payload)

            if not self._controller.is_ready:
                self._backlog.enqueue(event_kind.value, enriched)
                run_callback(callback, kind=event_kind.value)
                return

            logger.debug("Tracking event", kind=event_kind.value, payload=enriched)
            self._dispatcher.submit(event_kind.value, enriched, callback)
        except Exception as e:
            logger.error("Tracking failed", kind=str(kind), error=str(e))
            run_callback(callback, kind=str(kind))

    def _require_ready(self, operation: str) -> None:
        if not self._controller.is_ready:
            raise PreconditionViolation(f"Cannot {operation} - sink not ready")

    def identify_user(self, user_id: str, properties: Mapping[str, Any] | None = None) -> None:
        """Associate subsequent events with a user. No-op (with a warning) if not ready.

        Args:
            user_id: Unique identifier for the user
            properties: Profile properties to set on the user
        """
        try:
            self._require_ready("identify user")
            props = dict(properties) if properties is not None else None
            self._dispatcher.submit_identify(user_id, props)
            logger.debug("Identified user", user_id=user_id, properties=props or {})
        except PreconditionViolation as e:
            logger.warning(str(e), state=self._controller.state.value)
        except Exception as e:
            logger.error("Failed to identify user", error=str(e))

    def reset_user(self) -> None:
        """Forget the current user identity (e.g. on logout). No-op (with a warning) if not ready."""
        try:
            self._require_ready("reset user")
            self._dispatcher.submit_reset()
            logger.debug("Reset user identity")
        except PreconditionViolation as e:
            logger.warning(str(e), state=self._controller.state.value)
        except Exception as e:
            logger.error("Failed to reset user", error=str(e))

    @property
    def health_metrics(self) -> dict[str, Any]:
        """Snapshot of tracking health for monitoring.

        - state: Sink readiness state
        - init_attempts: initialize() calls made so far
        - backlog_size / backlog_capacity: Events waiting for the sink
        - events_dropped: Events lost to the backlog capacity
        - calls_completed / calls_failed / calls_pending: Sink call outcomes
        """
        return {
            "state": self._controller.state.value,
            "init_attempts": self._controller.attempts,
            "backlog_size": self._backlog.size(),
            "backlog_capacity": self._backlog.capacity,
            "events_dropped": self._backlog.dropped_count,
            **self._dispatcher.health_metrics,
        }

    async def flush(self) -> None:
        """Wait until every submitted sink call has completed or failed."""
        try:
            await self._dispatcher.flush()
        except Exception as e:
            logger.warning("Tracker flush failed", error=str(e))

    async def close(self) -> None:
        """Stop initialization, deliver in-flight calls, then release the sink.

        Events still in the backlog (sink never became ready) are lost.
        """
        try:
            await self._controller.stop()
        except Exception as e:
            logger.warning("Initialization stop failed", error=str(e))
        try:
            await self._dispatcher.close()
        except Exception as e:
            logger.warning("Dispatcher close failed", error=str(e))
        await self._controller.adapter.close()
        logger.info("Tracker closed", **self.health_metrics)
