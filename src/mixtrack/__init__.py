# src/mixtrack/__init__.py
"""mixtrack: fault-tolerant product analytics tracking.

Events tracked before the analytics sink is ready are buffered in a bounded
backlog; sink initialization is retried with exponential backoff; once the
sink is ready the backlog is delivered in order, followed by live events.
Tracking calls never raise and never block the caller.

Components:
- catalog: Closed set of event kinds, payload schemas and categories
- backlog: BacklogQueue for events tracked before the sink is ready
- adapter: SinkAdapter, the failure boundary around a sink
- dispatch: Dispatcher, ordered fire-and-forget delivery
- controller: InitializationController with retry/backoff
- tracker: Tracker, the public entry point (plus category helpers)
- sinks: Built-in sinks (MixpanelSink, ConsoleSink, MemorySink)
- config: TrackingSettings and load_settings()
- factory: create_tracker() and init_mixpanel()

Usage:
    from mixtrack import init_mixpanel

    tracker = init_mixpanel(os.environ["MIXPANEL_TOKEN"], debug=True)
    tracker.session.start(user_type="Guest", platform="web")
    tracker.track_event("FeedbackSubmitted", {"feedback_text": "great app"})
"""

from mixtrack.backlog import BacklogQueue, OverflowPolicy, QueuedEvent
from mixtrack.catalog import CATALOG, EventCategory, EventKind, category_for, required_fields, validate_payload
from mixtrack.config import TrackingSettings, classify_platform, load_settings
from mixtrack.controller import InitializationController, ReadinessState
from mixtrack.errors import (
    PayloadValidationError,
    PreconditionViolation,
    SinkConfigurationError,
    SinkDeliveryError,
    SinkError,
    SinkInitializationError,
    TrackingError,
    UnknownEventKindError,
)
from mixtrack.factory import create_tracker, init_mixpanel
from mixtrack.protocols import SinkProtocol
from mixtrack.sinks import ConsoleSink, MemorySink, MixpanelSink
from mixtrack.tracker import Tracker

__version__ = "1.0.0"

__all__ = [
    "CATALOG",
    "BacklogQueue",
    "ConsoleSink",
    "EventCategory",
    "EventKind",
    "InitializationController",
    "MemorySink",
    "MixpanelSink",
    "OverflowPolicy",
    "PayloadValidationError",
    "PreconditionViolation",
    "QueuedEvent",
    "ReadinessState",
    "SinkConfigurationError",
    "SinkDeliveryError",
    "SinkError",
    "SinkInitializationError",
    "SinkProtocol",
    "Tracker",
    "TrackingError",
    "TrackingSettings",
    "UnknownEventKindError",
    "category_for",
    "classify_platform",
    "create_tracker",
    "init_mixpanel",
    "load_settings",
    "required_fields",
    "validate_payload",
]
