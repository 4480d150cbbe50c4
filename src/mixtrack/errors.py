# src/mixtrack/errors.py
"""Tracking-specific exceptions.

Only setup-time errors (configuration, sink discovery) ever reach the host
application. Everything raised while tracking is caught at the Tracker
boundary and logged.
"""


class TrackingError(Exception):
    """Base class for all mixtrack errors."""


class SinkError(TrackingError):
    """A sink operation failed.

    The core only distinguishes "failed" from "succeeded"; the transport's own
    error is kept as ``__cause__`` for logging.

    Attributes:
        sink_name: Name of the sink that failed
        operation: Sink operation that failed (initialize, send, identify, ...)
    """

    def __init__(self, sink_name: str, operation: str, message: str) -> None:
        self.sink_name = sink_name
        self.operation = operation
        self.message = message
        super().__init__(f"Sink '{sink_name}' {operation} failed: {message}")


class SinkInitializationError(SinkError):
    """The sink could not be initialized. Retried with backoff by the controller."""


class SinkDeliveryError(SinkError):
    """A single send/identify/reset call failed. The call is not retried."""


class SinkConfigurationError(TrackingError):
    """Raised during sink discovery or configuration, before tracking starts.

    Attributes:
        sink_name: Name of the sink that failed
        message: Human-readable error description
    """

    def __init__(self, sink_name: str, message: str) -> None:
        self.sink_name = sink_name
        self.message = message
        super().__init__(f"Sink '{sink_name}' misconfigured: {message}")


class PreconditionViolation(TrackingError):
    """An operation that requires a ready sink was called before it was ready."""


class UnknownEventKindError(TrackingError):
    """Event kind is not part of the catalog."""

    def __init__(self, kind: object) -> None:
        self.kind = kind
        super().__init__(f"Unknown event kind: {kind!r}")


class PayloadValidationError(TrackingError):
    """Payload does not match the catalog schema for its event kind.

    Attributes:
        kind: Event kind the payload was validated against
        problems: One entry per offending field
    """

    def __init__(self, kind: str, problems: list[str]) -> None:
        self.kind = kind
        self.problems = problems
        super().__init__(f"Invalid payload for '{kind}': {'; '.join(problems)}")
