# src/mixtrack/protocols.py
"""Protocol definitions for analytics sinks.

A sink is the transport that actually ships events to an analytics back end
(Mixpanel HTTP API, console, in-memory recorder, ...). Sinks are wrapped by
SinkAdapter, which turns their failures into SinkError subclasses; sinks
themselves may raise anything.
"""

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mixtrack.config import TrackingSettings


@runtime_checkable
class SinkProtocol(Protocol):
    """Protocol for analytics sinks.

    Lifecycle:
        1. Discovery: mixtrack_get_sinks hook returns sink classes
        2. Instantiation: the factory creates one instance per process
        3. initialize() awaited by the InitializationController, possibly
           several times if earlier attempts fail
        4. register() called once after a successful initialize()
        5. send()/identify()/reset() awaited by the dispatcher, one at a time
        6. close() at shutdown

    Error handling:
        - Every method may raise; SinkAdapter wraps the error
        - close() MUST be idempotent
    """

    @property
    def name(self) -> str:
        """Sink name used in configuration (``sink: mixpanel``)."""
        ...

    async def initialize(self, settings: "TrackingSettings") -> None:
        """Prepare the transport (validate token, open client, ...).

        May be called again after a failure. Implementations must leave
        themselves in a state where a later call can succeed.
        """
        ...

    def register(self, properties: dict[str, Any]) -> None:
        """Register properties to include with every subsequent event."""
        ...

    async def send(self, kind: str, payload: dict[str, Any]) -> None:
        """Ship one event."""
        ...

    async def identify(self, user_id: str, properties: dict[str, Any] | None) -> None:
        """Associate subsequent events with user_id and set profile properties."""
        ...

    async def reset(self) -> None:
        """Forget the current identity (e.g. on logout)."""
        ...

    async def close(self) -> None:
        """Release transport resources. Must be idempotent."""
        ...
