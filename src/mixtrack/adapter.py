# src/mixtrack/adapter.py
"""SinkAdapter: the failure boundary around a sink.

Every sink operation either succeeds or raises a SinkError subclass. The
adapter does not retry; retries exist only for initialization and are owned
by the InitializationController.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog

from mixtrack.errors import SinkDeliveryError, SinkInitializationError
from mixtrack.protocols import SinkProtocol

if TYPE_CHECKING:
    from mixtrack.config import TrackingSettings

logger = structlog.get_logger(__name__)

Callback = Callable[[], object]


def run_callback(callback: Callback | None, **context: Any) -> None:
    """Invoke a completion callback, logging instead of raising on error."""
    if callback is None:
        return
    try:
        callback()
    except Exception as e:
        logger.warning("Tracking callback raised", error=str(e), **context)


class SinkAdapter:
    """Wrap a SinkProtocol implementation with uniform error semantics.

    Example:
        adapter = SinkAdapter(MixpanelSink())
        await adapter.initialize(settings)
        await adapter.send("FeedbackSubmitted", payload, callback=on_done)
    """

    def __init__(self, sink: SinkProtocol) -> None:
        self._sink = sink

    @property
    def sink(self) -> SinkProtocol:
        return self._sink

    @property
    def name(self) -> str:
        return self._sink.name

    async def initialize(self, settings: "TrackingSettings") -> None:
        """Initialize the sink.

        Raises:
            SinkInitializationError: If the sink raised for any reason.
        """
        try:
            await self._sink.initialize(settings)
        except Exception as e:
            raise SinkInitializationError(self.name, "initialize", str(e) or type(e).__name__) from e

    def register(self, properties: dict[str, Any]) -> None:
        """Register default properties included with every event.

        Raises:
            SinkInitializationError: If the sink rejected the properties.
        """
        try:
            self._sink.register(properties)
        except Exception as e:
            raise SinkInitializationError(self.name, "register", str(e) or type(e).__name__) from e

    async def send(self, kind: str, payload: dict[str, Any], callback: Callback | None = None) -> None:
        """Send one event. The callback runs whether or not the send succeeded.

        Raises:
            SinkDeliveryError: If the sink raised for any reason.
        """
        try:
            await self._sink.send(kind, payload)
        except Exception as e:
            raise SinkDeliveryError(self.name, "send", str(e) or type(e).__name__) from e
        finally:
            run_callback(callback, kind=kind)

    async def identify(self, user_id: str, properties: dict[str, Any] | None = None) -> None:
        """Identify the current user.

        Raises:
            SinkDeliveryError: If the sink raised for any reason.
        """
        try:
            await self._sink.identify(user_id, properties)
        except Exception as e:
            raise SinkDeliveryError(self.name, "identify", str(e) or type(e).__name__) from e

    async def reset(self) -> None:
        """Reset the current identity.

        Raises:
            SinkDeliveryError: If the sink raised for any reason.
        """
        try:
            await self._sink.reset()
        except Exception as e:
            raise SinkDeliveryError(self.name, "reset", str(e) or type(e).__name__) from e

    async def close(self) -> None:
        """Close the sink. Failures are logged, never raised."""
        try:
            await self._sink.close()
        except Exception as e:
            logger.warning("Sink close failed", sink=self.name, error=str(e))
