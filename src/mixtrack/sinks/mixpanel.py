# src/mixtrack/sinks/mixpanel.py
"""Mixpanel sink: ships events over the Mixpanel HTTP ingestion API.

Endpoints (relative to ``settings.api_host``):
- POST /track?verbose=1   one event per request, no batching
- POST /engage?verbose=1  profile updates ($set) for identify()

With ``verbose=1`` Mixpanel answers ``{"status": 1, "error": null}`` on
success and ``{"status": 0, "error": "..."}`` on rejection; both cases
arrive as HTTP 200, so the body is checked as well as the status code.

Identity is held in memory only: an anonymous distinct_id is generated at
initialize() and on reset(); identify() replaces it with the user id.
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from mixtrack.errors import SinkConfigurationError

if TYPE_CHECKING:
    from mixtrack.config import TrackingSettings

logger = structlog.get_logger(__name__)


def _anonymous_id() -> str:
    return f"$device:{uuid.uuid4()}"


class MixpanelSink:
    """Send events to Mixpanel via httpx.AsyncClient.

    Every event carries the registered super properties, the event payload,
    and the Mixpanel reserved properties ``token``, ``distinct_id``, ``time``
    (epoch milliseconds) and ``$insert_id`` (for server-side dedup).

    Example configuration:
        token: ${MIXPANEL_TOKEN}
        sink: mixpanel
        api_host: https://api-eu.mixpanel.com
    """

    _name = "mixpanel"

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialize unconfigured sink.

        Args:
            transport: Optional httpx transport (e.g. httpx.MockTransport)
        """
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._token = ""
        self._super_properties: dict[str, Any] = {}
        self._distinct_id = _anonymous_id()
        self._identified = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def distinct_id(self) -> str:
        return self._distinct_id

    async def initialize(self, settings: TrackingSettings) -> None:
        """Validate the token and open the HTTP client.

        Raises:
            SinkConfigurationError: If no token is configured
        """
        if not settings.token.strip():
            raise SinkConfigurationError(self._name, "token is required")
        self._token = settings.token.strip()

        if self._client is not None:
            await self._client.aclose()
        self._client = httpx.AsyncClient(
            base_url=settings.api_host,
            timeout=settings.request_timeout_seconds,
            headers={"Accept": "application/json"},
            transport=self._transport,
        )
        logger.debug("Mixpanel sink configured", api_host=settings.api_host)

    def register(self, properties: dict[str, Any]) -> None:
        self._super_properties.update(properties)

    def _require_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Mixpanel sink used before initialize()")
        return self._client

    async def _post(self, path: str, body: list[dict[str, Any]]) -> None:
        client = self._require_client()
        response = await client.post(path, params={"verbose": "1"}, json=body)
        response.raise_for_status()
        result = response.json()
        if result.get("status") != 1:
            raise RuntimeError(f"Mixpanel rejected {path}: {result.get('error') or 'unknown error'}")

    def _event_properties(self, payload: dict[str, Any]) -> dict[str, Any]:
        return {
            **self._super_properties,
            **payload,
            "token": self._token,
            "distinct_id": self._distinct_id,
            "time": int(time.time() * 1000),
            "$insert_id": uuid.uuid4().hex,
        }

    async def send(self, kind: str, payload: dict[str, Any]) -> None:
        await self._post("/track", [{"event": kind, "properties": self._event_properties(payload)}])

    async def identify(self, user_id: str, properties: dict[str, Any] | None) -> None:
        """Switch to user_id, linking the anonymous id on first identify.

        Identity changes only once the link has been accepted; if the
        $identify request fails the sink stays anonymous and the next
        identify() sends the link again.
        """
        if not self._identified:
            link_properties = self._event_properties(
                {"$anon_distinct_id": self._distinct_id, "$identified_id": user_id}
            )
            link_properties["distinct_id"] = user_id
            await self._post("/track", [{"event": "$identify", "properties": link_properties}])
            self._identified = True
        self._distinct_id = user_id

        if properties:
            await self._post("/engage", [{"$token": self._token, "$distinct_id": user_id, "$set": properties}])

    async def reset(self) -> None:
        self._distinct_id = _anonymous_id()
        self._identified = False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
