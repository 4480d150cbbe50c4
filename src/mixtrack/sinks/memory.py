# src/mixtrack/sinks/memory.py
"""In-memory sink.

Records every call instead of shipping it anywhere. Useful for dry runs,
for host-application tests that assert on tracked events, and for
exercising the tracker's failure handling via failure injection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from mixtrack.config import TrackingSettings


class MemorySink:
    """Record analytics calls in lists.

    Failure injection:
        fail_initialize: Number of initialize() calls that raise before one
            succeeds. Negative means every call raises.
        fail_register / fail_send / fail_identify / fail_reset / fail_close:
            When True, the corresponding call always raises.

    Attributes:
        initialize_calls: Number of initialize() calls made
        registered: Properties passed to register(), merged
        events: (kind, properties) for each successful send, in call order
        identities: (user_id, properties) for each successful identify
        reset_count: Number of successful reset() calls
    """

    _name = "memory"

    def __init__(
        self,
        *,
        fail_initialize: int = 0,
        fail_register: bool = False,
        fail_send: bool = False,
        fail_identify: bool = False,
        fail_reset: bool = False,
        fail_close: bool = False,
    ) -> None:
        self._fail_initialize = fail_initialize
        self._fail_register = fail_register
        self._fail_send = fail_send
        self._fail_identify = fail_identify
        self._fail_reset = fail_reset
        self._fail_close = fail_close

        self.initialize_calls = 0
        self.registered: dict[str, Any] = {}
        self.events: list[tuple[str, dict[str, Any]]] = []
        self.identities: list[tuple[str, dict[str, Any] | None]] = []
        self.reset_count = 0
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    async def initialize(self, settings: TrackingSettings) -> None:
        self.initialize_calls += 1
        if self._fail_initialize < 0 or self.initialize_calls <= self._fail_initialize:
            raise ConnectionError(f"Simulated initialize failure (attempt {self.initialize_calls})")

    def register(self, properties: dict[str, Any]) -> None:
        if self._fail_register:
            raise RuntimeError("Simulated register failure")
        self.registered.update(properties)

    async def send(self, kind: str, payload: dict[str, Any]) -> None:
        if self._fail_send:
            raise ConnectionError(f"Simulated send failure for {kind}")
        self.events.append((kind, {**self.registered, **payload}))

    async def identify(self, user_id: str, properties: dict[str, Any] | None) -> None:
        if self._fail_identify:
            raise ConnectionError("Simulated identify failure")
        self.identities.append((user_id, properties))

    async def reset(self) -> None:
        if self._fail_reset:
            raise ConnectionError("Simulated reset failure")
        self.reset_count += 1

    async def close(self) -> None:
        if self._fail_close:
            raise RuntimeError("Simulated close failure")
        self.closed = True

    @property
    def kinds(self) -> list[str]:
        """Kinds of all recorded events, in order."""
        return [kind for kind, _ in self.events]
