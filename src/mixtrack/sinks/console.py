# src/mixtrack/sinks/console.py
"""Console sink for analytics events.

Writes events and identity changes to stdout or stderr in JSON or
human-readable format. Used for local debugging and demos.
"""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING, Any, Literal, TextIO, TypeGuard

import structlog

from mixtrack.errors import SinkConfigurationError

if TYPE_CHECKING:
    from mixtrack.config import TrackingSettings

logger = structlog.get_logger(__name__)


def _is_valid_format(v: str) -> TypeGuard[Literal["json", "pretty"]]:
    return v in {"json", "pretty"}


def _is_valid_output(v: str) -> TypeGuard[Literal["stdout", "stderr"]]:
    return v in {"stdout", "stderr"}


class ConsoleSink:
    """Print analytics calls to stdout/stderr.

    Supports two output formats:
    - json: One JSON object per line (for machine processing)
    - pretty: ``[timestamp] Kind (key=value, ...)``

    Configuration options (``sink_options``):
        format: Output format - "json" (default) or "pretty"
        output: Output stream - "stdout" (default) or "stderr"

    Example configuration:
        sink: console
        sink_options:
          format: pretty
          output: stderr
    """

    _name = "console"

    _VALID_FORMATS: frozenset[str] = frozenset({"json", "pretty"})
    _VALID_OUTPUTS: frozenset[str] = frozenset({"stdout", "stderr"})

    def __init__(self) -> None:
        self._format: Literal["json", "pretty"] = "json"
        self._stream: TextIO = sys.stdout
        self._super_properties: dict[str, Any] = {}
        self._distinct_id: str | None = None

    @property
    def name(self) -> str:
        return self._name

    async def initialize(self, settings: TrackingSettings) -> None:
        """Validate and apply sink options.

        Raises:
            SinkConfigurationError: If format or output is invalid
        """
        options = settings.sink_options

        format_value = options.get("format", "json")
        if not isinstance(format_value, str):
            raise SinkConfigurationError(self._name, f"'format' must be a string, got {type(format_value).__name__}")
        if not _is_valid_format(format_value):
            raise SinkConfigurationError(
                self._name,
                f"Invalid format '{format_value}'. Must be one of: {', '.join(sorted(self._VALID_FORMATS))}",
            )

        output_value = options.get("output", "stdout")
        if not isinstance(output_value, str):
            raise SinkConfigurationError(self._name, f"'output' must be a string, got {type(output_value).__name__}")
        if not _is_valid_output(output_value):
            raise SinkConfigurationError(
                self._name,
                f"Invalid output '{output_value}'. Must be one of: {', '.join(sorted(self._VALID_OUTPUTS))}",
            )

        self._format = format_value
        self._stream = sys.stdout if output_value == "stdout" else sys.stderr
        logger.debug("Console sink configured", format=self._format, output=output_value)

    def register(self, properties: dict[str, Any]) -> None:
        self._super_properties.update(properties)

    def _emit(self, record: dict[str, Any]) -> None:
        if self._format == "json":
            line = json.dumps(record, default=str)
        else:
            line = self._format_pretty(record)
        print(line, file=self._stream)

    def _format_pretty(self, record: dict[str, Any]) -> str:
        """Format: [TIMESTAMP] Kind (key=value, ...)"""
        properties = dict(record.get("properties") or {})
        timestamp = properties.pop("timestamp", "-")
        details = ", ".join(f"{key}={properties[key]}" for key in sorted(properties))
        label = record["event"]
        if record.get("distinct_id"):
            label = f"{label} <{record['distinct_id']}>"
        if details:
            return f"[{timestamp}] {label} ({details})"
        return f"[{timestamp}] {label}"

    async def send(self, kind: str, payload: dict[str, Any]) -> None:
        self._emit(
            {
                "event": kind,
                "distinct_id": self._distinct_id,
                "properties": {**self._super_properties, **payload},
            }
        )

    async def identify(self, user_id: str, properties: dict[str, Any] | None) -> None:
        self._distinct_id = user_id
        self._emit({"event": "$identify", "distinct_id": user_id, "properties": dict(properties or {})})

    async def reset(self) -> None:
        self._distinct_id = None
        self._emit({"event": "$reset", "distinct_id": None, "properties": {}})

    async def close(self) -> None:
        """Flush the stream. The console sink does not own stdout/stderr."""
        self._stream.flush()
