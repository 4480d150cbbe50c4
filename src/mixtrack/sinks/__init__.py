# src/mixtrack/sinks/__init__.py
"""Built-in analytics sinks.

Available sinks:
- MixpanelSink: Mixpanel HTTP ingestion API (default)
- ConsoleSink: Write events to stdout/stderr for local debugging
- MemorySink: Record calls in memory, with optional failure injection

Plugin registration:
    Sinks are registered via the mixtrack_get_sinks hook.
    BuiltinSinksPlugin registers all built-in sinks.
"""

from mixtrack.hookspecs import hookimpl
from mixtrack.sinks.console import ConsoleSink
from mixtrack.sinks.memory import MemorySink
from mixtrack.sinks.mixpanel import MixpanelSink


class BuiltinSinksPlugin:
    """Plugin that registers built-in sinks."""

    @hookimpl
    def mixtrack_get_sinks(self) -> list[type]:
        """Return built-in sink classes."""
        return [MixpanelSink, ConsoleSink, MemorySink]


__all__ = [
    "BuiltinSinksPlugin",
    "ConsoleSink",
    "MemorySink",
    "MixpanelSink",
]
