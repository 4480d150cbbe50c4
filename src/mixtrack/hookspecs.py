# src/mixtrack/hookspecs.py
"""pluggy hook specifications for analytics sinks.

Sinks implement these hooks to register themselves. create_tracker()
calls them to build the name -> class registry it resolves
``settings.sink`` against.

Usage (implementing a sink plugin):
    from mixtrack.hookspecs import hookimpl

    class MySinkPlugin:
        @hookimpl
        def mixtrack_get_sinks(self):
            return [MySink]
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from mixtrack.protocols import SinkProtocol

PROJECT_NAME = "mixtrack"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class MixtrackSinkSpec:
    """Hook specifications for sink plugins."""

    @hookspec
    def mixtrack_get_sinks(self) -> list[type["SinkProtocol"]]:  # type: ignore[empty-body]
        """Return sink classes (not instances) that implement SinkProtocol."""
