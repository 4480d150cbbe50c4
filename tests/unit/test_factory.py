# tests/unit/test_factory.py
"""Tests for sink discovery, create_tracker() and init_mixpanel()."""

import logging
from typing import Any
from unittest.mock import patch

import pytest
import structlog

from mixtrack.config import TrackingSettings
from mixtrack.controller import ReadinessState
from mixtrack.errors import SinkConfigurationError
from mixtrack.factory import create_tracker, discover_sink_registry, init_mixpanel
from mixtrack.hookspecs import hookimpl
from mixtrack.sinks.console import ConsoleSink
from mixtrack.sinks.memory import MemorySink
from mixtrack.sinks.mixpanel import MixpanelSink
from tests.helpers import make_settings


class ExtraSink(MemorySink):
    _name = "extra"


class SettingsRecordingSink(MemorySink):
    _name = "settings-recording"

    async def initialize(self, settings: TrackingSettings) -> None:
        self.settings = settings
        await super().initialize(settings)


class ExtraSinkPlugin:
    @hookimpl
    def mixtrack_get_sinks(self) -> list[type]:
        return [ExtraSink]


class DuplicateSinkPlugin:
    @hookimpl
    def mixtrack_get_sinks(self) -> list[type]:
        return [MemorySink]


class NamelessSinkPlugin:
    class Nameless(MemorySink):
        pass

    @hookimpl
    def mixtrack_get_sinks(self) -> list[type]:
        return [self.Nameless]


class BrokenHookPlugin:
    @hookimpl
    def mixtrack_get_sinks(self) -> list[type]:
        raise RuntimeError("plugin import failed")


class StringReturningPlugin:
    @hookimpl
    def mixtrack_get_sinks(self) -> Any:
        return "memory"


@pytest.fixture(autouse=True)
def _restore_package_logger() -> Any:
    package_logger = logging.getLogger("mixtrack")
    saved = (list(package_logger.handlers), package_logger.level, package_logger.propagate)
    yield
    package_logger.handlers, package_logger.level, package_logger.propagate = saved
    structlog.reset_defaults()


# =============================================================================
# Discovery Tests
# =============================================================================


class TestDiscoverSinkRegistry:
    def test_builtin_sinks(self) -> None:
        assert discover_sink_registry() == {
            "mixpanel": MixpanelSink,
            "console": ConsoleSink,
            "memory": MemorySink,
        }

    def test_extra_plugin(self) -> None:
        assert discover_sink_registry([ExtraSinkPlugin()])["extra"] is ExtraSink

    def test_duplicate_name_rejected(self) -> None:
        with pytest.raises(SinkConfigurationError, match="Duplicate sink name 'memory'"):
            discover_sink_registry([DuplicateSinkPlugin()])

    def test_subclass_without_own_name_rejected(self) -> None:
        with pytest.raises(SinkConfigurationError, match="_name"):
            discover_sink_registry([NamelessSinkPlugin()])

    def test_failing_hook_wrapped(self) -> None:
        with pytest.raises(SinkConfigurationError, match="plugin import failed"):
            discover_sink_registry([BrokenHookPlugin()])

    def test_string_return_rejected(self) -> None:
        with pytest.raises(SinkConfigurationError, match="expected iterable"):
            discover_sink_registry([StringReturningPlugin()])

    def test_same_plugin_twice_rejected(self) -> None:
        plugin = ExtraSinkPlugin()
        with pytest.raises(SinkConfigurationError, match="Invalid sink plugin"):
            discover_sink_registry([plugin, plugin])


# =============================================================================
# create_tracker Tests
# =============================================================================


class TestCreateTracker:
    def test_resolves_sink_by_name(self) -> None:
        tracker = create_tracker(make_settings(sink="memory"))
        assert isinstance(tracker.controller.adapter.sink, MemorySink)

    def test_unknown_sink_name(self) -> None:
        with pytest.raises(SinkConfigurationError, match="Available sinks"):
            create_tracker(make_settings(sink="carrier-pigeon"))

    def test_plugin_sink_by_name(self) -> None:
        tracker = create_tracker(make_settings(sink="extra"), sink_plugins=[ExtraSinkPlugin()])
        assert isinstance(tracker.controller.adapter.sink, ExtraSink)

    def test_explicit_sink_instance_wins(self) -> None:
        sink = MemorySink()
        tracker = create_tracker(make_settings(sink="mixpanel"), sink=sink)
        assert tracker.controller.adapter.sink is sink

    def test_does_not_start_initialization(self) -> None:
        sink = MemorySink()
        tracker = create_tracker(make_settings(), sink=sink)
        assert tracker.controller.state == ReadinessState.NOT_READY
        assert sink.initialize_calls == 0

    def test_settings_applied(self) -> None:
        tracker = create_tracker(make_settings(queue_capacity=7))
        assert tracker.backlog.capacity == 7


# =============================================================================
# init_mixpanel Tests
# =============================================================================


class TestInitMixpanel:
    @pytest.mark.asyncio
    async def test_starts_initialization(self) -> None:
        sink = MemorySink()
        tracker = init_mixpanel("abc123", sink=sink)

        assert tracker.controller.state == ReadinessState.INITIALIZING
        assert await tracker.controller.wait() == ReadinessState.READY
        assert sink.initialize_calls == 1
        await tracker.close()

    @pytest.mark.asyncio
    async def test_token_and_debug_override_settings(self) -> None:
        sink = SettingsRecordingSink()
        with patch("mixtrack.factory.configure_logging") as mock_configure:
            tracker = init_mixpanel("abc123", debug=True, settings=make_settings(token="ignored"), sink=sink)
        mock_configure.assert_called_once_with(debug=True)

        await tracker.controller.wait()
        assert sink.settings.token == "abc123"
        assert sink.settings.debug is True
        assert sink.settings.sink == "memory"
        await tracker.close()

    @pytest.mark.asyncio
    async def test_debug_enables_package_debug_logging(self) -> None:
        tracker = init_mixpanel("abc123", debug=True, sink=MemorySink())
        assert logging.getLogger("mixtrack").level == logging.DEBUG
        await tracker.controller.wait()
        await tracker.close()

    @pytest.mark.asyncio
    async def test_events_before_ready_are_queued(self) -> None:
        sink = MemorySink()
        tracker = init_mixpanel("abc123", sink=sink)
        tracker.track_event("FeedbackButtonClicked")
        assert tracker.backlog.size() == 1

        await tracker.controller.wait()
        await tracker.flush()
        assert sink.kinds == ["FeedbackButtonClicked"]
        await tracker.close()

    def test_requires_running_loop(self) -> None:
        with pytest.raises(RuntimeError):
            init_mixpanel("abc123", sink=MemorySink())

    def test_two_calls_create_independent_trackers(self) -> None:
        first = create_tracker(make_settings(), sink=MemorySink())
        second = create_tracker(make_settings(), sink=MemorySink())
        assert first.controller is not second.controller
