# src/mixtrack/factory.py
"""Factory functions for wiring a Tracker from configuration.

This module provides the glue between TrackingSettings and the runtime
objects. It handles:
1. Discovering sink classes via pluggy hooks
2. Instantiating the configured sink
3. Building backlog, dispatcher, controller and tracker around it
4. Starting sink initialization (init_mixpanel only)

Usage:
    tracker = init_mixpanel(os.environ["MIXPANEL_TOKEN"], debug=True)
    tracker.track_event("SessionStarted", {"user_type": "Guest", "platform": "web"})
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

import pluggy
import structlog

from mixtrack.adapter import SinkAdapter
from mixtrack.backlog import BacklogQueue
from mixtrack.config import TrackingSettings
from mixtrack.controller import InitializationController
from mixtrack.dispatch import Dispatcher
from mixtrack.errors import SinkConfigurationError
from mixtrack.hookspecs import PROJECT_NAME, MixtrackSinkSpec
from mixtrack.logging import configure_logging
from mixtrack.protocols import SinkProtocol
from mixtrack.sinks import BuiltinSinksPlugin
from mixtrack.tracker import Tracker

logger = structlog.get_logger(__name__)


def _resolve_sink_name(sink_class: type[SinkProtocol]) -> str:
    """Resolve sink name from the class-level ``_name`` attribute.

    Raises:
        SinkConfigurationError: If ``_name`` is missing or not a non-empty string.
    """
    class_name = getattr(sink_class, "__name__", repr(sink_class))
    name = sink_class.__dict__.get("_name")
    if type(name) is not str or name == "":
        raise SinkConfigurationError(
            class_name,
            f"Sink class attribute _name must be a non-empty string, got {name!r}",
        )
    return name


def discover_sink_registry(sink_plugins: Iterable[Any] = ()) -> dict[str, type[SinkProtocol]]:
    """Discover sinks via pluggy hooks.

    Registers built-in sinks plus any additional plugin objects, then calls
    ``mixtrack_get_sinks`` hooks to build the name -> class registry.

    Args:
        sink_plugins: Additional plugin objects implementing ``mixtrack_get_sinks``.

    Returns:
        Mapping of sink name to sink class.

    Raises:
        SinkConfigurationError: If a plugin is invalid, a hook fails, or two
            sinks share a name.
    """
    plugin_manager = pluggy.PluginManager(PROJECT_NAME)
    plugin_manager.add_hookspecs(MixtrackSinkSpec)

    for plugin in [BuiltinSinksPlugin(), *sink_plugins]:
        try:
            plugin_manager.register(plugin)
            plugin_manager.check_pending()
        except (pluggy.PluginValidationError, ValueError) as e:
            # PluginValidationError: hook spec mismatch
            # ValueError: plugin object already registered
            if isinstance(e, pluggy.PluginValidationError):
                plugin_manager.unregister(plugin=plugin)
            raise SinkConfigurationError(
                "sink_plugins",
                f"Invalid sink plugin {type(plugin).__name__}: {e}",
            ) from e

    registry: dict[str, type[SinkProtocol]] = {}
    for hook_impl in plugin_manager.hook.mixtrack_get_sinks.get_hookimpls():
        plugin_name = type(hook_impl.plugin).__name__
        try:
            sink_classes = hook_impl.function()
        except Exception as e:
            raise SinkConfigurationError(
                "sink_plugins",
                f"Sink plugin {plugin_name} failed in mixtrack_get_sinks: {e}",
            ) from e
        if sink_classes is None or isinstance(sink_classes, str | bytes):
            raise SinkConfigurationError(
                "sink_plugins",
                f"mixtrack_get_sinks in plugin {plugin_name} returned {type(sink_classes).__name__}; "
                "expected iterable of sink classes",
            )

        for sink_class in sink_classes:
            sink_name = _resolve_sink_name(sink_class)
            if sink_name in registry:
                raise SinkConfigurationError(
                    sink_name,
                    f"Duplicate sink name '{sink_name}' discovered: {registry[sink_name].__name__} and {sink_class.__name__}",
                )
            registry[sink_name] = sink_class

    return registry


def create_tracker(
    settings: TrackingSettings,
    *,
    sink: SinkProtocol | None = None,
    sink_plugins: Iterable[Any] = (),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Tracker:
    """Build a Tracker and its collaborators. Does not start initialization.

    Args:
        settings: Validated tracking settings
        sink: Sink instance to use instead of ``settings.sink``
        sink_plugins: Extra plugin objects providing ``mixtrack_get_sinks``
        sleep: Awaitable sleep used between initialization attempts

    Returns:
        Tracker in NOT_READY state; call ``tracker.controller.start(settings)``.

    Raises:
        SinkConfigurationError: If the configured sink name is unknown or
            sink discovery fails.
    """
    if sink is None:
        registry = discover_sink_registry(sink_plugins)
        try:
            sink_class = registry[settings.sink]
        except KeyError:
            raise SinkConfigurationError(
                settings.sink,
                f"Unknown sink. Available sinks: {sorted(registry)}",
            ) from None
        sink = sink_class()

    adapter = SinkAdapter(sink)
    backlog = BacklogQueue(capacity=settings.queue_capacity, overflow=settings.overflow_policy)
    dispatcher = Dispatcher(adapter)
    controller = InitializationController(
        adapter,
        backlog,
        dispatcher,
        max_attempts=settings.max_init_attempts,
        base_delay=settings.init_base_delay_seconds,
        default_properties=settings.default_properties(),
        sleep=sleep,
    )
    logger.debug("Tracker created", sink=adapter.name, queue_capacity=settings.queue_capacity)
    return Tracker(controller, backlog, dispatcher)


def init_mixpanel(
    token: str,
    debug: bool = False,
    *,
    settings: TrackingSettings | None = None,
    sink: SinkProtocol | None = None,
) -> Tracker:
    """Create a tracker and start sink initialization with retry.

    Must be called from code running on an asyncio event loop. Returns
    immediately; events tracked before the sink is ready are queued.

    Calling this twice creates two independent trackers, each with its own
    retry cycle. Keep exactly one per process.

    Args:
        token: Analytics project token
        debug: Log every init attempt, queue action and tracking call
        settings: Base settings; token and debug override their fields
        sink: Sink instance to use instead of ``settings.sink``

    Returns:
        The Tracker to record events with.

    Raises:
        RuntimeError: If there is no running event loop.
        SinkConfigurationError: If the configured sink cannot be resolved.
    """
    base = settings if settings is not None else TrackingSettings()
    effective = base.model_copy(update={"token": token, "debug": debug})
    configure_logging(debug=debug)

    tracker = create_tracker(effective, sink=sink)
    tracker.controller.start(effective)
    return tracker
