# src/mixtrack/config.py
"""
Configuration schema and loading for mixtrack.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from mixtrack.backlog import OverflowPolicy

_MOBILE_USER_AGENT = re.compile(r"Mobi|Android", re.IGNORECASE)


def classify_platform(user_agent: str | None) -> Literal["mobile", "web"]:
    """Classify a client as mobile or web from its user agent string."""
    if user_agent and _MOBILE_USER_AGENT.search(user_agent):
        return "mobile"
    return "web"


class TrackingSettings(BaseModel):
    """Tracking client configuration.

    Example YAML:
        token: ${MIXPANEL_TOKEN}
        debug: false
        sink: mixpanel
        queue_capacity: 50
        max_init_attempts: 3
        init_base_delay_seconds: 1.0
    """

    model_config = {"frozen": True}

    token: str = Field(default="", description="Analytics project token")
    debug: bool = Field(default=False, description="Log every init attempt, queue action and tracking call")
    sink: str = Field(default="mixpanel", description="Name of the sink to deliver events to")
    sink_options: dict[str, Any] = Field(default_factory=dict, description="Sink-specific options")
    api_host: str = Field(default="https://api.mixpanel.com", description="Analytics ingestion API host")
    request_timeout_seconds: float = Field(default=10.0, gt=0, description="HTTP timeout for sink requests")

    queue_capacity: int = Field(default=50, gt=0, description="Maximum events held before the sink is ready")
    overflow_policy: OverflowPolicy = Field(
        default=OverflowPolicy.DROP_NEWEST,
        description="Which event to drop when the backlog is full",
    )

    max_init_attempts: int = Field(default=3, gt=0, description="Total sink initialization attempts")
    init_base_delay_seconds: float = Field(default=1.0, gt=0, description="Base delay for exponential backoff")

    app_version: str = Field(default="1.0.0", description="Registered with every event as app_version")
    user_agent: str | None = Field(default=None, description="Client user agent, used to classify platform")
    platform: str | None = Field(default=None, description="Registered with every event; derived from user_agent if unset")

    @field_validator("token", "app_version", mode="before")
    @classmethod
    def coerce_to_str(cls, v: Any) -> Any:
        # Dynaconf parses MIXTRACK_TOKEN=123 as an int
        if isinstance(v, int | float) and not isinstance(v, bool):
            return str(v)
        return v

    @model_validator(mode="after")
    def derive_platform(self) -> "TrackingSettings":
        if self.platform is None:
            # frozen model - bypass __setattr__ for the derived default
            object.__setattr__(self, "platform", classify_platform(self.user_agent))
        return self

    def default_properties(self) -> dict[str, Any]:
        """Properties registered with the sink once it is ready."""
        return {"platform": self.platform, "app_version": self.app_version}


def load_settings(config_path: Path | None = None, **overrides: Any) -> TrackingSettings:
    """Load settings from an optional YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Keyword overrides - highest priority
    2. Environment variables (MIXTRACK_*)
    3. Config file, if given
    4. Defaults from the Pydantic schema - lowest priority

    Environment variable format: MIXTRACK_TOKEN, MIXTRACK_SINK_OPTIONS__FORMAT.

    Args:
        config_path: Optional path to a YAML configuration file
        **overrides: Values that win over every other source

    Returns:
        Validated TrackingSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config_path is given but doesn't exist
    """
    from dynaconf import Dynaconf

    # Explicit check for file existence (Dynaconf silently accepts missing files)
    if config_path is not None and not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="MIXTRACK",
        settings_files=[str(config_path)] if config_path is not None else [],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; convert to lowercase for Pydantic
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    raw_config.update(overrides)
    known = TrackingSettings.model_fields.keys()
    return TrackingSettings(**{k: v for k, v in raw_config.items() if k in known})
