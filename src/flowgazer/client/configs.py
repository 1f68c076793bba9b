"""Pydantic configuration models for the client components.

Each component takes its own config object; [FlowgazerConfig][flowgazer.client.configs.FlowgazerConfig]
aggregates them for YAML loading:

```yaml
relay_url: wss://r.kojira.io
state_file: ~/.flowgazer/state.yaml
relay:
  connect_timeout: 5.0
  max_reconnect_attempts: 3
profiles:
  debounce: 0.5
  max_batch_size: 100
views:
  render_delay: 0.3
  auto_update: true
timeline:
  global_limit: 50
logging:
  level: INFO
metrics:
  enabled: false
```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Self

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from flowgazer.core.exceptions import ConfigurationError
from flowgazer.core.metrics import MetricsConfig
from flowgazer.core.yaml import load_yaml
from flowgazer.models.constants import CLIENT_TAG, DEFAULT_RELAY_URL


class RelayLinkConfig(BaseModel):
    """Connection, timeout, and reconnect backoff settings."""

    connect_timeout: float = Field(default=5.0, gt=0.0, description="Handshake timeout (s)")
    reconnect_base_delay: float = Field(
        default=1.0, gt=0.0, description="Backoff base; attempt k waits base * 2**k seconds"
    )
    reconnect_max_delay: float = Field(default=10.0, gt=0.0, description="Backoff ceiling (s)")
    max_reconnect_attempts: int = Field(
        default=3, ge=0, description="Consecutive automatic reconnects before giving up"
    )

    @model_validator(mode="after")
    def _check_delays(self) -> Self:
        if self.reconnect_max_delay < self.reconnect_base_delay:
            raise ValueError("reconnect_max_delay must be >= reconnect_base_delay")
        return self


class ProfileBatcherConfig(BaseModel):
    """Kind-0 request coalescing settings."""

    debounce: float = Field(default=0.5, ge=0.0, description="Seconds to coalesce requests")
    max_batch_size: int = Field(default=100, ge=1, description="Authors per subscription")


class ViewRouterConfig(BaseModel):
    """Redraw coalescing settings."""

    render_delay: float = Field(default=0.3, ge=0.0, description="Seconds to coalesce redraws")
    auto_update: bool = Field(default=True, description="Redraw automatically on new events")


class TimelineConfig(BaseModel):
    """Subscription limits used when (re)building the main timeline."""

    global_limit: int = Field(default=50, ge=1)
    following_limit: int = Field(default=100, ge=1)
    myposts_limit: int = Field(default=100, ge=1)
    load_more_limit: int = Field(default=50, ge=1)
    client_tag: str = Field(default=CLIENT_TAG, min_length=1, description="Value of our client tag")


class LoggingConfig(BaseModel):
    """Root log level applied by the CLI (overridden by ``--log-level``)."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")


class FlowgazerConfig(BaseModel):
    """Top-level configuration consumed by [FlowgazerClient][flowgazer.client.app.FlowgazerClient]."""

    relay_url: str = Field(default=DEFAULT_RELAY_URL, description="Relay used when none is saved")
    state_file: Path | None = Field(default=None, description="YAML file remembering the relay")
    relay: RelayLinkConfig = Field(default_factory=RelayLinkConfig)
    profiles: ProfileBatcherConfig = Field(default_factory=ProfileBatcherConfig)
    views: ViewRouterConfig = Field(default_factory=ViewRouterConfig)
    timeline: TimelineConfig = Field(default_factory=TimelineConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FlowgazerConfig:
        """Validate a configuration dictionary.

        Raises:
            ConfigurationError: If validation fails.
        """
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> FlowgazerConfig:
        """Load and validate a YAML configuration file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigurationError: If the YAML is malformed or validation fails.
        """
        try:
            data = load_yaml(config_path)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"invalid YAML in {config_path}: {e}") from e
        return cls.from_dict(data)
