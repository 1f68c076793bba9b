"""Unit tests for the client configuration models."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from flowgazer.client.configs import (
    FlowgazerConfig,
    LoggingConfig,
    ProfileBatcherConfig,
    RelayLinkConfig,
    TimelineConfig,
)
from flowgazer.core.exceptions import ConfigurationError
from flowgazer.models.constants import DEFAULT_RELAY_URL


class TestDefaults:
    def test_relay_link(self) -> None:
        config = RelayLinkConfig()
        assert config.connect_timeout == 5.0
        assert config.reconnect_base_delay == 1.0
        assert config.reconnect_max_delay == 10.0
        assert config.max_reconnect_attempts == 3

    def test_batcher_and_timeline(self) -> None:
        assert ProfileBatcherConfig().max_batch_size == 100
        timeline = TimelineConfig()
        assert timeline.global_limit == 50
        assert timeline.following_limit == 100

    def test_aggregate(self) -> None:
        config = FlowgazerConfig()
        assert config.relay_url == DEFAULT_RELAY_URL
        assert config.state_file is None
        assert config.views.auto_update is True
        assert config.logging.level == "INFO"


class TestValidation:
    def test_max_delay_below_base_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RelayLinkConfig(reconnect_base_delay=5.0, reconnect_max_delay=1.0)

    def test_zero_timeout_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RelayLinkConfig(connect_timeout=0)

    def test_unknown_log_level_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LoggingConfig(level="TRACE")

    def test_from_dict_wraps_errors(self) -> None:
        with pytest.raises(ConfigurationError):
            FlowgazerConfig.from_dict({"profiles": {"max_batch_size": 0}})


class TestFromYaml:
    def test_nested_sections(self, tmp_path: Path) -> None:
        path = tmp_path / "flowgazer.yaml"
        path.write_text(
            "relay_url: wss://relay.example\n"
            "relay:\n"
            "  max_reconnect_attempts: 5\n"
            "views:\n"
            "  auto_update: false\n"
        )

        config = FlowgazerConfig.from_yaml(path)

        assert config.relay_url == "wss://relay.example"
        assert config.relay.max_reconnect_attempts == 5
        assert config.views.auto_update is False
        assert config.profiles.debounce == 0.5

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert FlowgazerConfig.from_yaml(path) == FlowgazerConfig()

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("relay: [unclosed\n")
        with pytest.raises(ConfigurationError, match="invalid YAML"):
            FlowgazerConfig.from_yaml(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            FlowgazerConfig.from_yaml(tmp_path / "missing.yaml")
