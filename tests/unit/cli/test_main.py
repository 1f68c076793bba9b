"""Tests for the flowgazer CLI entry point."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from flowgazer.__main__ import build_config, build_identity, main, parse_args
from flowgazer.utils.keys import ENV_PRIVATE_KEY, KeysIdentity, ReadOnlyIdentity
from tests.conftest import PK_ALICE


VALID_HEX_KEY = (
    "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"  # pragma: allowlist secret
)


class TestParseArgs:
    def test_defaults(self) -> None:
        args = parse_args([])
        assert args.view == "global"
        assert args.relay is None
        assert args.log_level is None
        assert args.no_auto_update is False

    def test_invalid_view(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["--view", "trending"])


class TestBuildConfig:
    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        config = build_config(parse_args(["--config", str(tmp_path / "none.yaml")]))
        assert config.relay.max_reconnect_attempts == 3

    def test_overrides(self, tmp_path: Path) -> None:
        path = tmp_path / "flowgazer.yaml"
        path.write_text("views:\n  render_delay: 1.5\nlogging:\n  level: DEBUG\n")
        args = parse_args(
            ["--config", str(path), "--no-auto-update", "--state-file", str(tmp_path / "state.yaml")]
        )

        config = build_config(args)

        assert config.views.render_delay == 1.5
        assert config.views.auto_update is False
        assert config.logging.level == "DEBUG"
        assert config.state_file == tmp_path / "state.yaml"


class TestBuildIdentity:
    def test_from_env(self) -> None:
        with patch.dict(os.environ, {ENV_PRIVATE_KEY: VALID_HEX_KEY}):
            assert isinstance(build_identity(None), KeysIdentity)

    def test_read_only(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            identity = build_identity(PK_ALICE)
        assert isinstance(identity, ReadOnlyIdentity)
        assert identity.current_pubkey() == PK_ALICE


class TestMain:
    @pytest.mark.asyncio
    async def test_invalid_config_exit_code(self, tmp_path: Path) -> None:
        path = tmp_path / "flowgazer.yaml"
        path.write_text("relay:\n  connect_timeout: -1\n")
        assert await main(["--config", str(path)]) == 2
