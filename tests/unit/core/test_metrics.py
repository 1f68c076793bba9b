"""Tests for core.metrics module."""

import pytest
from pydantic import ValidationError

from flowgazer.core import MetricsConfig, MetricsServer
from flowgazer.core.metrics import FRAMES_RECEIVED


class TestMetricsConfig:
    def test_defaults(self) -> None:
        config = MetricsConfig()
        assert config.enabled is False
        assert config.port == 8000
        assert config.path == "/metrics"

    def test_privileged_port_rejected(self) -> None:
        with pytest.raises(ValidationError):
            MetricsConfig(port=80)


class TestMetricsServer:
    @pytest.mark.asyncio
    async def test_disabled_is_noop(self) -> None:
        server = MetricsServer(MetricsConfig(enabled=False))
        await server.start()
        assert server._runner is None
        await server.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self) -> None:
        await MetricsServer(MetricsConfig(enabled=True)).stop()


class TestCounters:
    def test_labelled_counter_increments(self) -> None:
        child = FRAMES_RECEIVED.labels(type="NOTICE")
        before = child._value.get()
        child.inc()
        assert child._value.get() == before + 1
