"""Tests for core.exceptions module."""

import pytest

from flowgazer.core.exceptions import (
    ConfigurationError,
    ConnectivityError,
    FlowgazerError,
    ProfileParseError,
    ProtocolError,
    ProtocolParseError,
    PublishingError,
    ReconnectExhaustedError,
    RelayTimeoutError,
)


class TestHierarchy:
    """Exception inheritance."""

    @pytest.mark.parametrize(
        ("exc", "parent"),
        [
            (ConfigurationError, FlowgazerError),
            (ConnectivityError, FlowgazerError),
            (RelayTimeoutError, ConnectivityError),
            (ReconnectExhaustedError, ConnectivityError),
            (ProtocolError, FlowgazerError),
            (ProtocolParseError, ProtocolError),
            (ProfileParseError, ProtocolError),
            (PublishingError, FlowgazerError),
        ],
    )
    def test_subclass(self, exc: type[Exception], parent: type[Exception]) -> None:
        assert issubclass(exc, parent)

    def test_catch_all_connectivity(self) -> None:
        with pytest.raises(ConnectivityError):
            raise RelayTimeoutError("slow relay")

    def test_message_preserved(self) -> None:
        assert str(PublishingError("relay is not connected")) == "relay is not connected"
