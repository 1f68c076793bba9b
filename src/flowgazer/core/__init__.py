"""Infrastructure shared by the client components.

Attributes:
    Logger: Structured key=value / JSON logger.
    Debouncer: Cancel-and-replace timer for coalescing bursts.
    YamlConfigStore: Persistent get/set store (last relay URL).
    MetricsServer: Prometheus exposition over aiohttp.
    FlowgazerError: Root of the exception hierarchy.
"""

from .debounce import Debouncer
from .exceptions import (
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
from .logger import Logger, StructuredFormatter, setup_logging
from .metrics import MetricsConfig, MetricsServer
from .yaml import MemoryConfigStore, YamlConfigStore, load_yaml


__all__ = [
    "ConfigurationError",
    "ConnectivityError",
    "Debouncer",
    "FlowgazerError",
    "Logger",
    "MemoryConfigStore",
    "MetricsConfig",
    "MetricsServer",
    "ProfileParseError",
    "ProtocolError",
    "ProtocolParseError",
    "PublishingError",
    "ReconnectExhaustedError",
    "RelayTimeoutError",
    "StructuredFormatter",
    "YamlConfigStore",
    "load_yaml",
    "setup_logging",
]
