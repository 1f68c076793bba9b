"""Flowgazer exception hierarchy.

Exception hierarchy:

```text
FlowgazerError (base -- never raised directly)
├── ConfigurationError         -- config validation, missing keys, bad YAML
├── ConnectivityError          -- relay handshake failed
│   ├── RelayTimeoutError      -- handshake did not finish in time
│   └── ReconnectExhaustedError -- backoff cap reached
├── ProtocolError              -- inbound data could not be understood
│   ├── ProtocolParseError     -- malformed relay frame
│   └── ProfileParseError      -- malformed kind-0 content
└── PublishingError            -- publish attempted while disconnected
```

Only caller-actionable errors cross the client boundary:
[ConnectivityError][flowgazer.core.exceptions.ConnectivityError] from
``RelayLink.connect()`` and
[PublishingError][flowgazer.core.exceptions.PublishingError] from
``RelayLink.publish()``. Protocol errors are logged and absorbed where
they occur; signature and duplicate rejections are reported through
``EventStore.add_event()``'s return value, never raised.
"""

from __future__ import annotations


class FlowgazerError(Exception):
    """Base exception for all flowgazer errors."""


class ConfigurationError(FlowgazerError):
    """Invalid or missing configuration (YAML, CLI flags, state file)."""


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


class ConnectivityError(FlowgazerError):
    """The relay handshake failed or the link is unusable."""


class RelayTimeoutError(ConnectivityError):
    """The relay handshake did not complete within the connect timeout."""


class ReconnectExhaustedError(ConnectivityError):
    """Automatic reconnection gave up after the configured number of attempts."""


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ProtocolError(FlowgazerError):
    """Inbound relay data could not be understood."""


class ProtocolParseError(ProtocolError):
    """A relay frame was not a well-formed JSON array of a known shape."""


class ProfileParseError(ProtocolError):
    """A kind-0 event carried content that is not a JSON object."""


# ---------------------------------------------------------------------------
# Publishing
# ---------------------------------------------------------------------------


class PublishingError(FlowgazerError):
    """An event could not be handed to the relay transport."""
