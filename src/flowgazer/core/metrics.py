"""
Prometheus metrics collection and HTTP exposition.

Module-level metric objects are shared by every client component. The
``MetricsServer`` provides an async HTTP endpoint (via aiohttp) for
Prometheus scraping; it is only started by the CLI when
``MetricsConfig.enabled`` is set.

Architecture:
    FRAMES_RECEIVED:      Inbound relay frames by type (EVENT, EOSE, NOTICE, ...).
    EVENTS_PROCESSED:     EventStore outcomes (accepted, duplicate, invalid).
    RECONNECT_ATTEMPTS:   Automatic reconnections scheduled by RelayLink.
    PROFILE_BATCHES:      Kind-0 batch subscriptions issued by ProfileBatcher.
    RENDERS:              Render-surface refreshes by trigger (debounced, immediate).
    PENDING_EVENTS:       Events waiting for their author's profile.
"""

from __future__ import annotations

from aiohttp import web
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, generate_latest
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class MetricsConfig(BaseModel):
    """Configuration for the Prometheus metrics endpoint."""

    enabled: bool = Field(default=False, description="Expose a /metrics endpoint")
    port: int = Field(default=8000, ge=1024, le=65535, description="Metrics HTTP port")
    host: str = Field(default="127.0.0.1", description="Metrics HTTP bind address")
    path: str = Field(default="/metrics", description="Metrics endpoint path")


# ---------------------------------------------------------------------------
# Client Metrics
# ---------------------------------------------------------------------------

FRAMES_RECEIVED = Counter(
    "flowgazer_frames_received",
    "Inbound relay frames by type",
    ["type"],
)

EVENTS_PROCESSED = Counter(
    "flowgazer_events_processed",
    "EventStore add_event outcomes",
    ["result"],
)

RECONNECT_ATTEMPTS = Counter(
    "flowgazer_reconnect_attempts",
    "Automatic reconnections scheduled after an unexpected close",
)

PROFILE_BATCHES = Counter(
    "flowgazer_profile_batches",
    "Kind-0 batch subscriptions issued",
)

RENDERS = Counter(
    "flowgazer_renders",
    "Render surface refreshes",
    ["trigger"],
)

PENDING_EVENTS = Gauge(
    "flowgazer_pending_events",
    "Events hidden until their author's profile arrives",
)


# ---------------------------------------------------------------------------
# HTTP Server
# ---------------------------------------------------------------------------


class MetricsServer:
    """Async HTTP server exposing a Prometheus-compatible endpoint.

    Example:
        server = MetricsServer(MetricsConfig(enabled=True, port=8001))
        await server.start()
        # ... client runs ...
        await server.stop()
    """

    def __init__(self, config: MetricsConfig) -> None:
        self._config = config
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Start listening for scrape requests; no-op when disabled.

        Raises:
            OSError: If the port is already in use or binding fails.
        """
        if not self._config.enabled:
            return

        app = web.Application()
        app.router.add_get(self._config.path, self._handle_metrics)

        self._runner = web.AppRunner(app, access_log=None)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.host, self._config.port)
        await site.start()

    async def stop(self) -> None:
        """Stop the HTTP server. Safe to call when never started."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    @staticmethod
    async def _handle_metrics(_request: web.Request) -> web.Response:
        return web.Response(
            body=generate_latest(),
            headers={"Content-Type": CONTENT_TYPE_LATEST},
        )
