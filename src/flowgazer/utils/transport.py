"""WebSocket transport for the relay link.

Wraps an aiohttp ``ClientWebSocketResponse`` and its owning
``ClientSession`` in a [WebSocketConnection][flowgazer.utils.transport.WebSocketConnection]
exposing the three operations the relay link needs: ``send`` a text
frame, ``receive`` the next text frame (``None`` once the socket is
gone), and ``close``.

[open_websocket()][flowgazer.utils.transport.open_websocket] is the
default ``Connector`` handed to
[RelayLink][flowgazer.client.relay_link.RelayLink]; tests substitute an
in-memory connector with the same signature.

Note:
    The connect timeout is *not* applied here. The relay link races its
    own timeout against the whole handshake so a stalled DNS lookup,
    TCP connect, or upgrade all count against the same timeout.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

import aiohttp


logger = logging.getLogger(__name__)

_WS_CLOSE_TIMEOUT = 5.0
_WS_HEARTBEAT = 30.0


class Connection(Protocol):
    """Minimal message-oriented connection used by the relay link."""

    async def send(self, text: str) -> None: ...

    async def receive(self) -> str | None: ...

    async def close(self) -> None: ...


Connector = Callable[[str], Awaitable[Connection]]


class WebSocketConnection:
    """aiohttp-backed [Connection][flowgazer.utils.transport.Connection]."""

    def __init__(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        session: aiohttp.ClientSession,
        close_timeout: float = _WS_CLOSE_TIMEOUT,
    ) -> None:
        self._ws = ws
        self._session = session
        self._close_timeout = close_timeout

    async def send(self, text: str) -> None:
        await self._ws.send_str(text)

    async def receive(self) -> str | None:
        """Return the next text (or UTF-8 binary) message, or None when closed.

        Ping/pong frames are answered by aiohttp itself and never surface here.
        """
        while True:
            msg = await self._ws.receive()
            if msg.type == aiohttp.WSMsgType.TEXT:
                return msg.data
            if msg.type == aiohttp.WSMsgType.BINARY:
                return msg.data.decode("utf-8", errors="replace")
            if msg.type in (aiohttp.WSMsgType.PING, aiohttp.WSMsgType.PONG):
                continue
            # CLOSE, CLOSING, CLOSED, ERROR -> connection terminated
            return None

    async def close(self) -> None:
        """Close the socket and session with timeouts to prevent hanging."""
        # aiohttp can raise ClientError, ServerDisconnectedError, etc. during
        # close; teardown must still release the session.
        with contextlib.suppress(Exception):
            await asyncio.wait_for(self._ws.close(), timeout=self._close_timeout)
        with contextlib.suppress(Exception):
            await asyncio.wait_for(self._session.close(), timeout=self._close_timeout)


async def open_websocket(url: str) -> WebSocketConnection:
    """Open a WebSocket to *url*.

    Raises:
        OSError: On any handshake failure (DNS, TCP, TLS, HTTP upgrade).
        asyncio.CancelledError: If cancelled (for example by the caller's
            timeout); the session is closed before re-raising.
    """
    session = aiohttp.ClientSession()
    try:
        ws = await session.ws_connect(url, heartbeat=_WS_HEARTBEAT)
    except aiohttp.ClientError as e:
        await session.close()
        logger.debug("ws_connect_failed url=%s error=%s", url, str(e))
        raise OSError(f"Connection failed: {e}") from e
    except asyncio.CancelledError:
        await session.close()
        logger.debug("ws_connect_cancelled url=%s", url)
        raise
    except OSError as e:
        await session.close()
        logger.debug("ws_connect_error url=%s error=%s", url, str(e))
        raise
    return WebSocketConnection(ws, session)
