"""
Single persistent relay connection with subscription multiplexing.

[RelayLink][flowgazer.client.relay_link.RelayLink] owns the one WebSocket
to the relay and implements the client half of NIP-01:

```text
DISCONNECTED --connect()--> CONNECTING --handshake ok--> CONNECTED
     ^                          |                            |
     |                     fail/timeout               unexpected close
     +--------------------------+                            v
     +--------- cap reached ------------------------- RECONNECTING
```

``disconnect()`` returns to ``DISCONNECTED`` from any state.

Inbound traffic flows through a single channel: each connection's reader
task decodes relay messages into typed frames and puts them on the link's
inbox queue; one dispatch task consumes the queue in arrival order and
routes ``EVENT``/``EOSE`` frames to the handler registered for their
subscription id. Outbound frames go through a per-connection outbox
drained by a writer task, so ``subscribe``, ``unsubscribe`` and
``publish`` never block the caller.

Subscriptions are cached as ``{id, filters, handler}`` and a ``REQ`` is
resent for each of them on every successful (re)connect.

``connect()``, automatic reconnects and ``disconnect()`` are serialised by
one lock, so overlapping calls never leave a second socket open.

See Also:
    [flowgazer.utils.protocol][]: Frame codec used on both directions.
    [flowgazer.utils.transport][]: Default aiohttp connector.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from flowgazer.core.exceptions import (
    ConnectivityError,
    ProtocolParseError,
    PublishingError,
    ReconnectExhaustedError,
    RelayTimeoutError,
)
from flowgazer.core.logger import Logger
from flowgazer.core.metrics import FRAMES_RECEIVED, RECONNECT_ATTEMPTS
from flowgazer.models.constants import LinkState
from flowgazer.models.event import Event
from flowgazer.models.filter import Filter
from flowgazer.models.frame import (
    ClosedFrame,
    EoseFrame,
    EventFrame,
    Frame,
    NoticeFrame,
    OkFrame,
    SubscriptionFrame,
    UnknownFrame,
)
from flowgazer.utils.protocol import decode_frame, encode_close, encode_event, encode_req
from flowgazer.utils.transport import Connection, Connector, open_websocket

from .configs import RelayLinkConfig


FrameHandler = Callable[[SubscriptionFrame], None]

_WRITER_DRAIN_TIMEOUT = 2.0


@dataclass(slots=True)
class Subscription:
    """A registered subscription: its id, the filters it was opened with, and its handler."""

    id: str
    filters: tuple[Filter, ...]
    handler: FrameHandler


@dataclass(slots=True)
class _Session:
    """Per-connection resources: the socket, its outbox, and the I/O tasks."""

    conn: Connection
    outbox: asyncio.Queue[str | None] = field(default_factory=asyncio.Queue)
    reader: asyncio.Task[None] | None = None
    writer: asyncio.Task[None] | None = None


def backoff_delay(attempt: int, base: float, ceiling: float) -> float:
    """Delay in seconds before reconnect attempt number *attempt* (1-based).

    ``min(base * 2**attempt, ceiling)``: with the defaults, 2 s, 4 s, 8 s,
    then 10 s.
    """
    return min(base * (2**attempt), ceiling)


def _frame_type(frame: Frame) -> str:
    match frame:
        case EventFrame():
            return "EVENT"
        case EoseFrame():
            return "EOSE"
        case ClosedFrame():
            return "CLOSED"
        case NoticeFrame():
            return "NOTICE"
        case OkFrame():
            return "OK"
        case UnknownFrame(type=frame_type):
            return frame_type


class RelayLink:
    """Owner of the single relay connection.

    Args:
        config: Timeouts and reconnect policy.
        connector: Coroutine function opening a
            [Connection][flowgazer.utils.transport.Connection] to a URL.

    Examples:
        ```python
        link = RelayLink()
        await link.connect("wss://r.kojira.io")
        link.subscribe("feed", [Filter(kinds=(1,), limit=50)], on_frame)
        ...
        await link.close()
        ```
    """

    def __init__(
        self,
        config: RelayLinkConfig | None = None,
        *,
        connector: Connector = open_websocket,
    ) -> None:
        self._config = config or RelayLinkConfig()
        self._connector = connector
        self._logger = Logger("flowgazer.relay")

        self._state = LinkState.DISCONNECTED
        self._url: str | None = None
        self._session: _Session | None = None
        self._subscriptions: dict[str, Subscription] = {}

        self._reconnect_attempts = 0
        self._exhausted = False
        self._reconnect_task: asyncio.Task[None] | None = None
        self._connection_lock = asyncio.Lock()
        self._closing: set[asyncio.Task[None]] = set()

        self._inbox: asyncio.Queue[Frame | None] = asyncio.Queue()
        self._dispatcher: asyncio.Task[None] | None = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def url(self) -> str | None:
        return self._url

    @property
    def is_connected(self) -> bool:
        return self._state is LinkState.CONNECTED

    @property
    def reconnect_attempts(self) -> int:
        """Consecutive automatic reconnects since the last successful connect."""
        return self._reconnect_attempts

    @property
    def subscription_ids(self) -> list[str]:
        return list(self._subscriptions)

    def get_subscription(self, sub_id: str) -> Subscription | None:
        return self._subscriptions.get(sub_id)

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    async def connect(self, url: str) -> None:
        """Connect to *url*, replacing any existing connection.

        Returns immediately if already connected to the same URL. A
        user-initiated connect cancels any pending automatic reconnect.
        Registered subscriptions survive and are re-sent on the new
        connection.

        Raises:
            RelayTimeoutError: The handshake exceeded ``connect_timeout``.
            ConnectivityError: The handshake failed.
        """
        if self._state is LinkState.CONNECTED and self._url == url:
            self._logger.debug("already_connected", url=url)
            return

        self._exhausted = False
        self._cancel_reconnect()
        async with self._connection_lock:
            # an overlapping connect may have finished while we waited
            if self._state is LinkState.CONNECTED and self._url == url:
                return
            await self._close_session()
            await self._open(url)

    async def disconnect(self) -> None:
        """Explicit teardown from any state.

        Sends ``CLOSE`` for every subscription (if connected), drops all
        registrations, cancels any pending reconnect, and closes the socket.
        No automatic reconnect follows.
        """
        self._cancel_reconnect()
        self.unsubscribe_all()
        async with self._connection_lock:
            await self._close_session()
            self._state = LinkState.DISCONNECTED
            self._url = None
            self._exhausted = False
        self._logger.info("relay_disconnected")

    async def close(self) -> None:
        """Disconnect and shut down the dispatch channel."""
        await self.disconnect()
        if self._closing:
            results = await asyncio.gather(*self._closing, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    self._logger.warning("relay_close_failed", error=str(result))
        if self._dispatcher is not None:
            self._inbox.put_nowait(None)
            await self._dispatcher
            self._dispatcher = None

    async def _open(self, url: str) -> None:
        self._ensure_dispatcher()
        self._url = url
        self._state = LinkState.CONNECTING
        self._logger.info("relay_connecting", url=url)

        try:
            conn = await asyncio.wait_for(self._connector(url), timeout=self._config.connect_timeout)
        except TimeoutError:
            self._state = LinkState.DISCONNECTED
            self._logger.warning("relay_connect_timeout", url=url, timeout=self._config.connect_timeout)
            raise RelayTimeoutError(f"Connection timeout: {url}") from None
        except OSError as e:
            self._state = LinkState.DISCONNECTED
            self._logger.warning("relay_connect_failed", url=url, error=str(e))
            raise ConnectivityError(f"Connection failed: {url}: {e}") from e

        session = _Session(conn)
        session.reader = asyncio.create_task(self._read_loop(session))
        session.writer = asyncio.create_task(self._write_loop(session))
        self._session = session
        self._state = LinkState.CONNECTED
        self._reconnect_attempts = 0
        self._exhausted = False
        self._logger.info("relay_connected", url=url)

        self._resubscribe_all()

    async def _close_session(self) -> None:
        """Stop the current connection's tasks and close its socket."""
        session, self._session = self._session, None
        if session is None:
            return

        if session.reader is not None:
            session.reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await session.reader

        # Let already-queued frames (CLOSE on disconnect) go out first
        if session.writer is not None and not session.writer.done():
            session.outbox.put_nowait(None)
            try:
                await asyncio.wait_for(session.writer, timeout=_WRITER_DRAIN_TIMEOUT)
            except TimeoutError:
                self._logger.warning("relay_writer_drain_timeout")

        await session.conn.close()

    def _ensure_dispatcher(self) -> None:
        if self._dispatcher is None or self._dispatcher.done():
            self._dispatcher = asyncio.create_task(self._dispatch_loop())

    # -------------------------------------------------------------------------
    # Reconnection
    # -------------------------------------------------------------------------

    def _on_connection_lost(self, session: _Session) -> None:
        """Handle an unexpected close reported by a session's reader or writer."""
        if session is not self._session:
            return
        self._session = None
        self._state = LinkState.DISCONNECTED
        self._logger.warning("relay_connection_lost", url=self._url)

        current = asyncio.current_task()
        for task in (session.reader, session.writer):
            if task is not None and task is not current:
                task.cancel()
        closing = asyncio.create_task(session.conn.close())
        self._closing.add(closing)
        closing.add_done_callback(self._closing.discard)

        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        cap = self._config.max_reconnect_attempts
        if self._reconnect_attempts >= cap:
            self._state = LinkState.DISCONNECTED
            self._exhausted = True
            self._logger.error("reconnect_exhausted", url=self._url, attempts=self._reconnect_attempts)
            return

        self._reconnect_attempts += 1
        delay = backoff_delay(
            self._reconnect_attempts,
            self._config.reconnect_base_delay,
            self._config.reconnect_max_delay,
        )
        self._state = LinkState.RECONNECTING
        RECONNECT_ATTEMPTS.inc()
        self._logger.info(
            "reconnect_scheduled",
            url=self._url,
            attempt=self._reconnect_attempts,
            max_attempts=cap,
            delay=delay,
        )
        self._reconnect_task = asyncio.create_task(self._reconnect_after(delay))

    async def _reconnect_after(self, delay: float) -> None:
        try:
            await asyncio.sleep(delay)
            async with self._connection_lock:
                url = self._url
                if url is None or self._session is not None:
                    return
                try:
                    await self._open(url)
                except ConnectivityError as e:
                    self._logger.warning(
                        "reconnect_failed", url=url, attempt=self._reconnect_attempts, error=str(e)
                    )
                    self._schedule_reconnect()
        finally:
            if self._reconnect_task is asyncio.current_task():
                self._reconnect_task = None

    def ensure_connected(self) -> None:
        """Raise unless the link is currently connected.

        Raises:
            ReconnectExhaustedError: Automatic reconnection gave up; only an
                explicit ``connect()`` can recover.
            ConnectivityError: The link is down for any other reason.
        """
        if self.is_connected:
            return
        if self._exhausted:
            raise ReconnectExhaustedError(
                f"gave up on {self._url} after {self._reconnect_attempts} reconnect attempts"
            )
        raise ConnectivityError(f"relay is not connected (state={self._state})")

    def _cancel_reconnect(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    # -------------------------------------------------------------------------
    # Subscriptions and publishing
    # -------------------------------------------------------------------------

    def subscribe(
        self,
        sub_id: str,
        filters: Filter | Iterable[Filter],
        handler: FrameHandler,
    ) -> bool:
        """Register *handler* under *sub_id* and send a ``REQ``.

        Re-subscribing under an existing id replaces its filters and handler.

        Returns:
            ``False`` (and registers nothing) if the link is not connected.
        """
        if not self.is_connected:
            self._logger.warning("subscribe_rejected", sub_id=sub_id, state=self._state)
            return False

        filter_tuple = (filters,) if isinstance(filters, Filter) else tuple(filters)
        self._subscriptions[sub_id] = Subscription(sub_id, filter_tuple, handler)
        self._send(encode_req(sub_id, filter_tuple))
        self._logger.debug("subscribed", sub_id=sub_id, filters=len(filter_tuple))
        return True

    def unsubscribe(self, sub_id: str) -> None:
        """Send ``CLOSE`` if connected; always drop the local registration."""
        if self.is_connected:
            self._send(encode_close(sub_id))
        if self._subscriptions.pop(sub_id, None) is not None:
            self._logger.debug("unsubscribed", sub_id=sub_id)

    def unsubscribe_all(self) -> None:
        for sub_id in list(self._subscriptions):
            self.unsubscribe(sub_id)

    def publish(self, event: Event) -> None:
        """Hand *event* to the transport as an ``EVENT`` frame.

        Success means the frame was queued on the open connection; relay
        acknowledgments are not awaited.

        Raises:
            PublishingError: If the link is not connected.
        """
        if not self.is_connected:
            raise PublishingError("relay is not connected")
        self._send(encode_event(event))
        self._logger.debug("event_published", event_id=event.id, kind=event.kind)

    def _resubscribe_all(self) -> None:
        for sub in self._subscriptions.values():
            self._send(encode_req(sub.id, sub.filters))
        if self._subscriptions:
            self._logger.info("subscriptions_restored", count=len(self._subscriptions))

    def _send(self, text: str) -> None:
        if self._session is not None:
            self._session.outbox.put_nowait(text)

    # -------------------------------------------------------------------------
    # I/O tasks
    # -------------------------------------------------------------------------

    async def _read_loop(self, session: _Session) -> None:
        try:
            while True:
                raw = await session.conn.receive()
                if raw is None:
                    break
                try:
                    frame = decode_frame(raw)
                except ProtocolParseError as e:
                    self._logger.warning("frame_parse_error", error=str(e))
                    continue
                FRAMES_RECEIVED.labels(type=_frame_type(frame)).inc()
                self._inbox.put_nowait(frame)
        except asyncio.CancelledError:
            raise
        except Exception as e:  # Intentionally broad: any transport failure ends the session
            self._logger.warning("relay_receive_error", error=str(e))
        self._on_connection_lost(session)

    async def _write_loop(self, session: _Session) -> None:
        while True:
            text = await session.outbox.get()
            if text is None:
                return
            try:
                await session.conn.send(text)
            except asyncio.CancelledError:
                raise
            except Exception as e:  # Intentionally broad: any transport failure ends the session
                self._logger.warning("relay_send_error", error=str(e))
                self._on_connection_lost(session)
                return

    async def _dispatch_loop(self) -> None:
        while True:
            frame = await self._inbox.get()
            if frame is None:
                return
            self.dispatch(frame)

    def dispatch(self, frame: Frame) -> None:
        """Route one decoded frame.

        ``EVENT``/``EOSE`` go to the handler registered for their
        subscription id (unregistered ids are dropped). Other frame types
        are logged for observability and otherwise ignored.
        """
        match frame:
            case EventFrame(sub_id=sub_id) | EoseFrame(sub_id=sub_id):
                sub = self._subscriptions.get(sub_id)
                if sub is None:
                    self._logger.debug("frame_unrouted", sub_id=sub_id, type=_frame_type(frame))
                    return
                try:
                    sub.handler(frame)
                except Exception:  # Intentionally broad: one bad handler must not stop dispatch
                    self._logger.exception("subscription_handler_failed", sub_id=sub_id)
            case ClosedFrame(sub_id=sub_id, message=message):
                self._logger.warning("relay_closed_subscription", sub_id=sub_id, message=message)
            case NoticeFrame(message=message):
                self._logger.info("relay_notice", message=message)
            case OkFrame(event_id=event_id, accepted=accepted, message=message):
                self._logger.debug("relay_ok", event_id=event_id, accepted=accepted, message=message)
            case UnknownFrame(type=frame_type):
                self._logger.debug("frame_ignored", type=frame_type)
