"""
Assembly root wiring the relay link, store, batcher, and router together.

[FlowgazerClient][flowgazer.client.app.FlowgazerClient] owns exactly one
instance of each component and connects them through explicit
constructor arguments and listener registration:

```text
RelayLink --frames--> timeline handlers --> EventStore.add_event
                                               |  (event, views)
                                               v
ProfileBatcher <--request(pubkey)-- ViewRouter --refresh--> RenderSurface
      |                                    ^
      +--profiles--> EventStore --pubkey---+
```

It also carries the timeline behaviours around the core: which
subscriptions back each view, paging with ``load_more``, and the
publish paths for notes and reactions (signed by the injected identity
provider).
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from typing import Any, Protocol

from flowgazer.core.exceptions import ProfileParseError, PublishingError
from flowgazer.core.logger import Logger
from flowgazer.core.yaml import MemoryConfigStore, YamlConfigStore
from flowgazer.models.constants import EventKind, ViewName
from flowgazer.models.event import Event, EventDraft
from flowgazer.models.filter import Filter
from flowgazer.models.frame import EoseFrame, EventFrame, SubscriptionFrame
from flowgazer.utils.keys import IdentityProvider, ReadOnlyIdentity
from flowgazer.utils.protocol import verify_event
from flowgazer.utils.transport import Connector, open_websocket

from .configs import FlowgazerConfig
from .event_store import EventStore, Verifier, ViewFilter
from .profile_batcher import ProfileBatcher
from .relay_link import RelayLink
from .view_router import RenderSurface, ViewRouter


MAIN_TIMELINE = "main-timeline"
FOLLOWING_LIST = "following-list"
MY_POSTS = "my-posts"
RECEIVED_LIKES = "received-likes"
MY_LIKES = "my-likes"
LOAD_MORE = "load-more"

RELAY_URL_KEY = "relay_url"


class ConfigStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class FlowgazerClient:
    """Timeline client built from one instance of each core component.

    Args:
        surface: Render surface refreshed by the view router.
        config: Aggregate configuration.
        identity: Local identity / signer. Defaults to an anonymous
            read-only identity.
        config_store: Persistent store for the last relay URL. Defaults to
            a YAML file when ``config.state_file`` is set, else memory.
        verifier: Signature verifier. Defaults to nostr-sdk.
        connector: Transport connector. Defaults to aiohttp WebSocket.
    """

    def __init__(
        self,
        surface: RenderSurface,
        config: FlowgazerConfig | None = None,
        *,
        identity: IdentityProvider | None = None,
        config_store: ConfigStore | None = None,
        verifier: Verifier = verify_event,
        connector: Connector = open_websocket,
    ) -> None:
        self._config = config or FlowgazerConfig()
        self._identity = identity or ReadOnlyIdentity()
        if config_store is None:
            config_store = (
                YamlConfigStore(self._config.state_file)
                if self._config.state_file is not None
                else MemoryConfigStore()
            )
        self._config_store = config_store
        self._logger = Logger("flowgazer.client")

        self._link = RelayLink(self._config.relay, connector=connector)
        self._store = EventStore(verifier, own_pubkey=self._identity.current_pubkey())
        self._batcher = ProfileBatcher(self._link, self._store, self._config.profiles)
        self._router = ViewRouter(self._store, self._batcher.request, surface, self._config.views)

        self._store.add_event_listener(self._router.on_event_classified)
        self._store.add_profile_listener(self._router.on_profile_arrived)
        self._store.add_clear_listener(self._router.reset)
        self._store.add_clear_listener(self._batcher.reset)
        self._batcher.add_batch_listener(self._router.schedule_render)

        self._author_filter: tuple[str, ...] | None = None
        self._client_only = False
        self._contacts_created_at = -1

    # -------------------------------------------------------------------------
    # Components
    # -------------------------------------------------------------------------

    @property
    def config(self) -> FlowgazerConfig:
        return self._config

    @property
    def link(self) -> RelayLink:
        return self._link

    @property
    def store(self) -> EventStore:
        return self._store

    @property
    def batcher(self) -> ProfileBatcher:
        return self._batcher

    @property
    def router(self) -> ViewRouter:
        return self._router

    @property
    def own_pubkey(self) -> str | None:
        return self._identity.current_pubkey()

    @property
    def view_filter(self) -> ViewFilter:
        """Narrowing currently applied to the rendered view."""
        return ViewFilter.create(self._author_filter, client_only=self._client_only)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self, url: str | None = None) -> None:
        """Connect to *url* (or the saved / default relay) and subscribe.

        Raises:
            ConnectivityError: If the relay cannot be reached.
        """
        relay_url = url or self._config_store.get(RELAY_URL_KEY) or self._config.relay_url
        await self.connect_relay(relay_url)
        if self.own_pubkey:
            self.fetch_initial_data()

    async def connect_relay(self, url: str) -> None:
        """Connect, subscribe the main timeline, and remember *url*."""
        await self._link.connect(url)
        self.subscribe_main_timeline()
        self._config_store.set(RELAY_URL_KEY, url)

    def clear(self) -> None:
        """Forget every event and profile, then redraw the empty view."""
        self._store.clear()
        self._router.render_now()

    async def close(self) -> None:
        await self._link.close()
        self._logger.info("client_closed")

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def _main_filters(self) -> list[Filter]:
        timeline = self._config.timeline
        me = self.own_pubkey
        match self._router.active_view:
            case ViewName.GLOBAL:
                return [
                    Filter(
                        kinds=(EventKind.TEXT_NOTE, EventKind.REPOST),
                        authors=self._author_filter or None,
                        limit=timeline.global_limit,
                    )
                ]
            case ViewName.FOLLOWING if self._store.following:
                return [
                    Filter(
                        kinds=(EventKind.TEXT_NOTE, EventKind.REPOST),
                        authors=tuple(sorted(self._store.following)),
                        limit=timeline.following_limit,
                    )
                ]
            case ViewName.MY_POSTS if me:
                filters = [Filter(kinds=(EventKind.TEXT_NOTE,), authors=(me,), limit=timeline.myposts_limit)]
                my_post_ids = self._store.view_ids(ViewName.MY_POSTS)
                if my_post_ids:
                    filters.append(
                        Filter(kinds=(EventKind.REPOST, EventKind.REACTION), e_tags=tuple(sorted(my_post_ids)))
                    )
                return filters
            case ViewName.LIKES if me:
                return [Filter(kinds=(EventKind.REACTION,), p_tags=(me,), limit=timeline.myposts_limit)]
            case _:
                return []

    def subscribe_main_timeline(self) -> bool:
        """(Re)open the subscription backing the active view."""
        if self._link.get_subscription(MAIN_TIMELINE) is not None:
            self._link.unsubscribe(MAIN_TIMELINE)
        filters = self._main_filters()
        if not filters:
            self._logger.info("main_timeline_skipped", view=self._router.active_view)
            return False
        return self._link.subscribe(MAIN_TIMELINE, filters, self._handle_timeline_frame)

    def _handle_timeline_frame(self, frame: SubscriptionFrame) -> None:
        match frame:
            case EventFrame(event=event) if event.kind == EventKind.SET_METADATA:
                self._ingest_profile(event)
            case EventFrame(event=event):
                self._store.add_event(event)
            case EoseFrame():
                self._logger.debug("main_timeline_eose")
                self._batcher.flush_now()

    def _ingest_profile(self, event: Event) -> None:
        try:
            self._store.add_profile_event(event)
        except ProfileParseError as e:
            self._logger.warning("profile_parse_error", pubkey=event.pubkey, error=str(e))

    def _add_event(self, frame: SubscriptionFrame) -> None:
        if isinstance(frame, EventFrame):
            self._store.add_event(frame.event)

    def fetch_initial_data(self) -> None:
        """Subscribe follow list, own posts, received reactions, and own reactions."""
        me = self.own_pubkey
        if not me:
            return
        limit = self._config.timeline.myposts_limit
        self._link.subscribe(
            FOLLOWING_LIST,
            Filter(kinds=(EventKind.CONTACTS,), authors=(me,), limit=1),
            self._handle_contacts_frame,
        )
        self._link.subscribe(
            MY_POSTS, Filter(kinds=(EventKind.TEXT_NOTE,), authors=(me,), limit=limit), self._add_event
        )
        self._link.subscribe(
            RECEIVED_LIKES, Filter(kinds=(EventKind.REACTION,), p_tags=(me,), limit=limit), self._add_event
        )
        self._link.subscribe(MY_LIKES, Filter(kinds=(EventKind.REACTION,), authors=(me,)), self._add_event)

    def _handle_contacts_frame(self, frame: SubscriptionFrame) -> None:
        if not isinstance(frame, EventFrame):
            return
        event = frame.event
        if event.kind != EventKind.CONTACTS or event.pubkey != self.own_pubkey:
            return
        if event.created_at <= self._contacts_created_at:
            return
        self._contacts_created_at = event.created_at

        pubkeys = [tag[1] for tag in event.tags if len(tag) >= 2 and tag[0] == "p"]
        self._store.set_following(pubkeys)
        self._router.rebuild()
        self._batcher.request_many(pubkeys)
        if self._router.active_view is ViewName.FOLLOWING:
            self.subscribe_main_timeline()

    # -------------------------------------------------------------------------
    # View controls
    # -------------------------------------------------------------------------

    def switch_view(self, view: ViewName) -> None:
        self._router.switch_view(view)
        self.subscribe_main_timeline()

    def apply_author_filter(self, authors: Iterable[str] | None) -> None:
        self._author_filter = tuple(authors) if authors else None
        self.subscribe_main_timeline()
        self._router.render_now()

    def set_client_filter(self, enabled: bool) -> None:
        self._client_only = enabled
        self._router.render_now()

    def visible_events(self) -> list[Event]:
        return self._router.visible_events(self.view_filter)

    def load_more(self) -> bool:
        """Page older events for the active view (``until = oldest - 1``).

        Returns:
            ``False`` if the view has no events yet or the link is down.
        """
        view = self._router.active_view
        oldest = self._store.oldest_timestamp(view)
        if oldest is None:
            return False

        me = self.own_pubkey
        limit = self._config.timeline.load_more_limit
        match view:
            case ViewName.FOLLOWING:
                page = Filter(
                    kinds=(EventKind.TEXT_NOTE, EventKind.REPOST),
                    authors=tuple(sorted(self._store.following)),
                    until=oldest - 1,
                    limit=limit,
                )
            case ViewName.MY_POSTS:
                page = Filter(kinds=(EventKind.TEXT_NOTE,), authors=(me,) if me else None, until=oldest - 1, limit=limit)
            case ViewName.LIKES:
                page = Filter(kinds=(EventKind.REACTION,), p_tags=(me,) if me else None, until=oldest - 1, limit=limit)
            case _:
                page = Filter(
                    kinds=(EventKind.TEXT_NOTE, EventKind.REPOST),
                    authors=self._author_filter or None,
                    until=oldest - 1,
                    limit=limit,
                )
        return self._link.subscribe(LOAD_MORE, page, self._handle_load_more_frame)

    def _handle_load_more_frame(self, frame: SubscriptionFrame) -> None:
        match frame:
            case EventFrame(event=event):
                self._store.add_event(event)
            case EoseFrame():
                self._link.unsubscribe(LOAD_MORE)
                self._batcher.flush_now()

    # -------------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------------

    async def send_post(self, content: str) -> Event:
        """Sign and publish a kind-1 note, then show it immediately.

        Like every other event, the note is rendered only once the author's
        profile is known. If our own profile has not arrived yet, the note
        waits in the pending set and our pubkey is queued for a profile
        fetch.

        Raises:
            PublishingError: If no signing identity is configured or the
                link is down.
        """
        draft = EventDraft(
            kind=EventKind.TEXT_NOTE,
            content=content,
            created_at=int(time.time()),
            tags=(("client", self._config.timeline.client_tag),),
        )
        return await self._publish_draft(draft)

    async def send_reaction(self, target_id: str, target_pubkey: str, content: str = "+") -> Event:
        """Sign and publish a kind-7 reaction to *target_id*."""
        draft = EventDraft(
            kind=EventKind.REACTION,
            content=content or "+",
            created_at=int(time.time()),
            tags=(("e", target_id), ("p", target_pubkey)),
        )
        return await self._publish_draft(draft)

    async def _publish_draft(self, draft: EventDraft) -> Event:
        if not self._identity.can_sign:
            raise PublishingError("a signing identity is required to publish")
        signed = await self._identity.sign_event(draft)
        self._link.publish(signed)
        self._store.add_event(signed)
        self._router.render_now()
        self._logger.info("event_sent", event_id=signed.id, kind=signed.kind)
        return signed
