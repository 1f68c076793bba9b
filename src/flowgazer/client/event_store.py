"""
Deduplicating, signature-checked event table with derived view memberships.

[EventStore][flowgazer.client.event_store.EventStore] is the canonical
record of every accepted event. An event is accepted at most once (by id)
and only if the injected verifier approves its signature; accepted events
are never mutated and only leave the store through
[clear()][flowgazer.client.event_store.EventStore.clear].

On acceptance the event is:

* classified into zero or more [ViewName][flowgazer.models.constants.ViewName]
  memberships (derived from kind, author, local identity, follow list, and tags),
* counted into per-target reaction/repost aggregates (monotonic, never
  decremented, even if the target never arrives),
* folded into the per-view oldest-timestamp cursor used for paging.

Profiles are stored alongside with last-write-wins by ``created_at``.

Listeners registered with
[add_event_listener()][flowgazer.client.event_store.EventStore.add_event_listener]
and
[add_profile_listener()][flowgazer.client.event_store.EventStore.add_profile_listener]
are told about every accepted event (with its memberships) and every
accepted profile.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from flowgazer.core.exceptions import ProfileParseError
from flowgazer.core.logger import Logger
from flowgazer.core.metrics import EVENTS_PROCESSED
from flowgazer.models.constants import CLIENT_TAG, EventKind, ViewName
from flowgazer.models.event import (
    Event,
    Note,
    Other,
    ProfileUpdate,
    Reaction,
    Repost,
    as_variant,
)
from flowgazer.models.profile import Profile, short_pubkey


Verifier = Callable[[Event], bool]
EventListener = Callable[[Event, frozenset[ViewName]], None]
ProfileListener = Callable[[str], None]
ClearListener = Callable[[], None]


@dataclass(frozen=True, slots=True)
class ReactionCounts:
    """Aggregates for one target event."""

    reactions: int = 0
    reposts: int = 0


@dataclass(frozen=True, slots=True)
class ViewFilter:
    """Optional narrowing applied by ``query_by_view``.

    Attributes:
        authors: Author allow-list; ``None`` or empty means everyone.
        client_tag: If set, keep only kind-1 notes carrying
            ``["client", client_tag]``. Ignored for the likes view.
    """

    authors: frozenset[str] | None = None
    client_tag: str | None = None

    @classmethod
    def create(cls, authors: Iterable[str] | None = None, *, client_only: bool = False) -> ViewFilter:
        return cls(
            authors=frozenset(authors) if authors else None,
            client_tag=CLIENT_TAG if client_only else None,
        )


class EventStore:
    """In-memory event table, profile table, and view classification.

    Args:
        verifier: Signature verification capability (``verify(event) -> bool``).
        own_pubkey: Local identity used for the my-posts and likes views.
    """

    def __init__(self, verifier: Verifier, *, own_pubkey: str | None = None) -> None:
        self._verify = verifier
        self._own_pubkey = own_pubkey
        self._following: frozenset[str] = frozenset()
        self._logger = Logger("flowgazer.store")

        # dict preserves insertion order, which is the tie-breaker for sorting
        self._events: dict[str, Event] = {}
        self._seq: dict[str, int] = {}
        self._profiles: dict[str, Profile] = {}
        self._views: dict[ViewName, set[str]] = {view: set() for view in ViewName}
        self._memberships: dict[str, frozenset[ViewName]] = {}
        self._oldest: dict[ViewName, int] = {}
        self._counts: dict[str, ReactionCounts] = {}
        self._liked_by_me: set[str] = set()

        self._event_listeners: list[EventListener] = []
        self._profile_listeners: list[ProfileListener] = []
        self._clear_listeners: list[ClearListener] = []

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def add_event_listener(self, listener: EventListener) -> None:
        self._event_listeners.append(listener)

    def add_profile_listener(self, listener: ProfileListener) -> None:
        self._profile_listeners.append(listener)

    def add_clear_listener(self, listener: ClearListener) -> None:
        """Register *listener* to run after [clear()][flowgazer.client.event_store.EventStore.clear]."""
        self._clear_listeners.append(listener)

    # -------------------------------------------------------------------------
    # Identity and follow list
    # -------------------------------------------------------------------------

    @property
    def own_pubkey(self) -> str | None:
        return self._own_pubkey

    @property
    def following(self) -> frozenset[str]:
        return self._following

    def set_own_pubkey(self, pubkey: str | None) -> None:
        self._own_pubkey = pubkey
        self._rebuild_views()

    def set_following(self, pubkeys: Iterable[str]) -> None:
        self._following = frozenset(pubkeys)
        self._logger.info("following_updated", count=len(self._following))
        self._rebuild_views()

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._events)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._events

    def get(self, event_id: str) -> Event | None:
        return self._events.get(event_id)

    def add_event(self, event: Event) -> bool:
        """Insert *event* if it is new and correctly signed.

        Returns:
            ``True`` if accepted; ``False`` for a duplicate id or a failed
            signature check (the store is left untouched).
        """
        if event.id in self._events:
            EVENTS_PROCESSED.labels(result="duplicate").inc()
            return False
        if not self._verify(event):
            EVENTS_PROCESSED.labels(result="invalid").inc()
            self._logger.debug("event_rejected", event_id=event.id, reason="signature")
            return False

        self._seq[event.id] = len(self._seq)
        self._events[event.id] = event
        EVENTS_PROCESSED.labels(result="accepted").inc()

        views = self._classify(event)
        self._apply_membership(event, views)
        self._aggregate(event)

        match as_variant(event):
            case ProfileUpdate():
                self._upsert_profile_from_event(event)
            case _:
                pass

        for listener in self._event_listeners:
            listener(event, views)
        return True

    def _classify(self, event: Event) -> frozenset[ViewName]:
        """Derive the view memberships of *event*."""
        views: set[ViewName] = set()
        match as_variant(event):
            case Note(event=e) | Repost(event=e):
                views.add(ViewName.GLOBAL)
                if e.pubkey in self._following:
                    views.add(ViewName.FOLLOWING)
                if e.kind == EventKind.TEXT_NOTE and self._own_pubkey and e.pubkey == self._own_pubkey:
                    views.add(ViewName.MY_POSTS)
            case Reaction(target_pubkey=target_pubkey):
                if self._own_pubkey and target_pubkey == self._own_pubkey:
                    views.add(ViewName.LIKES)
            case ProfileUpdate() | Other():
                pass
        return frozenset(views)

    def _apply_membership(self, event: Event, views: frozenset[ViewName]) -> None:
        self._memberships[event.id] = views
        for view in views:
            self._views[view].add(event.id)
            oldest = self._oldest.get(view)
            if oldest is None or event.created_at < oldest:
                self._oldest[view] = event.created_at

    def _aggregate(self, event: Event) -> None:
        match as_variant(event):
            case Repost(target_id=target_id) if target_id:
                current = self._counts.get(target_id, ReactionCounts())
                self._counts[target_id] = ReactionCounts(current.reactions, current.reposts + 1)
            case Reaction(event=e, target_id=target_id) if target_id:
                current = self._counts.get(target_id, ReactionCounts())
                self._counts[target_id] = ReactionCounts(current.reactions + 1, current.reposts)
                if self._own_pubkey and e.pubkey == self._own_pubkey:
                    self._liked_by_me.add(target_id)
            case _:
                pass

    def _rebuild_views(self) -> None:
        """Re-derive memberships and cursors after an identity or follow-list change."""
        self._views = {view: set() for view in ViewName}
        self._memberships.clear()
        self._oldest.clear()
        self._liked_by_me.clear()
        for event in self._events.values():
            self._apply_membership(event, self._classify(event))
            match as_variant(event):
                case Reaction(event=e, target_id=target_id) if target_id:
                    if self._own_pubkey and e.pubkey == self._own_pubkey:
                        self._liked_by_me.add(target_id)
                case _:
                    pass

    def views_of(self, event_id: str) -> frozenset[ViewName]:
        return self._memberships.get(event_id, frozenset())

    def view_ids(self, view: ViewName) -> frozenset[str]:
        return frozenset(self._views[view])

    def oldest_timestamp(self, view: ViewName) -> int | None:
        """Oldest ``created_at`` among events classified into *view*."""
        return self._oldest.get(view)

    def reaction_counts(self, event_id: str) -> ReactionCounts:
        return self._counts.get(event_id, ReactionCounts())

    def is_liked_by_me(self, event_id: str) -> bool:
        return event_id in self._liked_by_me

    def query_by_view(self, view: ViewName, filters: ViewFilter | None = None) -> list[Event]:
        """Events in *view* whose author's profile is known, newest first.

        Ties on ``created_at`` keep store insertion order.
        """
        filters = filters or ViewFilter()
        events = [self._events[event_id] for event_id in self._views[view]]

        if filters.client_tag and view is not ViewName.LIKES:
            events = [
                e
                for e in events
                if e.kind == EventKind.TEXT_NOTE and e.has_tag("client", filters.client_tag)
            ]
        if filters.authors:
            events = [e for e in events if e.pubkey in filters.authors]

        events = [e for e in events if e.pubkey in self._profiles]
        events.sort(key=lambda e: (-e.created_at, self._seq[e.id]))
        return events

    def clear(self) -> None:
        """Drop every event, profile, membership, aggregate, and cursor."""
        self._events.clear()
        self._seq.clear()
        self._profiles.clear()
        self._views = {view: set() for view in ViewName}
        self._memberships.clear()
        self._oldest.clear()
        self._counts.clear()
        self._liked_by_me.clear()
        self._logger.info("store_cleared")
        for listener in self._clear_listeners:
            listener()

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    def has_profile(self, pubkey: str) -> bool:
        return pubkey in self._profiles

    def get_profile(self, pubkey: str) -> Profile | None:
        return self._profiles.get(pubkey)

    @property
    def profile_count(self) -> int:
        return len(self._profiles)

    def display_name(self, pubkey: str) -> str:
        profile = self._profiles.get(pubkey)
        return profile.display_name if profile else short_pubkey(pubkey)

    def add_profile(self, pubkey: str, data: Mapping[str, Any], created_at: int) -> bool:
        """Store a profile snapshot if strictly newer than the current one.

        Returns:
            ``True`` if stored; ``False`` if an equal-or-newer snapshot exists.
        """
        return self._store_profile(Profile(pubkey=pubkey, data=data, created_at=created_at))

    def add_profile_event(self, event: Event) -> bool:
        """Verify and parse a kind-0 event, then upsert its profile.

        Returns:
            ``True`` if the profile was stored.

        Raises:
            ProfileParseError: If the content is not a JSON object.
        """
        if not self._verify(event):
            EVENTS_PROCESSED.labels(result="invalid").inc()
            self._logger.debug("profile_rejected", pubkey=event.pubkey, reason="signature")
            return False
        try:
            profile = Profile.from_event(event)
        except ValueError as e:
            raise ProfileParseError(f"profile {event.pubkey[:16]}...: {e}") from e
        return self._store_profile(profile)

    def _upsert_profile_from_event(self, event: Event) -> None:
        try:
            self._store_profile(Profile.from_event(event))
        except ValueError as e:
            self._logger.warning("profile_parse_error", pubkey=event.pubkey, error=str(e))

    def _store_profile(self, profile: Profile) -> bool:
        if not profile.supersedes(self._profiles.get(profile.pubkey)):
            return False
        self._profiles[profile.pubkey] = profile
        for listener in self._profile_listeners:
            listener(profile.pubkey)
        return True
