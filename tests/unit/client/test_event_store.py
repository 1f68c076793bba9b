"""
Unit tests for client.event_store module.

Tests:
- add_event() idempotence and signature rejection
- View classification (global, following, myposts, likes)
- Profile gating, ordering, and ViewFilter narrowing in query_by_view()
- Reaction / repost aggregates and liked-by-me
- Profile last-write-wins and add_profile_event() parsing
"""

import json

import pytest

from flowgazer.client.event_store import EventStore, ReactionCounts, ViewFilter
from flowgazer.core.exceptions import ProfileParseError
from flowgazer.models import EventKind, ViewName
from tests.conftest import PK_ALICE, PK_BOB, PK_CAROL, PK_ME, Verifier, make_event, make_profile_event


@pytest.fixture
def store(verifier: Verifier) -> EventStore:
    return EventStore(verifier, own_pubkey=PK_ME)


def _with_profiles(store: EventStore, *pubkeys: str) -> None:
    for pubkey in pubkeys:
        store.add_profile(pubkey, {"name": pubkey[:4]}, 1)


# =============================================================================
# Ingestion
# =============================================================================


class TestAddEvent:
    """add_event() acceptance rules."""

    def test_accepts_new_event(self, store: EventStore) -> None:
        event = make_event()
        assert store.add_event(event) is True
        assert event.id in store
        assert store.get(event.id) == event
        assert len(store) == 1

    def test_duplicate_is_noop(self, store: EventStore, verifier: Verifier) -> None:
        event = make_event()
        seen = []
        store.add_event_listener(lambda e, views: seen.append(e.id))

        assert store.add_event(event) is True
        assert store.add_event(event) is False

        assert len(store) == 1
        assert seen == [event.id]
        assert verifier.calls == [event.id]

    def test_bad_signature_rejected(self, store: EventStore, verifier: Verifier) -> None:
        event = make_event()
        verifier.rejected.add(event.id)
        seen = []
        store.add_event_listener(lambda e, views: seen.append(e))

        assert store.add_event(event) is False
        assert event.id not in store
        assert store.views_of(event.id) == frozenset()
        assert seen == []

    def test_listener_receives_memberships(self, store: EventStore) -> None:
        seen = []
        store.add_event_listener(lambda e, views: seen.append(views))
        store.add_event(make_event(pubkey=PK_ME))
        assert seen == [frozenset({ViewName.GLOBAL, ViewName.MY_POSTS})]


class TestClassification:
    """View memberships derived on insert."""

    def test_note_is_global(self, store: EventStore) -> None:
        event = make_event(pubkey=PK_ALICE)
        store.add_event(event)
        assert store.views_of(event.id) == {ViewName.GLOBAL}

    def test_followed_author(self, store: EventStore) -> None:
        store.set_following([PK_ALICE])
        note = make_event(pubkey=PK_ALICE)
        repost = make_event(kind=EventKind.REPOST, pubkey=PK_ALICE, tags=[["e", "1" * 64]])
        store.add_event(note)
        store.add_event(repost)
        assert store.views_of(note.id) == {ViewName.GLOBAL, ViewName.FOLLOWING}
        assert store.views_of(repost.id) == {ViewName.GLOBAL, ViewName.FOLLOWING}

    def test_own_repost_not_in_myposts(self, store: EventStore) -> None:
        repost = make_event(kind=EventKind.REPOST, pubkey=PK_ME, tags=[["e", "1" * 64]])
        store.add_event(repost)
        assert ViewName.MY_POSTS not in store.views_of(repost.id)

    def test_reaction_to_me_is_like(self, store: EventStore) -> None:
        like = make_event(kind=EventKind.REACTION, pubkey=PK_BOB, tags=[["e", "1" * 64], ["p", PK_ME]])
        other = make_event(kind=EventKind.REACTION, pubkey=PK_BOB, tags=[["e", "2" * 64], ["p", PK_ALICE]])
        store.add_event(like)
        store.add_event(other)
        assert store.views_of(like.id) == {ViewName.LIKES}
        assert store.views_of(other.id) == frozenset()

    def test_profile_and_contacts_have_no_view(self, store: EventStore) -> None:
        profile = make_profile_event(PK_ALICE, "alice")
        contacts = make_event(kind=EventKind.CONTACTS, pubkey=PK_ME, tags=[["p", PK_ALICE]])
        store.add_event(profile)
        store.add_event(contacts)
        assert store.views_of(profile.id) == frozenset()
        assert store.views_of(contacts.id) == frozenset()

    def test_set_following_reclassifies(self, store: EventStore) -> None:
        event = make_event(pubkey=PK_BOB)
        store.add_event(event)
        assert ViewName.FOLLOWING not in store.views_of(event.id)

        store.set_following([PK_BOB])
        assert ViewName.FOLLOWING in store.views_of(event.id)
        assert store.view_ids(ViewName.FOLLOWING) == {event.id}

    def test_set_own_pubkey_reclassifies(self, verifier: Verifier) -> None:
        store = EventStore(verifier)
        event = make_event(pubkey=PK_CAROL)
        store.add_event(event)
        store.set_own_pubkey(PK_CAROL)
        assert ViewName.MY_POSTS in store.views_of(event.id)


class TestOldestTimestamp:
    """Per-view paging cursor."""

    def test_tracks_minimum(self, store: EventStore) -> None:
        assert store.oldest_timestamp(ViewName.GLOBAL) is None
        store.add_event(make_event(created_at=200))
        store.add_event(make_event(created_at=100))
        store.add_event(make_event(created_at=300))
        assert store.oldest_timestamp(ViewName.GLOBAL) == 100
        assert store.oldest_timestamp(ViewName.LIKES) is None


# =============================================================================
# Queries
# =============================================================================


class TestQueryByView:
    """Profile gating, ordering, and filters."""

    def test_hidden_until_profile_known(self, store: EventStore) -> None:
        event = make_event(pubkey=PK_ALICE)
        store.add_event(event)
        assert store.query_by_view(ViewName.GLOBAL) == []

        _with_profiles(store, PK_ALICE)
        assert store.query_by_view(ViewName.GLOBAL) == [event]

    def test_newest_first_with_stable_ties(self, store: EventStore) -> None:
        _with_profiles(store, PK_ALICE, PK_BOB)
        old = make_event(created_at=100)
        tie_first = make_event(created_at=200, pubkey=PK_BOB)
        tie_second = make_event(created_at=200)
        new = make_event(created_at=300)
        for event in (old, tie_first, tie_second, new):
            store.add_event(event)

        assert store.query_by_view(ViewName.GLOBAL) == [new, tie_first, tie_second, old]

    def test_author_filter(self, store: EventStore) -> None:
        _with_profiles(store, PK_ALICE, PK_BOB)
        alice, bob = make_event(pubkey=PK_ALICE), make_event(pubkey=PK_BOB)
        store.add_event(alice)
        store.add_event(bob)

        assert store.query_by_view(ViewName.GLOBAL, ViewFilter.create([PK_BOB])) == [bob]
        assert len(store.query_by_view(ViewName.GLOBAL, ViewFilter.create([]))) == 2

    def test_client_filter(self, store: EventStore) -> None:
        _with_profiles(store, PK_ALICE)
        ours = make_event(tags=[["client", "flowgazer"]])
        theirs = make_event(tags=[["client", "other"]])
        repost = make_event(kind=EventKind.REPOST, tags=[["client", "flowgazer"], ["e", "1" * 64]])
        for event in (ours, theirs, repost):
            store.add_event(event)

        assert store.query_by_view(ViewName.GLOBAL, ViewFilter.create(client_only=True)) == [ours]

    def test_client_filter_ignored_for_likes(self, store: EventStore) -> None:
        _with_profiles(store, PK_BOB)
        like = make_event(kind=EventKind.REACTION, pubkey=PK_BOB, tags=[["e", "1" * 64], ["p", PK_ME]])
        store.add_event(like)
        assert store.query_by_view(ViewName.LIKES, ViewFilter.create(client_only=True)) == [like]


# =============================================================================
# Aggregates
# =============================================================================


class TestAggregates:
    """Reaction and repost counts."""

    def test_counts_without_target_present(self, store: EventStore) -> None:
        target = "9" * 64
        store.add_event(make_event(kind=EventKind.REACTION, pubkey=PK_ALICE, tags=[["e", target]]))
        store.add_event(make_event(kind=EventKind.REACTION, pubkey=PK_BOB, tags=[["e", target]]))
        store.add_event(make_event(kind=EventKind.REPOST, pubkey=PK_BOB, tags=[["e", target]]))

        assert target not in store
        assert store.reaction_counts(target) == ReactionCounts(reactions=2, reposts=1)

    def test_duplicate_not_double_counted(self, store: EventStore) -> None:
        reaction = make_event(kind=EventKind.REACTION, tags=[["e", "9" * 64]])
        store.add_event(reaction)
        store.add_event(reaction)
        assert store.reaction_counts("9" * 64).reactions == 1

    def test_unknown_target_is_zero(self, store: EventStore) -> None:
        assert store.reaction_counts("8" * 64) == ReactionCounts()

    def test_liked_by_me(self, store: EventStore) -> None:
        store.add_event(make_event(kind=EventKind.REACTION, pubkey=PK_ME, tags=[["e", "7" * 64]]))
        store.add_event(make_event(kind=EventKind.REACTION, pubkey=PK_BOB, tags=[["e", "6" * 64]]))
        assert store.is_liked_by_me("7" * 64)
        assert not store.is_liked_by_me("6" * 64)


# =============================================================================
# Profiles
# =============================================================================


class TestProfiles:
    """Last-write-wins profile table."""

    def test_newer_replaces(self, store: EventStore) -> None:
        assert store.add_profile(PK_ALICE, {"name": "old"}, 10)
        assert store.add_profile(PK_ALICE, {"name": "new"}, 20)
        assert store.display_name(PK_ALICE) == "new"

    def test_equal_or_older_ignored(self, store: EventStore) -> None:
        store.add_profile(PK_ALICE, {"name": "first"}, 20)
        assert not store.add_profile(PK_ALICE, {"name": "same"}, 20)
        assert not store.add_profile(PK_ALICE, {"name": "older"}, 10)
        assert store.display_name(PK_ALICE) == "first"

    def test_listener_only_on_store(self, store: EventStore) -> None:
        seen = []
        store.add_profile_listener(seen.append)
        store.add_profile(PK_ALICE, {}, 10)
        store.add_profile(PK_ALICE, {}, 5)
        assert seen == [PK_ALICE]

    def test_display_name_unknown(self, store: EventStore) -> None:
        assert store.display_name(PK_BOB) == PK_BOB[:8] + "..."

    def test_add_profile_event(self, store: EventStore) -> None:
        assert store.add_profile_event(make_profile_event(PK_BOB, "bob", created_at=5))
        assert store.get_profile(PK_BOB).created_at == 5
        assert store.profile_count == 1

    def test_add_profile_event_bad_content(self, store: EventStore) -> None:
        with pytest.raises(ProfileParseError):
            store.add_profile_event(make_event(kind=0, pubkey=PK_BOB, content="not json"))
        assert not store.has_profile(PK_BOB)

    def test_add_profile_event_bad_signature(self, store: EventStore, verifier: Verifier) -> None:
        event = make_event(kind=0, pubkey=PK_BOB, content=json.dumps({"name": "bob"}))
        verifier.rejected.add(event.id)
        assert store.add_profile_event(event) is False
        assert not store.has_profile(PK_BOB)

    def test_kind0_via_add_event(self, store: EventStore) -> None:
        store.add_event(make_profile_event(PK_CAROL, "carol"))
        assert store.display_name(PK_CAROL) == "carol"

    def test_kind0_bad_content_via_add_event_still_stored(self, store: EventStore) -> None:
        event = make_event(kind=0, pubkey=PK_CAROL, content="[]")
        assert store.add_event(event)
        assert not store.has_profile(PK_CAROL)


class TestClear:
    def test_clear(self, store: EventStore) -> None:
        _with_profiles(store, PK_ALICE)
        store.add_event(make_event(kind=EventKind.REACTION, pubkey=PK_ME, tags=[["e", "7" * 64]]))
        store.add_event(make_event())
        store.clear()

        assert len(store) == 0
        assert store.profile_count == 0
        assert store.view_ids(ViewName.GLOBAL) == frozenset()
        assert store.oldest_timestamp(ViewName.GLOBAL) is None
        assert store.reaction_counts("7" * 64) == ReactionCounts()
        assert not store.is_liked_by_me("7" * 64)

    def test_clear_notifies_listeners(self, store: EventStore) -> None:
        calls = []
        store.add_clear_listener(lambda: calls.append(len(store)))
        store.add_event(make_event())
        store.clear()
        assert calls == [0]
