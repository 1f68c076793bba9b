"""Shared constants for the models layer.

Defines the enumerations used across model, client, and CLI modules.
Placing them here keeps the models layer free of upward imports.

See Also:
    [flowgazer.models.event][]: Uses [EventKind][flowgazer.models.constants.EventKind]
        to build the tagged event variants.
    [flowgazer.client.event_store][]: Classifies events into
        [ViewName][flowgazer.models.constants.ViewName] memberships.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class EventKind(IntEnum):
    """Nostr event kinds handled by the timeline client.

    Attributes:
        SET_METADATA: Kind 0 -- user profile metadata (NIP-01).
        TEXT_NOTE: Kind 1 -- short text note (NIP-01).
        CONTACTS: Kind 3 -- follow list (NIP-02).
        REPOST: Kind 6 -- repost of a text note (NIP-18).
        REACTION: Kind 7 -- reaction to another event (NIP-25).
    """

    SET_METADATA = 0
    TEXT_NOTE = 1
    CONTACTS = 3
    REPOST = 6
    REACTION = 7


class ViewName(StrEnum):
    """Named timeline views an event can be classified into.

    Attributes:
        GLOBAL: Every note and repost.
        FOLLOWING: Notes and reposts authored by followed pubkeys.
        MY_POSTS: Notes authored by the local identity.
        LIKES: Reactions whose ``p`` tag targets the local identity.
    """

    GLOBAL = "global"
    FOLLOWING = "following"
    MY_POSTS = "myposts"
    LIKES = "likes"


class LinkState(StrEnum):
    """Connection states of the [RelayLink][flowgazer.client.relay_link.RelayLink].

    ``DISCONNECTED`` is reachable from every state through an explicit
    teardown; ``RECONNECTING`` only follows an unexpected drop of an
    established connection.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


DEFAULT_RELAY_URL = "wss://r.kojira.io"
CLIENT_TAG = "flowgazer"
