"""Pure frozen dataclasses with zero I/O for events, profiles, filters, and frames.

The models layer is the foundation of the dependency DAG. It has **no
dependencies** on any other flowgazer package -- only the Python standard
library. All validation happens in ``__post_init__`` so invalid instances
never escape the constructor.

Attributes:
    Event: Structurally validated NIP-01 event.
    EventVariant: Tagged union (ProfileUpdate, Note, Repost, Reaction, Other)
        produced by [as_variant()][flowgazer.models.event.as_variant].
    Profile: Kind-0 author metadata with last-write-wins ordering.
    Filter: NIP-01 subscription filter.
    Frame: Typed relay-to-client frames.
"""

from .constants import CLIENT_TAG, DEFAULT_RELAY_URL, EventKind, LinkState, ViewName
from .event import (
    Event,
    EventDraft,
    EventVariant,
    Note,
    Other,
    ProfileUpdate,
    Reaction,
    Repost,
    as_variant,
)
from .filter import Filter
from .frame import (
    ClosedFrame,
    EoseFrame,
    EventFrame,
    Frame,
    NoticeFrame,
    OkFrame,
    SubscriptionFrame,
    UnknownFrame,
)
from .profile import Profile, short_pubkey


__all__ = [
    "CLIENT_TAG",
    "DEFAULT_RELAY_URL",
    "ClosedFrame",
    "EoseFrame",
    "Event",
    "EventDraft",
    "EventFrame",
    "EventKind",
    "EventVariant",
    "Filter",
    "Frame",
    "LinkState",
    "Note",
    "NoticeFrame",
    "OkFrame",
    "Other",
    "Profile",
    "ProfileUpdate",
    "Reaction",
    "Repost",
    "SubscriptionFrame",
    "UnknownFrame",
    "ViewName",
    "as_variant",
    "short_pubkey",
]
