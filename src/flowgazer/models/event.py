"""
Immutable Nostr event model and its kind-tagged variants.

[Event][flowgazer.models.event.Event] mirrors the NIP-01 wire shape
(``id``, ``pubkey``, ``created_at``, ``kind``, ``tags``, ``content``,
``sig``) as a frozen dataclass. Structural validation happens in
``__post_init__``; cryptographic verification is a separate capability
(see [verify_event][flowgazer.utils.protocol.verify_event]).

[as_variant()][flowgazer.models.event.as_variant] turns the integer kind
into one of the tagged variants
[ProfileUpdate][flowgazer.models.event.ProfileUpdate],
[Note][flowgazer.models.event.Note],
[Repost][flowgazer.models.event.Repost],
[Reaction][flowgazer.models.event.Reaction], or
[Other][flowgazer.models.event.Other], so consumers can dispatch with
``match`` instead of comparing kinds by hand.

Examples:
    ```python
    event = Event.from_json(raw)
    match as_variant(event):
        case Reaction(target_id=target):
            ...
        case Note():
            ...
    ```
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from ._validation import normalize_tags, validate_hex, validate_instance, validate_timestamp
from .constants import EventKind


EVENT_KIND_MAX = 65_535


@dataclass(frozen=True, slots=True)
class Event:
    """Immutable, structurally validated Nostr event.

    Attributes:
        id: 32-byte event id as lowercase hex.
        pubkey: 32-byte author public key as lowercase hex.
        created_at: Unix timestamp in seconds.
        kind: Integer event kind (0..65535).
        tags: Ordered tuple of tag tuples (``("e", "<id>")``, ...).
        content: Raw content string.
        sig: 64-byte Schnorr signature as lowercase hex.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If a hex field has the wrong length or a numeric field
            is out of range.
    """

    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: tuple[tuple[str, ...], ...]
    content: str
    sig: str

    def __post_init__(self) -> None:
        """Validate field types and normalize tags to nested tuples."""
        validate_hex(self.id, "id", 64)
        validate_hex(self.pubkey, "pubkey", 64)
        validate_hex(self.sig, "sig", 128)
        validate_timestamp(self.created_at, "created_at")
        validate_timestamp(self.kind, "kind")
        if self.kind > EVENT_KIND_MAX:
            raise ValueError(f"kind must be <= {EVENT_KIND_MAX}")
        validate_instance(self.content, str, "content")
        object.__setattr__(self, "tags", normalize_tags(self.tags, "tags"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        """Build an event from a decoded NIP-01 JSON object.

        Raises:
            TypeError: If *data* is not a dict or a field has the wrong type.
            ValueError: If a required field is missing or invalid.
        """
        validate_instance(data, dict, "event")
        try:
            return cls(
                id=data["id"],
                pubkey=data["pubkey"],
                created_at=data["created_at"],
                kind=data["kind"],
                tags=data.get("tags", []),
                content=data.get("content", ""),
                sig=data["sig"],
            )
        except KeyError as e:
            raise ValueError(f"event is missing field {e.args[0]!r}") from None

    @classmethod
    def from_json(cls, raw: str) -> Event:
        """Parse an event from its JSON text."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"invalid event JSON: {e}") from e
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Return the NIP-01 JSON object for this event."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
            "sig": self.sig,
        }

    def to_json(self) -> str:
        """Serialize to compact JSON."""
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    def first_tag_value(self, name: str) -> str | None:
        """Return the first value of the first tag named *name*, if any."""
        for tag in self.tags:
            if len(tag) >= 2 and tag[0] == name:
                return tag[1]
        return None

    def has_tag(self, name: str, value: str | None = None) -> bool:
        """Whether a tag named *name* (optionally with first value *value*) exists."""
        for tag in self.tags:
            if not tag or tag[0] != name:
                continue
            if value is None or (len(tag) >= 2 and tag[1] == value):
                return True
        return False


@dataclass(frozen=True, slots=True)
class EventDraft:
    """Unsigned event content handed to an identity provider for signing."""

    kind: int
    content: str
    created_at: int
    tags: tuple[tuple[str, ...], ...] = ()


# ---------------------------------------------------------------------------
# Kind-tagged variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ProfileUpdate:
    """Kind 0 -- author metadata."""

    event: Event


@dataclass(frozen=True, slots=True)
class Note:
    """Kind 1 -- text note."""

    event: Event


@dataclass(frozen=True, slots=True)
class Repost:
    """Kind 6 -- repost of ``target_id`` authored by ``target_pubkey``."""

    event: Event
    target_id: str | None
    target_pubkey: str | None


@dataclass(frozen=True, slots=True)
class Reaction:
    """Kind 7 -- reaction to ``target_id`` authored by ``target_pubkey``."""

    event: Event
    target_id: str | None
    target_pubkey: str | None


@dataclass(frozen=True, slots=True)
class Other:
    """Any kind the timeline does not classify (contact lists included)."""

    event: Event


EventVariant = ProfileUpdate | Note | Repost | Reaction | Other


def as_variant(event: Event) -> EventVariant:
    """Wrap *event* in the variant matching its kind."""
    match event.kind:
        case EventKind.SET_METADATA:
            return ProfileUpdate(event)
        case EventKind.TEXT_NOTE:
            return Note(event)
        case EventKind.REPOST:
            return Repost(event, event.first_tag_value("e"), event.first_tag_value("p"))
        case EventKind.REACTION:
            return Reaction(event, event.first_tag_value("e"), event.first_tag_value("p"))
        case _:
            return Other(event)
