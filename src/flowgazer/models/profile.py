"""
Author profile metadata (kind 0) with last-write-wins ordering.

A [Profile][flowgazer.models.profile.Profile] is keyed by ``pubkey`` and
replaced only by a strictly newer ``created_at``; see
[Profile.supersedes()][flowgazer.models.profile.Profile.supersedes].
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ._validation import deep_freeze, validate_hex, validate_mapping, validate_timestamp
from .constants import EventKind


if TYPE_CHECKING:
    from .event import Event


@dataclass(frozen=True, slots=True)
class Profile:
    """Immutable snapshot of an author's metadata.

    Attributes:
        pubkey: Author public key as lowercase hex.
        data: Free-form metadata map (``name``, ``display_name``, ``picture``, ...).
        created_at: Timestamp of the kind-0 event the snapshot came from.
    """

    pubkey: str
    data: Mapping[str, Any] = field(default_factory=dict)
    created_at: int = 0

    def __post_init__(self) -> None:
        validate_hex(self.pubkey, "pubkey", 64)
        validate_mapping(self.data, "data")
        validate_timestamp(self.created_at, "created_at")
        object.__setattr__(self, "data", deep_freeze(dict(self.data)))

    @classmethod
    def from_event(cls, event: Event) -> Profile:
        """Parse a kind-0 event's JSON content into a profile.

        Raises:
            ValueError: If the event is not kind 0 or its content is not a
                JSON object.
        """
        if event.kind != EventKind.SET_METADATA:
            raise ValueError(f"expected kind 0, got kind {event.kind}")
        try:
            data = json.loads(event.content)
        except json.JSONDecodeError as e:
            raise ValueError(f"profile content is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"profile content must be an object, got {type(data).__name__}")
        return cls(pubkey=event.pubkey, data=data, created_at=event.created_at)

    def supersedes(self, other: Profile | None) -> bool:
        """Whether this snapshot replaces *other* (strictly newer timestamp)."""
        return other is None or self.created_at > other.created_at

    @property
    def display_name(self) -> str:
        """Best human-readable name: ``display_name``, then ``name``, then a short pubkey."""
        for key in ("display_name", "name"):
            value = self.data.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return short_pubkey(self.pubkey)


def short_pubkey(pubkey: str) -> str:
    """Abbreviate a hex pubkey for display."""
    return f"{pubkey[:8]}..."
