"""NIP-01 subscription filter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Filter:
    """One filter object of a ``REQ`` frame.

    Unset fields are omitted from the wire form. Tag filters are exposed as
    ``e_tags`` / ``p_tags`` and serialized as ``#e`` / ``#p``.

    Examples:
        ```python
        Filter(kinds=(0,), authors=("ab" * 32,)).to_dict()
        # {'kinds': [0], 'authors': ['abab...']}
        ```
    """

    ids: tuple[str, ...] | None = None
    authors: tuple[str, ...] | None = None
    kinds: tuple[int, ...] | None = None
    e_tags: tuple[str, ...] | None = None
    p_tags: tuple[str, ...] | None = None
    since: int | None = None
    until: int | None = None
    limit: int | None = None

    def __post_init__(self) -> None:
        for name in ("ids", "authors", "kinds", "e_tags", "p_tags"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, tuple(value))
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit must be non-negative")

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON object sent inside a ``REQ`` frame."""
        result: dict[str, Any] = {}
        if self.ids is not None:
            result["ids"] = list(self.ids)
        if self.authors is not None:
            result["authors"] = list(self.authors)
        if self.kinds is not None:
            result["kinds"] = list(self.kinds)
        if self.e_tags is not None:
            result["#e"] = list(self.e_tags)
        if self.p_tags is not None:
            result["#p"] = list(self.p_tags)
        if self.since is not None:
            result["since"] = self.since
        if self.until is not None:
            result["until"] = self.until
        if self.limit is not None:
            result["limit"] = self.limit
        return result
