"""Plain-text render surface printing the active view to a stream."""

from __future__ import annotations

import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING, TextIO

from flowgazer.models.constants import EventKind, ViewName
from flowgazer.models.event import Event


if TYPE_CHECKING:
    from .app import FlowgazerClient


class ConsoleSurface:
    """Writes the top ``limit`` visible events on every refresh.

    The surface is created before the client that drives it; call
    ``attach`` once the client exists. Refreshes before that are ignored.
    """

    def __init__(self, stream: TextIO | None = None, *, limit: int = 20) -> None:
        self._stream = stream or sys.stdout
        self._limit = limit
        self._client: FlowgazerClient | None = None
        self.refresh_count = 0

    def attach(self, client: FlowgazerClient) -> None:
        self._client = client

    def refresh(self) -> None:
        if self._client is None:
            return
        self.refresh_count += 1
        client = self._client
        events = client.visible_events()[: self._limit]
        view = client.router.active_view

        lines = [f"== {view} ({len(events)} shown) =="]
        lines.extend(self.format_event(client, event, view) for event in events)
        self._stream.write("\n".join(lines) + "\n")
        self._stream.flush()

    @staticmethod
    def format_event(client: FlowgazerClient, event: Event, view: ViewName) -> str:
        store = client.store
        stamp = datetime.fromtimestamp(event.created_at, tz=UTC).strftime("%Y-%m-%d %H:%M")
        author = store.display_name(event.pubkey)

        match event.kind:
            case EventKind.REPOST:
                body = f"reposted {event.first_tag_value('e') or '?'}"
            case EventKind.REACTION:
                body = f"reacted {event.content or '+'} to {event.first_tag_value('e') or '?'}"
            case _:
                body = event.content.replace("\n", " ")

        line = f"[{stamp}] {author}: {body}"
        if view is ViewName.MY_POSTS:
            counts = store.reaction_counts(event.id)
            line += f"  (+{counts.reactions} / rp {counts.reposts})"
        elif store.is_liked_by_me(event.id):
            line += "  *"
        return line
