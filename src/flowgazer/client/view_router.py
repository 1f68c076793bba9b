"""
Per-view visible sets, the pending-profile gate, and debounced redraws.

[ViewRouter][flowgazer.client.view_router.ViewRouter] sits between the
[EventStore][flowgazer.client.event_store.EventStore] and the external
render surface. Newly classified events join their views immediately but
stay *pending* (invisible) until their author's profile arrives; profile
arrival promotes every pending event of that author.

Redraws are coalesced: [schedule_render()][flowgazer.client.view_router.ViewRouter.schedule_render]
restarts a short window and the surface is refreshed once per burst.
[render_now()][flowgazer.client.view_router.ViewRouter.render_now] skips
the window for user-initiated actions.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from flowgazer.core.debounce import Debouncer
from flowgazer.core.logger import Logger
from flowgazer.core.metrics import PENDING_EVENTS, RENDERS
from flowgazer.models.constants import ViewName
from flowgazer.models.event import Event

from .configs import ViewRouterConfig
from .event_store import EventStore, ViewFilter


class RenderSurface(Protocol):
    """Anything that can redraw the active timeline."""

    def refresh(self) -> None: ...


class ViewRouter:
    """Tracks what each view may show and when the surface should redraw.

    Args:
        store: Source of events, profiles, and memberships.
        request_profile: Called with a pubkey whose profile is missing
            (normally ``ProfileBatcher.request``).
        surface: Render surface refreshed on (debounced) changes.
        config: Render delay and initial auto-update flag.
    """

    def __init__(
        self,
        store: EventStore,
        request_profile: Callable[[str], None],
        surface: RenderSurface,
        config: ViewRouterConfig | None = None,
        *,
        active_view: ViewName = ViewName.GLOBAL,
    ) -> None:
        self._store = store
        self._request_profile = request_profile
        self._surface = surface
        self._config = config or ViewRouterConfig()
        self._logger = Logger("flowgazer.views")

        self._active_view = active_view
        self._auto_update = self._config.auto_update
        self._visible: dict[ViewName, set[str]] = {view: set() for view in ViewName}
        self._pending: set[str] = set()
        self._timer = Debouncer(self._config.render_delay, self._refresh_debounced, name="render")

    # -------------------------------------------------------------------------
    # Flags
    # -------------------------------------------------------------------------

    @property
    def active_view(self) -> ViewName:
        return self._active_view

    @property
    def auto_update(self) -> bool:
        return self._auto_update

    @auto_update.setter
    def auto_update(self, enabled: bool) -> None:
        self._auto_update = enabled
        self._logger.info("auto_update_changed", enabled=enabled)
        if enabled:
            self.schedule_render()
        else:
            self._timer.cancel()

    @property
    def pending(self) -> frozenset[str]:
        return frozenset(self._pending)

    def visible_ids(self, view: ViewName) -> frozenset[str]:
        return frozenset(self._visible[view])

    # -------------------------------------------------------------------------
    # Store notifications
    # -------------------------------------------------------------------------

    def on_event_classified(self, event: Event, views: frozenset[ViewName]) -> None:
        """Record *event* in its views and gate it on its author's profile."""
        if not views:
            return
        for view in views:
            self._visible[view].add(event.id)

        if not self._store.has_profile(event.pubkey):
            self._pending.add(event.id)
            PENDING_EVENTS.set(len(self._pending))
            self._request_profile(event.pubkey)

        if self._active_view in views:
            self.schedule_render()

    def on_profile_arrived(self, pubkey: str) -> None:
        """Promote every pending event authored by *pubkey*."""
        promoted = [
            event_id
            for event_id in self._pending
            if (event := self._store.get(event_id)) is not None and event.pubkey == pubkey
        ]
        if not promoted:
            return
        self._pending.difference_update(promoted)
        PENDING_EVENTS.set(len(self._pending))
        self._logger.debug("pending_promoted", pubkey=pubkey, count=len(promoted))
        self.schedule_render()

    def rebuild(self) -> None:
        """Re-derive visible and pending sets from the store's memberships."""
        self._visible = {view: set(self._store.view_ids(view)) for view in ViewName}
        self._pending = {
            event_id
            for ids in self._visible.values()
            for event_id in ids
            if (event := self._store.get(event_id)) is not None
            and not self._store.has_profile(event.pubkey)
        }
        PENDING_EVENTS.set(len(self._pending))

    def reset(self) -> None:
        """Forget every visible and pending id (after a store clear)."""
        self._visible = {view: set() for view in ViewName}
        self._pending.clear()
        PENDING_EVENTS.set(0)
        self._timer.cancel()

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def schedule_render(self) -> None:
        """Restart the render window; no-op while auto-update is off."""
        if not self._auto_update:
            return
        self._timer.schedule()

    def render_now(self) -> None:
        """Cancel any pending window and refresh synchronously."""
        self._timer.cancel()
        RENDERS.labels(trigger="immediate").inc()
        self._surface.refresh()

    def switch_view(self, view: ViewName) -> None:
        """Make *view* active and redraw immediately."""
        self._active_view = view
        self._logger.info("view_switched", view=view)
        self.render_now()

    def _refresh_debounced(self) -> None:
        RENDERS.labels(trigger="debounced").inc()
        self._surface.refresh()

    def visible_events(self, filters: ViewFilter | None = None, view: ViewName | None = None) -> list[Event]:
        """Events the surface should draw for *view* (default: the active view).

        Pending events are excluded; ordering follows
        [EventStore.query_by_view()][flowgazer.client.event_store.EventStore.query_by_view].
        """
        view = view or self._active_view
        visible = self._visible[view]
        return [
            e
            for e in self._store.query_by_view(view, filters)
            if e.id in visible and e.id not in self._pending
        ]

    def stats(self) -> dict[str, int]:
        result = {str(view): len(ids) for view, ids in self._visible.items()}
        result["pending"] = len(self._pending)
        return result
