"""
Coalesces author-metadata requests into bounded kind-0 subscriptions.

Timeline events arrive in bursts and usually name authors whose profiles
are not stored yet. Instead of one subscription per author,
[request()][flowgazer.client.profile_batcher.ProfileBatcher.request] only
queues the pubkey and restarts a short debounce window; when the window
expires the queue is drained in subscriptions of at most
``max_batch_size`` authors each.

Per batch:

* every matching ``EVENT`` upserts the profile and clears that author's
  in-flight mark (a malformed profile is logged and skipped alone),
* ``EOSE`` closes the subscription, clears the in-flight marks of authors
  that produced nothing (so they can be requested again), and notifies
  batch listeners.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable, Iterable

from flowgazer.core.debounce import Debouncer
from flowgazer.core.exceptions import ProfileParseError
from flowgazer.core.logger import Logger
from flowgazer.core.metrics import PROFILE_BATCHES
from flowgazer.models.constants import EventKind
from flowgazer.models.filter import Filter
from flowgazer.models.frame import EoseFrame, EventFrame, SubscriptionFrame

from .configs import ProfileBatcherConfig
from .event_store import EventStore
from .relay_link import RelayLink


BatchListener = Callable[[], None]


class ProfileBatcher:
    """Debounced, size-capped kind-0 fetcher.

    Args:
        link: Relay link used for the batch subscriptions.
        store: Event store receiving the profiles.
        config: Debounce window and batch cap.
    """

    def __init__(
        self,
        link: RelayLink,
        store: EventStore,
        config: ProfileBatcherConfig | None = None,
    ) -> None:
        self._link = link
        self._store = store
        self._config = config or ProfileBatcherConfig()
        self._logger = Logger("flowgazer.profiles")

        # dict as an insertion-ordered set
        self._queue: dict[str, None] = {}
        self._in_flight: set[str] = set()
        self._timer = Debouncer(self._config.debounce, self._drain, name="profiles")
        self._sub_ids = itertools.count(1)
        self._batch_listeners: list[BatchListener] = []

    def add_batch_listener(self, listener: BatchListener) -> None:
        self._batch_listeners.append(listener)

    @property
    def queued(self) -> list[str]:
        return list(self._queue)

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    def request(self, pubkey: str) -> None:
        """Queue *pubkey* unless stored or in flight, and restart the window."""
        if self._store.has_profile(pubkey) or pubkey in self._in_flight:
            return
        self._queue[pubkey] = None
        self._timer.schedule()

    def request_many(self, pubkeys: Iterable[str]) -> None:
        for pubkey in pubkeys:
            self.request(pubkey)

    def flush_now(self) -> None:
        """Cancel the pending window and drain the queue immediately."""
        self._timer.cancel()
        self._drain()

    def reset(self) -> None:
        """Drop queued and in-flight authors (after a store clear)."""
        self._timer.cancel()
        self._queue.clear()
        self._in_flight.clear()

    def _drain(self) -> None:
        while self._queue:
            if not self.flush():
                break

    def flush(self) -> bool:
        """Issue one subscription for up to ``max_batch_size`` queued authors.

        Returns:
            ``True`` if a subscription was opened. ``False`` if the queue was
            empty or the link refused the subscription, in which case the
            authors go back to the queue.
        """
        if not self._queue:
            return False

        batch = list(itertools.islice(self._queue, self._config.max_batch_size))
        for pubkey in batch:
            del self._queue[pubkey]
        self._in_flight.update(batch)

        sub_id = f"profiles-{next(self._sub_ids)}"
        keys = frozenset(batch)
        subscribed = self._link.subscribe(
            sub_id,
            Filter(kinds=(EventKind.SET_METADATA,), authors=tuple(batch)),
            lambda frame: self._on_frame(sub_id, keys, frame),
        )
        if not subscribed:
            self._in_flight.difference_update(batch)
            self._queue = dict.fromkeys([*batch, *self._queue])
            self._logger.warning("profile_batch_deferred", size=len(batch), reason="not connected")
            return False

        PROFILE_BATCHES.inc()
        self._logger.info("profile_batch_requested", sub_id=sub_id, size=len(batch))
        return True

    def _on_frame(self, sub_id: str, keys: frozenset[str], frame: SubscriptionFrame) -> None:
        match frame:
            case EventFrame(event=event):
                if event.kind != EventKind.SET_METADATA or event.pubkey not in keys:
                    return
                try:
                    self._store.add_profile_event(event)
                except ProfileParseError as e:
                    self._logger.warning("profile_parse_error", pubkey=event.pubkey, error=str(e))
                    return
                self._in_flight.discard(event.pubkey)
            case EoseFrame():
                self._link.unsubscribe(sub_id)
                self._in_flight.difference_update(keys)
                self._logger.info(
                    "profile_batch_completed", sub_id=sub_id, profiles=self._store.profile_count
                )
                for listener in self._batch_listeners:
                    listener()
