"""Timeline client components and their assembly.

Attributes:
    RelayLink: One persistent relay connection with subscription routing.
    EventStore: Deduplicated, verified, view-classified event storage.
    ProfileBatcher: Debounced, batched kind-0 profile fetching.
    ViewRouter: Profile-gated view membership and debounced rendering.
    FlowgazerClient: Wires one instance of each together.
"""

from .app import FlowgazerClient
from .configs import (
    FlowgazerConfig,
    LoggingConfig,
    ProfileBatcherConfig,
    RelayLinkConfig,
    TimelineConfig,
    ViewRouterConfig,
)
from .console import ConsoleSurface
from .event_store import EventStore, ReactionCounts, ViewFilter
from .profile_batcher import ProfileBatcher
from .relay_link import RelayLink, Subscription, backoff_delay
from .view_router import RenderSurface, ViewRouter


__all__ = [
    "ConsoleSurface",
    "EventStore",
    "FlowgazerClient",
    "FlowgazerConfig",
    "LoggingConfig",
    "ProfileBatcher",
    "ProfileBatcherConfig",
    "ReactionCounts",
    "RelayLink",
    "RelayLinkConfig",
    "RenderSurface",
    "Subscription",
    "TimelineConfig",
    "ViewFilter",
    "ViewRouter",
    "ViewRouterConfig",
    "backoff_delay",
]
