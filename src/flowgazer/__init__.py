r"""Flowgazer -- a Nostr timeline client for a single relay.

One persistent WebSocket feeds a verified, deduplicated event store. Events
are classified into views (global, following, my posts, likes) and only
shown once their author's profile is known; missing profiles are fetched
in debounced batches.

Imports flow strictly downward:

```text
               client          Relay link, store, batcher, router, assembly
              /      \
           core      utils     Logging, errors, metrics / codec, transport, keys
              \      /
               models          Pure frozen dataclasses (zero I/O)
```

Attributes:
    models: Events, variants, profiles, filters, and relay frames.
    core: Logger, exceptions, debouncer, YAML store, metrics.
    utils: NIP-01 codec, aiohttp transport, nostr-sdk identity.
    client: The four core components and ``FlowgazerClient``.
"""

from importlib.metadata import version as _get_version


__version__ = _get_version("flowgazer")

__all__ = ["__version__"]
