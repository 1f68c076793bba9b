"""Identity providers: the local pubkey and event signing.

The client core never signs anything itself. Call sites that publish
(posting a note, reacting) go through an
[IdentityProvider][flowgazer.utils.keys.IdentityProvider]:

* [KeysIdentity][flowgazer.utils.keys.KeysIdentity] signs with a
  ``nostr_sdk.Keys`` pair loaded from an environment variable.
* [ReadOnlyIdentity][flowgazer.utils.keys.ReadOnlyIdentity] knows a
  pubkey (or nothing) and refuses to sign.

Warning:
    Private keys must never be stored in configuration files or logged.
    Use an environment variable (default ``PRIVATE_KEY``).
"""

from __future__ import annotations

import os
from typing import Protocol

from nostr_sdk import EventBuilder, Keys, Kind, Tag, Timestamp

from flowgazer.models.event import Event, EventDraft


ENV_PRIVATE_KEY = "PRIVATE_KEY"  # pragma: allowlist secret


class IdentityProvider(Protocol):
    """Local identity and signing capability."""

    def current_pubkey(self) -> str | None: ...

    @property
    def can_sign(self) -> bool: ...

    async def sign_event(self, draft: EventDraft) -> Event: ...


def load_keys_from_env(env_var: str = ENV_PRIVATE_KEY) -> Keys:
    """Load Nostr keys (nsec1 bech32 or 64-char hex) from an environment variable.

    Raises:
        ValueError: If the environment variable is not set or is empty.
        nostr_sdk.NostrSdkError: If the key value is malformed.
    """
    value = os.getenv(env_var)
    if not value:
        raise ValueError(f"{env_var} environment variable is required to sign events")
    return Keys.parse(value)


class KeysIdentity:
    """Signs drafts with an in-memory ``nostr_sdk.Keys`` pair."""

    def __init__(self, keys: Keys) -> None:
        self._keys = keys

    @classmethod
    def from_env(cls, env_var: str = ENV_PRIVATE_KEY) -> KeysIdentity:
        return cls(load_keys_from_env(env_var))

    def current_pubkey(self) -> str | None:
        return self._keys.public_key().to_hex()

    @property
    def can_sign(self) -> bool:
        return True

    async def sign_event(self, draft: EventDraft) -> Event:
        builder = (
            EventBuilder(Kind(int(draft.kind)), draft.content)
            .tags([Tag.parse(list(tag)) for tag in draft.tags])
            .custom_created_at(Timestamp.from_secs(draft.created_at))
        )
        signed = builder.sign_with_keys(self._keys)
        return Event.from_json(signed.as_json())


class ReadOnlyIdentity:
    """Watch-only identity: optionally knows a pubkey, never signs."""

    def __init__(self, pubkey: str | None = None) -> None:
        self._pubkey = pubkey

    def current_pubkey(self) -> str | None:
        return self._pubkey

    @property
    def can_sign(self) -> bool:
        return False

    async def sign_event(self, draft: EventDraft) -> Event:
        raise PermissionError("a private key is required to sign events")
