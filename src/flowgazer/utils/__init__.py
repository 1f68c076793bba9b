"""Protocol codec, WebSocket transport, and identity helpers.

Attributes:
    decode_frame: Relay message -> typed frame.
    encode_req / encode_close / encode_event: Client frames.
    verify_event: Default nostr-sdk signature verifier.
    open_websocket: Default aiohttp connector for the relay link.
    KeysIdentity / ReadOnlyIdentity: Identity providers.
"""

from .keys import IdentityProvider, KeysIdentity, ReadOnlyIdentity, load_keys_from_env
from .protocol import decode_frame, encode_close, encode_event, encode_req, verify_event
from .transport import Connection, Connector, WebSocketConnection, open_websocket


__all__ = [
    "Connection",
    "Connector",
    "IdentityProvider",
    "KeysIdentity",
    "ReadOnlyIdentity",
    "WebSocketConnection",
    "decode_frame",
    "encode_close",
    "encode_event",
    "encode_req",
    "load_keys_from_env",
    "open_websocket",
    "verify_event",
]
