"""Nostr wire codec and signature verification.

Client-to-relay frames are produced by
[encode_req()][flowgazer.utils.protocol.encode_req],
[encode_close()][flowgazer.utils.protocol.encode_close], and
[encode_event()][flowgazer.utils.protocol.encode_event]. Relay-to-client
text is decoded by [decode_frame()][flowgazer.utils.protocol.decode_frame]
into the typed frames of [flowgazer.models.frame][].

[verify_event()][flowgazer.utils.protocol.verify_event] is the default
signature verifier: it delegates id and Schnorr signature checks to
``nostr_sdk``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from nostr_sdk import Event as NostrEvent
from nostr_sdk import NostrSdkError

from flowgazer.core.exceptions import ProtocolParseError
from flowgazer.models.event import Event
from flowgazer.models.filter import Filter
from flowgazer.models.frame import (
    ClosedFrame,
    EoseFrame,
    EventFrame,
    Frame,
    NoticeFrame,
    OkFrame,
    UnknownFrame,
)


logger = logging.getLogger(__name__)


def _dumps(message: list[Any]) -> str:
    return json.dumps(message, ensure_ascii=False, separators=(",", ":"))


def encode_req(sub_id: str, filters: Sequence[Filter]) -> str:
    """``["REQ", sub_id, filter, ...]``"""
    return _dumps(["REQ", sub_id, *(f.to_dict() for f in filters)])


def encode_close(sub_id: str) -> str:
    """``["CLOSE", sub_id]``"""
    return _dumps(["CLOSE", sub_id])


def encode_event(event: Event) -> str:
    """``["EVENT", event]``"""
    return _dumps(["EVENT", event.to_dict()])


def decode_frame(raw: str | bytes) -> Frame:
    """Decode one relay message into a typed frame.

    Frame types outside ``EVENT``/``EOSE``/``CLOSED``/``NOTICE``/``OK``
    decode to [UnknownFrame][flowgazer.models.frame.UnknownFrame] rather
    than failing.

    Raises:
        ProtocolParseError: If the message is not a JSON array with a string
            type, or a known frame type has the wrong shape or an invalid
            event payload.
    """
    try:
        message = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ProtocolParseError(f"frame is not valid JSON: {e}") from e

    if not isinstance(message, list) or not message or not isinstance(message[0], str):
        raise ProtocolParseError("frame must be a JSON array starting with a type string")

    frame_type, args = message[0], message[1:]
    try:
        match frame_type:
            case "EVENT":
                sub_id, payload = args[0], args[1]
                return EventFrame(_as_str(sub_id), Event.from_dict(payload))
            case "EOSE":
                return EoseFrame(_as_str(args[0]))
            case "CLOSED":
                return ClosedFrame(_as_str(args[0]), str(args[1]) if len(args) > 1 else "")
            case "NOTICE":
                return NoticeFrame(str(args[0]) if args else "")
            case "OK":
                return OkFrame(_as_str(args[0]), bool(args[1]), str(args[2]) if len(args) > 2 else "")
            case _:
                return UnknownFrame(frame_type, tuple(args))
    except IndexError:
        raise ProtocolParseError(f"{frame_type} frame has too few elements") from None
    except (TypeError, ValueError) as e:
        raise ProtocolParseError(f"invalid {frame_type} frame: {e}") from e


def _as_str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {type(value).__name__}")
    return value


def verify_event(event: Event) -> bool:
    """Check the event id and signature against its pubkey via ``nostr_sdk``.

    Returns:
        ``True`` only if nostr-sdk parses the event and ``verify()`` succeeds.
        Parse failures count as invalid instead of raising.
    """
    try:
        return bool(NostrEvent.from_json(event.to_json()).verify())
    except NostrSdkError as e:
        logger.debug("event_verify_failed event_id=%s error=%s", event.id[:16], e)
        return False
