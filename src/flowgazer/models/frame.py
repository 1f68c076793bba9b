"""
Typed relay-to-client frames.

Every inbound message is a JSON array ``[type, ...]``. The codec in
[flowgazer.utils.protocol][] decodes it into one of the frame classes
below; only [EventFrame][flowgazer.models.frame.EventFrame] and
[EoseFrame][flowgazer.models.frame.EoseFrame] are routed to subscription
handlers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .event import Event


@dataclass(frozen=True, slots=True)
class EventFrame:
    """``["EVENT", sub_id, event]`` -- a stored or live event for a subscription."""

    sub_id: str
    event: Event


@dataclass(frozen=True, slots=True)
class EoseFrame:
    """``["EOSE", sub_id]`` -- end of stored events for a subscription."""

    sub_id: str


@dataclass(frozen=True, slots=True)
class ClosedFrame:
    """``["CLOSED", sub_id, message]`` -- the relay ended a subscription."""

    sub_id: str
    message: str = ""


@dataclass(frozen=True, slots=True)
class NoticeFrame:
    """``["NOTICE", message]`` -- human-readable relay notice."""

    message: str


@dataclass(frozen=True, slots=True)
class OkFrame:
    """``["OK", event_id, accepted, message]`` -- publish acknowledgment."""

    event_id: str
    accepted: bool
    message: str = ""


@dataclass(frozen=True, slots=True)
class UnknownFrame:
    """Any frame type outside the known set."""

    type: str
    payload: tuple[Any, ...] = ()


SubscriptionFrame = EventFrame | EoseFrame
Frame = EventFrame | EoseFrame | ClosedFrame | NoticeFrame | OkFrame | UnknownFrame
