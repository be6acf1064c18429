"""
WebSocket wire protocol for the relay.

Inbound frames are decoded once here into a closed set of message variants
(Identify / Unrecognized); the session state machine never compares raw
"type" strings. Outbound envelopes are built from the pydantic schemas.
"""
from __future__ import annotations

import base64
import enum
import json
from dataclasses import dataclass
from typing import Any, Union

from camrelay.core.schemas import ErrorMessage, ImageMessage, ImageRefMessage

# (code, reason) pairs sent when the relay closes a connection itself
CLOSE_SUPERSEDED = (1000, "superseded by new producer")
CLOSE_PROTOCOL_ERROR = (1002, "invalid message")


class ProtocolViolation(Exception):
    """Raised when an inbound frame cannot be parsed as JSON."""


class Role(str, enum.Enum):
    PRODUCER = "producer"
    CONSUMER = "consumer"


# "esp32" / "android" are the tags the deployed device firmware and viewer app send
ROLE_TAGS: dict[str, Role] = {
    "producer": Role.PRODUCER,
    "esp32": Role.PRODUCER,
    "consumer": Role.CONSUMER,
    "android": Role.CONSUMER,
}


@dataclass(frozen=True)
class Identify:
    role: Role


@dataclass(frozen=True)
class Unrecognized:
    type: Any = None


InboundMessage = Union[Identify, Unrecognized]


def decode_message(raw: str | bytes | None) -> InboundMessage:
    """
    Decode one inbound frame.

    Binary frames are read as UTF-8 text. Anything that is not JSON raises
    ProtocolViolation; JSON without a known "type" tag is Unrecognized.
    """
    if raw is None:
        raise ProtocolViolation("empty frame")
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ProtocolViolation("frame is not UTF-8 text") from exc
    try:
        msg = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ProtocolViolation(f"invalid JSON: {exc.msg}") from exc

    if not isinstance(msg, dict):
        return Unrecognized()
    tag = msg.get("type")
    role = ROLE_TAGS.get(tag) if isinstance(tag, str) else None
    if role is None:
        return Unrecognized(tag)
    return Identify(role)


def image_envelope(payload: bytes) -> str:
    data = base64.b64encode(payload).decode("ascii")
    return ImageMessage(data=data).model_dump_json()


def image_ref_envelope(url: str) -> str:
    return ImageRefMessage(url=url).model_dump_json()


def error_envelope(message: str) -> str:
    return ErrorMessage(message=message).model_dump_json()
