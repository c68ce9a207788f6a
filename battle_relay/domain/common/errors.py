# battle_relay/domain/common/errors.py
from __future__ import annotations

"""
Relay error taxonomy.
Every RelayError raised while handling one frame becomes a single
error{code, message} reply to the caller; the connection stays open.
"""


class RelayError(Exception):
    code = "RELAY_ERROR"
    default_message = "Relay error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class MalformedMessage(RelayError):
    code = "MALFORMED_MESSAGE"
    default_message = "Invalid JSON"


class UnknownMessageType(RelayError):
    code = "UNKNOWN_TYPE"
    default_message = "Unknown message type"


class InvalidMessage(RelayError):
    code = "BAD_MESSAGE"
    default_message = "Message failed validation"


class RoomNotFound(RelayError):
    code = "ROOM_NOT_FOUND"
    default_message = "Room not found. Check the code and try again."


class RoomFull(RelayError):
    code = "ROOM_FULL"
    default_message = "Room is full."


class NotInRoom(RelayError):
    code = "NOT_IN_ROOM"
    default_message = "You are not in a room."


class TransportUnavailable(RelayError):
    """Send attempted on a closed transport. Dropped by the delivery layer."""

    code = "TRANSPORT_UNAVAILABLE"
    default_message = "Peer transport is not open"
