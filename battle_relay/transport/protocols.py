# battle_relay/transport/protocols.py
from __future__ import annotations

from typing import Any, Dict, Literal, Optional, Union
from pydantic import BaseModel, Field, ValidationError, field_validator

from battle_relay.domain.common.errors import InvalidMessage, UnknownMessageType
from battle_relay.store.codes import normalize_room_code

BOARD_SIZE = 10


# =========================
# Incoming (Client -> Server)
# =========================

class InBase(BaseModel):
    type: str


# ---- Lifecycle ----

class InCreateRoom(InBase):
    type: Literal["create_room"] = "create_room"
    address: Optional[str] = Field(default=None, max_length=128)


class InJoinRoom(InBase):
    type: Literal["join_room"] = "join_room"
    roomCode: str = ""
    address: Optional[str] = Field(default=None, max_length=128)

    @field_validator("roomCode", mode="before")
    @classmethod
    def _norm_code(cls, v: Any) -> str:
        return normalize_room_code(v if isinstance(v, str) else "")


class InPing(InBase):
    type: Literal["ping"] = "ping"


# ---- Battle relay ----

class InFleetCommitted(InBase):
    type: Literal["fleet_committed"] = "fleet_committed"


class InFireShot(InBase):
    type: Literal["fire_shot"] = "fire_shot"
    x: int = Field(ge=0, lt=BOARD_SIZE)
    y: int = Field(ge=0, lt=BOARD_SIZE)


class InShotResponse(InBase):
    type: Literal["shot_response"] = "shot_response"
    x: int = Field(ge=0, lt=BOARD_SIZE)
    y: int = Field(ge=0, lt=BOARD_SIZE)
    isHit: bool
    # opaque to the relay: forwarded untouched
    proof: Optional[Any] = None


class InGameOver(InBase):
    type: Literal["game_over"] = "game_over"


IncomingMessage = Union[
    InCreateRoom,
    InJoinRoom,
    InPing,
    InFleetCommitted,
    InFireShot,
    InShotResponse,
    InGameOver,
]


# =========================
# Outgoing (Server -> Client)
# =========================

class OutBase(BaseModel):
    type: str


class OutError(OutBase):
    type: Literal["error"] = "error"
    code: str
    message: str


class OutPong(OutBase):
    type: Literal["pong"] = "pong"


class OutRoomCreated(OutBase):
    type: Literal["room_created"] = "room_created"
    roomCode: str
    playerIndex: int = 0


class OutRoomJoined(OutBase):
    type: Literal["room_joined"] = "room_joined"
    roomCode: str
    playerIndex: int
    opponentAddress: Optional[str] = None
    opponentCommitted: bool = False


class OutOpponentJoined(OutBase):
    type: Literal["opponent_joined"] = "opponent_joined"
    opponentAddress: str


class OutOpponentLeft(OutBase):
    type: Literal["opponent_left"] = "opponent_left"


class OutOpponentCommitted(OutBase):
    type: Literal["opponent_committed"] = "opponent_committed"


class OutBattleStart(OutBase):
    type: Literal["battle_start"] = "battle_start"
    yourTurn: bool


class OutIncomingShot(OutBase):
    type: Literal["incoming_shot"] = "incoming_shot"
    x: int
    y: int


class OutShotResult(OutBase):
    type: Literal["shot_result"] = "shot_result"
    x: int
    y: int
    isHit: bool
    proof: Optional[Any] = None


class OutOpponentWins(OutBase):
    type: Literal["opponent_wins"] = "opponent_wins"


class OutOpponentDisconnected(OutBase):
    type: Literal["opponent_disconnected"] = "opponent_disconnected"


OutgoingEvent = Union[
    OutError,
    OutPong,
    OutRoomCreated,
    OutRoomJoined,
    OutOpponentJoined,
    OutOpponentLeft,
    OutOpponentCommitted,
    OutBattleStart,
    OutIncomingShot,
    OutShotResult,
    OutOpponentWins,
    OutOpponentDisconnected,
]


# =========================
# Parser helpers
# =========================

_INCOMING_BY_TYPE = {
    "create_room": InCreateRoom,
    "join_room": InJoinRoom,
    "ping": InPing,
    "fleet_committed": InFleetCommitted,
    "fire_shot": InFireShot,
    "shot_response": InShotResponse,
    "game_over": InGameOver,
}


def parse_incoming(payload: Dict[str, Any]) -> IncomingMessage:
    """
    Convert raw dict -> validated message model.
    Raises UnknownMessageType for a missing/unrecognised type and
    InvalidMessage when the fields do not fit the type.
    """
    t = payload.get("type") if isinstance(payload, dict) else None
    if not isinstance(t, str):
        raise InvalidMessage("Missing/invalid type")

    cls = _INCOMING_BY_TYPE.get(t)
    if cls is None:
        raise UnknownMessageType(f"Unknown message type: {t}")

    try:
        return cls.model_validate(payload)
    except ValidationError as e:
        raise InvalidMessage(_describe(e)) from e


def _describe(err: ValidationError) -> str:
    parts = []
    for item in err.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "message"
        parts.append(f"{loc}: {item.get('msg', 'invalid')}")
    return "; ".join(parts)
