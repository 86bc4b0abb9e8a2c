"""
Pydantic Schemas for API - Request/result models for HTTP and WebSocket.

These models define the contract between clients and the server. Every
room operation answers with a result model; rejections are reported with
success=false plus a message and a machine-readable code, never by closing
the connection.

Error Codes:
- NAME_REQUIRED: Player name missing or blank
- NAME_TOO_LONG: Player name longer than 20 characters
- UNKNOWN_RULESET: Ruleset name is not a preset
- INVALID_RULESET: Custom ruleset configuration is inconsistent
- ROOM_NOT_FOUND: Room code does not exist
- ROOM_UNAVAILABLE: Room is full or the game already started
- NOT_HOST / CANNOT_START: Start rejected
- INVALID_TOKEN: Session token unknown or expired
- INVALID_MOVE / NOT_AWAITING_SKIP: Submission rejected
- NOT_IN_ROOM: Connection has no seat in the room
- ALREADY_IN_ROOM: Connection already sits in a room
- INVALID_MESSAGE: WebSocket message could not be parsed
- INTERNAL_ERROR: Unexpected server failure while handling a message
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from ..engine_core.move import Move
from ..engine_core.rules import RuleSet
from ..engine_core.state import Side


MAX_PLAYER_NAME_LENGTH = 20


# =============================================================================
# Enums
# =============================================================================

class SessionStatus(str, Enum):
    """Room status values."""
    LOBBY = "lobby"
    ACTIVE = "active"
    FINISHED = "finished"


class ErrorCode(str, Enum):
    """Structured error codes."""
    NAME_REQUIRED = "NAME_REQUIRED"
    NAME_TOO_LONG = "NAME_TOO_LONG"
    UNKNOWN_RULESET = "UNKNOWN_RULESET"
    INVALID_RULESET = "INVALID_RULESET"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    ROOM_UNAVAILABLE = "ROOM_UNAVAILABLE"
    NOT_HOST = "NOT_HOST"
    CANNOT_START = "CANNOT_START"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_MOVE = "INVALID_MOVE"
    NOT_AWAITING_SKIP = "NOT_AWAITING_SKIP"
    NOT_IN_ROOM = "NOT_IN_ROOM"
    ALREADY_IN_ROOM = "ALREADY_IN_ROOM"
    INVALID_MESSAGE = "INVALID_MESSAGE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class MoveInfo(BaseModel):
    """A move as sent over the wire."""
    side: Side
    piece_index: int = Field(..., ge=0)
    from_position: int = Field(..., ge=-1)
    to_position: int = Field(..., ge=0)

    def to_move(self) -> Move:
        return Move(self.side, self.piece_index, self.from_position, self.to_position)

    @classmethod
    def from_move(cls, move: Move) -> "MoveInfo":
        return cls(
            side=move.side,
            piece_index=move.piece_index,
            from_position=move.from_position,
            to_position=move.to_position,
        )


class RuleSetInfo(BaseModel):
    """Ruleset summary for listings."""
    name: str
    path_length: int
    pieces_per_side: int
    dice_count: int
    rosettes: list[int]
    shared_lane: list[int]
    safe_rosettes: bool
    rosette_extra_turn: bool
    capture_extra_turn: bool
    zero_roll_value: Optional[int] = None
    allow_stacking: bool
    allow_backward_moves: bool
    allow_voluntary_skip: bool


class CustomRuleSet(BaseModel):
    """An ad-hoc ruleset supplied by the room host."""
    name: str = Field("Custom", max_length=40)
    path_length: int = Field(15, ge=2, le=64)
    pieces_per_side: int = Field(7, ge=1, le=16)
    dice_count: int = Field(4, ge=1, le=8)
    rosettes: list[int] = Field(default_factory=lambda: [4, 8, 14])
    shared_lane_start: int = 5
    shared_lane_end: int = 12
    capture_map: Optional[dict[int, int]] = Field(
        None, description="Shared-lane position to aliased opponent square"
    )
    safe_rosettes: bool = True
    rosette_extra_turn: bool = True
    capture_extra_turn: bool = False
    zero_roll_value: Optional[int] = Field(None, ge=0)
    allow_stacking: bool = False
    allow_backward_moves: bool = False
    allow_voluntary_skip: bool = False

    def to_ruleset(self) -> RuleSet:
        """Build the RuleSet. Raises ValueError for inconsistent boards."""
        return RuleSet(
            name=self.name,
            rosettes=frozenset(self.rosettes),
            pieces_per_side=self.pieces_per_side,
            path_length=self.path_length,
            shared_lane_start=self.shared_lane_start,
            shared_lane_end=self.shared_lane_end,
            dice_count=self.dice_count,
            capture_map=self.capture_map,
            safe_rosettes=self.safe_rosettes,
            rosette_extra_turn=self.rosette_extra_turn,
            capture_extra_turn=self.capture_extra_turn,
            zero_roll_value=self.zero_roll_value,
            allow_stacking=self.allow_stacking,
            allow_backward_moves=self.allow_backward_moves,
            allow_voluntary_skip=self.allow_voluntary_skip,
        )


# =============================================================================
# Request Models (WebSocket payloads)
# =============================================================================

class ClientMessage(BaseModel):
    """Envelope for every client message."""
    type: str = Field(..., description="create_room, join_room, start_game, ...")
    payload: dict[str, Any] = Field(default_factory=dict)


class CreateRoomRequest(BaseModel):
    """Open a new room as host."""
    player_name: str = Field("", description="Host display name")
    ruleset_name: str = Field("Finkel", description="Preset name")
    custom_rules: Optional[CustomRuleSet] = Field(
        None, description="Ad-hoc ruleset; overrides ruleset_name"
    )


class JoinRoomRequest(BaseModel):
    """Join an open room as guest."""
    code: str
    player_name: str = ""


class StartGameRequest(BaseModel):
    """Host starts the game."""
    code: str


class SubmitMoveRequest(BaseModel):
    """Answer a move_required event."""
    code: str
    move: MoveInfo


class SubmitSkipRequest(BaseModel):
    """Answer a skip_required event."""
    code: str
    skip: bool


class RejoinRequest(BaseModel):
    """Reclaim a seat after a dropped connection."""
    session_token: str


# =============================================================================
# Result Models
# =============================================================================

class OperationResult(BaseModel):
    """Base for every operation result."""
    success: bool = True
    error: str = ""
    error_code: Optional[ErrorCode] = None

    @classmethod
    def failure(cls, error_code: ErrorCode, error: str, **fields) -> "OperationResult":
        return cls(success=False, error=error, error_code=error_code, **fields)


class CreateRoomResult(OperationResult):
    """Result of opening a room."""
    code: str = ""
    ruleset_name: str = ""
    session_token: str = ""


class JoinRoomResult(OperationResult):
    """Result of joining a room."""
    code: str = ""
    ruleset_name: str = ""
    host_name: str = ""
    session_token: str = ""


class RejoinResult(OperationResult):
    """Result of a reconnection attempt."""
    code: str = ""
    side: Optional[Side] = None
    ruleset_name: str = ""
    opponent_name: str = ""


class RoomStatusResponse(BaseModel):
    """Public view of a room."""
    code: str
    status: SessionStatus
    ruleset_name: str
    host_name: str
    guest_name: Optional[str] = None
    winner: Optional[Side] = None
    snapshot: Optional[dict[str, Any]] = None


class RuleSetListResponse(BaseModel):
    """All preset rulesets."""
    rulesets: list[RuleSetInfo]


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
    rooms: int = 0
