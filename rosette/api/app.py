"""
FastAPI Application - HTTP endpoints and the WebSocket game hub.

Endpoints:
    GET    /health                  Health check
    GET    /api/v1/rulesets         Preset rulesets
    GET    /api/v1/rooms/{code}     Room status
    WS     /api/v1/ws               Game hub

WebSocket protocol:
    Every message is {"type": ..., "payload": {...}}.

    Client -> server:
        create_room   {player_name, ruleset_name, custom_rules?}
        join_room     {code, player_name}
        start_game    {code}
        submit_move   {code, move: {side, piece_index, from_position, to_position}}
        submit_skip   {code, skip}
        rejoin        {session_token}
        leave         {}
        ping          {}

    Each request is answered with "<type>_result". Game events arrive as
    state_changed, dice_rolled, move_made, turn_forfeited, game_over,
    error, game_starting, move_required, skip_required, opponent_joined,
    opponent_slow, opponent_reconnecting, opponent_reconnected and
    opponent_disconnected.

Run with: uvicorn --factory rosette.api.app:create_app
"""

from typing import Any, Optional
import json

import structlog
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .. import __version__
from ..config import Settings
from ..session.broadcast import EventName
from .hub import ConnectionHub, HubBroadcaster
from .schemas import (
    ClientMessage,
    CreateRoomRequest,
    ErrorCode,
    ErrorResponse,
    HealthResponse,
    JoinRoomRequest,
    OperationResult,
    RejoinRequest,
    RoomStatusResponse,
    RuleSetListResponse,
    StartGameRequest,
    SubmitMoveRequest,
    SubmitSkipRequest,
)
from .service import RoomService

logger = structlog.get_logger()


def error_message(error_code: ErrorCode, message: str) -> dict[str, Any]:
    return {
        "type": EventName.ERROR.value,
        "payload": {"message": message, "error_code": error_code.value},
    }


def create_app(
    service: Optional[RoomService] = None,
    settings: Optional[Settings] = None,
    hub: Optional[ConnectionHub] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        service: Optional RoomService (creates one on a new hub if omitted)
        settings: Optional Settings (read from the environment if omitted)
        hub: Optional ConnectionHub shared with a provided service

    Returns:
        FastAPI application instance
    """
    settings = settings or Settings.from_env()
    if service is None:
        hub = hub or ConnectionHub()
        service = RoomService(HubBroadcaster(hub), settings=settings)
    elif hub is None:
        broadcaster = service.broadcaster
        hub = broadcaster.hub if isinstance(broadcaster, HubBroadcaster) else ConnectionHub()

    app = FastAPI(
        title="Rosette API",
        description="Royal Game of Ur rooms over WebSockets.",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.service = service
    app.state.hub = hub

    # =========================================================================
    # HTTP
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="rosette",
            version=__version__,
            rooms=len(service.registry),
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Rosette API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/health",
            "websocket": "/api/v1/ws",
        }

    @app.get(
        "/api/v1/rulesets",
        response_model=RuleSetListResponse,
        tags=["Rules"],
        summary="List preset rulesets",
    )
    async def list_rulesets() -> RuleSetListResponse:
        return RuleSetListResponse(rulesets=service.list_rulesets())

    @app.get(
        "/api/v1/rooms/{code}",
        response_model=RoomStatusResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Rooms"],
        summary="Room status",
    )
    async def get_room(code: str):
        status = service.get_room_status(code)
        if status is None:
            return JSONResponse(
                status_code=404,
                content=ErrorResponse(
                    error="Room not found",
                    error_code=ErrorCode.ROOM_NOT_FOUND,
                    details={"code": code},
                ).model_dump(mode="json"),
            )
        return status

    # =========================================================================
    # WebSocket
    # =========================================================================

    async def handle_message(connection_id: str, raw: str) -> Optional[dict[str, Any]]:
        try:
            message = ClientMessage.model_validate(json.loads(raw))
        except json.JSONDecodeError:
            return error_message(ErrorCode.INVALID_MESSAGE, "Invalid JSON")
        except ValidationError:
            return error_message(ErrorCode.INVALID_MESSAGE, "Message must have a type")

        kind = message.type
        reply_type = f"{kind}_result"
        try:
            if kind == "ping":
                return {"type": "pong", "payload": None}

            if kind == "create_room":
                request = CreateRoomRequest.model_validate(message.payload)
                result = await service.create_room(
                    request.player_name,
                    connection_id,
                    request.ruleset_name,
                    request.custom_rules,
                )
                return {"type": reply_type, "payload": result.model_dump(mode="json")}

            if kind == "join_room":
                request = JoinRoomRequest.model_validate(message.payload)
                result = await service.join_room(request.code, request.player_name, connection_id)
                return {"type": reply_type, "payload": result.model_dump(mode="json")}

            if kind == "start_game":
                request = StartGameRequest.model_validate(message.payload)
                result = await service.start_game(request.code, connection_id)
                return {"type": reply_type, "payload": result.model_dump(mode="json")}

            if kind == "submit_move":
                request = SubmitMoveRequest.model_validate(message.payload)
                result = service.submit_move(request.code, connection_id, request.move.to_move())
                return {"type": reply_type, "payload": result.model_dump(mode="json")}

            if kind == "submit_skip":
                request = SubmitSkipRequest.model_validate(message.payload)
                result = service.submit_skip(request.code, connection_id, request.skip)
                return {"type": reply_type, "payload": result.model_dump(mode="json")}

            if kind == "rejoin":
                request = RejoinRequest.model_validate(message.payload)
                result = await service.handle_rejoin(request.session_token, connection_id)
                return {"type": reply_type, "payload": result.model_dump(mode="json")}

            if kind == "leave":
                if await service.handle_leave(connection_id):
                    result = OperationResult()
                else:
                    result = OperationResult.failure(ErrorCode.NOT_IN_ROOM, "Not in a room")
                return {"type": reply_type, "payload": result.model_dump(mode="json")}

        except ValidationError as e:
            return error_message(ErrorCode.INVALID_MESSAGE, f"Invalid {kind} payload: {e.error_count()} error(s)")
        except Exception:
            logger.exception("message handling failed", message_type=kind)
            return error_message(ErrorCode.INTERNAL_ERROR, "Internal server error")

        return error_message(ErrorCode.INVALID_MESSAGE, f"Unknown message type: {kind}")

    @app.websocket("/api/v1/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """
        Game hub.

        The first server message is "connected" with this socket's
        connection id. Closing the socket counts as a disconnect.
        """
        await websocket.accept()
        connection_id = hub.register(websocket)
        structlog.contextvars.bind_contextvars(connection_id=connection_id)
        logger.info("websocket connected")

        try:
            await websocket.send_json({
                "type": "connected",
                "payload": {"connection_id": connection_id},
            })
            while True:
                data = await websocket.receive_text()
                reply = await handle_message(connection_id, data)
                if reply is not None:
                    await websocket.send_json(reply)
        except WebSocketDisconnect:
            logger.info("websocket disconnected")
        finally:
            hub.unregister(connection_id)
            await service.handle_disconnect(connection_id)
            structlog.contextvars.clear_contextvars()

    return app
