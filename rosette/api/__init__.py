"""
API module - Transport for networked play.

Provides:
- RoomService: Framework-agnostic room operations
- ConnectionHub / HubBroadcaster: WebSocket fan-out
- create_app: FastAPI application factory
- Pydantic schemas for every request and result
"""

from .service import RoomService, validate_player_name
from .hub import ConnectionHub, HubBroadcaster
from .app import create_app

__all__ = [
    "RoomService",
    "validate_player_name",
    "ConnectionHub",
    "HubBroadcaster",
    "create_app",
]
