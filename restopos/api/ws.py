"""
WebSocket manager for real-time table updates
"""

import json
import logging
from typing import Callable, Dict, List, Optional
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends, Query
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from restopos.core.db import get_session_factory
from restopos.services.auth_service import AuthService, SessionContext
from restopos.services.table_service import TableService

logger = logging.getLogger(__name__)

TABLES_CHANNEL = "tables"

class WebSocketManager:
    """Manages WebSocket connections for real-time updates"""

    def __init__(self):
        # channel -> list of websockets
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, channel: str):
        """Accept WebSocket connection and add to channel"""
        await websocket.accept()

        if channel not in self.active_connections:
            self.active_connections[channel] = []

        self.active_connections[channel].append(websocket)
        logger.info(f"WebSocket connected to {channel}. Total connections: {len(self.active_connections[channel])}")

    def disconnect(self, websocket: WebSocket, channel: str):
        """Remove WebSocket connection from channel"""
        if channel in self.active_connections:
            try:
                self.active_connections[channel].remove(websocket)
                logger.info(f"WebSocket disconnected from {channel}. Remaining connections: {len(self.active_connections[channel])}")

                # Clean up empty channels
                if not self.active_connections[channel]:
                    del self.active_connections[channel]
            except ValueError:
                # WebSocket was not in the list
                pass

    async def send_personal_message(self, message: dict, websocket: WebSocket):
        """Send message to specific WebSocket"""
        try:
            await websocket.send_text(json.dumps(message))
        except Exception as e:
            logger.error(f"Error sending personal message: {e}")

    async def broadcast(self, channel: str, message: dict):
        """Broadcast message to all WebSockets on a channel"""
        if channel not in self.active_connections:
            logger.debug(f"No active connections on {channel}")
            return

        # Create list copy to avoid modification during iteration
        connections = self.active_connections[channel].copy()

        disconnected = []
        for websocket in connections:
            try:
                await websocket.send_text(json.dumps(message))
            except Exception as e:
                logger.error(f"Error broadcasting to websocket: {e}")
                disconnected.append(websocket)

        # Clean up disconnected websockets
        for websocket in disconnected:
            self.disconnect(websocket, channel)

    def get_connection_count(self, channel: str) -> int:
        """Get number of active connections on a channel"""
        return len(self.active_connections.get(channel, []))

    def get_all_connection_counts(self) -> Dict[str, int]:
        """Get connection counts for all channels"""
        return {
            channel: len(connections)
            for channel, connections in self.active_connections.items()
        }

# Global WebSocket manager instance
websocket_manager = WebSocketManager()

# Router for WebSocket endpoints
router = APIRouter()

def _resolve(session_factory: Callable[[], Session], token: str) -> Optional[SessionContext]:
    # one short session per check; an open socket holds no pooled connection
    db = session_factory()
    try:
        return AuthService.resolve_session(db, token)
    finally:
        db.close()

def _grid_snapshot(session_factory: Callable[[], Session]) -> list:
    db = session_factory()
    try:
        return jsonable_encoder(TableService.get_table_grid(db).tables)
    finally:
        db.close()

async def _answer(websocket: WebSocket, raw: str, session_factory: Callable[[], Session], token: str) -> bool:
    """Handle one client frame; returns False when the session has lapsed"""
    try:
        client_message = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Invalid JSON received on {TABLES_CHANNEL}: {raw}")
        return True

    if client_message.get("type") != "ping":
        return True

    # heartbeats double as session checks; sessions expire while sockets stay open
    if _resolve(session_factory, token) is None:
        await websocket.close(code=4001, reason="Session expired")
        return False

    await websocket_manager.send_personal_message(
        {"type": "pong", "timestamp": client_message.get("timestamp")},
        websocket
    )
    return True

@router.websocket("/tables")
async def tables_websocket(
    websocket: WebSocket,
    token: str = Query(...),
    session_factory: Callable[[], Session] = Depends(get_session_factory)
):
    """Live table grid: a snapshot on connect, then table_update pushes"""
    session = _resolve(session_factory, token)
    if session is None:
        await websocket.close(code=4001, reason="Session expired or invalid")
        return

    await websocket_manager.connect(websocket, TABLES_CHANNEL)
    try:
        await websocket_manager.send_personal_message({
            "type": "connection",
            "actor": session.actor_name,
            "connection_count": websocket_manager.get_connection_count(TABLES_CHANNEL),
            "tables": _grid_snapshot(session_factory)
        }, websocket)

        while await _answer(websocket, await websocket.receive_text(), session_factory, token):
            pass
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error on {TABLES_CHANNEL}: {e}")
    finally:
        websocket_manager.disconnect(websocket, TABLES_CHANNEL)

@router.get("/stats")
async def websocket_stats():
    """Get WebSocket connection statistics (for debugging)"""
    return {
        "total_channels": len(websocket_manager.active_connections),
        "connection_counts": websocket_manager.get_all_connection_counts(),
        "total_connections": sum(websocket_manager.get_all_connection_counts().values())
    }
