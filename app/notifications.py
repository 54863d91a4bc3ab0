from __future__ import annotations

from typing import Dict, Set

from fastapi import WebSocket

from app.services.test_session import LOW_TIME_SECONDS, state_name


class ConnectionManager:
    def __init__(self) -> None:
        self.session_id_to_connections: Dict[str, Set[WebSocket]] = {}

    async def connect(self, session_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        connections = self.session_id_to_connections.setdefault(session_id, set())
        connections.add(websocket)

    def disconnect(self, session_id: str, websocket: WebSocket) -> None:
        connections = self.session_id_to_connections.get(session_id)
        if not connections:
            return
        connections.discard(websocket)
        if not connections:
            self.session_id_to_connections.pop(session_id, None)

    async def send_json(self, session_id: str, message: dict) -> None:
        connections = self.session_id_to_connections.get(session_id)
        if not connections:
            return
        to_remove: Set[WebSocket] = set()
        for ws in list(connections):
            try:
                await ws.send_json(message)
            except Exception:
                to_remove.add(ws)
        for ws in to_remove:
            self.disconnect(session_id, ws)


manager = ConnectionManager()


async def notify_clock(session) -> None:
    """Push the session clock to anyone watching it"""
    message = {
        "type": state_name(session.state) if session.is_finished else "tick",
        "session_id": session.id,
        "time_spent": session.time_spent,
        "time_remaining": session.time_remaining,
        "low_time": session.time_remaining < LOW_TIME_SECONDS,
    }
    if session.score is not None:
        message["score"] = session.score.model_dump(mode="json")
    await manager.send_json(session.id, message)
