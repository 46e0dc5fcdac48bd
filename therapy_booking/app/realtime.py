# realtime.py
from collections import defaultdict
from typing import Dict, Iterable, Optional, Set, Union

from fastapi import WebSocket
import logging

logger = logging.getLogger(__name__)


def user_group(user_id) -> str:
    return f"user:{user_id}"


def booking_group(booking_id) -> str:
    return f"booking:{booking_id}"


class ConnectionManager:
    """Track live chat sockets by group (``user:<id>``, ``booking:<id>``)."""

    def __init__(self):
        self.groups: Dict[str, Set[WebSocket]] = defaultdict(set)

    async def connect(self, websocket: WebSocket, user_id: int):
        """Accept the socket and subscribe it to the user's own group"""
        await websocket.accept()
        self.join(user_group(user_id), websocket)
        logger.info(f"User {user_id} connected. Open sockets: {self.connection_count()}")

    def join(self, group: str, websocket: WebSocket):
        self.groups[group].add(websocket)

    def disconnect(self, websocket: WebSocket):
        for group in list(self.groups):
            self.groups[group].discard(websocket)
            if not self.groups[group]:
                del self.groups[group]

    def connection_count(self) -> int:
        return len({ws for sockets in self.groups.values() for ws in sockets})

    async def send(self, websocket: WebSocket, event: str, data):
        await websocket.send_json({"event": event, "data": data})

    async def emit(self, groups: Union[str, Iterable[str]], event: str, data,
                   exclude: Optional[WebSocket] = None):
        """Send an event once to every socket in ``groups``; dead sockets are dropped."""
        if isinstance(groups, str):
            groups = [groups]
        targets = []
        for group in groups:
            for websocket in self.groups.get(group, ()):
                if websocket is not exclude and websocket not in targets:
                    targets.append(websocket)

        disconnected = []
        for websocket in targets:
            try:
                await self.send(websocket, event, data)
            except Exception as e:
                logger.error(f"Error emitting {event}: {e}")
                disconnected.append(websocket)

        for websocket in disconnected:
            self.disconnect(websocket)


manager = ConnectionManager()


def get_connection_manager() -> ConnectionManager:
    return manager
