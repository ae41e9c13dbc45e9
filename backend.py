from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Set

from errors import DuplicateConnection, UnknownConnection
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Room:
    room_id: str
    created_at: datetime = field(default_factory=datetime.now)
    members: Set[str] = field(default_factory=set)


class ConnectionRegistry:
    """Connection id -> ids of the rooms it currently belongs to.

    A connection may belong to several rooms here; keeping it to one room at
    a time is the lifecycle manager's job.
    """

    def __init__(self):
        self._connections: Dict[str, Set[str]] = {}

    def register(self, connection_id: str):
        if connection_id in self._connections:
            raise DuplicateConnection(connection_id)
        self._connections[connection_id] = set()
        logger.debug(f"Registered connection {connection_id} ({len(self._connections)} live)")

    def unregister(self, connection_id: str) -> Set[str]:
        """Remove the connection and return every room it belonged to."""
        if connection_id not in self._connections:
            raise UnknownConnection(connection_id)
        rooms = self._connections.pop(connection_id)
        logger.debug(f"Unregistered connection {connection_id}, was in rooms {sorted(rooms)}")
        return rooms

    def record_join(self, connection_id: str, room_id: str):
        rooms = self._rooms_for(connection_id)
        if room_id not in rooms:
            rooms.add(room_id)
            logger.debug(f"Connection {connection_id} recorded in room {room_id}")

    def record_leave(self, connection_id: str, room_id: str):
        rooms = self._rooms_for(connection_id)
        if room_id in rooms:
            rooms.discard(room_id)
            logger.debug(f"Connection {connection_id} recorded out of room {room_id}")

    def rooms_of(self, connection_id: str) -> Set[str]:
        """Snapshot of the connection's rooms; empty if it is not registered."""
        return set(self._connections.get(connection_id, ()))

    def is_registered(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def connection_ids(self):
        return list(self._connections)

    def __len__(self):
        return len(self._connections)

    def _rooms_for(self, connection_id: str) -> Set[str]:
        try:
            return self._connections[connection_id]
        except KeyError:
            raise UnknownConnection(connection_id) from None


class RoomDirectory:
    """Room id -> room metadata and member connection ids.

    Rooms are created on first join and deleted in the same call that
    removes their last member, so no room is ever observed empty.
    """

    def __init__(self):
        self._rooms: Dict[str, Room] = {}

    def join(self, room_id: str, connection_id: str) -> int:
        room = self._rooms.get(room_id)
        if room is None:
            room = Room(room_id=room_id)
            self._rooms[room_id] = room
            logger.info(f"Created room {room_id} ({len(self._rooms)} live rooms)")
        room.members.add(connection_id)
        logger.debug(f"Connection {connection_id} joined room {room_id} ({len(room.members)} members)")
        return len(room.members)

    def leave(self, room_id: str, connection_id: str):
        room = self._rooms.get(room_id)
        if room is None or connection_id not in room.members:
            logger.debug(f"Ignoring leave of {connection_id} from room {room_id}: not a member")
            return
        room.members.discard(connection_id)
        logger.debug(f"Connection {connection_id} left room {room_id} ({len(room.members)} members)")
        if not room.members:
            del self._rooms[room_id]
            logger.info(f"Deleted empty room {room_id} ({len(self._rooms)} live rooms)")

    def members_excluding(self, room_id: str, connection_id: str) -> Set[str]:
        room = self._rooms.get(room_id)
        if room is None:
            return set()
        return room.members - {connection_id}

    def members(self, room_id: str) -> Set[str]:
        room = self._rooms.get(room_id)
        return set(room.members) if room else set()

    def member_count(self, room_id: str) -> int:
        room = self._rooms.get(room_id)
        return len(room.members) if room else 0

    def get(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def exists(self, room_id: str) -> bool:
        return room_id in self._rooms

    def room_ids(self):
        return list(self._rooms)

    def __len__(self):
        return len(self._rooms)
