from enum import Enum
from typing import Any, Optional, Set

from pydantic import ValidationError

from backend import ConnectionRegistry, RoomDirectory
from errors import DuplicateConnection, RoomLimitExceeded, UnauthorizedForward, UnknownConnection
from events import JOIN_REJECTED, JOIN_ROOM, ROOM_JOINED, USER_CONNECTED, USER_DISCONNECTED, SignalKind
from logging_config import get_logger
from schemas.rooms import RoomJoinedMessage, SignalingRequest
from signaling import SignalingRouter

logger = get_logger(__name__)


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    JOINED = "joined"
    DISCONNECTED = "disconnected"


class ConnectionLifecycleManager:
    """Owns the relay state and runs every connection transition.

    Each transition updates the registry and the directory together without
    awaiting, so on a single event loop no other event can observe one view
    updated without the other. Outbound messages go through
    ``transport.deliver(connection_id, event, data)``, which must not block.
    """

    def __init__(self, transport, registry: ConnectionRegistry = None, directory: RoomDirectory = None, max_rooms: int = 0):
        self.transport = transport
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.directory = directory if directory is not None else RoomDirectory()
        self.router = SignalingRouter(self.registry, self.directory, transport)
        self.max_rooms = max_rooms

    def connect(self, connection_id: str):
        try:
            self.registry.register(connection_id)
        except DuplicateConnection as e:
            logger.warning(f"Ignoring connect: {e}")
            return
        logger.info(f"User connected: {connection_id}")

    def join(self, connection_id: str, room_id: Any) -> Optional[int]:
        """Move the connection into ``room_id``, leaving any other room first.

        Returns the room's member count, or None if the join was dropped.

        Re-joining the room the connection is already in only re-sends the
        acknowledgement: membership did not change, so the other members get no
        second user-connected and do not start a duplicate negotiation.
        """
        if not isinstance(room_id, str):
            logger.warning(f"Dropping join from {connection_id}: room id must be a string, got {type(room_id).__name__}")
            return None
        if not self.registry.is_registered(connection_id):
            logger.warning(f"Dropping join of room {room_id}: connection {connection_id} is not registered")
            return None

        try:
            self._check_room_limit(connection_id, room_id)
        except RoomLimitExceeded as e:
            logger.warning(f"Refusing join from {connection_id}: {e}")
            self.transport.deliver(connection_id, JOIN_REJECTED, {"roomId": room_id, "reason": "room-limit"})
            return None

        current_rooms = self.registry.rooms_of(connection_id)
        for previous_room in current_rooms - {room_id}:
            self.leave(connection_id, previous_room)

        if room_id in current_rooms:
            user_count = self.directory.member_count(room_id)
            logger.debug(f"Connection {connection_id} re-joined room {room_id}")
        else:
            user_count = self.directory.join(room_id, connection_id)
            self.registry.record_join(connection_id, room_id)
            logger.info(f"User {connection_id} joined room {room_id}")
            for member in self.directory.members_excluding(room_id, connection_id):
                self.transport.deliver(member, USER_CONNECTED, connection_id)

        ack = RoomJoinedMessage(roomId=room_id, userCount=user_count)
        self.transport.deliver(connection_id, ROOM_JOINED, ack.model_dump())
        return user_count

    def leave(self, connection_id: str, room_id: str):
        if room_id not in self.registry.rooms_of(connection_id):
            logger.debug(f"Ignoring leave of room {room_id}: {connection_id} is not a member")
            return
        self.directory.leave(room_id, connection_id)
        self.registry.record_leave(connection_id, room_id)
        logger.info(f"User {connection_id} left room {room_id}")
        self._notify_left(connection_id, room_id)

    def disconnect(self, connection_id: str) -> Set[str]:
        """Remove the connection from every room it was in.

        Idempotent: a second call for the same connection finds nothing
        registered and sends no notifications. Returns the rooms left.
        """
        try:
            rooms = self.registry.unregister(connection_id)
        except UnknownConnection:
            logger.debug(f"Ignoring disconnect of {connection_id}: already cleaned up")
            return set()

        logger.info(f"User disconnected: {connection_id}")
        for room_id in rooms:
            self.directory.leave(room_id, connection_id)
            self._notify_left(connection_id, room_id)
        return rooms

    def signal(self, kind: SignalKind, connection_id: str, data: Any) -> Set[str]:
        try:
            request = SignalingRequest.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Dropping malformed {kind.value} from {connection_id}: {e.error_count()} validation errors")
            return set()

        extras = request.model_extra or {}
        if kind.payload_field not in extras:
            logger.warning(f"Dropping {kind.value} from {connection_id}: missing '{kind.payload_field}' field")
            return set()

        try:
            return self.router.forward(kind, connection_id, request.room, extras[kind.payload_field])
        except UnauthorizedForward as e:
            logger.warning(f"Dropping {kind.value}: {e}")
            return set()

    def dispatch(self, connection_id: str, event: str, data: Any = None):
        """Route one inbound event from a connection to its transition."""
        if event == JOIN_ROOM:
            self.join(connection_id, data)
            return
        try:
            kind = SignalKind(event)
        except ValueError:
            logger.warning(f"Dropping unknown event {event!r} from {connection_id}")
            return
        self.signal(kind, connection_id, data)

    def state(self, connection_id: str) -> ConnectionState:
        if not self.registry.is_registered(connection_id):
            return ConnectionState.DISCONNECTED
        if self.registry.rooms_of(connection_id):
            return ConnectionState.JOINED
        return ConnectionState.CONNECTED

    def current_room(self, connection_id: str) -> Optional[str]:
        rooms = self.registry.rooms_of(connection_id)
        if not rooms:
            return None
        return next(iter(rooms))

    def _notify_left(self, connection_id: str, room_id: str):
        for member in self.directory.members(room_id):
            self.transport.deliver(member, USER_DISCONNECTED, connection_id)

    def _check_room_limit(self, connection_id: str, room_id: str):
        if not self.max_rooms or self.directory.exists(room_id):
            return
        # rooms the connection is alone in disappear when it moves on
        vacated = [
            previous_room for previous_room in self.registry.rooms_of(connection_id)
            if self.directory.members(previous_room) == {connection_id}
        ]
        if len(self.directory) - len(vacated) >= self.max_rooms:
            raise RoomLimitExceeded(room_id, self.max_rooms)
