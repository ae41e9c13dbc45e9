class RelayError(Exception):
    """Base class for relay state errors. None of them is fatal to the process."""


class DuplicateConnection(RelayError):
    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        super().__init__(f"Connection {connection_id} is already registered")


class UnknownConnection(RelayError):
    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        super().__init__(f"Connection {connection_id} is not registered")


class UnauthorizedForward(RelayError):
    def __init__(self, connection_id: str, room_id: str):
        self.connection_id = connection_id
        self.room_id = room_id
        super().__init__(f"Connection {connection_id} is not a member of room {room_id}")


class RoomLimitExceeded(RelayError):
    def __init__(self, room_id: str, max_rooms: int):
        self.room_id = room_id
        self.max_rooms = max_rooms
        super().__init__(f"Cannot create room {room_id}: limit of {max_rooms} rooms reached")
