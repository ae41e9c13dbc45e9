from dataclasses import dataclass
from typing import Any, Set

from backend import ConnectionRegistry, RoomDirectory
from errors import UnauthorizedForward
from events import SignalKind
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SignalingEnvelope:
    kind: SignalKind
    sender: str
    payload: Any

    def to_wire(self) -> dict:
        return {self.kind.payload_field: self.payload, "from": self.sender}


class SignalingRouter:
    """Forwards negotiation payloads to the other members of a room.

    The payload is never inspected. The sender id comes from the relay's own
    bookkeeping, never from the client.
    """

    def __init__(self, registry: ConnectionRegistry, directory: RoomDirectory, transport):
        self.registry = registry
        self.directory = directory
        self.transport = transport

    def forward(self, kind: SignalKind, sender_connection_id: str, room_id: str, payload: Any) -> Set[str]:
        """Deliver ``payload`` to every member of ``room_id`` except the sender.

        Raises UnauthorizedForward if the sender is not currently joined to the
        room. Returns the recipients.
        """
        kind = SignalKind(kind)
        if not self.is_member(sender_connection_id, room_id):
            raise UnauthorizedForward(sender_connection_id, room_id)

        envelope = SignalingEnvelope(kind=kind, sender=sender_connection_id, payload=payload)
        recipients = self.directory.members_excluding(room_id, sender_connection_id)
        data = envelope.to_wire()
        for recipient in recipients:
            self.transport.deliver(recipient, kind.value, data)
        logger.debug(f"Relayed {kind.value} from {sender_connection_id} in room {room_id} to {len(recipients)} members")
        return recipients

    def is_member(self, connection_id: str, room_id: str) -> bool:
        # both views must agree before anything leaves the room
        return (
            room_id in self.registry.rooms_of(connection_id)
            and connection_id in self.directory.members(room_id)
        )
