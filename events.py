from enum import Enum

# Inbound
JOIN_ROOM = "join-room"

# Outbound
CONNECTED = "connected"
ROOM_JOINED = "room-joined"
JOIN_REJECTED = "join-rejected"
USER_CONNECTED = "user-connected"
USER_DISCONNECTED = "user-disconnected"


class SignalKind(str, Enum):
    """Negotiation messages relayed between room members, both directions."""

    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"

    @property
    def payload_field(self) -> str:
        # the wire field that carries the opaque payload
        return PAYLOAD_FIELDS[self]


PAYLOAD_FIELDS = {
    SignalKind.OFFER: "offer",
    SignalKind.ANSWER: "answer",
    SignalKind.ICE_CANDIDATE: "candidate",
}
