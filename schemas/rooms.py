from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class ClientMessage(BaseModel):
    event: str
    data: Optional[Any] = None

class SignalingRequest(BaseModel):
    # the opaque payload rides in an extra field named after the message kind
    model_config = ConfigDict(extra="allow")

    room: str

class RoomJoinedMessage(BaseModel):
    roomId: str
    userCount: int

class CreateRoomResponse(BaseModel):
    room_id: str
    ws_url: str
    phone_url: str

class RoomDetailsResponse(BaseModel):
    room_id: str
    created_at: datetime
    member_count: int
