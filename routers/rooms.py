from fastapi import APIRouter, HTTPException, Request
from schemas.rooms import CreateRoomResponse, RoomDetailsResponse
import random
import string
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])

ROOM_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_room_id(length: int = 9) -> str:
    return "room-" + "".join(random.choices(ROOM_ID_ALPHABET, k=length))


@rooms_router.post("", response_model=CreateRoomResponse)
async def create_room(request: Request):
    # Only hands out an identifier and the URLs built from it. The room itself
    # is created when the first connection joins it.
    room_id = generate_room_id()

    base_url = str(request.base_url).rstrip('/')
    ws_base = base_url.replace("http://", "ws://").replace("https://", "wss://")

    client_host = request.client.host if request.client else 'unknown'
    logger.info(f"Generated room id {room_id} for {client_host}")

    return CreateRoomResponse(
        room_id=room_id,
        ws_url=f"{ws_base}/ws",
        phone_url=f"{base_url}/phone.html?room={room_id}",
    )


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, request: Request):
    """
    Live details of a room.

    Returns 404 once the room has no members, since empty rooms are deleted.
    """
    directory = request.app.state.relay.directory
    room = directory.get(room_id)
    if room is None:
        logger.info(f"Room details failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    return RoomDetailsResponse(
        room_id=room.room_id,
        created_at=room.created_at,
        member_count=len(room.members),
    )
