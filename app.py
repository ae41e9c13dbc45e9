from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from routers.rooms import rooms_router
from transport import ConnectionHub
from lifecycle import ConnectionLifecycleManager
from constants import LOG_LEVEL, LOG_FILE, MAX_ROOMS, OUTBOX_SIZE, STATIC_DIR
from events import CONNECTED
from schemas.rooms import ClientMessage
from logging_config import get_logger, setup_logging
import uuid

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

app = FastAPI(title="Karaoke Connect Relay")

# Configure CORS to allow all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rooms_router)

# All room and connection state lives in these two objects for the lifetime
# of the process; nothing is persisted.
app.state.hub = ConnectionHub(max_outbox=OUTBOX_SIZE)
app.state.relay = ConnectionLifecycleManager(app.state.hub, max_rooms=MAX_ROOMS)

logger.info(f"FastAPI application initialized (max_rooms={MAX_ROOMS or 'unlimited'})")


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """One browser tab: the desktop controller or the phone microphone.

    Frames are JSON objects ``{"event": ..., "data": ...}`` in both directions.
    """
    hub: ConnectionHub = websocket.app.state.hub
    relay: ConnectionLifecycleManager = websocket.app.state.relay

    connection_id = uuid.uuid4().hex
    await websocket.accept()
    logger.debug(f"WebSocket connection accepted: {connection_id}")

    hub.attach(connection_id, websocket)
    relay.connect(connection_id)
    hub.deliver(connection_id, CONNECTED, {"connectionId": connection_id})

    try:
        message_count = 0
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))
            message_count += 1
            logger.debug(f"Received message #{message_count} from connection {connection_id}")

            data = frame.get("text")
            if data is None:
                logger.warning(f"Dropping non-text frame from connection {connection_id}")
                continue

            try:
                message = ClientMessage.model_validate_json(data)
            except ValidationError as e:
                logger.warning(f"Dropping malformed frame from connection {connection_id}: {e.error_count()} validation errors")
                continue

            relay.dispatch(connection_id, message.event, message.data)
    except WebSocketDisconnect:
        logger.debug(f"WebSocket disconnected normally for connection {connection_id}")
    except Exception as e:
        logger.error(f"Error receiving message from connection {connection_id}: {e}", exc_info=True)
    finally:
        relay.disconnect(connection_id)
        await hub.detach(connection_id)

        try:
            await websocket.close()
        except Exception as e:
            logger.debug(f"Error closing WebSocket: {e}")


# Mounted last so /ws and /rooms take precedence over static files
app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="static")
