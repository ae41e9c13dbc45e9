import asyncio
import json
from typing import Any, Dict, Tuple

from fastapi import WebSocket

from logging_config import get_logger

logger = get_logger(__name__)


class ConnectionHub:
    """Outbound side of the live WebSocket connections.

    Every attached connection gets its own outbox queue drained by one writer
    task, so ``deliver`` never blocks the caller and messages reach each
    recipient in the order they were delivered. A recipient that stops reading
    has new messages dropped once its outbox is full.
    """

    def __init__(self, max_outbox: int = 256):
        self.max_outbox = max_outbox
        self._outboxes: Dict[str, asyncio.Queue] = {}
        self._writers: Dict[str, asyncio.Task] = {}

    def attach(self, connection_id: str, websocket: WebSocket):
        outbox: asyncio.Queue = asyncio.Queue(maxsize=self.max_outbox)
        self._outboxes[connection_id] = outbox
        self._writers[connection_id] = asyncio.create_task(self._write(connection_id, websocket, outbox))
        logger.debug(f"Attached outbox for connection {connection_id}")

    async def detach(self, connection_id: str):
        self._outboxes.pop(connection_id, None)
        writer = self._writers.pop(connection_id, None)
        if writer is None:
            return
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass
        logger.debug(f"Detached outbox for connection {connection_id}")

    def deliver(self, connection_id: str, event: str, data: Any = None):
        outbox = self._outboxes.get(connection_id)
        if outbox is None:
            logger.debug(f"Dropping {event} for {connection_id}: connection not attached")
            return
        try:
            outbox.put_nowait((event, data))
        except asyncio.QueueFull:
            logger.warning(f"Dropping {event} for {connection_id}: outbox full ({self.max_outbox} pending)")

    def is_attached(self, connection_id: str) -> bool:
        return connection_id in self._outboxes

    async def _write(self, connection_id: str, websocket: WebSocket, outbox: "asyncio.Queue[Tuple[str, Any]]"):
        while True:
            event, data = await outbox.get()
            try:
                await websocket.send_text(json.dumps({"event": event, "data": data}))
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # the receive loop sees the disconnect and runs the cleanup
                logger.warning(f"Error sending {event} to connection {connection_id}, stopping writer: {e}")
                self._outboxes.pop(connection_id, None)
                return
