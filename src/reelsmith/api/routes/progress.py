"""Progress push channel over WebSocket."""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from reelsmith.api.deps import BroadcasterDep
from reelsmith.logging import get_logger

router = APIRouter(tags=["Progress"])
logger = get_logger(__name__)


@router.websocket("/ws")
async def progress_socket(websocket: WebSocket, broadcaster: BroadcasterDep) -> None:
    """Every connected client receives every task's progress events."""
    broadcaster.register(websocket)
    try:
        await websocket.accept()
        logger.info("websocket_connected", client=str(websocket.client))
        while True:
            message = await websocket.receive_text()
            logger.info("websocket_message_received", message=message[:200])
    except WebSocketDisconnect:
        logger.info("websocket_disconnected", client=str(websocket.client))
    finally:
        broadcaster.unregister(websocket)
