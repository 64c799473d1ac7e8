"""Progress fan-out to connected observers.

Every observer receives every event, whatever task it cares about.
Delivery is best-effort: observers that are closed or slow are skipped
and dropped, and nothing is replayed to observers that connect later.
"""

import asyncio
import json
from typing import Any, Protocol

from fastapi.websockets import WebSocketState

from reelsmith.config import settings
from reelsmith.domain.models import ProgressEvent
from reelsmith.logging import get_logger

logger = get_logger(__name__)


class Observer(Protocol):
    """Anything that can receive a text frame (a WebSocket, a console sink)."""

    client_state: WebSocketState

    async def send_text(self, data: str) -> None: ...


def _is_open(observer: Observer) -> bool:
    if getattr(observer, "client_state", WebSocketState.CONNECTED) != WebSocketState.CONNECTED:
        return False
    return (
        getattr(observer, "application_state", WebSocketState.CONNECTED)
        == WebSocketState.CONNECTED
    )


class ProgressBroadcaster:
    """Sends progress envelopes to all registered observers."""

    def __init__(self, send_timeout: float | None = None) -> None:
        self.send_timeout = send_timeout or settings.broadcast_send_timeout
        self._observers: set[Any] = set()

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def register(self, observer: Observer) -> None:
        self._observers.add(observer)
        logger.info("observer_registered", observers=len(self._observers))

    def unregister(self, observer: Observer) -> None:
        self._observers.discard(observer)
        logger.info("observer_unregistered", observers=len(self._observers))

    async def broadcast(self, task_id: str, progress: int, message: str) -> int:
        """Send one progress event to every open observer.

        Returns:
            Number of observers the event was delivered to
        """
        event = ProgressEvent(task_id=task_id, progress=progress, message=message)
        payload = json.dumps(event.to_dict(), ensure_ascii=False)

        delivered = 0
        # Snapshot: observers may (un)register while we await sends
        for observer in list(self._observers):
            if not _is_open(observer):
                continue
            try:
                await asyncio.wait_for(observer.send_text(payload), timeout=self.send_timeout)
                delivered += 1
            except Exception as e:
                logger.warning("observer_send_failed", task_id=task_id, error=str(e))
                self._observers.discard(observer)

        logger.debug(
            "progress_broadcast",
            task_id=task_id,
            progress=progress,
            message=message,
            delivered=delivered,
        )
        return delivered
