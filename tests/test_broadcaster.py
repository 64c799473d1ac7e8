"""Tests for the progress broadcaster."""

import asyncio
import json

import pytest
from fastapi.websockets import WebSocketState

from reelsmith.services.broadcaster import ProgressBroadcaster


class FakeSocket:
    def __init__(
        self,
        client_state: WebSocketState = WebSocketState.CONNECTED,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.client_state = client_state
        self.application_state = WebSocketState.CONNECTED
        self.error = error
        self.delay = delay
        self.sent: list[str] = []

    async def send_text(self, data: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        self.sent.append(data)


class TestBroadcast:
    @pytest.mark.asyncio
    async def test_every_observer_gets_every_event(self) -> None:
        hub = ProgressBroadcaster()
        sockets = [FakeSocket(), FakeSocket()]
        for socket in sockets:
            hub.register(socket)

        delivered = await hub.broadcast("task-1", 10, "Generating script...")
        await hub.broadcast("task-2", 20, "Script ready, generating scene videos...")

        assert delivered == 2
        for socket in sockets:
            assert [json.loads(m) for m in socket.sent] == [
                {
                    "type": "progress",
                    "taskId": "task-1",
                    "progress": 10,
                    "message": "Generating script...",
                },
                {
                    "type": "progress",
                    "taskId": "task-2",
                    "progress": 20,
                    "message": "Script ready, generating scene videos...",
                },
            ]

    @pytest.mark.asyncio
    async def test_closed_observers_are_skipped(self) -> None:
        hub = ProgressBroadcaster()
        open_socket = FakeSocket()
        closed = FakeSocket(client_state=WebSocketState.DISCONNECTED)
        connecting = FakeSocket(client_state=WebSocketState.CONNECTING)
        for socket in (open_socket, closed, connecting):
            hub.register(socket)

        delivered = await hub.broadcast("task-1", 50, "Generating scene 2/3...")

        assert delivered == 1
        assert len(open_socket.sent) == 1
        assert closed.sent == []
        assert connecting.sent == []

    @pytest.mark.asyncio
    async def test_failing_observer_does_not_break_broadcast(self) -> None:
        hub = ProgressBroadcaster()
        broken = FakeSocket(error=RuntimeError("connection reset"))
        healthy = FakeSocket()
        hub.register(broken)
        hub.register(healthy)

        delivered = await hub.broadcast("task-1", 75, "Compositing final video...")

        assert delivered == 1
        assert len(healthy.sent) == 1
        assert hub.observer_count == 1

    @pytest.mark.asyncio
    async def test_slow_observer_times_out(self) -> None:
        hub = ProgressBroadcaster(send_timeout=0.05)
        slow = FakeSocket(delay=1.0)
        hub.register(slow)

        delivered = await hub.broadcast("task-1", 85, "Uploading to storage...")

        assert delivered == 0
        assert hub.observer_count == 0

    @pytest.mark.asyncio
    async def test_no_replay_for_late_observers(self) -> None:
        hub = ProgressBroadcaster()
        await hub.broadcast("task-1", 10, "Generating script...")

        late = FakeSocket()
        hub.register(late)
        await hub.broadcast("task-1", 20, "Script ready, generating scene videos...")

        assert len(late.sent) == 1
        assert json.loads(late.sent[0])["progress"] == 20

    @pytest.mark.asyncio
    async def test_broadcast_without_observers(self) -> None:
        hub = ProgressBroadcaster()

        assert await hub.broadcast("task-1", 100, "Video generation complete!") == 0

    def test_unregister(self) -> None:
        hub = ProgressBroadcaster()
        socket = FakeSocket()
        hub.register(socket)
        hub.unregister(socket)
        hub.unregister(socket)

        assert hub.observer_count == 0
