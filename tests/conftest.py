"""Pytest configuration and fixtures."""

import os
import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from fastapi.websockets import WebSocketState

# Set test environment before importing app modules
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="reelsmith-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_ROOT / 'reelsmith.db'}"
os.environ["LLM_PROVIDER"] = "stub"
os.environ["VIDEO_GEN_PROVIDER"] = "stub"
os.environ["TEMP_DIR"] = str(_TEST_ROOT / "temp")
os.environ["OUTPUT_DIR"] = str(_TEST_ROOT / "output")
os.environ["LOG_LEVEL"] = "WARNING"
for _key in ("BLOB_BUCKET", "BLOB_ACCESS_KEY_ID", "BLOB_SECRET_ACCESS_KEY"):
    os.environ.pop(_key, None)


class RecordingObserver:
    """Observer that keeps every frame it is sent."""

    def __init__(self) -> None:
        self.client_state = WebSocketState.CONNECTED
        self.messages: list[str] = []

    async def send_text(self, data: str) -> None:
        self.messages.append(data)

    @property
    def events(self) -> list[dict[str, Any]]:
        import json

        return [json.loads(m) for m in self.messages]


@pytest.fixture(scope="session")
def test_client() -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app."""
    from reelsmith.main import app

    with TestClient(app) as client:
        yield client


@pytest.fixture
def memory_store():
    """Get an in-memory task store."""
    from reelsmith.db.store import InMemoryTaskStore

    return InMemoryTaskStore()


@pytest.fixture
def sql_store(tmp_path: Path):
    """Get a SQL task store backed by a fresh SQLite file."""
    from sqlalchemy.orm import sessionmaker

    from reelsmith.db.session import build_engine, init_db
    from reelsmith.db.store import SqlTaskStore

    engine = build_engine(f"sqlite:///{tmp_path / 'store.db'}")
    init_db(engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    yield SqlTaskStore(session_factory=factory)
    engine.dispose()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def broadcaster(observer: RecordingObserver):
    """Get a broadcaster with one recording observer attached."""
    from reelsmith.services.broadcaster import ProgressBroadcaster

    hub = ProgressBroadcaster(send_timeout=1.0)
    hub.register(observer)
    return hub


@pytest.fixture
def script_generator():
    """Get a ScriptGenerator with the stub LLM (three scenes)."""
    from reelsmith.adapters.llm.stub import StubLLMProvider
    from reelsmith.services.script_generator import ScriptGenerator

    return ScriptGenerator(llm_provider=StubLLMProvider())


@pytest.fixture
def composer(tmp_path: Path) -> MagicMock:
    """Get a composer double that returns a fixed output path."""
    from reelsmith.services.composer import VideoComposer

    output = tmp_path / "output" / "final.mp4"
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(b"composite")

    double = MagicMock(spec=VideoComposer)
    double.compose_videos = AsyncMock(return_value=output)
    double.health_check = AsyncMock(return_value=True)
    return double


@pytest.fixture
def local_blob_store():
    """Get the unconfigured blob store."""
    from reelsmith.adapters.storage.local import LocalBlobStore

    return LocalBlobStore()
