"""Database layer."""

from reelsmith.db.models import Base, SceneModel, VideoTaskModel
from reelsmith.db.session import get_session_context, init_db
from reelsmith.db.store import InMemoryTaskStore, SqlTaskStore, TaskStore

__all__ = [
    "Base",
    "get_session_context",
    "init_db",
    "InMemoryTaskStore",
    "SqlTaskStore",
    "TaskStore",
    # Models
    "SceneModel",
    "VideoTaskModel",
]
