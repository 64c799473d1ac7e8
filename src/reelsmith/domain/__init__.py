"""Domain models and business logic."""

from reelsmith.domain.enums import ConcatMode, SceneStatus, TaskStatus
from reelsmith.domain.models import CreatedTask, ProgressEvent, Scene, TaskDetail, VideoTask
from reelsmith.domain.script import ScriptScene, VideoScript

__all__ = [
    "ConcatMode",
    "CreatedTask",
    "ProgressEvent",
    "Scene",
    "SceneStatus",
    "ScriptScene",
    "TaskDetail",
    "TaskStatus",
    "VideoScript",
    "VideoTask",
]
