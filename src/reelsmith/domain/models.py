"""Domain models - pure Python classes independent of database."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from reelsmith.domain.enums import SceneStatus, TaskStatus
from reelsmith.domain.script import VideoScript


@dataclass
class VideoTask:
    """One end-to-end request to turn a prompt into a video."""

    id: str
    user_input: str
    status: TaskStatus
    progress: int = 0
    user_id: str | None = None
    script: VideoScript | None = None
    output_url: str | None = None
    error: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "userInput": self.user_input,
            "script": self.script.model_dump() if self.script else None,
            "status": str(self.status),
            "progress": self.progress,
            "outputUrl": self.output_url,
            "error": self.error,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class Scene:
    """One segment of a task's script with its own generation attempt."""

    id: int | None
    task_id: str
    scene_number: int
    description: str
    visual_prompt: str
    duration_seconds: float
    status: SceneStatus = SceneStatus.PENDING
    video_url: str | None = None
    error: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "taskId": self.task_id,
            "sceneNumber": self.scene_number,
            "description": self.description,
            "visualPrompt": self.visual_prompt,
            "durationSeconds": self.duration_seconds,
            "videoUrl": self.video_url,
            "status": str(self.status),
            "error": self.error,
        }


@dataclass
class TaskDetail:
    """A task together with its scenes ordered by scene number."""

    task: VideoTask
    scenes: list[Scene] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = self.task.to_dict()
        data["scenes"] = [scene.to_dict() for scene in self.scenes]
        return data


@dataclass
class CreatedTask:
    """Handle returned to the caller when a task is accepted."""

    task_id: str
    status: TaskStatus = TaskStatus.PENDING


@dataclass
class ProgressEvent:
    """Envelope pushed to every connected observer."""

    task_id: str
    progress: int
    message: str
    type: str = "progress"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "taskId": self.task_id,
            "progress": self.progress,
            "message": self.message,
        }
