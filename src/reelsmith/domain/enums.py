"""Domain enumerations."""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Lifecycle status of a video task."""

    PENDING = "pending"
    GENERATING_SCRIPT = "generating_script"
    GENERATING_VIDEOS = "generating_videos"
    COMPOSITING = "compositing"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class SceneStatus(StrEnum):
    """Generation status of a single scene."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ConcatMode(StrEnum):
    """How clips are joined into the composite."""

    STREAM_COPY = "stream_copy"
    REENCODE = "reencode"
