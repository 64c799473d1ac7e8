"""Task and scene repository.

The pipeline only ever talks to a ``TaskStore``. ``SqlTaskStore`` keeps
records in the relational database; ``InMemoryTaskStore`` backs tests and
one-off CLI runs that do not need durability.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from reelsmith.db.models import SceneModel, VideoTaskModel
from reelsmith.db.session import get_session_context
from reelsmith.domain.enums import SceneStatus, TaskStatus
from reelsmith.domain.models import Scene, VideoTask
from reelsmith.domain.script import ScriptScene, VideoScript
from reelsmith.exceptions import NotFoundError

TASK_FIELDS = frozenset({"status", "progress", "output_url", "error", "script"})
SCENE_FIELDS = frozenset({"status", "video_url", "error"})


def _check_fields(fields: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")


class TaskStore(ABC):
    """Durable keyed records for tasks and their scenes."""

    @abstractmethod
    def create_task(self, task: VideoTask) -> VideoTask:
        """Insert a new task record."""
        ...

    @abstractmethod
    def update_task(self, task_id: str, **fields: Any) -> VideoTask:
        """Update task fields and stamp ``updated_at``.

        Raises:
            NotFoundError: If the task does not exist.
        """
        ...

    @abstractmethod
    def get_task(self, task_id: str) -> VideoTask | None:
        """Fetch a task by id."""
        ...

    @abstractmethod
    def create_scenes(self, task_id: str, scenes: list[ScriptScene]) -> list[Scene]:
        """Insert one ``pending`` scene row per script scene, in order."""
        ...

    @abstractmethod
    def update_scene(self, task_id: str, scene_number: int, **fields: Any) -> Scene:
        """Update a scene's status, clip URL or error."""
        ...

    @abstractmethod
    def list_scenes(self, task_id: str) -> list[Scene]:
        """Scenes of a task ordered by scene number."""
        ...

    @abstractmethod
    def list_tasks(self, limit: int = 20, offset: int = 0) -> list[VideoTask]:
        """Tasks ordered newest first."""
        ...


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on read
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _task_from_model(model: VideoTaskModel) -> VideoTask:
    return VideoTask(
        id=model.id,
        user_id=model.user_id,
        user_input=model.user_input,
        script=VideoScript.model_validate_json(model.script) if model.script else None,
        status=TaskStatus(model.status),
        progress=model.progress,
        output_url=model.output_url,
        error=model.error,
        created_at=_as_utc(model.created_at),
        updated_at=_as_utc(model.updated_at),
    )


def _scene_from_model(model: SceneModel) -> Scene:
    return Scene(
        id=model.id,
        task_id=model.task_id,
        scene_number=model.scene_number,
        description=model.description,
        visual_prompt=model.visual_prompt,
        duration_seconds=model.duration_seconds,
        status=SceneStatus(model.status),
        video_url=model.video_url,
        error=model.error,
        created_at=_as_utc(model.created_at),
        updated_at=_as_utc(model.updated_at),
    )


class SqlTaskStore(TaskStore):
    """SQLAlchemy-backed task store."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self.session_factory = session_factory

    def create_task(self, task: VideoTask) -> VideoTask:
        now = datetime.now(UTC)
        with get_session_context(self.session_factory) as session:
            model = VideoTaskModel(
                id=task.id,
                user_id=task.user_id,
                user_input=task.user_input,
                script=task.script.model_dump_json() if task.script else None,
                status=str(task.status),
                progress=task.progress,
                output_url=task.output_url,
                error=task.error,
                created_at=task.created_at or now,
                updated_at=task.updated_at or now,
            )
            session.add(model)
            session.flush()
            return _task_from_model(model)

    def update_task(self, task_id: str, **fields: Any) -> VideoTask:
        _check_fields(fields, TASK_FIELDS)
        with get_session_context(self.session_factory) as session:
            model = session.get(VideoTaskModel, task_id)
            if model is None:
                raise NotFoundError(task_id)

            for key, value in fields.items():
                if key == "script" and value is not None:
                    value = value.model_dump_json()
                elif key == "status":
                    value = str(value)
                setattr(model, key, value)
            model.updated_at = datetime.now(UTC)
            session.flush()
            return _task_from_model(model)

    def get_task(self, task_id: str) -> VideoTask | None:
        with get_session_context(self.session_factory) as session:
            model = session.get(VideoTaskModel, task_id)
            return _task_from_model(model) if model else None

    def create_scenes(self, task_id: str, scenes: list[ScriptScene]) -> list[Scene]:
        now = datetime.now(UTC)
        with get_session_context(self.session_factory) as session:
            models = [
                SceneModel(
                    task_id=task_id,
                    scene_number=scene.scene_number,
                    description=scene.description,
                    visual_prompt=scene.visual_prompt,
                    duration_seconds=scene.duration,
                    status=str(SceneStatus.PENDING),
                    created_at=now,
                    updated_at=now,
                )
                for scene in scenes
            ]
            session.add_all(models)
            session.flush()
            return [_scene_from_model(m) for m in models]

    def update_scene(self, task_id: str, scene_number: int, **fields: Any) -> Scene:
        _check_fields(fields, SCENE_FIELDS)
        with get_session_context(self.session_factory) as session:
            model = session.scalars(
                select(SceneModel).where(
                    SceneModel.task_id == task_id,
                    SceneModel.scene_number == scene_number,
                )
            ).one_or_none()
            if model is None:
                raise NotFoundError(f"{task_id}#{scene_number}")

            for key, value in fields.items():
                setattr(model, key, str(value) if key == "status" else value)
            model.updated_at = datetime.now(UTC)
            session.flush()
            return _scene_from_model(model)

    def list_scenes(self, task_id: str) -> list[Scene]:
        with get_session_context(self.session_factory) as session:
            rows = session.scalars(
                select(SceneModel)
                .where(SceneModel.task_id == task_id)
                .order_by(SceneModel.scene_number.asc())
            ).all()
            return [_scene_from_model(m) for m in rows]

    def list_tasks(self, limit: int = 20, offset: int = 0) -> list[VideoTask]:
        with get_session_context(self.session_factory) as session:
            rows = session.scalars(
                select(VideoTaskModel)
                .order_by(VideoTaskModel.created_at.desc())
                .limit(limit)
                .offset(offset)
            ).all()
            return [_task_from_model(m) for m in rows]


class InMemoryTaskStore(TaskStore):
    """Process-local task store."""

    def __init__(self) -> None:
        self._tasks: dict[str, VideoTask] = {}
        self._scenes: dict[str, dict[int, Scene]] = {}
        self._lock = threading.Lock()
        self._next_scene_id = 1

    def create_task(self, task: VideoTask) -> VideoTask:
        now = datetime.now(UTC)
        stored = replace(task, created_at=task.created_at or now, updated_at=now)
        with self._lock:
            self._tasks[task.id] = stored
        return replace(stored)

    def update_task(self, task_id: str, **fields: Any) -> VideoTask:
        _check_fields(fields, TASK_FIELDS)
        with self._lock:
            if task_id not in self._tasks:
                raise NotFoundError(task_id)
            updated = replace(self._tasks[task_id], **fields, updated_at=datetime.now(UTC))
            self._tasks[task_id] = updated
        return replace(updated)

    def get_task(self, task_id: str) -> VideoTask | None:
        task = self._tasks.get(task_id)
        return replace(task) if task else None

    def create_scenes(self, task_id: str, scenes: list[ScriptScene]) -> list[Scene]:
        now = datetime.now(UTC)
        created = []
        with self._lock:
            rows = self._scenes.setdefault(task_id, {})
            for scene in scenes:
                if scene.scene_number in rows:
                    raise ValueError(f"Scene {scene.scene_number} already exists for {task_id}")
                row = Scene(
                    id=self._next_scene_id,
                    task_id=task_id,
                    scene_number=scene.scene_number,
                    description=scene.description,
                    visual_prompt=scene.visual_prompt,
                    duration_seconds=scene.duration,
                    created_at=now,
                    updated_at=now,
                )
                self._next_scene_id += 1
                rows[scene.scene_number] = row
                created.append(replace(row))
        return created

    def update_scene(self, task_id: str, scene_number: int, **fields: Any) -> Scene:
        _check_fields(fields, SCENE_FIELDS)
        with self._lock:
            rows = self._scenes.get(task_id, {})
            if scene_number not in rows:
                raise NotFoundError(f"{task_id}#{scene_number}")
            updated = replace(rows[scene_number], **fields, updated_at=datetime.now(UTC))
            rows[scene_number] = updated
        return replace(updated)

    def list_scenes(self, task_id: str) -> list[Scene]:
        rows = self._scenes.get(task_id, {})
        return [replace(rows[n]) for n in sorted(rows)]

    def list_tasks(self, limit: int = 20, offset: int = 0) -> list[VideoTask]:
        tasks = sorted(
            self._tasks.values(),
            key=lambda t: t.created_at or datetime.min.replace(tzinfo=UTC),
            reverse=True,
        )
        return [replace(t) for t in tasks[offset : offset + limit]]
