"""Task pipeline: the state machine behind every video task.

One task moves through::

    pending -> generating_script -> generating_videos -> compositing
            -> uploading -> completed

and drops to ``failed`` (progress reset to 0) on any fatal error. Scenes
are generated one at a time; a failed scene is recorded and skipped, and
only a task where every scene failed is abandoned before compositing.
"""

import asyncio
from pathlib import Path
from uuid import uuid4

import structlog

from reelsmith.adapters.storage import BlobStore, get_blob_store
from reelsmith.db.store import SqlTaskStore, TaskStore
from reelsmith.domain.enums import SceneStatus, TaskStatus
from reelsmith.domain.models import CreatedTask, Scene, TaskDetail, VideoTask
from reelsmith.domain.state import validate_transition
from reelsmith.exceptions import NoSuccessfulScenesError, NotFoundError, PublicationError
from reelsmith.logging import get_logger
from reelsmith.services.broadcaster import ProgressBroadcaster
from reelsmith.services.composer import VideoComposer
from reelsmith.services.scene_video import SceneVideoGenerator
from reelsmith.services.script_generator import ScriptGenerator

logger = get_logger(__name__)

# Progress checkpoints
PROGRESS_SCRIPT = 10
PROGRESS_VIDEOS_START = 20
PROGRESS_VIDEOS_SPAN = 50
PROGRESS_COMPOSITING = 75
PROGRESS_UPLOADING = 85
PROGRESS_COMPLETE = 100


def scene_progress(index: int, total: int) -> int:
    """Progress reported before generating the ``index``-th scene (0-based)."""
    return PROGRESS_VIDEOS_START + (index * PROGRESS_VIDEOS_SPAN) // total


def composite_object_name(task_id: str) -> str:
    return f"videos/{task_id}/final_composed.mp4"


class TaskPipeline:
    """Creates tasks and runs each one in the background to completion or failure."""

    def __init__(
        self,
        store: TaskStore,
        broadcaster: ProgressBroadcaster,
        script_generator: ScriptGenerator | None = None,
        scene_generator: SceneVideoGenerator | None = None,
        composer: VideoComposer | None = None,
        blob_store: BlobStore | None = None,
    ) -> None:
        self.store = store
        self.broadcaster = broadcaster
        self.script_generator = script_generator or ScriptGenerator()
        self.scene_generator = scene_generator or SceneVideoGenerator()
        self.composer = composer or VideoComposer()
        self.blob_store = blob_store or get_blob_store()
        # Strong references so running tasks are not garbage-collected
        self._running: set[asyncio.Task[None]] = set()

        logger.info(
            "task_pipeline_initialized",
            llm=self.script_generator.llm.name,
            video_gen=self.scene_generator.provider.name,
            blob_store=self.blob_store.name,
            blob_store_configured=self.blob_store.is_configured(),
        )

    @property
    def running_count(self) -> int:
        return len(self._running)

    async def create_task(self, user_input: str, user_id: str | None = None) -> CreatedTask:
        """Persist a new pending task and start executing it without waiting.

        Input validation happens at the request boundary; downstream failures
        never surface here, they end up on the task record.
        """
        task = VideoTask(
            id=str(uuid4()),
            user_input=user_input,
            user_id=user_id,
            status=TaskStatus.PENDING,
            progress=0,
        )
        await asyncio.to_thread(self.store.create_task, task)
        logger.info("task_created", task_id=task.id, user_id=user_id)

        background = asyncio.create_task(
            self._run_in_background(task.id, user_input),
            name=f"reelsmith-task-{task.id}",
        )
        self._running.add(background)
        background.add_done_callback(self._running.discard)

        return CreatedTask(task_id=task.id, status=TaskStatus.PENDING)

    async def _run_in_background(self, task_id: str, user_input: str) -> None:
        try:
            await self.execute_task(task_id, user_input)
        except Exception as e:
            # Already recorded on the task by execute_task
            logger.error(
                "task_execution_failed",
                task_id=task_id,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def execute_task(self, task_id: str, user_input: str) -> VideoTask:
        """Run every phase of one task.

        Any error marks the task failed (progress 0, error message set,
        failure broadcast) and is then re-raised.
        """
        with structlog.contextvars.bound_contextvars(task_id=task_id):
            logger.info("task_execution_started")
            try:
                return await self._execute(task_id, user_input)
            except Exception as e:
                logger.error("task_failed", error=str(e), error_type=type(e).__name__)
                await self._mark_failed(task_id, e)
                raise

    async def _execute(self, task_id: str, user_input: str) -> VideoTask:
        # 1. Script
        await self.update_task_status(
            task_id, TaskStatus.GENERATING_SCRIPT, PROGRESS_SCRIPT, message="Generating script..."
        )
        script = await self.script_generator.generate_script(user_input)
        await asyncio.to_thread(self.store.update_task, task_id, script=script)
        scenes = await asyncio.to_thread(self.store.create_scenes, task_id, script.scenes)

        # 2. Scene clips
        await self.update_task_status(
            task_id,
            TaskStatus.GENERATING_VIDEOS,
            PROGRESS_VIDEOS_START,
            message="Script ready, generating scene videos...",
        )
        clip_urls = await self._generate_scenes(task_id, scenes)

        # 3. Partial failure rule
        if not clip_urls:
            raise NoSuccessfulScenesError(len(scenes))

        # 4. Composite
        await self.update_task_status(
            task_id,
            TaskStatus.COMPOSITING,
            PROGRESS_COMPOSITING,
            message="Compositing final video...",
        )
        output_path = await self.composer.compose_videos(clip_urls, task_id)

        # 5. Publication
        await self.update_task_status(
            task_id,
            TaskStatus.UPLOADING,
            PROGRESS_UPLOADING,
            message="Uploading to storage...",
        )
        output_url = await self._publish(task_id, output_path)

        # 6. Done
        task = await self.update_task_status(
            task_id,
            TaskStatus.COMPLETED,
            PROGRESS_COMPLETE,
            output_url=output_url,
            message="Video generation complete!",
        )
        logger.info("task_completed", output_url=output_url, clip_count=len(clip_urls))
        return task

    async def _generate_scenes(self, task_id: str, scenes: list[Scene]) -> list[str]:
        """Generate clips one scene at a time; failed scenes are recorded and skipped.

        Returns:
            URLs of the successful clips, in scene-number order
        """
        total = len(scenes)
        clip_urls: list[str] = []

        for index, scene in enumerate(scenes):
            await self.update_task_status(
                task_id,
                TaskStatus.GENERATING_VIDEOS,
                scene_progress(index, total),
                message=f"Generating scene {index + 1}/{total}...",
            )

            try:
                url = await self.scene_generator.generate_video(
                    scene.visual_prompt,
                    scene.duration_seconds,
                    scene_number=scene.scene_number,
                )
            except Exception as e:
                logger.warning(
                    "scene_generation_failed",
                    scene_number=scene.scene_number,
                    error=str(e),
                )
                await asyncio.to_thread(
                    self.store.update_scene,
                    task_id,
                    scene.scene_number,
                    status=SceneStatus.FAILED,
                    error=str(e),
                )
                continue

            await asyncio.to_thread(
                self.store.update_scene,
                task_id,
                scene.scene_number,
                status=SceneStatus.COMPLETED,
                video_url=url,
            )
            clip_urls.append(url)
            logger.info("scene_generation_completed", scene_number=scene.scene_number)

        logger.info("scenes_generated", succeeded=len(clip_urls), failed=total - len(clip_urls))
        return clip_urls

    async def _publish(self, task_id: str, output_path: Path) -> str:
        """Upload the composite, or keep the local path if no store is configured."""
        if not self.blob_store.is_configured():
            logger.info("blob_store_not_configured_keeping_local", output_path=str(output_path))
            return str(output_path)

        try:
            result = await self.blob_store.upload_file(composite_object_name(task_id), output_path)
        except PublicationError:
            raise
        except Exception as e:
            raise PublicationError(f"Upload failed: {e}") from e
        return result.public_url

    async def _mark_failed(self, task_id: str, error: Exception) -> None:
        try:
            await self.update_task_status(
                task_id,
                TaskStatus.FAILED,
                0,
                error=str(error),
                message=f"Generation failed: {error}",
            )
        except Exception as e:
            logger.error("task_mark_failed_error", error=str(e))

    async def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        progress: int,
        output_url: str | None = None,
        error: str | None = None,
        message: str | None = None,
    ) -> VideoTask:
        """Write one status/progress update and broadcast it.

        Raises:
            NotFoundError: If the task does not exist
            InvalidTransitionError: If the state machine forbids the update
        """
        current = await asyncio.to_thread(self.store.get_task, task_id)
        if current is None:
            raise NotFoundError(task_id)

        validate_transition(current.status, status, current.progress, progress)

        fields: dict[str, object] = {"status": status, "progress": progress}
        if output_url is not None:
            fields["output_url"] = output_url
        if error is not None:
            fields["error"] = error
        task = await asyncio.to_thread(self.store.update_task, task_id, **fields)

        logger.debug("task_status_updated", task_id=task_id, status=str(status), progress=progress)
        if message:
            await self.broadcaster.broadcast(task_id, progress, message)
        return task

    def get_task_status(self, task_id: str) -> TaskDetail:
        """Task with its scenes ordered by scene number.

        Blocking store read; async callers should run it in a worker thread.

        Raises:
            NotFoundError: If the task id is unknown
        """
        task = self.store.get_task(task_id)
        if task is None:
            raise NotFoundError(task_id)
        return TaskDetail(task=task, scenes=self.store.list_scenes(task_id))

    def list_tasks(self, limit: int = 20, offset: int = 0) -> list[VideoTask]:
        """Tasks newest first."""
        return self.store.list_tasks(limit=limit, offset=offset)

    async def drain(self) -> None:
        """Wait for every in-flight task to finish."""
        while self._running:
            logger.info("pipeline_draining", running=len(self._running))
            await asyncio.gather(*list(self._running), return_exceptions=True)

    async def health_check(self) -> dict[str, bool]:
        """Health of each collaborator."""
        return {
            "llm": await self.script_generator.health_check(),
            "video_gen": await self.scene_generator.health_check(),
            "ffmpeg": await self.composer.health_check(),
            "blob_store": (
                await self.blob_store.health_check() if self.blob_store.is_configured() else True
            ),
        }


def create_pipeline(broadcaster: ProgressBroadcaster | None = None) -> TaskPipeline:
    """Build a pipeline from configured collaborators."""
    return TaskPipeline(
        store=SqlTaskStore(),
        broadcaster=broadcaster or ProgressBroadcaster(),
    )
