"""Error types raised by the task pipeline and its collaborators."""


class ReelsmithError(Exception):
    """Base class for all pipeline errors."""


class ScriptGenerationError(ReelsmithError):
    """The LLM call failed or its reply could not be parsed into a script."""


class SceneGenerationError(ReelsmithError):
    """A single scene clip could not be generated.

    Contained by the pipeline: recorded on the scene, never fatal on its own.
    """

    def __init__(self, message: str, scene_number: int | None = None) -> None:
        super().__init__(message)
        self.scene_number = scene_number


class NoSuccessfulScenesError(ReelsmithError):
    """Every scene of a task failed generation."""

    def __init__(self, total_scenes: int) -> None:
        super().__init__(
            f"No successful scenes: all {total_scenes} scene(s) failed generation, "
            "cannot composite video"
        )
        self.total_scenes = total_scenes


class ClipDownloadError(ReelsmithError):
    """A clip could not be downloaded; aborts the whole composition."""

    def __init__(self, message: str, ordinal: int) -> None:
        super().__init__(message)
        self.ordinal = ordinal


class ConcatenationError(ReelsmithError):
    """ffmpeg concatenation failed for the given mode."""

    def __init__(self, message: str, mode: str, stderr: str | None = None) -> None:
        super().__init__(message)
        self.mode = mode
        self.stderr = stderr


class PublicationError(ReelsmithError):
    """Upload of the composite to a configured blob store failed."""


class NotFoundError(ReelsmithError):
    """Requested task does not exist."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class InvalidTransitionError(ReelsmithError):
    """A status change that the task state machine does not allow."""


class NoValidClipsError(ReelsmithError):
    """The composer was handed no usable clip URLs."""

    def __init__(self) -> None:
        super().__init__("No valid clips to compose")
