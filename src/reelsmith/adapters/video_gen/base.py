"""Base interface for video generation providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class VideoGenStatus(StrEnum):
    """Terminal outcome of a generation job."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class VideoGenResult:
    """Result from video generation.

    Expected outcomes (remote failure, poll budget exhausted) are reported
    through ``status`` rather than raised.
    """

    status: VideoGenStatus
    video_url: str | None = None
    error_message: str | None = None
    job_id: str | None = None
    metadata: dict[str, Any] | None = None

    @property
    def success(self) -> bool:
        return self.status == VideoGenStatus.SUCCEEDED and bool(self.video_url)


@dataclass
class VideoGenRequest:
    """Request for video generation."""

    prompt: str
    duration_seconds: float = 5
    resolution: str | None = None
    fps: int | None = None
    options: dict[str, Any] | None = None


class VideoGenProvider(ABC):
    """Abstract base class for video generation providers.

    Implementations:
    - DashScopeVideoProvider: Submits to Tongyi Wanx and polls the job
    - StubVideoGenProvider: Renders local placeholder clips for testing
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def generate(self, request: VideoGenRequest) -> VideoGenResult:
        """Generate a clip and wait for the job to reach a terminal state.

        Args:
            request: Video generation request with prompt and parameters

        Returns:
            VideoGenResult tagged succeeded, failed or timed_out
        """
        ...

    @abstractmethod
    async def check_status(self, job_id: str) -> dict[str, Any]:
        """Check the status of an async generation job.

        Args:
            job_id: The job ID returned by the remote service

        Returns:
            Status information including the remote state
        """
        ...

    async def health_check(self) -> bool:
        """Check if the provider is available and healthy.

        Returns:
            True if provider is operational, False otherwise
        """
        return True
