"""DashScope (Tongyi Wanx) video generation provider."""

import asyncio
from typing import Any

import httpx

from reelsmith.adapters.video_gen.base import (
    VideoGenProvider,
    VideoGenRequest,
    VideoGenResult,
    VideoGenStatus,
)
from reelsmith.config import settings
from reelsmith.logging import get_logger

logger = get_logger(__name__)

FAILED_STATES = {"FAILED", "CANCELED", "UNKNOWN"}


class DashScopeVideoProvider(VideoGenProvider):
    """Tongyi Wanx text-to-video provider.

    Generation is asynchronous on the DashScope side:
    1. Submit the job and receive a task id
    2. Poll ``/tasks/{id}`` until SUCCEEDED or FAILED
    3. Give up as timed out after ``max_poll_attempts`` polls
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        poll_interval: float | None = None,
        max_poll_attempts: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.dashscope_api_key
        self.model = model or settings.dashscope_video_model
        self.base_url = (base_url or settings.dashscope_base_url).rstrip("/")
        self.poll_interval = (
            settings.video_poll_interval_seconds if poll_interval is None else poll_interval
        )
        self.max_poll_attempts = max_poll_attempts or settings.video_poll_max_attempts
        self._transport = transport

        if not self.api_key:
            logger.warning("DashScope API key not configured")

    @property
    def name(self) -> str:
        return f"dashscope:{self.model}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def generate(self, request: VideoGenRequest) -> VideoGenResult:
        """Submit a clip job and poll it to a terminal state."""
        if not self.api_key:
            return VideoGenResult(
                status=VideoGenStatus.FAILED,
                error_message="DashScope API key not configured",
            )

        parameters: dict[str, Any] = {
            "duration": request.duration_seconds,
            "resolution": request.resolution or settings.dashscope_video_resolution,
            "fps": request.fps or settings.dashscope_video_fps,
        }
        if request.options:
            parameters.update(request.options)

        payload = {
            "model": self.model,
            "input": {"prompt": request.prompt},
            "parameters": parameters,
        }

        logger.info(
            "dashscope_video_generation_started",
            prompt=request.prompt[:50],
            duration=request.duration_seconds,
        )

        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/services/aigc/video-generation/generation",
                    headers={**self._headers(), "X-DashScope-Async": "enable"},
                    json=payload,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            error_msg = f"DashScope API error: {e.response.status_code} - {e.response.text}"
            logger.error("dashscope_video_api_error", error=error_msg)
            return VideoGenResult(status=VideoGenStatus.FAILED, error_message=error_msg)
        except httpx.HTTPError as e:
            logger.error("dashscope_video_submit_error", error=str(e))
            return VideoGenResult(status=VideoGenStatus.FAILED, error_message=str(e))

        job_id = (data.get("output") or {}).get("task_id")
        if not job_id:
            return VideoGenResult(
                status=VideoGenStatus.FAILED,
                error_message="No task ID returned from DashScope",
            )

        logger.info("dashscope_video_job_submitted", job_id=job_id)
        return await self._poll_for_completion(job_id)

    async def _poll_for_completion(self, job_id: str) -> VideoGenResult:
        """Poll the job until it succeeds, fails or the attempt budget runs out."""
        for attempt in range(1, self.max_poll_attempts + 1):
            try:
                output = (await self.check_status(job_id)).get("output") or {}
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(
                    "dashscope_poll_error",
                    job_id=job_id,
                    error=str(e),
                    attempt=attempt,
                )
            else:
                state = output.get("task_status", "UNKNOWN")
                logger.debug(
                    "dashscope_poll_status",
                    job_id=job_id,
                    state=state,
                    attempt=attempt,
                    max_attempts=self.max_poll_attempts,
                )

                if state == "SUCCEEDED":
                    video_url = output.get("video_url")
                    if not video_url:
                        return VideoGenResult(
                            status=VideoGenStatus.FAILED,
                            job_id=job_id,
                            error_message="Job succeeded but no video URL found",
                        )
                    logger.info(
                        "dashscope_video_generation_completed",
                        job_id=job_id,
                        video_url=video_url[:100],
                    )
                    return VideoGenResult(
                        status=VideoGenStatus.SUCCEEDED,
                        video_url=video_url,
                        job_id=job_id,
                        metadata={"provider": self.name, "attempts": attempt},
                    )

                if state in FAILED_STATES:
                    reason = output.get("message") or output.get("code") or "Unknown failure"
                    logger.error("dashscope_video_generation_failed", job_id=job_id, reason=reason)
                    return VideoGenResult(
                        status=VideoGenStatus.FAILED,
                        job_id=job_id,
                        error_message=f"Video generation failed: {reason}",
                    )

            if attempt < self.max_poll_attempts:
                await asyncio.sleep(self.poll_interval)

        logger.error(
            "dashscope_video_generation_timed_out",
            job_id=job_id,
            attempts=self.max_poll_attempts,
        )
        return VideoGenResult(
            status=VideoGenStatus.TIMED_OUT,
            job_id=job_id,
            error_message=(
                f"Video generation timed out after {self.max_poll_attempts} polls "
                f"({self.max_poll_attempts * self.poll_interval:.0f}s)"
            ),
        )

    async def check_status(self, job_id: str) -> dict[str, Any]:
        """Fetch the raw job status document."""
        async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
            response = await client.get(
                f"{self.base_url}/tasks/{job_id}",
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()
            return response.json()

    async def health_check(self) -> bool:
        """Report whether an API key is configured."""
        return bool(self.api_key)
