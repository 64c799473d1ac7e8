"""Stub video generation provider for testing."""

import asyncio
import subprocess
from pathlib import Path
from typing import Any
from uuid import uuid4

from reelsmith.adapters.video_gen.base import (
    VideoGenProvider,
    VideoGenRequest,
    VideoGenResult,
    VideoGenStatus,
)
from reelsmith.config import settings
from reelsmith.logging import get_logger
from reelsmith.utils.ffmpeg import render_color_clip

logger = get_logger(__name__)

_COLORS = ["navy", "darkgreen", "maroon", "purple", "teal", "olive"]


class StubVideoGenProvider(VideoGenProvider):
    """Stub provider that renders local clips instead of calling a remote service.

    Clips are solid-color videos rendered with ffmpeg so the composer can
    join them. If ffmpeg is unavailable a marker file is written instead.
    """

    def __init__(self, output_dir: Path | None = None, delay: float = 0.0) -> None:
        self.output_dir = output_dir or settings.temp_dir / "stub_clips"
        self.delay = delay
        self._calls = 0

    @property
    def name(self) -> str:
        return "stub"

    async def generate(self, request: VideoGenRequest) -> VideoGenResult:
        """Produce a local clip and return its ``file://`` URL."""
        logger.info(
            "stub_video_generation_started",
            prompt=request.prompt[:100],
            duration=request.duration_seconds,
        )

        if self.delay:
            await asyncio.sleep(self.delay)

        job_id = str(uuid4())
        path = (self.output_dir / f"{job_id}.mp4").resolve()
        color = _COLORS[self._calls % len(_COLORS)]
        self._calls += 1

        try:
            await asyncio.to_thread(
                render_color_clip, path, min(float(request.duration_seconds), 3.0), color
            )
        except (FileNotFoundError, RuntimeError, subprocess.TimeoutExpired) as e:
            logger.debug("stub_clip_render_unavailable", error=str(e))
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"STUB_VIDEO_DATA_" + request.prompt.encode()[:100])

        logger.info("stub_video_generation_completed", video_url=path.as_uri())

        return VideoGenResult(
            status=VideoGenStatus.SUCCEEDED,
            video_url=path.as_uri(),
            job_id=job_id,
            metadata={"provider": self.name, "prompt": request.prompt},
        )

    async def check_status(self, job_id: str) -> dict[str, Any]:
        """Return completed status for stub provider."""
        return {"job_id": job_id, "status": "SUCCEEDED"}
