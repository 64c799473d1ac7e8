"""Per-scene clip generation."""

from reelsmith.adapters.video_gen.base import (
    VideoGenProvider,
    VideoGenRequest,
    VideoGenStatus,
)
from reelsmith.adapters.video_gen.dashscope import DashScopeVideoProvider
from reelsmith.adapters.video_gen.stub import StubVideoGenProvider
from reelsmith.config import settings
from reelsmith.exceptions import SceneGenerationError
from reelsmith.logging import get_logger

logger = get_logger(__name__)


def get_video_gen_provider() -> VideoGenProvider:
    """Pick the provider named by ``VIDEO_GEN_PROVIDER``, falling back to the stub."""
    provider_name = settings.video_gen_provider.lower()

    if provider_name == "stub":
        return StubVideoGenProvider()
    if provider_name == "dashscope" and settings.dashscope_api_key:
        return DashScopeVideoProvider()

    logger.warning("video_gen_provider_not_configured_using_stub", requested=provider_name)
    return StubVideoGenProvider()


class SceneVideoGenerator:
    """Turns a tagged provider result into a clip URL or an exception."""

    def __init__(self, provider: VideoGenProvider | None = None) -> None:
        self.provider = provider or get_video_gen_provider()

    async def generate_video(
        self,
        prompt: str,
        duration_seconds: float,
        scene_number: int | None = None,
    ) -> str:
        """Generate one clip and return its URL.

        Raises:
            SceneGenerationError: On remote failure or timeout
        """
        result = await self.provider.generate(
            VideoGenRequest(prompt=prompt, duration_seconds=duration_seconds)
        )

        if result.success and result.video_url:
            return result.video_url

        if result.status == VideoGenStatus.TIMED_OUT:
            message = result.error_message or "Video generation timed out"
        else:
            message = result.error_message or "Video generation failed"
        raise SceneGenerationError(message, scene_number=scene_number)

    async def health_check(self) -> bool:
        return await self.provider.health_check()
