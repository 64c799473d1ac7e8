"""Video generation provider adapters."""

from reelsmith.adapters.video_gen.base import (
    VideoGenProvider,
    VideoGenRequest,
    VideoGenResult,
    VideoGenStatus,
)
from reelsmith.adapters.video_gen.dashscope import DashScopeVideoProvider
from reelsmith.adapters.video_gen.stub import StubVideoGenProvider

__all__ = [
    "DashScopeVideoProvider",
    "StubVideoGenProvider",
    "VideoGenProvider",
    "VideoGenRequest",
    "VideoGenResult",
    "VideoGenStatus",
]
