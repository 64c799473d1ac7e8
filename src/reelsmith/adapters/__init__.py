"""Adapters for external services."""

from reelsmith.adapters.llm.base import LLMProvider
from reelsmith.adapters.storage.base import BlobStore
from reelsmith.adapters.video_gen.base import VideoGenProvider

__all__ = [
    "BlobStore",
    "LLMProvider",
    "VideoGenProvider",
]
