"""API route modules."""

from reelsmith.api.routes import health, progress, videos

__all__ = ["health", "progress", "videos"]
