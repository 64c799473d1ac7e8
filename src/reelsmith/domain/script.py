"""Structured video script returned by the script generator."""

from pydantic import BaseModel, Field


class ScriptScene(BaseModel):
    """One scene of a generated script."""

    scene_number: int = Field(ge=1)
    description: str
    visual_prompt: str
    duration: float = Field(default=5, gt=0)


class VideoScript(BaseModel):
    """A full video script: title, target length and ordered scenes."""

    title: str = ""
    total_duration: float | None = None
    scenes: list[ScriptScene] = Field(min_length=1)
