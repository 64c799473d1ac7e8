"""Video task endpoints."""

from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field, field_validator

from reelsmith.api.deps import PipelineDep
from reelsmith.config import settings
from reelsmith.logging import get_logger

router = APIRouter(prefix="/video", tags=["Video"])
logger = get_logger(__name__)


class GenerateVideoRequest(BaseModel):
    """Request to generate a video from a one-line idea."""

    model_config = ConfigDict(populate_by_name=True)

    user_input: str = Field(..., alias="userInput", max_length=2000)
    user_id: str | None = Field(default=None, alias="userId", max_length=255)

    @field_validator("user_input")
    @classmethod
    def user_input_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("userInput must not be empty")
        return value


class ApiResponse(BaseModel):
    """Envelope for successful responses."""

    success: bool = True
    data: Any


@router.post(
    "/generate",
    response_model=ApiResponse,
    summary="Create a video task",
    description="Accepts the idea, returns the task id immediately and runs the task in the background.",
)
async def generate_video(request: GenerateVideoRequest, pipeline: PipelineDep) -> ApiResponse:
    created = await pipeline.create_task(request.user_input, request.user_id)
    logger.info("video_task_accepted", task_id=created.task_id)
    return ApiResponse(data={"taskId": created.task_id, "status": str(created.status)})


@router.get(
    "/status/{task_id}",
    response_model=ApiResponse,
    summary="Task status",
    description="Full task record with its scenes ordered by scene number.",
)
def get_video_status(task_id: str, pipeline: PipelineDep) -> ApiResponse:
    detail = pipeline.get_task_status(task_id)
    return ApiResponse(data=detail.to_dict())


@router.get(
    "/list",
    response_model=ApiResponse,
    summary="List tasks",
    description="Tasks ordered newest first.",
)
def list_videos(
    pipeline: PipelineDep,
    limit: int = Query(default=settings.task_list_default_limit, ge=1),
    offset: int = Query(default=0, ge=0),
) -> ApiResponse:
    limit = min(limit, settings.task_list_max_limit)
    tasks = pipeline.list_tasks(limit=limit, offset=offset)
    return ApiResponse(data=[task.to_dict() for task in tasks])
