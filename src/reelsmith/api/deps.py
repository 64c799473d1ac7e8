"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends
from fastapi.requests import HTTPConnection

from reelsmith.services.broadcaster import ProgressBroadcaster
from reelsmith.services.pipeline import TaskPipeline


def get_pipeline(connection: HTTPConnection) -> TaskPipeline:
    """The pipeline built by the application lifespan."""
    return connection.app.state.pipeline


def get_broadcaster(connection: HTTPConnection) -> ProgressBroadcaster:
    """The broadcaster built by the application lifespan."""
    return connection.app.state.broadcaster


PipelineDep = Annotated[TaskPipeline, Depends(get_pipeline)]
BroadcasterDep = Annotated[ProgressBroadcaster, Depends(get_broadcaster)]
