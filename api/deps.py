"""FastAPI dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends, Request

from api.config import Settings, get_settings
from worker.tasks.audit import AuditPipeline

__all__ = ["SettingsDep", "PipelineDep"]


# Settings dependency
SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_pipeline(request: Request) -> AuditPipeline:
    """The process-wide pipeline built in the app lifespan."""
    pipeline: AuditPipeline = request.app.state.pipeline
    return pipeline


PipelineDep = Annotated[AuditPipeline, Depends(get_pipeline)]
