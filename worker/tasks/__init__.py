"""Background task definitions."""

from worker.tasks.audit import AuditHandle, AuditPipeline, AuditRun, build_pipeline

__all__ = [
    "AuditHandle",
    "AuditPipeline",
    "AuditRun",
    "build_pipeline",
]
