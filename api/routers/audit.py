"""Audit request intake and status endpoints."""

import uuid

import orjson
import structlog
from fastapi import APIRouter, Request

from api.deps import PipelineDep
from api.exceptions import NotFoundError, ValidationError
from api.schemas.audit import (
    REQUIRED_FIELDS,
    AuditAccepted,
    AuditStatusRead,
    validate_audit_request,
)

router = APIRouter(prefix="/api/audit", tags=["Audit"])
logger = structlog.get_logger()


@router.post("", response_model=AuditAccepted)
async def request_audit(request: Request, pipeline: PipelineDep) -> AuditAccepted:
    """
    Accept an audit request and start the run in the background.

    The body is parsed by hand so that malformed JSON and missing fields
    share the same 400 response.
    """
    raw = await request.body()
    try:
        body = orjson.loads(raw) if raw else {}
    except orjson.JSONDecodeError as e:
        raise ValidationError(
            f"Missing required fields: {', '.join(REQUIRED_FIELDS)}",
            fields=list(REQUIRED_FIELDS),
        ) from e

    audit_request = validate_audit_request(body)
    handle = await pipeline.submit(audit_request)

    logger.info(
        "audit_request_accepted",
        audit_id=str(handle.audit_id) if handle.audit_id else None,
        website=audit_request.website,
        source=audit_request.source.value,
    )
    return AuditAccepted(audit_id=handle.audit_id)


@router.get("/{audit_id}", response_model=AuditStatusRead)
async def get_audit(audit_id: uuid.UUID, pipeline: PipelineDep) -> AuditStatusRead:
    """Current status and headline results of one audit."""
    record = await pipeline.store.get(audit_id)
    if record is None:
        raise NotFoundError("Audit", str(audit_id))
    return AuditStatusRead.model_validate(record)
