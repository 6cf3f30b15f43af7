"""Pydantic schemas package.

Use explicit imports:
    from api.schemas.audit import AuditRequest, validate_audit_request
    from api.schemas.responses import ErrorResponse, error_body
"""
