"""Audit request and status schemas."""

from datetime import datetime
from typing import Any
from urllib.parse import urlparse
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from api.exceptions import ValidationError
from api.models.audit import AuditSource

REQUIRED_FIELDS = ("name", "email", "website")


def ensure_scheme(url: str) -> str:
    """Prefix ``https://`` when the URL carries no http(s) scheme."""
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        url = f"https://{url}"
    return url


class AuditRequest(BaseModel):
    """A validated audit request. Immutable once built."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    phone: str = ""
    website: str = Field(..., min_length=1)
    source: AuditSource = AuditSource.LANDING_PAGE_SECTION

    @field_validator("website")
    @classmethod
    def normalize_website(cls, v: str) -> str:
        """Add https:// if missing."""
        return ensure_scheme(v)

    @field_validator("phone", mode="before")
    @classmethod
    def clean_phone(cls, v: Any) -> str:
        return v.strip() if isinstance(v, str) else ""

    @field_validator("source", mode="before")
    @classmethod
    def default_source(cls, v: Any) -> AuditSource:
        """Unknown or missing sources count as the landing page form."""
        try:
            return AuditSource(v)
        except ValueError:
            return AuditSource.LANDING_PAGE_SECTION

    @property
    def domain(self) -> str:
        """Hostname of the audited website."""
        return urlparse(self.website).hostname or self.website


def validate_audit_request(body: Any) -> AuditRequest:
    """
    Validate a raw JSON body into an AuditRequest.

    Raises:
        ValidationError: missing/blank required fields or malformed values
    """
    if not isinstance(body, dict):
        body = {}

    missing = [
        f for f in REQUIRED_FIELDS if not isinstance(body.get(f), str) or not body[f].strip()
    ]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(REQUIRED_FIELDS)}",
            fields=missing,
        )

    try:
        return AuditRequest.model_validate(
            {
                "name": body["name"],
                "email": body["email"],
                "phone": body.get("phone"),
                "website": body["website"],
                "source": body.get("source"),
            }
        )
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(loc) for loc in first.get("loc", []))
        raise ValidationError(f"Invalid {field}: {first.get('msg')}", fields=[field]) from e


class AuditAccepted(BaseModel):
    """Immediate acknowledgement of an audit request."""

    success: bool = True
    message: str = "Audit request received"
    audit_id: UUID | None = None


class AuditStatusRead(BaseModel):
    """Status projection of a persisted audit record."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    website: str
    source: str
    status: str
    error_message: str | None = None
    performance_score: int | None = None
    accessibility_score: int | None = None
    seo_score: int | None = None
    best_practices_score: int | None = None
    load_time_ms: int | None = None
    ai_chatgpt: bool | None = None
    ai_gemini: bool | None = None
    ai_perplexity: bool | None = None
    created_at: datetime
    updated_at: datetime
    user_email_sent_at: datetime | None = None
    team_email_sent_at: datetime | None = None
    completed_at: datetime | None = None
