"""Audit record model and pipeline status state machine."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from api.database import Base


class AuditStatus(StrEnum):
    """Pipeline status states, in pipeline order."""

    RECEIVED = "received"
    SCRAPING = "scraping"
    ANALYZING = "analyzing"
    GENERATING_PDF = "generating_pdf"
    SENDING_EMAIL = "sending_email"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AuditStatus.COMPLETED, AuditStatus.FAILED)


# The happy path; FAILED is reachable from any non-terminal state.
PIPELINE_ORDER: tuple[AuditStatus, ...] = (
    AuditStatus.RECEIVED,
    AuditStatus.SCRAPING,
    AuditStatus.ANALYZING,
    AuditStatus.GENERATING_PDF,
    AuditStatus.SENDING_EMAIL,
    AuditStatus.COMPLETED,
)


def can_transition(current: AuditStatus, target: AuditStatus) -> bool:
    """Whether ``current -> target`` is a legal single step."""
    if current.is_terminal:
        return False
    if target == AuditStatus.FAILED:
        return True
    return PIPELINE_ORDER.index(target) == PIPELINE_ORDER.index(current) + 1


class AuditSource(StrEnum):
    """Where on the site the audit form was submitted."""

    LANDING_PAGE_SECTION = "landing_page_section"
    POPUP = "popup"
    CONTACT_FORM = "contact_form"


_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in AuditStatus)


class AuditRecord(Base):
    """One audit run: the original request, its lifecycle and its headline results."""

    __tablename__ = "audits"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Form submission
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    website: Mapped[str] = mapped_column(Text, nullable=False)
    source: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=AuditSource.LANDING_PAGE_SECTION.value,
        server_default=AuditSource.LANDING_PAGE_SECTION.value,
    )

    # Pipeline status
    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=AuditStatus.RECEIVED.value,
        server_default=AuditStatus.RECEIVED.value,
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Key scores (flat for querying)
    performance_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    accessibility_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    seo_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    best_practices_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    load_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # AI presence (nullable: the model may not know)
    ai_chatgpt: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    ai_gemini: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    ai_perplexity: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    # Nested detail
    pagespeed_details: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    # Example:
    # {"lcp": {"value": 2100, "unit": "ms", "rating": "good"}, ..., "opportunities": [...]}
    action_plan: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    scraped_meta: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    user_email_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    team_email_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_audits_status"),
        Index("ix_audits_created_at", "created_at"),
        Index("ix_audits_email", "email"),
        Index("ix_audits_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<AuditRecord {self.id} {self.website} status={self.status}>"
