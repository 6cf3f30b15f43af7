"""create_audits_table

One row per audit request: the submitted form, pipeline status, headline
scores, AI presence flags, and the JSONB detail blobs.

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a1b2c3d4e5f6"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

STATUSES = (
    "received",
    "scraping",
    "analyzing",
    "generating_pdf",
    "sending_email",
    "completed",
    "failed",
)


def upgrade() -> None:
    op.create_table(
        "audits",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("phone", sa.Text(), nullable=False, server_default=""),
        sa.Column("website", sa.Text(), nullable=False),
        sa.Column(
            "source", sa.String(50), nullable=False, server_default="landing_page_section"
        ),
        sa.Column("status", sa.String(50), nullable=False, server_default="received"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("performance_score", sa.Integer(), nullable=True),
        sa.Column("accessibility_score", sa.Integer(), nullable=True),
        sa.Column("seo_score", sa.Integer(), nullable=True),
        sa.Column("best_practices_score", sa.Integer(), nullable=True),
        sa.Column("load_time_ms", sa.Integer(), nullable=True),
        sa.Column("ai_chatgpt", sa.Boolean(), nullable=True),
        sa.Column("ai_gemini", sa.Boolean(), nullable=True),
        sa.Column("ai_perplexity", sa.Boolean(), nullable=True),
        sa.Column("pagespeed_details", postgresql.JSONB(), nullable=True),
        sa.Column("action_plan", postgresql.JSONB(), nullable=True),
        sa.Column("scraped_meta", postgresql.JSONB(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("user_email_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("team_email_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN (" + ", ".join(f"'{s}'" for s in STATUSES) + ")",
            name="ck_audits_status",
        ),
    )
    op.create_index("ix_audits_created_at", "audits", ["created_at"])
    op.create_index("ix_audits_email", "audits", ["email"])
    op.create_index("ix_audits_status", "audits", ["status"])


def downgrade() -> None:
    op.drop_index("ix_audits_status", table_name="audits")
    op.drop_index("ix_audits_email", table_name="audits")
    op.drop_index("ix_audits_created_at", table_name="audits")
    op.drop_table("audits")
