"""Create awardees and feature_requests tables.

Feature requests are listed by status on the admin board and looked up per
awardee, hence the two single-column indexes.
"""

from __future__ import annotations

import logging

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "5b2e91c4d7a0"
down_revision = None
branch_labels = None
depends_on = None

logger = logging.getLogger(__name__)

_UTC_NOW = sa.text("timezone('utc', now())")


def upgrade() -> None:
    op.create_table(
        "awardees",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("headline", sa.String(length=512), nullable=True),
        sa.Column("tagline", sa.String(length=512), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column(
            "social_links",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("linkedin_post_url", sa.Text(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=_UTC_NOW),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=_UTC_NOW,
            server_onupdate=_UTC_NOW,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_awardees"),
        sa.UniqueConstraint("slug", name="uq_awardees_slug"),
    )
    op.create_table(
        "feature_requests",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("awardee_id", sa.String(length=64), nullable=False),
        sa.Column("awardee_name", sa.String(length=255), nullable=True),
        sa.Column("has_own_article", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("article_content", sa.Text(), nullable=True),
        sa.Column("needs_article_written", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("contact_email", sa.String(length=320), nullable=False),
        sa.Column("whatsapp_number", sa.String(length=64), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("payment_status", sa.String(length=32), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=_UTC_NOW),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=_UTC_NOW,
            server_onupdate=_UTC_NOW,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_feature_requests"),
    )
    op.create_index(
        "ix_feature_requests_awardee_id", "feature_requests", ["awardee_id"], unique=False
    )
    op.create_index("ix_feature_requests_status", "feature_requests", ["status"], unique=False)
    logger.info("self_service.migration.applied", extra={"revision": revision})


def downgrade() -> None:
    op.drop_index("ix_feature_requests_status", table_name="feature_requests")
    op.drop_index("ix_feature_requests_awardee_id", table_name="feature_requests")
    op.drop_table("feature_requests")
    op.drop_table("awardees")
