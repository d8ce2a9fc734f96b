"""Initial database schema

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create credentials table
    op.create_table(
        "credentials",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("credential_id", sa.String(100), nullable=False, unique=True),
        sa.Column("holder_name", sa.String(255), nullable=False),
        sa.Column("holder_email", sa.String(255), nullable=False),
        sa.Column("category", sa.String(255), nullable=False),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("risk_level", sa.String(20), nullable=False, server_default="none"),
        sa.Column("verification_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_source_address", sa.String(45), nullable=True),
        sa.Column("flagged_at", sa.DateTime(timezone=True), nullable=True),
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
    )
    op.create_index("idx_credential_holder_email", "credentials", ["holder_email", "status"])
    op.create_index("idx_credential_status_created", "credentials", ["status", "created_at"])
    op.create_index("idx_credential_risk", "credentials", ["risk_level"])

    # Create verification_events table (append-only)
    op.create_table(
        "verification_events",
        sa.Column("event_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("credential_id", sa.String(100), nullable=False),
        sa.Column("outcome", sa.String(20), nullable=False),
        sa.Column("source_address", sa.String(45), nullable=False, server_default="unknown"),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column("requester_id", sa.String(255), nullable=True),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "idx_verification_credential_time",
        "verification_events",
        ["credential_id", "timestamp"],
    )
    op.create_index(
        "idx_verification_outcome_time", "verification_events", ["outcome", "timestamp"]
    )
    op.create_index(
        "idx_verification_source_time", "verification_events", ["source_address", "timestamp"]
    )

    # Create fraud_alerts table
    op.create_table(
        "fraud_alerts",
        sa.Column("alert_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("credential_id", sa.String(100), nullable=False),
        sa.Column("alert_kind", sa.String(50), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("details", postgresql.JSONB, nullable=False),
        sa.Column("triggered_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reviewer_id", sa.String(255), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolution_note", sa.Text, nullable=True),
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
    )
    op.create_index(
        "idx_alert_credential_triggered", "fraud_alerts", ["credential_id", "triggered_at"]
    )
    op.create_index(
        "idx_alert_status_severity", "fraud_alerts", ["status", "severity", "triggered_at"]
    )


def downgrade() -> None:
    op.drop_table("fraud_alerts")
    op.drop_table("verification_events")
    op.drop_table("credentials")
