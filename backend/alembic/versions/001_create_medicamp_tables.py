"""Create users, camps, registrations and feedback tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Initial MediCamp schema.
How:   UUID primary keys, TIMESTAMP WITH TIME ZONE, CHECK constraints on the
       participant counter, fees and ratings, and the compound unique
       constraint that rejects double registration.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str, comment: str) -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
        comment=comment,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("photo", sa.String(2048), nullable=True),
        sa.Column(
            "role",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'participant'"),
            comment="participant | organizer",
        ),
        _timestamp("created_at", "First sign-in (UTC)"),
        sa.PrimaryKeyConstraint("email"),
    )

    op.create_table(
        "camps",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("image", sa.String(2048), nullable=True),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column(
            "date",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            comment="When the camp takes place",
        ),
        sa.Column("fees", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("healthcare_professional", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column(
            "participant_count",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Live registrations; changed only by atomic increments",
        ),
        sa.Column("created_by", sa.String(320), nullable=True),
        _timestamp("created_at", "When the camp was published (UTC)"),
        _timestamp("updated_at", "Last organizer edit (UTC)"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "participant_count >= 0", name="ck_camps_participant_count_non_negative"
        ),
        sa.CheckConstraint("fees >= 0", name="ck_camps_fees_non_negative"),
    )
    # Popular camps: ORDER BY participant_count DESC
    op.create_index("idx_camps_participant_count", "camps", ["participant_count"])

    op.create_table(
        "registrations",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("camp_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("participant_email", sa.String(320), nullable=False),
        sa.Column("participant_name", sa.String(255), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("phone_number", sa.String(40), nullable=False),
        sa.Column("gender", sa.String(20), nullable=False),
        sa.Column("emergency_contact", sa.String(255), nullable=False),
        sa.Column(
            "confirmation_status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'Pending'"),
            comment="Pending | Processing | Confirmed",
        ),
        sa.Column(
            "payment_status",
            sa.String(10),
            nullable=False,
            server_default=sa.text("'Pay'"),
            comment="Pay | Paid",
        ),
        sa.Column(
            "transaction_id",
            sa.String(255),
            nullable=True,
            comment="Payment provider reference recorded when payment is confirmed",
        ),
        _timestamp("created_at", "When the participant registered (UTC)"),
        _timestamp("updated_at", "Last state change (UTC)"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["camp_id"], ["camps.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["participant_email"], ["users.email"]),
        sa.UniqueConstraint(
            "camp_id", "participant_email", name="uq_registrations_camp_participant"
        ),
    )
    op.create_index(
        "idx_registrations_participant_email", "registrations", ["participant_email"]
    )
    op.create_index(
        "idx_registrations_payment_created",
        "registrations",
        ["payment_status", "created_at"],
    )

    op.create_table(
        "feedback",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("camp_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("participant_name", sa.String(255), nullable=False),
        sa.Column("participant_email", sa.String(320), nullable=False),
        sa.Column("participant_image", sa.String(2048), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("feedback", sa.Text(), nullable=False),
        _timestamp("date", "When the feedback was submitted (UTC)"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["camp_id"], ["camps.id"], ondelete="CASCADE"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_feedback_rating_range"),
    )
    op.create_index("idx_feedback_date", "feedback", ["date"])


def downgrade() -> None:
    """Drops every MediCamp table. All data is lost."""
    op.drop_index("idx_feedback_date", table_name="feedback")
    op.drop_table("feedback")
    op.drop_index("idx_registrations_payment_created", table_name="registrations")
    op.drop_index("idx_registrations_participant_email", table_name="registrations")
    op.drop_table("registrations")
    op.drop_index("idx_camps_participant_count", table_name="camps")
    op.drop_table("camps")
    op.drop_table("users")
