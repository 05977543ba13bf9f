"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates all tables for the Activity Board application:
users, activities, activity_rsvps.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

activity_status = sa.Enum(
    "unpublished_under_review",
    "published_under_review",
    "published",
    name="activitystatus",
)


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("username", sa.String(100), nullable=False, unique=True),
        sa.Column("email", sa.String(255), nullable=False, server_default=""),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("signature", sa.String(255), nullable=False),
        sa.Column("admin", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- activities ---
    op.create_table(
        "activities",
        sa.Column("activity_id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("body", sa.Text, nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("leader_name", sa.String(100), nullable=False),
        sa.Column(
            "leader_user_id", sa.String(36), sa.ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("creator_user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("status", activity_status, nullable=False, server_default="unpublished_under_review"),
        sa.Column("expire_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_activities_status", "activities", ["status"])

    # --- activity_rsvps ---
    op.create_table(
        "activity_rsvps",
        sa.Column("rsvp_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "activity_id",
            sa.String(36),
            sa.ForeignKey("activities.activity_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=False),
        sa.Column("has_email", sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_activity_rsvps_activity_id", "activity_rsvps", ["activity_id"])


def downgrade() -> None:
    op.drop_index("ix_activity_rsvps_activity_id", table_name="activity_rsvps")
    op.drop_table("activity_rsvps")
    op.drop_index("ix_activities_status", table_name="activities")
    op.drop_table("activities")
    op.drop_table("users")
    activity_status.drop(op.get_bind(), checkfirst=True)
