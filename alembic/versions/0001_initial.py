"""roles, users, clients, bid types, bids, comments, audit

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _ts(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade():
    op.create_table(
        "roles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=128), nullable=False, unique=True),
        sa.Column("description", sa.String(length=512), nullable=True),
        sa.Column("permissions_json", JSONType, nullable=False),
        _ts("created_at"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(length=64), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=256), nullable=False),
        sa.Column("full_name", sa.String(length=256), nullable=False),
        sa.Column("email", sa.String(length=256), nullable=True),
        sa.Column("role", sa.String(length=128), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        _ts("created_at"),
    )
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "clients",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.Column("email", sa.String(length=256), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column(
            "responsible_user_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_clients_name", "clients", ["name"])

    op.create_table(
        "bid_types",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=256), nullable=False, unique=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("statuses_json", JSONType, nullable=False),
        sa.Column("transitions_json", JSONType, nullable=False),
        sa.Column("planned_reaction_time_minutes", sa.Integer, nullable=True),
        sa.Column("planned_duration_minutes", sa.Integer, nullable=True),
        sa.Column("version", sa.Integer, nullable=False),
        _ts("created_at"),
        _ts("updated_at"),
    )

    op.create_table(
        "bids",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("client_id", sa.Integer, sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("bid_type_id", sa.Integer, sa.ForeignKey("bid_types.id", ondelete="SET NULL"), nullable=True),
        sa.Column("parent_id", sa.Integer, sa.ForeignKey("bids.id", ondelete="SET NULL"), nullable=True),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("work_address", sa.String(length=512), nullable=True),
        sa.Column("contact_full_name", sa.String(length=256), nullable=True),
        sa.Column("contact_phone", sa.String(length=64), nullable=True),
        sa.Column("created_by", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "current_responsible_user_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("planned_resolution_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("planned_reaction_time_minutes", sa.Integer, nullable=True),
        sa.Column("planned_duration_minutes", sa.Integer, nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("spent_time_hours", sa.Numeric(10, 2), nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_bids_status", "bids", ["status"])
    op.create_index("ix_bids_bid_type", "bids", ["bid_type_id"])
    op.create_index("ix_bids_created_at", "bids", ["created_at"])

    op.create_table(
        "bid_comments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("bid_id", sa.Integer, sa.ForeignKey("bids.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        _ts("created_at"),
    )
    op.create_index("ix_bid_comments_bid_id", "bid_comments", ["bid_id"])

    op.create_table(
        "bid_audit_logs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("bid_id", sa.Integer, sa.ForeignKey("bids.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("details", sa.Text, nullable=True),
        sa.Column("details_json", JSONType, nullable=False),
        sa.Column("request_id", sa.String(length=128), nullable=True),
        _ts("created_at"),
    )
    op.create_index("ix_bid_audit_bid_created", "bid_audit_logs", ["bid_id", "created_at"])
    op.create_index("ix_bid_audit_action", "bid_audit_logs", ["action"])


def downgrade():
    op.drop_table("bid_audit_logs")
    op.drop_table("bid_comments")
    op.drop_table("bids")
    op.drop_table("bid_types")
    op.drop_table("clients")
    op.drop_table("users")
    op.drop_table("roles")
