"""Create users, uploads and payments tables.

App startup also runs Base.metadata.create_all, so every table is guarded
and the revision is safe on a database that already has them.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _has_table(name: str) -> bool:
    return sa.inspect(op.get_bind()).has_table(name)


def upgrade() -> None:
    if not _has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("identity_key", sa.String(), nullable=False),
            sa.Column("has_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        op.create_index("ix_users_id", "users", ["id"])
        op.create_index("ix_users_identity_key", "users", ["identity_key"], unique=True)

    if not _has_table("uploads"):
        op.create_table(
            "uploads",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("file_name", sa.String(), nullable=False),
            sa.Column("transcription", sa.Text(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_uploads_id", "uploads", ["id"])
        op.create_index("ix_uploads_user_id", "uploads", ["user_id"])

    if not _has_table("payments"):
        op.create_table(
            "payments",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("identity_key", sa.String(), nullable=False),
            sa.Column("provider", sa.String(), nullable=False, server_default="stripe"),
            sa.Column("checkout_session_id", sa.String(), nullable=False),
            sa.Column("amount_total", sa.Integer(), nullable=True),
            sa.Column("currency", sa.String(), nullable=True),
            sa.Column("status", sa.String(), nullable=False, server_default="open"),
            sa.Column("paid_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_payments_id", "payments", ["id"])
        op.create_index("ix_payments_identity_key", "payments", ["identity_key"])
        op.create_index("ix_payments_checkout_session_id", "payments", ["checkout_session_id"], unique=True)


def downgrade() -> None:
    op.drop_table("payments")
    op.drop_table("uploads")
    op.drop_table("users")
