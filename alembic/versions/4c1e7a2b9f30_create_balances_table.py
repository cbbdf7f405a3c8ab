"""Create balances table

Revision ID: 4c1e7a2b9f30
Revises:
Create Date: 2026-10-12 10:02:11.418290

Matches the table the first (schema-less) bot created on startup, so
existing deployments can be stamped at this revision.
"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4c1e7a2b9f30"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    if sa.inspect(op.get_bind()).has_table("balances"):
        return
    op.create_table(
        "balances",
        sa.Column("user_id", sa.Text(), primary_key=True),
        sa.Column("balance", sa.Float(precision=53), server_default="0"),
    )


def downgrade() -> None:
    op.drop_table("balances")
