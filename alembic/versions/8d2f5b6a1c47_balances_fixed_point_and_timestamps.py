"""Store balances as fixed-point and add timestamps

Revision ID: 8d2f5b6a1c47
Revises: 4c1e7a2b9f30
Create Date: 2026-10-12 11:40:37.902114

DOUBLE PRECISION drifts after enough ±0.2 adjustments; NUMERIC(18, 6)
does not.  Existing values are rounded to six places on conversion.
Each step is skipped when the column is already in its final shape.
"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8d2f5b6a1c47"
down_revision: str | Sequence[str] | None = "4c1e7a2b9f30"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _columns() -> dict[str, sa.types.TypeEngine]:
    inspector = sa.inspect(op.get_bind())
    return {col["name"]: col["type"] for col in inspector.get_columns("balances")}


def upgrade() -> None:
    # A table bootstrapped by init_db() already has the final layout.
    columns = _columns()
    balance_type = columns["balance"]
    if isinstance(balance_type, sa.Float) or not isinstance(balance_type, sa.Numeric):
        op.execute("UPDATE balances SET balance = 0 WHERE balance IS NULL")
        op.alter_column(
            "balances",
            "balance",
            type_=sa.Numeric(18, 6),
            existing_type=sa.Float(precision=53),
            nullable=False,
            server_default="0",
            postgresql_using="round(balance::numeric, 6)",
        )
    for name in ("created_at", "updated_at"):
        if name in columns:
            continue
        op.add_column(
            "balances",
            sa.Column(
                name,
                sa.DateTime(timezone=True),
                server_default=sa.func.now(),
            ),
        )


def downgrade() -> None:
    op.drop_column("balances", "updated_at")
    op.drop_column("balances", "created_at")
    op.alter_column(
        "balances",
        "balance",
        type_=sa.Float(precision=53),
        existing_type=sa.Numeric(18, 6),
        nullable=True,
        server_default="0",
    )
