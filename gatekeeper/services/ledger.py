"""
gatekeeper.services.ledger — Per-User Balance Store
=====================================================

The only stateful part of Gatekeeper.  Three operations, all synchronous
(call them through :func:`~gatekeeper.database.engine.run_db` from async
code):

* :meth:`Ledger.get_balance` — stored balance, or zero when the user has
  never been credited.  Never creates a row.
* :meth:`Ledger.add_balance` — atomic create-or-increment by a signed delta.
* :meth:`Ledger.get_leaderboard` — top *N* by balance, ties broken by
  ``user_id`` ascending.

Lost updates are impossible because ``add_balance`` is a single
``INSERT … ON CONFLICT (user_id) DO UPDATE SET balance = balance + excluded.balance``
statement; the database serialises concurrent increments on the same row.
There is deliberately no read-modify-write anywhere in this module.

When no database is configured, :class:`NullLedger` stands in: reads look
like an empty store and writes are dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from sqlalchemy import Engine, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from gatekeeper.database.models import Balance
from gatekeeper.errors import StorageUnavailable

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Dialects with a native upsert we can build an atomic increment on.
_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


@dataclass(frozen=True, slots=True)
class LedgerEntry:
    """One leaderboard row."""

    user_id: str
    balance: Decimal


def to_amount(value: Decimal | int | float | str) -> Decimal:
    """Coerce *value* to :class:`Decimal` without binary-float artefacts.

    ``Decimal(0.2)`` is ``0.2000000000000000111…``; going through ``str``
    yields the ``Decimal('0.2')`` the caller meant.
    """
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class Ledger(Protocol):
    """Narrow interface the command router depends on."""

    def get_balance(self, user_id: str) -> Decimal: ...

    def add_balance(self, user_id: str, delta: Decimal | int | float | str) -> None: ...

    def get_leaderboard(self, limit: int) -> list[LedgerEntry]: ...


def _check_limit(limit: int) -> None:
    if limit <= 0:
        raise ValueError(f"leaderboard limit must be positive, got {limit}")


# ---------------------------------------------------------------------------
# SQL-backed ledger
# ---------------------------------------------------------------------------
class SqlLedger:
    """Ledger over the ``balances`` table.

    Parameters
    ----------
    engine:
        Process-wide SQLAlchemy engine; its pool is shared by every call.
    """

    def __init__(self, engine: Engine) -> None:
        dialect = engine.dialect.name
        if dialect not in _UPSERT_INSERTS:
            raise ValueError(f"Unsupported database dialect for upserts: {dialect}")
        self.engine = engine
        self._insert = _UPSERT_INSERTS[dialect]

    def get_balance(self, user_id: str) -> Decimal:
        try:
            with self.engine.connect() as conn:
                value = conn.scalar(
                    select(Balance.balance).where(Balance.user_id == user_id)
                )
        except SQLAlchemyError as exc:
            raise StorageUnavailable(f"could not read balance for {user_id}") from exc
        return to_amount(value) if value is not None else ZERO

    def add_balance(self, user_id: str, delta: Decimal | int | float | str) -> None:
        amount = to_amount(delta)
        stmt = self._insert(Balance).values(user_id=user_id, balance=amount)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Balance.user_id],
            set_={
                "balance": Balance.balance + stmt.excluded.balance,
                "updated_at": func.now(),
            },
        )
        try:
            with self.engine.begin() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as exc:
            raise StorageUnavailable(f"could not apply {amount} to {user_id}") from exc
        logger.debug("Applied %s to balance of %s", amount, user_id)

    def get_leaderboard(self, limit: int) -> list[LedgerEntry]:
        _check_limit(limit)
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(
                    select(Balance.user_id, Balance.balance)
                    .order_by(Balance.balance.desc(), Balance.user_id.asc())
                    .limit(limit)
                ).all()
        except SQLAlchemyError as exc:
            raise StorageUnavailable("could not read leaderboard") from exc
        return [LedgerEntry(user_id=r[0], balance=to_amount(r[1])) for r in rows]


# ---------------------------------------------------------------------------
# Degraded mode
# ---------------------------------------------------------------------------
class NullLedger:
    """Stand-in used when no ``DATABASE_URL`` is configured.

    Indistinguishable from an empty store for reads; writes vanish.
    """

    def get_balance(self, user_id: str) -> Decimal:
        return ZERO

    def add_balance(self, user_id: str, delta: Decimal | int | float | str) -> None:
        logger.debug("No database configured — dropped %s for %s", delta, user_id)

    def get_leaderboard(self, limit: int) -> list[LedgerEntry]:
        _check_limit(limit)
        return []


def build_ledger(engine: Engine | None) -> Ledger:
    """Return a :class:`SqlLedger` for *engine*, or a :class:`NullLedger`."""
    if engine is None:
        return NullLedger()
    return SqlLedger(engine)
