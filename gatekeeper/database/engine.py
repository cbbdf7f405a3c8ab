"""
gatekeeper.database.engine — Database Connection & Async Helper
================================================================

**Why this file exists:**
Discord bots run on an ``asyncio`` event loop.  SQLAlchemy + psycopg2 is
**synchronous** — if we call the DB directly from an async context, the
entire bot freezes until the query returns.

The bridge:

    1. An interaction arrives from Discord  (async world).
    2. The handler calls ``await run_db(ledger.add_balance, user_id, delta)``.
    3. ``run_db`` ships the synchronous call to a **thread pool** via
       ``asyncio.to_thread()``.
    4. The DB work happens on a background thread — the event loop stays free.
    5. The result is awaited back in the handler, which then edits its reply.

A missing ``DATABASE_URL`` is not fatal: :func:`create_db_engine` returns
``None`` and the bot runs against a :class:`~gatekeeper.services.ledger.NullLedger`.

Usage::

    from gatekeeper.database.engine import create_db_engine, init_db, run_db

    engine = create_db_engine(secrets.database_url)   # None when unset
    if engine is not None:
        init_db(engine)                               # CREATE TABLE IF NOT EXISTS …
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine, inspect, text
from sqlalchemy.engine import make_url

from gatekeeper.database.models import Balance, Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(url: str | None) -> Engine | None:
    """Build a SQLAlchemy :class:`Engine` for *url*, or ``None`` if unset.

    For server databases the connection pool is sized for a small bot:
    * ``pool_size=5`` — five persistent connections.
    * ``max_overflow=10`` — up to 10 extra connections under load.
    * ``pool_timeout=10`` — fail after 10 s if no connection is available.
    * ``pool_recycle=3600`` — recycle connections after 1 hour.

    SQLite URLs (local dev) keep SQLAlchemy's default pool.
    """
    if not url:
        logger.warning("No DATABASE_URL found — running without persistent DB.")
        return None

    if make_url(url).get_backend_name() == "sqlite":
        engine = create_engine(url, echo=False)
    else:
        engine = create_engine(
            url,
            echo=False,        # Set True for SQL debugging
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,   # Reconnect stale connections automatically
            pool_timeout=10,      # Fail after 10s instead of hanging forever
            pool_recycle=3600,    # Recycle connections after 1 hour
        )
    logger.info("Database engine created → %s", engine.url.host or engine.url.database)
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create all tables defined in :mod:`gatekeeper.database.models`.

    This is safe to call on every startup — ``CREATE TABLE IF NOT EXISTS``
    under the hood.

    .. note::

        In production the schema is managed by Alembic (``alembic upgrade
        head``).  ``create_all`` is retained as a safety net for dev/test
        environments where Alembic may not have run.

    ``create_all`` never alters an existing table, so a ``balances`` table
    left over from the two-column layout (``user_id``, ``balance``) gets its
    missing timestamp columns added here.
    """
    Base.metadata.create_all(engine)
    _add_missing_timestamps(engine)
    logger.info("Ensured balances table exists.")


def _add_missing_timestamps(engine: Engine) -> None:
    table = Balance.__table__
    present = {col["name"] for col in inspect(engine).get_columns(table.name)}
    missing = [col for col in (table.c.created_at, table.c.updated_at) if col.name not in present]
    if not missing:
        return

    with engine.begin() as conn:
        for col in missing:
            ddl = f"ALTER TABLE {table.name} ADD COLUMN {col.name} {col.type.compile(dialect=engine.dialect)}"
            # SQLite only accepts constant defaults on ADD COLUMN.
            if engine.dialect.name != "sqlite":
                ddl += " DEFAULT CURRENT_TIMESTAMP"
            conn.execute(text(ddl))
            logger.warning("Added missing column balances.%s to legacy table.", col.name)


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a **synchronous** database function on a background thread.

    Every ledger call made from a coroutine should go through this wrapper::

        balance = await run_db(ledger.get_balance, user_id)

    Under the hood it calls :func:`asyncio.to_thread`, which schedules
    *func* on the default ``ThreadPoolExecutor`` so the bot's event loop
    is never blocked.
    """
    return await asyncio.to_thread(func, *args, **kwargs)
