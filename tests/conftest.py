"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from gatekeeper.database.models import Base
from gatekeeper.services.ledger import SqlLedger

OPERATOR_ID = "1000"


def run_async(coro):
    """Run an async coroutine in a new event loop (no pytest-asyncio)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with the balances table.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in ``run_db``).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def file_engine(tmp_path) -> Engine:
    """File-backed SQLite engine with a real pool, for concurrent writers."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def ledger(db_engine) -> SqlLedger:
    return SqlLedger(db_engine)


def make_user(user_id: int, name: str) -> MagicMock:
    """A lightweight stand-in for ``discord.User``."""
    user = MagicMock(spec=discord.User)
    user.id = user_id
    user.name = name
    user.mention = f"<@{user_id}>"
    return user


def make_interaction(user_id: int | str) -> MagicMock:
    """A mock ``discord.Interaction`` recording the two reply phases."""
    interaction = MagicMock()
    interaction.user = SimpleNamespace(id=int(user_id))
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.edit_original_response = AsyncMock()
    return interaction
