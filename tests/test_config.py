"""
tests/test_config.py — Configuration & Engine Bootstrap Tests
==============================================================
Environment secrets, ``config.yaml`` parsing, database URL normalisation
and the no-database degraded path.
"""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy import inspect, text

from alembic import command
from alembic.config import Config

from gatekeeper.config import (
    DEFAULT_WELCOME_MESSAGE,
    GatekeeperConfig,
    load_config,
    load_secrets,
    normalize_database_url,
)
from gatekeeper.database.engine import create_db_engine, init_db
from gatekeeper.services.ledger import SqlLedger

_ENV_KEYS = ("DISCORD_TOKEN", "TOKEN", "OWNER_ID", "CLIENT_ID", "DATABASE_URL", "DEV_GUILD_ID")
ALEMBIC_DIR = Path(__file__).resolve().parents[1] / "alembic"


@pytest.fixture
def clean_env():
    with patch.dict(os.environ, {}, clear=False):
        for key in _ENV_KEYS:
            os.environ.pop(key, None)
        yield os.environ


class TestLoadSecrets:

    def test_reads_all_values(self, clean_env):
        clean_env.update({
            "DISCORD_TOKEN": "abc",
            "OWNER_ID": "1000",
            "CLIENT_ID": "4242",
            "DATABASE_URL": "postgresql://u:p@db/gk",
            "DEV_GUILD_ID": "777",
        })
        secrets = load_secrets()
        assert secrets.token == "abc"
        assert secrets.operator_id == "1000"
        assert secrets.client_id == "4242"
        assert secrets.database_url == "postgresql://u:p@db/gk"
        assert secrets.dev_guild_id == 777

    def test_token_fallback(self, clean_env):
        clean_env["TOKEN"] = "legacy"
        assert load_secrets().token == "legacy"

    def test_missing_values_are_none(self, clean_env):
        secrets = load_secrets()
        assert secrets.token is None
        assert secrets.operator_id is None
        assert secrets.database_url is None
        assert secrets.dev_guild_id is None

    def test_blank_database_url_is_none(self, clean_env):
        clean_env["DATABASE_URL"] = "   "
        assert load_secrets().database_url is None

    def test_non_numeric_ids_are_dropped_with_warning(self, clean_env, caplog):
        clean_env.update({"CLIENT_ID": "my-bot", "DEV_GUILD_ID": "staging"})
        secrets = load_secrets()
        assert secrets.client_id is None
        assert secrets.dev_guild_id is None
        assert "CLIENT_ID='my-bot' is not a numeric Discord ID" in caplog.text
        assert "DEV_GUILD_ID='staging' is not a numeric Discord ID" in caplog.text

    def test_padded_ids_are_accepted(self, clean_env):
        clean_env.update({"CLIENT_ID": " 4242 ", "DEV_GUILD_ID": "777\n"})
        secrets = load_secrets()
        assert secrets.client_id == "4242"
        assert secrets.dev_guild_id == 777


class TestNormalizeDatabaseUrl:

    def test_rewrites_legacy_scheme(self):
        assert normalize_database_url("postgres://u:p@h/db") == "postgresql://u:p@h/db"

    def test_leaves_modern_scheme(self):
        assert normalize_database_url("postgresql+psycopg2://h/db") == "postgresql+psycopg2://h/db"

    def test_empty(self):
        assert normalize_database_url("") is None
        assert normalize_database_url(None) is None


class TestLoadConfig:

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = load_config(tmp_path / "nope.yaml")
        assert cfg == GatekeeperConfig()
        assert cfg.verify_reward == Decimal("0.2")
        assert cfg.leaderboard_size == 15
        assert cfg.channel_prefix == "verify-"
        assert cfg.welcome_message == DEFAULT_WELCOME_MESSAGE

    def test_overrides(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "verify_reward: 0.5\n"
            "leaderboard_size: 10\n"
            "channel_prefix: onboard-\n"
            "welcome_message: 'hello {member}'\n",
            encoding="utf-8",
        )
        cfg = load_config(path)
        assert cfg.verify_reward == Decimal("0.5")
        assert cfg.leaderboard_size == 10
        assert cfg.channel_prefix == "onboard-"
        assert cfg.welcome_message == "hello {member}"

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == GatekeeperConfig()

    def test_rejects_bad_reward(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("verify_reward: lots\n", encoding="utf-8")
        with pytest.raises(ValueError, match="verify_reward"):
            load_config(path)

    def test_rejects_non_positive_leaderboard(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("leaderboard_size: 0\n", encoding="utf-8")
        with pytest.raises(ValueError, match="leaderboard_size"):
            load_config(path)


class TestCreateDbEngine:

    def test_no_url_means_degraded(self, caplog):
        assert create_db_engine(None) is None
        assert "running without persistent DB" in caplog.text

    def test_sqlite_url_builds_usable_engine(self, tmp_path):
        engine = create_db_engine(f"sqlite:///{tmp_path / 'gk.db'}")
        try:
            init_db(engine)
            init_db(engine)  # idempotent
            ledger = SqlLedger(engine)
            ledger.add_balance("1", Decimal("0.2"))
            assert ledger.get_balance("1") == Decimal("0.2")
        finally:
            engine.dispose()


class TestSchemaUpgrade:

    def test_legacy_two_column_table_gains_timestamps(self, tmp_path, caplog):
        engine = create_db_engine(f"sqlite:///{tmp_path / 'legacy.db'}")
        try:
            with engine.begin() as conn:
                conn.execute(text(
                    "CREATE TABLE balances ("
                    "user_id TEXT PRIMARY KEY, balance DOUBLE PRECISION DEFAULT 0)"
                ))
                conn.execute(text("INSERT INTO balances VALUES ('1', 0.4)"))

            init_db(engine)

            columns = {col["name"] for col in inspect(engine).get_columns("balances")}
            assert {"created_at", "updated_at"} <= columns
            assert "Added missing column balances.updated_at" in caplog.text

            ledger = SqlLedger(engine)
            ledger.add_balance("1", Decimal("0.2"))
            ledger.add_balance("2", Decimal("0.2"))
            assert ledger.get_balance("1") == Decimal("0.6")
            assert ledger.get_balance("2") == Decimal("0.2")

            init_db(engine)  # nothing left to add
        finally:
            engine.dispose()

    def test_alembic_upgrade_after_init_db_bootstrap(self, tmp_path, clean_env):
        url = f"sqlite:///{tmp_path / 'gk.db'}"
        engine = create_db_engine(url)
        try:
            init_db(engine)
            SqlLedger(engine).add_balance("1", Decimal("0.2"))

            clean_env["DATABASE_URL"] = url
            cfg = Config()
            cfg.set_main_option("script_location", str(ALEMBIC_DIR))
            command.upgrade(cfg, "head")

            assert inspect(engine).has_table("alembic_version")
            with engine.connect() as conn:
                version = conn.execute(text("SELECT version_num FROM alembic_version")).scalar()
            assert version == "8d2f5b6a1c47"
            assert SqlLedger(engine).get_balance("1") == Decimal("0.2")
        finally:
            engine.dispose()
