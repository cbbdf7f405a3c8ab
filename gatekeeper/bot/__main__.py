"""
gatekeeper.bot.__main__ — Entry point for ``python -m gatekeeper.bot``
=======================================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (soft settings, optional).
3. Create the SQLAlchemy engine and ensure the balances table exists —
   or fall back to degraded mode when there is no database.
4. Build the ledger.
5. Create the GatekeeperBot and hand it config + engine + ledger.
6. Start the bot (blocking — runs the asyncio event loop).

Run with::

    python -m gatekeeper.bot
"""

from __future__ import annotations

import logging
import sys

from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from gatekeeper.bot.core import GatekeeperBot
from gatekeeper.config import load_config, load_secrets
from gatekeeper.database.engine import create_db_engine, init_db
from gatekeeper.services.ledger import build_ledger

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("gatekeeper")


def main() -> None:
    """Bootstrap and run the Gatekeeper bot."""

    # 1. Environment variables (secrets).
    load_dotenv()
    secrets = load_secrets()

    if not secrets.token:
        logger.critical(
            "DISCORD_TOKEN is not set.  "
            "Copy .env.example → .env and paste your bot token."
        )
        sys.exit(1)
    if not secrets.operator_id:
        logger.warning("OWNER_ID is not set — /verify and /unverify will reject everyone.")

    # 2. Soft configuration.
    cfg = load_config()
    logger.info(
        "Config loaded — reward %s, leaderboard top %d",
        cfg.verify_reward, cfg.leaderboard_size,
    )

    # 3. Database.  Failure here leaves the bot running without persistence.
    engine = create_db_engine(secrets.database_url)
    if engine is not None:
        try:
            init_db(engine)
            logger.info("Connected to Postgres")
        except SQLAlchemyError:
            logger.exception("Database connection error")

    # 4. Ledger.
    ledger = build_ledger(engine)

    # 5. Bot.
    bot = GatekeeperBot(cfg=cfg, secrets=secrets, engine=engine, ledger=ledger)

    # 6. Run (blocks until Ctrl+C or SIGTERM).
    logger.info("Starting Gatekeeper bot…")
    try:
        bot.run(secrets.token, log_handler=None)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
