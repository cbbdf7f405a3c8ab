"""
gatekeeper.bot.core — Bot Instance & Cog Loader
================================================

**Why this file exists:**
Defines :class:`GatekeeperBot`, a ``commands.Bot`` subclass that:

1. Carries the explicitly constructed runtime context — config, secrets,
   DB engine, ledger, command router, onboarding provisioner — so every
   Cog reaches it via ``self.bot.*`` instead of module globals.
2. Loads every Cog listed in :data:`EXTENSIONS`.
3. Registers the slash-command schema once at startup (guild-scoped for
   dev, global for production — controlled by ``DEV_GUILD_ID``).

Registration is idempotent on Discord's side, and a failure is logged
rather than fatal so the bot stays reachable.
"""

from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands
from sqlalchemy import Engine

from gatekeeper.config import GatekeeperConfig, Secrets
from gatekeeper.services.commands import CommandRouter
from gatekeeper.services.ledger import Ledger
from gatekeeper.services.onboarding import OnboardingProvisioner

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "gatekeeper.bot.cogs.ledger",
    "gatekeeper.bot.cogs.membership",
]


class GatekeeperBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state.

    Parameters
    ----------
    cfg:
        Soft settings from ``config.yaml``.
    secrets:
        Identities from the environment (operator, application ID, …).
    engine:
        SQLAlchemy engine, or ``None`` in degraded mode.
    ledger:
        Balance store the router reads and writes.
    """

    def __init__(
        self,
        cfg: GatekeeperConfig,
        secrets: Secrets,
        engine: Engine | None,
        ledger: Ledger,
    ) -> None:
        # Privileged intents (must enable in Developer Portal):
        #   GUILD_MEMBERS — join events for onboarding channels
        intents = discord.Intents.default()
        intents.members = True
        intents.presences = False

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            application_id=int(secrets.client_id) if secrets.client_id else None,
        )

        self.cfg = cfg
        self.secrets = secrets
        self.engine = engine
        self.ledger = ledger
        self.router = CommandRouter(ledger, secrets.operator_id, cfg)
        self.provisioner = OnboardingProvisioner(secrets.operator_id, cfg)

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Called once before the bot connects to Discord.

        Loads the Cogs, then registers the command schema.  A broken Cog or
        a failed sync is logged and skipped.
        """
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

        await self.sync_commands()

    async def sync_commands(self) -> list[app_commands.AppCommand]:
        """Push the slash-command schema to Discord.  Returns what was synced."""
        dev_guild_id = self.secrets.dev_guild_id
        try:
            if dev_guild_id:
                guild = discord.Object(id=dev_guild_id)
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                logger.info("Synced %d commands to dev guild %s", len(synced), dev_guild_id)
            else:
                synced = await self.tree.sync()
                logger.info("Synced %d commands globally", len(synced))
        except (discord.HTTPException, app_commands.AppCommandError):
            logger.exception("Error registering commands")
            return []
        return synced

    async def on_ready(self) -> None:
        """Fired when the bot has connected and the cache is populated."""
        assert self.user is not None  # guaranteed after on_ready
        logger.info("Logged in as %s (ID: %s)", self.user, self.user.id)
