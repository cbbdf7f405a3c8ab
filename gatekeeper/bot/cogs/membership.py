"""
gatekeeper.bot.cogs.membership — Member Join → Verify Channel
==============================================================

Listens for GUILD_MEMBER_ADD and hands the member to the
:class:`~gatekeeper.services.onboarding.OnboardingProvisioner`.
Requires the GUILD_MEMBERS privileged intent.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

if TYPE_CHECKING:
    from gatekeeper.bot.core import GatekeeperBot

logger = logging.getLogger(__name__)


class Membership(commands.Cog, name="Membership"):
    """Opens a private verify channel for every new member."""

    def __init__(self, bot: GatekeeperBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_member_join(self, member: discord.Member) -> None:
        """GUILD_MEMBER_ADD → private verify channel."""
        try:
            logger.info("Member joined: %s (ID: %d)", member.display_name, member.id)
            await self.bot.provisioner.provision(member)
        except Exception:
            logger.exception(
                "Error processing member_join for %s", member.id,
                extra={"event_type": "member_join", "user_id": member.id},
            )


async def setup(bot: GatekeeperBot) -> None:
    await bot.add_cog(Membership(bot))
