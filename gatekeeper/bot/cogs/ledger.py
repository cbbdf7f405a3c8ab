"""
gatekeeper.bot.cogs.ledger — Balance Slash Commands
=====================================================

Slash commands backed by the ledger:
- /balance — your own balance (only you see the reply)
- /verify — owner only; +reward to the inviter
- /unverify — owner only; −reward from the inviter
- /leaderboard — top balances

Every command answers in two phases.  Discord drops an interaction that
isn't acknowledged within three seconds, so the cog defers first and only
then waits on the database; the final text is edited into the deferred
response once the router returns.  Operator checks happen before the
defer, so a rejected caller gets an immediate private reply and the store
is never touched.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from gatekeeper.errors import ExternalApiFailure
from gatekeeper.services.commands import Invocation, Reply, UserRef

if TYPE_CHECKING:
    from gatekeeper.bot.core import GatekeeperBot

logger = logging.getLogger(__name__)


def _ref(user: discord.abc.User) -> UserRef:
    return UserRef(id=str(user.id), name=user.name)


class Balances(commands.Cog, name="Balances"):
    """Balance lookup, operator verification and the leaderboard."""

    def __init__(self, bot: GatekeeperBot) -> None:
        self.bot = bot

    # -------------------------------------------------------------------
    # Two-phase reply
    # -------------------------------------------------------------------
    async def _reject(self, interaction: discord.Interaction, reply: Reply) -> None:
        try:
            await interaction.response.send_message(reply.content, ephemeral=True)
        except discord.HTTPException as exc:
            raise ExternalApiFailure(f"could not send rejection: {exc}") from exc

    async def _acknowledge(self, interaction: discord.Interaction, ephemeral: bool) -> None:
        try:
            await interaction.response.defer(ephemeral=ephemeral)
        except discord.HTTPException as exc:
            raise ExternalApiFailure(f"could not defer interaction: {exc}") from exc

    async def _fill(self, interaction: discord.Interaction, reply: Reply) -> None:
        try:
            await interaction.edit_original_response(content=reply.content)
        except discord.HTTPException as exc:
            raise ExternalApiFailure(f"could not edit interaction response: {exc}") from exc

    async def _run(self, interaction: discord.Interaction, invocation: Invocation) -> None:
        router = self.bot.router
        try:
            rejection = router.rejection_for(invocation)
            if rejection is not None:
                await self._reject(interaction, rejection)
                return

            await self._acknowledge(interaction, router.is_ephemeral(invocation.command))
            reply = await router.dispatch(invocation)
            await self._fill(interaction, reply)
        except ExternalApiFailure:
            logger.exception("/%s reply failed for %s", invocation.command, invocation.user_id)

    # -------------------------------------------------------------------
    # /balance
    # -------------------------------------------------------------------
    @app_commands.command(name="balance", description="Check your current balance")
    async def balance(self, interaction: discord.Interaction) -> None:
        await self._run(interaction, Invocation(str(interaction.user.id), "balance"))

    # -------------------------------------------------------------------
    # /verify
    # -------------------------------------------------------------------
    @app_commands.command(
        name="verify",
        description="Verify who invited a new member (owner only)",
    )
    @app_commands.describe(
        member="Member who was invited",
        inviter="User who invited the member",
    )
    async def verify(
        self,
        interaction: discord.Interaction,
        member: discord.User,
        inviter: discord.User,
    ) -> None:
        await self._run(interaction, Invocation(
            str(interaction.user.id),
            "verify",
            {"member": _ref(member), "inviter": _ref(inviter)},
        ))

    # -------------------------------------------------------------------
    # /unverify
    # -------------------------------------------------------------------
    @app_commands.command(
        name="unverify",
        description="Undo a verification (owner only, removes the reward from the inviter)",
    )
    @app_commands.describe(
        member="Member to unverify",
        inviter="Inviter to remove balance from",
    )
    async def unverify(
        self,
        interaction: discord.Interaction,
        member: discord.User,
        inviter: discord.User,
    ) -> None:
        await self._run(interaction, Invocation(
            str(interaction.user.id),
            "unverify",
            {"member": _ref(member), "inviter": _ref(inviter)},
        ))

    # -------------------------------------------------------------------
    # /leaderboard
    # -------------------------------------------------------------------
    @app_commands.command(name="leaderboard", description="Show the top users by balance")
    async def leaderboard(self, interaction: discord.Interaction) -> None:
        await self._run(interaction, Invocation(str(interaction.user.id), "leaderboard"))


async def setup(bot: GatekeeperBot) -> None:
    await bot.add_cog(Balances(bot))
