"""
gatekeeper.services.onboarding — Private Verify-Channel Provisioning
=====================================================================

When a member joins, Gatekeeper opens a text channel only three parties
can see — the new member, the operator, and the bot itself — and posts
the verification questions into it.

Provisioning is best-effort.  A duplicate name, a missing ``Manage
Channels`` permission or a Discord outage is logged and dropped; there is
no retry and no later remediation.
"""

from __future__ import annotations

import logging
import re

import discord

from gatekeeper.config import DEFAULT_CHANNEL_PREFIX, GatekeeperConfig
from gatekeeper.errors import ExternalApiFailure

logger = logging.getLogger(__name__)

_INVALID_CHANNEL_CHARS = re.compile(r"[^a-z0-9-]")
MAX_CHANNEL_NAME = 100  # Discord hard limit


def channel_name_for(name: str, prefix: str = DEFAULT_CHANNEL_PREFIX) -> str:
    """Derive a channel name: lowercase, then drop anything outside ``[a-z0-9-]``.

    >>> channel_name_for("Drew.Dev 🚀")
    'verify-drewdev'
    """
    return _INVALID_CHANNEL_CHARS.sub("", f"{prefix}{name}".lower())[:MAX_CHANNEL_NAME]


class OnboardingProvisioner:
    """Creates the per-member verify channel.

    Parameters
    ----------
    operator_id:
        Discord user ID granted access to every verify channel.  ``None``
        leaves the channel visible to the member only.
    settings:
        Supplies the channel prefix and welcome copy.
    """

    def __init__(
        self,
        operator_id: str | None,
        settings: GatekeeperConfig | None = None,
    ) -> None:
        self.operator_id = operator_id
        self.settings = settings or GatekeeperConfig()

    def _operator_target(self, guild: discord.Guild) -> discord.abc.Snowflake | None:
        if not self.operator_id:
            return None
        if not self.operator_id.isdigit():
            logger.warning("OWNER_ID %r is not a Discord snowflake — ignoring", self.operator_id)
            return None
        operator_id = int(self.operator_id)
        return guild.get_member(operator_id) or discord.Object(id=operator_id, type=discord.Member)

    def overwrites_for(
        self, member: discord.Member,
    ) -> dict[discord.abc.Snowflake, discord.PermissionOverwrite]:
        """Hide the channel from ``@everyone``; open it to the member and operator."""
        guild = member.guild
        participant = discord.PermissionOverwrite(
            view_channel=True,
            send_messages=True,
            read_message_history=True,
        )
        overwrites: dict[discord.abc.Snowflake, discord.PermissionOverwrite] = {
            guild.default_role: discord.PermissionOverwrite(view_channel=False),
            member: participant,
        }
        operator = self._operator_target(guild)
        if operator is not None:
            overwrites[operator] = participant
        return overwrites

    def welcome_message_for(self, member: discord.Member) -> str:
        return self.settings.welcome_message.replace("{member}", member.mention)

    async def create_channel(self, member: discord.Member) -> discord.TextChannel:
        """Create the channel and post the welcome message.

        Raises
        ------
        ExternalApiFailure
            If Discord rejects either call.
        """
        name = channel_name_for(member.display_name, self.settings.channel_prefix)
        try:
            channel = await member.guild.create_text_channel(
                name=name,
                overwrites=self.overwrites_for(member),
                reason=f"Gatekeeper: verify channel for {member}",
            )
            await channel.send(self.welcome_message_for(member))
        except discord.HTTPException as exc:
            raise ExternalApiFailure(
                f"could not provision #{name} in guild {member.guild.id}: {exc}"
            ) from exc
        return channel

    async def provision(self, member: discord.Member) -> discord.TextChannel | None:
        """Handle one member join.  Never raises; returns ``None`` on failure."""
        if member.bot:
            return None
        try:
            channel = await self.create_channel(member)
        except ExternalApiFailure:
            logger.exception("Error creating verify channel for %s", member.id)
            return None
        logger.info("Created channel %s for %s", channel.name, member)
        return channel
