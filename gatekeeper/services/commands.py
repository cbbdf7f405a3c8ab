"""
gatekeeper.services.commands — Slash-Command Router
=====================================================

Maps a command name to a handler with one uniform contract::

    async def handler(invocation: Invocation, router: CommandRouter) -> Reply

Handlers only see the :class:`Invocation` (who ran what, with which user
options) and the router (ledger + settings), so each can be tested against
a fake ledger with no Discord objects at all.  The Discord side —
acknowledging the interaction, then editing in the final content — lives
in :mod:`gatekeeper.bot.cogs.ledger`.

Commands:
- balance     — invoker's own balance (private)
- verify      — operator only; credit the inviter (public)
- unverify    — operator only; debit the inviter (public)
- leaderboard — top balances (public)

``unverify`` is not linked to any earlier ``verify``: it always debits the
inviter, even if that pairing was never verified, and may push the balance
below zero.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from decimal import Decimal

from gatekeeper.config import GatekeeperConfig
from gatekeeper.database.engine import run_db
from gatekeeper.errors import AuthorizationDenied, StorageUnavailable
from gatekeeper.services.ledger import Ledger

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "❌ Only the owner can use this command."
BALANCE_ERROR = "Error retrieving your balance."
UPDATE_ERROR = "Error updating balance."
LEADERBOARD_ERROR = "Error retrieving leaderboard."
LEADERBOARD_EMPTY = "\U0001f3c6 No data yet!"


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class UserRef:
    """A Discord user passed as a command option."""

    id: str
    name: str

    @property
    def mention(self) -> str:
        return f"<@{self.id}>"


@dataclass(frozen=True, slots=True)
class Invocation:
    """One slash-command event, stripped of Discord types."""

    user_id: str
    command: str
    options: dict[str, UserRef] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Reply:
    """Final content for an interaction and whether only the invoker sees it."""

    content: str
    ephemeral: bool = False


Handler = Callable[[Invocation, "CommandRouter"], Awaitable[Reply]]


@dataclass(frozen=True, slots=True)
class CommandSpec:
    handler: Handler
    privileged: bool = False  # operator only
    ephemeral: bool = False  # reply visible to the invoker only


def format_amount(value: Decimal) -> str:
    """Render a balance with two decimals (``0.2`` → ``0.20``)."""
    return f"{value:.2f}"


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------
async def handle_balance(invocation: Invocation, router: CommandRouter) -> Reply:
    try:
        balance = await run_db(router.ledger.get_balance, invocation.user_id)
    except StorageUnavailable:
        logger.exception("Balance error for %s", invocation.user_id)
        return Reply(BALANCE_ERROR, ephemeral=True)
    return Reply(
        f"\U0001f4b0 Your current balance is **{format_amount(balance)}**",
        ephemeral=True,
    )


async def _adjust_inviter(
    invocation: Invocation, router: CommandRouter, delta: Decimal,
) -> bool:
    """Apply *delta* to the inviter.  Returns False if the store failed."""
    inviter = invocation.options["inviter"]
    try:
        await run_db(router.ledger.add_balance, inviter.id, delta)
    except StorageUnavailable:
        logger.exception(
            "%s error applying %s to %s", invocation.command.title(), delta, inviter.id,
        )
        return False
    logger.info(
        "/%s by %s: member=%s inviter=%s delta=%s",
        invocation.command, invocation.user_id,
        invocation.options["member"].id, inviter.id, delta,
    )
    return True


async def handle_verify(invocation: Invocation, router: CommandRouter) -> Reply:
    member = invocation.options["member"]
    inviter = invocation.options["inviter"]
    reward = router.settings.verify_reward
    if not await _adjust_inviter(invocation, router, reward):
        return Reply(UPDATE_ERROR)
    return Reply(
        f"✅ Verified **{member.name}** was invited by **{inviter.name}**.\n"
        f"Added **{format_amount(reward)}** to {inviter.name}'s balance."
    )


async def handle_unverify(invocation: Invocation, router: CommandRouter) -> Reply:
    member = invocation.options["member"]
    inviter = invocation.options["inviter"]
    reward = router.settings.verify_reward
    if not await _adjust_inviter(invocation, router, -reward):
        return Reply(UPDATE_ERROR)
    return Reply(
        f"↩️ Unverified **{member.name}** who was invited by **{inviter.name}**.\n"
        f"Removed **{format_amount(reward)}** from {inviter.name}'s balance."
    )


async def handle_leaderboard(invocation: Invocation, router: CommandRouter) -> Reply:
    size = router.settings.leaderboard_size
    try:
        rows = await run_db(router.ledger.get_leaderboard, size)
    except StorageUnavailable:
        logger.exception("Leaderboard error")
        return Reply(LEADERBOARD_ERROR)

    if not rows:
        return Reply(LEADERBOARD_EMPTY)

    lines = [
        f"{i}. <@{row.user_id}> — **{format_amount(row.balance)}**"
        for i, row in enumerate(rows, 1)
    ]
    return Reply(f"\U0001f3c6 **Top {size} Leaderboard**\n\n" + "\n".join(lines))


COMMANDS: dict[str, CommandSpec] = {
    "balance": CommandSpec(handle_balance, ephemeral=True),
    "verify": CommandSpec(handle_verify, privileged=True),
    "unverify": CommandSpec(handle_unverify, privileged=True),
    "leaderboard": CommandSpec(handle_leaderboard),
}


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------
class CommandRouter:
    """Dispatches invocations to :data:`COMMANDS` and gates operator commands.

    Parameters
    ----------
    ledger:
        Balance store (SQL or degraded).
    operator_id:
        The one Discord user ID allowed to run privileged commands.
        ``None`` means nobody is.
    settings:
        Soft settings (reward size, leaderboard length).
    """

    def __init__(
        self,
        ledger: Ledger,
        operator_id: str | None,
        settings: GatekeeperConfig | None = None,
    ) -> None:
        self.ledger = ledger
        self.operator_id = operator_id
        self.settings = settings or GatekeeperConfig()

    def requires_operator(self, command: str) -> bool:
        return COMMANDS[command].privileged

    def is_ephemeral(self, command: str) -> bool:
        return COMMANDS[command].ephemeral

    def authorize(self, invocation: Invocation) -> None:
        """Raise :class:`AuthorizationDenied` unless the invoker may run the command."""
        if not self.requires_operator(invocation.command):
            return
        if self.operator_id is None or invocation.user_id != self.operator_id:
            raise AuthorizationDenied(invocation.user_id, invocation.command)

    def rejection_for(self, invocation: Invocation) -> Reply | None:
        """Return the private rejection reply, or ``None`` if allowed."""
        try:
            self.authorize(invocation)
        except AuthorizationDenied as exc:
            logger.warning("Rejected: %s", exc)
            return Reply(UNAUTHORIZED_MESSAGE, ephemeral=True)
        return None

    async def dispatch(self, invocation: Invocation) -> Reply:
        """Run the handler for *invocation* and return its reply.

        Storage failures come back as error replies, never as exceptions.
        Unknown command names raise :class:`KeyError`.
        """
        spec = COMMANDS[invocation.command]
        rejection = self.rejection_for(invocation)
        if rejection is not None:
            return rejection
        return await spec.handler(invocation, self)
