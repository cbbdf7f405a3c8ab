"""
gatekeeper.config — Environment & YAML Configuration Loader
=============================================================

Two layers, kept apart on purpose:

* **Secrets / identities** come from the environment (``.env`` is loaded by
  the entry point).  See :func:`load_secrets`.
* **Soft settings** (reward size, leaderboard length, onboarding copy) come
  from ``config.yaml``.  See :func:`load_config`.  The file is optional;
  every key has a default matching the original bot's behaviour.

Usage::

    from gatekeeper.config import load_config, load_secrets

    secrets = load_secrets()     # DISCORD_TOKEN, OWNER_ID, DATABASE_URL …
    cfg = load_config()          # reads ./config.yaml if present
    print(cfg.verify_reward)     # Decimal('0.2')
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_VERIFY_REWARD = Decimal("0.2")
DEFAULT_LEADERBOARD_SIZE = 15
DEFAULT_CHANNEL_PREFIX = "verify-"
DEFAULT_WELCOME_MESSAGE = (
    "\U0001f44b welcome {member}! please verify yourself here by telling us:\n"
    "1. any of your social media profiles\n"
    "2. who invited you?\n"
    "3. how hard you work?"
)


# ---------------------------------------------------------------------------
# Secrets — environment only
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Secrets:
    """Identity and credential values read from the environment."""

    token: str | None
    operator_id: str | None  # The single Discord user allowed to /verify
    client_id: str | None  # Application ID, used for command registration
    database_url: str | None  # None → degraded mode, no persistence
    dev_guild_id: int | None = None  # Sync commands to one guild for fast iteration


def normalize_database_url(url: str | None) -> str | None:
    """Return *url* in a form SQLAlchemy accepts.

    Hosted Postgres providers still hand out ``postgres://`` URLs, a scheme
    SQLAlchemy 1.4+ refuses.  Blank values collapse to ``None``.
    """
    if not url or not url.strip():
        return None
    url = url.strip()
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url


def _env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_snowflake(name: str) -> str | None:
    """Like :func:`_env`, but drops values that are not a numeric Discord ID."""
    value = _env(name)
    if value is not None and not value.isdecimal():
        logger.warning("%s=%r is not a numeric Discord ID; ignoring it.", name, value)
        return None
    return value


def load_secrets() -> Secrets:
    """Read :class:`Secrets` from the current environment.

    ``TOKEN`` is accepted as a fallback for ``DISCORD_TOKEN``.  A non-numeric
    ``CLIENT_ID`` or ``DEV_GUILD_ID`` is logged and treated as unset.
    """
    dev_guild = _env_snowflake("DEV_GUILD_ID")
    return Secrets(
        token=_env("DISCORD_TOKEN") or _env("TOKEN"),
        operator_id=_env("OWNER_ID"),
        client_id=_env_snowflake("CLIENT_ID"),
        database_url=normalize_database_url(os.getenv("DATABASE_URL")),
        dev_guild_id=int(dev_guild) if dev_guild else None,
    )


# ---------------------------------------------------------------------------
# Soft settings — config.yaml
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class GatekeeperConfig:
    """Immutable soft settings loaded from ``config.yaml``."""

    # Ledger
    verify_reward: Decimal = DEFAULT_VERIFY_REWARD
    leaderboard_size: int = DEFAULT_LEADERBOARD_SIZE

    # Onboarding
    channel_prefix: str = DEFAULT_CHANNEL_PREFIX
    welcome_message: str = DEFAULT_WELCOME_MESSAGE


def load_config(path: str | Path = "config.yaml") -> GatekeeperConfig:
    """Read *path* and return a :class:`GatekeeperConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    ValueError
        If a key holds a value of the wrong shape (non-numeric reward,
        non-positive leaderboard size, …).
    """
    config_path = Path(path)
    if not config_path.exists():
        logger.warning(
            "Configuration file %s not found — using built-in defaults.",
            config_path.resolve(),
        )
        return GatekeeperConfig()

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    try:
        reward = Decimal(str(raw.get("verify_reward", DEFAULT_VERIFY_REWARD)))
    except InvalidOperation as exc:
        raise ValueError(f"verify_reward must be a number, got {raw['verify_reward']!r}") from exc

    size = int(raw.get("leaderboard_size", DEFAULT_LEADERBOARD_SIZE))
    if size <= 0:
        raise ValueError(f"leaderboard_size must be positive, got {size}")

    return GatekeeperConfig(
        verify_reward=reward,
        leaderboard_size=size,
        channel_prefix=str(raw.get("channel_prefix", DEFAULT_CHANNEL_PREFIX)),
        welcome_message=str(raw.get("welcome_message", DEFAULT_WELCOME_MESSAGE)),
    )
