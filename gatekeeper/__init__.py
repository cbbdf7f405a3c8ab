"""
Gatekeeper — Invite Verification & Balance Bot for Discord
============================================================
Opens a private verify channel for every member who joins, and keeps a
per-user balance that the server owner credits (or debits) whenever an
invite is verified.

Package layout::

    gatekeeper/
    ├── config.py          # .env secrets + config.yaml soft settings
    ├── errors.py          # StorageUnavailable, AuthorizationDenied, ...
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # balances table
    ├── services/
    │   ├── ledger.py      # get / add / leaderboard over the balances table
    │   ├── commands.py    # command-name → handler router
    │   └── onboarding.py  # private verify-channel provisioning
    └── bot/
        ├── core.py        # Bot subclass, cog loader, command sync
        └── cogs/
            ├── ledger.py      # /balance, /verify, /unverify, /leaderboard
            └── membership.py  # on_member_join → onboarding channel
"""

__version__ = "0.1.0"
