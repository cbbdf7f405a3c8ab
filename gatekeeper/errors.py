"""
gatekeeper.errors — Exception Taxonomy
=======================================

Every failure Gatekeeper knows how to absorb.  None of these is allowed to
escape an event handler: they are turned into a reply or a log line where
they happen.
"""

from __future__ import annotations


class GatekeeperError(Exception):
    """Base class for all Gatekeeper errors."""


class StorageUnavailable(GatekeeperError):
    """The balance store could not be reached or the query failed."""


class AuthorizationDenied(GatekeeperError):
    """A non-operator tried to run an operator-only command."""

    def __init__(self, user_id: str, command: str) -> None:
        super().__init__(f"user {user_id} may not run /{command}")
        self.user_id = user_id
        self.command = command


class ExternalApiFailure(GatekeeperError):
    """A Discord API call (channel creation, reply, sync) failed."""
