"""Data models for LDAP."""

from __future__ import annotations

from enum import Enum

__all__ = ["BindResult", "ConnectionRelease"]


class BindResult(Enum):
    """Outcome of an LDAP bind that did not fail with an error."""

    success = "success"
    """The password is correct for the DN."""

    invalid_credentials = "invalid_credentials"
    """The LDAP server rejected the password."""


class ConnectionRelease(Enum):
    """How an LDAP connection is returned to the connection pool."""

    reuse = "reuse"
    """The connection is still anonymous and can be handed out again."""

    defunct = "defunct"
    """The connection must be closed so that the pool opens a fresh one.

    Used for any connection whose authentication identity has changed.
    """
