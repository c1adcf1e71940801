"""Data models for guest access."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from safir.datetime import current_datetime

__all__ = ["GuestLogin", "GuestSession", "GuestUser"]


@dataclass(frozen=True, slots=True)
class GuestSession:
    """A guest link created by an administrator."""

    token: str
    """Random token identifying the session in the guest link."""

    created: datetime
    """When the session was created."""

    expires: datetime
    """When the session and all guest logins created from it expire."""

    creator: str | None = None
    """Username of the administrator who created it, if known."""

    def is_expired(self) -> bool:
        """Whether the session is past its expiration time."""
        return self.expires <= current_datetime(microseconds=True)


@dataclass(frozen=True, slots=True)
class GuestUser:
    """A guest login created by following a guest link."""

    username: str
    """Name the guest connects to Mumble with."""

    session: str
    """Token of the guest session the login was created from."""

    password_hash: str
    """bcrypt hash of the guest password."""

    created: datetime
    """When the login was created."""


@dataclass(frozen=True, slots=True)
class GuestLogin:
    """Credentials handed to a guest exactly once."""

    username: str
    """Name the guest connects to Mumble with."""

    password: str
    """Plaintext password. Only the hash is retained."""

    session: str
    """Token of the guest session the login was created from."""

    mumble_link: str
    """``mumble://`` URL including the credentials."""
