"""Exceptions for murmurauth."""

from __future__ import annotations

from fastapi import status
from safir.fastapi import ClientRequestError
from safir.models import ErrorLocation
from safir.slack.blockkit import SlackException

__all__ = [
    "ExternalUserInfoError",
    "GuestLoginError",
    "InvalidGuestSessionError",
    "LDAPError",
    "UsernameTakenError",
]


class GuestLoginError(ClientRequestError):
    """Base class for user errors while claiming a guest login.

    These are shown to the person following a guest link and never reach the
    Murmur server.
    """


class InvalidGuestSessionError(GuestLoginError):
    """The guest link is unknown or has expired."""

    error = "invalid_session"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(
        self, message: str = "Invalid or expired guest link."
    ) -> None:
        super().__init__(message, ErrorLocation.body, ["session"])


class UsernameTakenError(GuestLoginError):
    """The requested guest username already belongs to an active guest."""

    error = "username_taken"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "Username already taken.") -> None:
        super().__init__(message, ErrorLocation.body, ["username"])


class ExternalUserInfoError(SlackException):
    """Error in an external source of user information.

    The directory may be affected by an outage, and we don't want an uncaught
    exception for every connection attempt to Murmur, so this exception base
    class is used to catch those errors in the authenticator and only log
    them.
    """


class LDAPError(ExternalUserInfoError):
    """User or group information in LDAP was invalid or LDAP calls failed."""
