"""Combined authentication of Murmur users."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from structlog.stdlib import BoundLogger

from ..models.auth import Authenticated, AuthResult, Rejected
from ..util import username_to_id

__all__ = ["AuthenticationService", "Authenticator"]


class Authenticator(Protocol):
    """A source of user credentials."""

    async def authenticate(self, username: str, password: str) -> AuthResult:
        """Authenticate a user.

        Must return `~murmurauth.models.auth.Rejected` rather than raise an
        exception if the source cannot be queried.
        """


class AuthenticationService:
    """Authenticate Murmur users against every configured source in order.

    Directory users always take precedence over guests with the same name,
    so the LDAP authenticator comes first. The first source that accepts the
    credentials determines the result and later sources are not consulted.

    Parameters
    ----------
    authenticators
        Credential sources in priority order.
    logger
        Logger to use.
    """

    def __init__(
        self, authenticators: Sequence[Authenticator], logger: BoundLogger
    ) -> None:
        self._authenticators = authenticators
        self._logger = logger

    async def authenticate(self, username: str, password: str) -> AuthResult:
        """Authenticate a user.

        Parameters
        ----------
        username
            Username as entered in the Mumble client.
        password
            Password as entered in the Mumble client.

        Returns
        -------
        AuthResult
            The result of the first authenticator that accepted the
            credentials, or `Rejected` if none did. An authenticator that
            raises an exception is logged and treated as rejecting the
            credentials.
        """
        for authenticator in self._authenticators:
            try:
                result = await authenticator.authenticate(username, password)
            except Exception:
                self._logger.exception(
                    "Unexpected error from authenticator", user=username
                )
                continue
            if isinstance(result, Authenticated):
                return result
        self._logger.info("Authentication failed", user=username)
        return Rejected()

    def name_to_id(self, username: str) -> int:
        """Return the numeric ID for a username.

        This does not check whether the user exists.
        """
        return username_to_id(username)
