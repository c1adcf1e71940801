"""Murmur server authenticator callbacks.

Murmur calls an external authenticator through its ``ServerAuthenticator``
RPC interface. This module implements the semantics of that interface on top
of `~murmurauth.services.authenticator.AuthenticationService`, translating
authentication results into the return values Murmur expects. Registering
the callbacks with a running Murmur server is the job of the RPC transport.
"""

from __future__ import annotations

from structlog.stdlib import BoundLogger

from .constants import AUTH_FAILURE
from .models.auth import Authenticated
from .services.authenticator import AuthenticationService

__all__ = ["MurmurAuthenticator"]


class MurmurAuthenticator:
    """Implementation of the Murmur ``ServerAuthenticator`` callbacks.

    Callbacks that map a numeric ID back to a user are not implemented,
    since IDs are one-way hashes of usernames.

    Parameters
    ----------
    authentication_service
        Service that makes the authentication decision.
    logger
        Logger to use.
    """

    def __init__(
        self,
        authentication_service: AuthenticationService,
        logger: BoundLogger,
    ) -> None:
        self._service = authentication_service
        self._logger = logger

    async def authenticate(
        self,
        name: str,
        pw: str,
        certificates: list[bytes] | None = None,
        certhash: str = "",
        certstrong: bool = False,
    ) -> tuple[int, str | None, list[str] | None]:
        """Authenticate a user connecting to Murmur.

        Certificate information is accepted but ignored.

        Parameters
        ----------
        name
            Username the client connected with.
        pw
            Password the client connected with.
        certificates
            Certificate chain of the client.
        certhash
            Hash of the client certificate.
        certstrong
            Whether the client certificate was verified by a known CA.

        Returns
        -------
        tuple
            The numeric user ID (``-1`` if authentication failed), the name
            the user should be shown as (or `None` to keep the name the user
            connected with), and the groups of the user (or `None` if
            authentication failed). Errors are logged and reported to
            Murmur as failed authentication.
        """
        self._logger.debug("Murmur authentication request", user=name)
        try:
            result = await self._service.authenticate(name, pw)
        except Exception:
            self._logger.exception("Authentication failed", user=name)
            return (AUTH_FAILURE, None, None)
        if not isinstance(result, Authenticated):
            return (AUTH_FAILURE, None, None)
        return (result.id, result.display_name, list(result.groups))

    def name_to_id(self, name: str) -> int:
        """Return the numeric ID for a username.

        Always succeeds, whether or not the user has ever authenticated.
        """
        return self._service.name_to_id(name)

    def get_info(self, id: int) -> tuple[bool, dict[str, str]]:
        """Return registration information for a user ID.

        Not available. Murmur falls back on its own information.
        """
        return (False, {})

    def id_to_name(self, id: int) -> str:
        """Return the username for a user ID.

        Not available, since IDs cannot be reversed.
        """
        return ""

    def id_to_texture(self, id: int) -> bytes:
        """Return the avatar texture for a user ID.

        Not available.
        """
        return b""
