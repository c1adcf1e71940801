"""Authentication of users against LDAP."""

from __future__ import annotations

from structlog.stdlib import BoundLogger

from ..exceptions import LDAPError
from ..models.auth import Authenticated, AuthResult, Rejected
from ..models.ldap import BindResult
from ..storage.ldap import LDAPStorage
from ..util import username_to_id

__all__ = ["LDAPService"]


class LDAPService:
    """Authenticate users with their LDAP password.

    The user is found with an anonymous search, the password is checked by
    binding as that user, and the groups of the user are then retrieved and
    passed on to Murmur.

    Parameters
    ----------
    ldap
        The underlying LDAP query layer.
    logger
        Logger to use.
    """

    def __init__(self, ldap: LDAPStorage, logger: BoundLogger) -> None:
        self._ldap = ldap
        self._logger = logger

    async def authenticate(self, username: str, password: str) -> AuthResult:
        """Authenticate a user against LDAP.

        Parameters
        ----------
        username
            Username as entered in the Mumble client.
        password
            Password as entered in the Mumble client.

        Returns
        -------
        AuthResult
            `Authenticated` with the user's groups if the user exists and the
            password is correct. `Rejected` otherwise, including if LDAP
            could not be queried.
        """
        logger = self._logger.bind(user=username)
        logger.debug("Attempting LDAP authentication")
        operation = "find_user"
        try:
            dn = await self._ldap.find_user(username)
            if not dn:
                logger.info("Invalid LDAP credentials", reason="unknown user")
                return Rejected()
            operation = "bind"
            result = await self._ldap.bind_as(dn, password)
            if result == BindResult.invalid_credentials:
                logger.info("Invalid LDAP credentials", reason="bad password")
                return Rejected()
            operation = "find_groups"
            groups = await self._ldap.find_groups(dn)
        except LDAPError as e:
            logger.error(
                "Error authenticating with LDAP",
                error=str(e),
                operation=operation,
            )
            return Rejected()

        logger.info("Successful LDAP login", groups=groups)
        return Authenticated(id=username_to_id(username), groups=groups)
