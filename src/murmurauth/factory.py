"""Create murmurauth components."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import aclosing, asynccontextmanager
from dataclasses import dataclass
from typing import Self

import structlog
from bonsai import LDAPClient
from bonsai.asyncio import AIOConnectionPool
from structlog.stdlib import BoundLogger

from .cache import GuestSessionCache, GuestUserCache
from .config import Config
from .murmur import MurmurAuthenticator
from .services.authenticator import AuthenticationService
from .services.guest import GuestService
from .services.ldap import LDAPService
from .storage.ldap import LDAPStorage

__all__ = ["Factory", "ProcessContext"]


@dataclass(frozen=True, slots=True)
class ProcessContext:
    """Per-process application context.

    This object caches all of the per-process singletons that can be reused
    for every request and only need to be recreated if the application
    configuration changes. All guest access state lives here, so the web
    application and the Murmur callbacks must share one process context.
    """

    config: Config
    """murmurauth's configuration."""

    ldap_pool: AIOConnectionPool
    """Connection pool of anonymous LDAP connections."""

    guest_session_cache: GuestSessionCache
    """Guest sessions created by administrators."""

    guest_user_cache: GuestUserCache
    """Guest logins created from guest sessions."""

    @classmethod
    async def from_config(cls, config: Config) -> Self:
        """Create a new process context from the murmurauth configuration.

        Parameters
        ----------
        config
            The murmurauth configuration.

        Returns
        -------
        ProcessContext
            Shared context for a murmurauth process.

        Notes
        -----
        The LDAP connection pool is opened on first use rather than here so
        that the guest web application can start while LDAP is unavailable.
        """
        client = LDAPClient(str(config.ldap.url))
        ldap_pool = AIOConnectionPool(
            client,
            minconn=config.ldap.pool_minconn,
            maxconn=config.ldap.pool_maxconn,
        )
        return cls(
            config=config,
            ldap_pool=ldap_pool,
            guest_session_cache=GuestSessionCache(),
            guest_user_cache=GuestUserCache(),
        )

    async def aclose(self) -> None:
        """Clean up a process context.

        Called during shutdown, or before recreating the process context using
        a different configuration.
        """
        if not self.ldap_pool.closed:
            await self.ldap_pool.close()
        await self.guest_session_cache.clear()
        await self.guest_user_cache.clear()


class Factory:
    """Build murmurauth components.

    Uses the contents of a `ProcessContext` to construct the components of the
    application on demand.

    Parameters
    ----------
    context
        Shared process context.
    logger
        Logger to use for errors.
    """

    @classmethod
    async def create(cls, config: Config) -> Self:
        """Create a component factory outside of a request.

        Intended for long-running processes other than the FastAPI web
        application. This class method should only be used in situations
        where an async context manager cannot be used.

        If an async context manager can be used, call `standalone` rather than
        this method.

        Parameters
        ----------
        config
            murmurauth configuration.

        Returns
        -------
        Factory
            Newly-created factory. The caller must call `aclose` on the
            returned object during shutdown.
        """
        logger = structlog.get_logger("murmurauth")
        context = await ProcessContext.from_config(config)
        return cls(context, logger)

    @classmethod
    @asynccontextmanager
    async def standalone(cls, config: Config) -> AsyncIterator[Self]:
        """Async context manager for murmurauth components.

        Intended for command-line tools and tests.

        Parameters
        ----------
        config
            murmurauth configuration.

        Yields
        ------
        Factory
            The factory. Must be used as an async context manager.

        Examples
        --------
        .. code-block:: python

           async with Factory.standalone(config) as factory:
               guest_service = factory.create_guest_service()
               session = await guest_service.issue_session()
        """
        factory = await cls.create(config)
        async with aclosing(factory):
            yield factory

    def __init__(self, context: ProcessContext, logger: BoundLogger) -> None:
        self._context = context
        self._logger = logger

    async def aclose(self) -> None:
        """Shut down the factory.

        After this method is called, the factory object is no longer valid and
        must not be used.
        """
        await self._context.aclose()

    def create_authentication_service(self) -> AuthenticationService:
        """Create the service that makes authentication decisions.

        Returns
        -------
        AuthenticationService
            Newly-created service that tries LDAP first and then guest
            logins.
        """
        authenticators = [
            self.create_ldap_service(),
            self.create_guest_service(),
        ]
        return AuthenticationService(authenticators, self._logger)

    def create_guest_service(self) -> GuestService:
        """Create the guest access service.

        Returns
        -------
        GuestService
            Newly-created guest access service.
        """
        return GuestService(
            config=self._context.config.guest,
            session_cache=self._context.guest_session_cache,
            user_cache=self._context.guest_user_cache,
            logger=self._logger,
        )

    def create_ldap_service(self) -> LDAPService:
        """Create the LDAP authentication service.

        Returns
        -------
        LDAPService
            Newly-created LDAP authentication service.
        """
        return LDAPService(self.create_ldap_storage(), self._logger)

    def create_ldap_storage(self) -> LDAPStorage:
        """Create the LDAP storage layer.

        Returns
        -------
        LDAPStorage
            Newly-created LDAP storage.
        """
        return LDAPStorage(
            self._context.config.ldap, self._context.ldap_pool, self._logger
        )

    def create_murmur_authenticator(self) -> MurmurAuthenticator:
        """Create the implementation of the Murmur authenticator callbacks.

        Returns
        -------
        MurmurAuthenticator
            Newly-created Murmur authenticator.
        """
        service = self.create_authentication_service()
        return MurmurAuthenticator(service, self._logger)

    def set_logger(self, logger: BoundLogger) -> None:
        """Replace the internal logger.

        Used by the context dependency to update the logger for all
        newly-created components when it's rebound with additional context.

        Parameters
        ----------
        logger
            New logger.
        """
        self._logger = logger
