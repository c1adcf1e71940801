"""LDAP storage layer for murmurauth."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import bonsai
from bonsai import LDAPClient, LDAPSearchScope
from bonsai.asyncio import AIOConnectionPool, AIOLDAPConnection
from bonsai.pool import PoolError
from bonsai.utils import escape_filter_exp
from structlog.stdlib import BoundLogger

from ..config import LDAPConfig
from ..constants import LDAP_TIMEOUT
from ..exceptions import LDAPError
from ..models.ldap import BindResult, ConnectionRelease

__all__ = ["LDAPStorage"]


class LDAPStorage:
    """LDAP storage layer.

    All searches are done anonymously with connections from the pool. Binds
    as a user take a connection out of the pool and never return it in its
    bound state.

    Parameters
    ----------
    config
        Configuration for LDAP searches.
    pool
        Connection pool of anonymous connections.
    logger
        Logger for debug messages and errors.
    """

    def __init__(
        self, config: LDAPConfig, pool: AIOConnectionPool, logger: BoundLogger
    ) -> None:
        self._config = config
        self._pool = pool
        self._logger = logger.bind(ldap_url=str(self._config.url))

    async def find_user(self, username: str) -> str | None:
        """Find the DN of a user.

        Parameters
        ----------
        username
            Username as entered in the Mumble client.

        Returns
        -------
        str or None
            DN of the only entry under the user base DN matching both the
            username and the configured user filter, or `None` if no entry
            or more than one entry matched.

        Raises
        ------
        LDAPError
            Raised if some error occurred while doing the LDAP search.
        """
        attr = self._config.username_attr
        value = escape_filter_exp(username)
        search = f"(&({attr}={value}){self._config.user_filter})"
        logger = self._logger.bind(ldap_search=search, user=username)
        results = await self._query(
            self._config.user_base_dn,
            LDAPSearchScope.SUB,
            search,
            [attr],
            username,
        )
        if len(results) != 1:
            if results:
                dns = [str(r.dn) for r in results]
                logger.warning("Multiple LDAP users found", ldap_dns=dns)
            else:
                logger.debug("No LDAP user found")
            return None
        dn = str(results[0].dn)
        logger.debug("Found LDAP user", ldap_dn=dn)
        return dn

    async def bind_as(self, dn: str, password: str) -> BindResult:
        """Check a password by binding to LDAP as a user.

        Parameters
        ----------
        dn
            DN of the user, as returned by `find_user`.
        password
            Password to check.

        Returns
        -------
        BindResult
            Whether the LDAP server accepted the password.

        Raises
        ------
        LDAPError
            Raised if the bind failed for any reason other than invalid
            credentials.

        Notes
        -----
        bonsai binds when a connection is opened, so the anonymous connection
        checked out of the pool is closed and a connection authenticated as
        the user is opened in its place. That connection is closed as soon as
        the bind completes, and the pool slot is released as defunct so that
        the pool opens a new anonymous connection the next time it is needed.

        An empty password would result in an unauthenticated bind, which LDAP
        servers report as successful, so it is rejected without contacting
        the server.
        """
        logger = self._logger.bind(ldap_dn=dn)
        if not password:
            logger.debug("Rejecting empty password without binding")
            return BindResult.invalid_credentials

        client = LDAPClient(str(self._config.url))
        client.set_credentials("SIMPLE", user=dn, password=password)
        try:
            async with self._connection(ConnectionRelease.defunct) as conn:
                conn.close()
                logger.debug("Binding to LDAP as user")
                bound = await client.connect(
                    is_async=True, timeout=LDAP_TIMEOUT
                )
                bound.close()
        except bonsai.AuthenticationError:
            logger.debug("LDAP rejected credentials")
            return BindResult.invalid_credentials
        except (bonsai.LDAPError, PoolError, asyncio.TimeoutError) as e:
            logger.exception("Cannot bind to LDAP", error=str(e))
            raise LDAPError("Error binding to LDAP", dn) from e
        return BindResult.success

    async def find_groups(self, dn: str) -> list[str]:
        """Get the names of the groups a user is a member of.

        Parameters
        ----------
        dn
            DN of the user.

        Returns
        -------
        list of str
            Values of the ``cn`` attribute of every group under the group
            base DN that lists the user DN as a member, in the order returned
            by the LDAP server.

        Raises
        ------
        LDAPError
            Raised if some error occurred while doing the LDAP search.
        """
        attr = self._config.group_member_attr
        value = escape_filter_exp(dn)
        search = f"({attr}:distinguishedNameMatch:={value})"
        logger = self._logger.bind(ldap_search=search, ldap_dn=dn)
        results = await self._query(
            self._config.group_base_dn,
            LDAPSearchScope.SUB,
            search,
            ["cn"],
            dn,
        )
        logger.debug("LDAP groups found", ldap_results=len(results))

        groups = []
        for result in results:
            if "cn" not in result or not result["cn"]:
                logger.warning(
                    "LDAP group has no cn, ignoring", group_dn=str(result.dn)
                )
                continue
            groups.append(str(result["cn"][0]))
        return groups

    @asynccontextmanager
    async def _connection(
        self, release: ConnectionRelease
    ) -> AsyncIterator[AIOLDAPConnection]:
        """Check out a connection from the pool.

        Parameters
        ----------
        release
            How the connection is returned to the pool when the context
            manager exits. Connections released as defunct are closed first,
            and the pool discards closed connections.

        Yields
        ------
        AIOLDAPConnection
            An anonymous connection.

        Raises
        ------
        asyncio.TimeoutError
            Raised if no connection became available within the LDAP timeout.
        """
        if self._pool.closed:
            await self._pool.open()
        async with asyncio.timeout(LDAP_TIMEOUT):
            conn = await self._pool.get()
        try:
            yield conn
        finally:
            if release == ConnectionRelease.defunct and not conn.closed:
                conn.close()
            await self._pool.put(conn)

    async def _query(
        self,
        base: str,
        scope: LDAPSearchScope,
        filter_exp: str,
        attrlist: list[str],
        username: str,
    ) -> list[bonsai.LDAPEntry]:
        """Perform an LDAP query using the connection pool.

        Parameters
        ----------
        base
            Base DN of the search.
        scope
            Scope of the search.
        filter_exp
            Search filter.
        attrlist
            List of attributes to retrieve.
        username
            User for which the query is being performed, for error reporting.

        Returns
        -------
        list of bonsai.LDAPEntry
            List of result entries.

        Raises
        ------
        LDAPError
            Raised if failed to run the search.

        Notes
        -----
        The bonsai connection pool does not keep track of failed connections
        and will keep returning the same connection even if the LDAP server
        has stopped responding. Working around this requires setting a
        timeout, catching the timeout exception, and explicitly closing the
        connection so that the pool discards it. A search is attempted at
        most twice.
        """
        logger = self._logger.bind(
            ldap_attrs=attrlist,
            ldap_base=base,
            ldap_search=filter_exp,
            user=username,
        )

        try:
            for _ in range(2):
                async with self._connection(ConnectionRelease.reuse) as conn:
                    try:
                        logger.debug("Querying LDAP")
                        return await conn.search(
                            base=base,
                            scope=scope,
                            filter_exp=filter_exp,
                            attrlist=attrlist,
                            timeout=LDAP_TIMEOUT,
                        )
                    except (
                        bonsai.ConnectionError,
                        bonsai.TimeoutError,
                        asyncio.TimeoutError,
                    ):
                        logger.debug("Reopening LDAP connection after timeout")
                        conn.close()
        except (bonsai.LDAPError, PoolError, asyncio.TimeoutError) as e:
            logger.exception("Cannot query LDAP", error=str(e))
            raise LDAPError("Error querying LDAP", username) from e

        # Failed due to timeout or closed connection twice.
        msg = f"LDAP query timed out after {LDAP_TIMEOUT}s"
        logger.error("Cannot query LDAP", error=msg)
        raise LDAPError(msg, username)
