"""Time-limited guest access."""

from __future__ import annotations

import asyncio
from urllib.parse import quote, urlencode

import bcrypt
from safir.datetime import current_datetime
from structlog.stdlib import BoundLogger

from ..cache import GuestSessionCache, GuestUserCache
from ..config import GuestConfig
from ..constants import GUEST_SESSION_LIFETIME
from ..exceptions import InvalidGuestSessionError, UsernameTakenError
from ..models.auth import Authenticated, AuthResult, Rejected
from ..models.guest import GuestLogin, GuestSession, GuestUser
from ..util import random_128_bits, random_password, username_to_id

__all__ = ["GuestService"]


class GuestService:
    """Manage guest sessions and the guest logins created from them.

    An administrator creates a guest session, which results in a link that
    can be shared with people outside the directory. Anyone with the link
    can pick a username and is given a randomly generated password for it.
    Both the session and the login expire after a fixed time, and a login
    stops working as soon as the session it was created from expires.

    Parameters
    ----------
    config
        Guest access configuration.
    session_cache
        Cache of guest sessions.
    user_cache
        Cache of guest logins.
    logger
        Logger to use.
    """

    def __init__(
        self,
        *,
        config: GuestConfig,
        session_cache: GuestSessionCache,
        user_cache: GuestUserCache,
        logger: BoundLogger,
    ) -> None:
        self._config = config
        self._session_cache = session_cache
        self._user_cache = user_cache
        self._logger = logger

    async def issue_session(self, creator: str | None = None) -> GuestSession:
        """Create a new guest session.

        Parameters
        ----------
        creator
            Username of the administrator creating the session, if known.

        Returns
        -------
        GuestSession
            The new session. Its token should be given to guests as part of
            the guest link.
        """
        now = current_datetime(microseconds=True)
        session = GuestSession(
            token=random_128_bits(),
            created=now,
            expires=now + GUEST_SESSION_LIFETIME,
            creator=creator,
        )
        await self._session_cache.store(session)
        self._logger.info(
            "Guest session created",
            creator=creator,
            expires=session.expires.isoformat(),
        )
        return session

    async def claim_guest(self, token: str, username: str) -> GuestLogin:
        """Create a guest login from a guest session.

        Parameters
        ----------
        token
            Token of the guest session, taken from the guest link.
        username
            Username the guest wants to use.

        Returns
        -------
        GuestLogin
            The new login, including the plaintext password. The password
            cannot be retrieved again.

        Raises
        ------
        UsernameTakenError
            Raised if there is already an active guest with that username.
        InvalidGuestSessionError
            Raised if the guest session does not exist or has expired.
        """
        logger = self._logger.bind(user=username)

        # Reject without taking the username lock where possible. The checks
        # are repeated under the lock since another claim may have finished
        # in the meantime.
        self._check_claim(token, username, logger)
        async with self._user_cache.lock(username):
            session = self._check_claim(token, username, logger)
            password = random_password()
            password_hash = await asyncio.to_thread(_hash_password, password)
            user = GuestUser(
                username=username,
                session=session.token,
                password_hash=password_hash,
                created=current_datetime(microseconds=True),
            )
            self._user_cache.store(user)

        logger.info("Created guest login", creator=session.creator)
        return GuestLogin(
            username=username,
            password=password,
            session=session.token,
            mumble_link=self._build_mumble_link(username, password),
        )

    async def verify_guest(self, username: str, password: str) -> bool:
        """Check the password of a guest.

        Parameters
        ----------
        username
            Username of the guest.
        password
            Password to check.

        Returns
        -------
        bool
            `True` if there is an active guest login for that username with
            that password and the guest session it was created from has not
            expired, `False` otherwise.
        """
        user = self._user_cache.get(username)
        if not user:
            return False
        if not await asyncio.to_thread(
            _check_password, password, user.password_hash
        ):
            return False

        # Sessions are written before the logins created from them, so a
        # session missing from the cache has expired.
        session = self._session_cache.get(user.session)
        if not session or session.is_expired():
            self._logger.info("Guest session has expired", user=username)
            return False
        return True

    async def authenticate(self, username: str, password: str) -> AuthResult:
        """Authenticate a guest.

        Parameters
        ----------
        username
            Username as entered in the Mumble client.
        password
            Password as entered in the Mumble client.

        Returns
        -------
        AuthResult
            `Authenticated` with the guest group and a display name that
            marks the user as a guest if the guest credentials are valid,
            `Rejected` otherwise.
        """
        if not await self.verify_guest(username, password):
            return Rejected()
        self._logger.info("Successful guest login", user=username)
        return Authenticated(
            id=username_to_id(username),
            groups=[self._config.group],
            display_name=f"{self._config.display_prefix} {username}",
        )

    def _check_claim(
        self, token: str, username: str, logger: BoundLogger
    ) -> GuestSession:
        """Check whether a guest login can be created.

        Returns
        -------
        GuestSession
            The guest session the login would be created from.

        Raises
        ------
        UsernameTakenError
            Raised if there is already an active guest with that username.
            Takes precedence over an invalid session.
        InvalidGuestSessionError
            Raised if the guest session does not exist or has expired.
        """
        if self._user_cache.get(username):
            logger.info("Duplicate guest username")
            raise UsernameTakenError()
        session = self._session_cache.get(token)
        if not session or session.is_expired():
            logger.info("Invalid or expired guest link")
            raise InvalidGuestSessionError()
        return session

    def _build_mumble_link(self, username: str, password: str) -> str:
        """Construct the ``mumble://`` URL for a guest login."""
        host = self._config.mumble_host
        userinfo = f"{quote(username, safe='')}:{quote(password, safe='')}"
        query = urlencode({"version": self._config.mumble_version})
        return f"mumble://{userinfo}@{host}/?{query}"


def _check_password(password: str, password_hash: str) -> bool:
    # bcrypt refuses passwords longer than 72 bytes, and guest passwords are
    # much shorter.
    encoded = password.encode()
    if len(encoded) > 72:
        return False
    return bcrypt.checkpw(encoded, password_hash.encode())


def _hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()
