"""Shared caches.

These caches are process-global, managed by
`~murmurauth.factory.ProcessContext`. They hold all guest access state, which
is therefore lost when the process restarts. These caches sit below the
service layer and are only intended for use via
`~murmurauth.services.guest.GuestService`.

Entries expire a fixed time after they were written. Reading an entry does
not extend its lifetime, and expired entries are never returned. The caches
have no size limit, since evicting a live guest login would free its
username for someone else. Expired entries are purged whenever a new entry
is written, so memory use is bounded by the number of entries created within
one lifetime.
"""

from __future__ import annotations

import asyncio
import math
import time
from abc import ABCMeta, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from types import TracebackType
from typing import Literal

from cachetools import TTLCache

from .constants import GUEST_SESSION_LIFETIME
from .models.guest import GuestSession, GuestUser

__all__ = [
    "BaseCache",
    "GuestSessionCache",
    "GuestUserCache",
    "UserLock",
]


def _create_ttl_cache(timer: Callable[[], float]) -> TTLCache:
    lifetime = GUEST_SESSION_LIFETIME.total_seconds()
    return TTLCache(math.inf, lifetime, timer=timer)


class BaseCache(metaclass=ABCMeta):
    """Base class for caches managed by the process context."""

    @abstractmethod
    async def clear(self) -> None:
        """Invalidate the cache.

        Used during shutdown and by the test suite.
        """


class GuestSessionCache(BaseCache):
    """A cache of guest sessions, keyed by session token.

    Sessions are never modified after creation, so the caller can call `get`
    without holding a lock.

    Parameters
    ----------
    timer
        Clock used to expire entries, overridable for testing.
    """

    def __init__(self, timer: Callable[[], float] = time.monotonic) -> None:
        self._timer = timer
        self._lock = asyncio.Lock()
        self._cache: TTLCache[str, GuestSession] = _create_ttl_cache(timer)

    async def clear(self) -> None:
        async with self._lock:
            self._cache = _create_ttl_cache(self._timer)

    def get(self, token: str) -> GuestSession | None:
        """Retrieve a guest session.

        Parameters
        ----------
        token
            Session token from the guest link.

        Returns
        -------
        GuestSession or None
            The session, or `None` if it was never created or has expired.
        """
        return self._cache.get(token)

    async def store(self, session: GuestSession) -> None:
        """Store a new guest session.

        Parameters
        ----------
        session
            Session to store.
        """
        async with self._lock:
            self._cache[session.token] = session


@dataclass(slots=True)
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    waiters: int = 0


class UserLock:
    """Async context manager that holds the lock for one username.

    Returned by `GuestUserCache.lock`. The underlying lock is created when
    the first task asks for it and discarded when the last task holding or
    waiting for it is done, so usernames that are only tried once do not
    leave anything behind.

    Parameters
    ----------
    locks
        Registry of locks currently in use, keyed by username.
    username
        Username to lock.
    """

    def __init__(self, locks: dict[str, _LockEntry], username: str) -> None:
        self._locks = locks
        self._username = username

    async def __aenter__(self) -> None:
        entry = self._locks.get(self._username)
        if not entry:
            entry = _LockEntry()
            self._locks[self._username] = entry
        entry.waiters += 1
        try:
            await entry.lock.acquire()
        except BaseException:
            self._forget(entry)
            raise

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> Literal[False]:
        entry = self._locks[self._username]
        entry.lock.release()
        self._forget(entry)
        return False

    def _forget(self, entry: _LockEntry) -> None:
        entry.waiters -= 1
        if not entry.waiters:
            del self._locks[self._username]


class GuestUserCache(BaseCache):
    """A cache of guest logins, keyed by username.

    Checking whether a username is free and storing a login for it must
    happen under the lock for that username, since the password is hashed
    in between and other claims for the same username can run meanwhile.

    Parameters
    ----------
    timer
        Clock used to expire entries, overridable for testing.

    Examples
    --------
    .. code-block:: python

       async with user_cache.lock(username):
           if not user_cache.get(username):
               # hash a password and build the login
               user_cache.store(user)
    """

    def __init__(self, timer: Callable[[], float] = time.monotonic) -> None:
        self._timer = timer
        self._cache: TTLCache[str, GuestUser] = _create_ttl_cache(timer)
        self._locks: dict[str, _LockEntry] = {}

    @property
    def lock_count(self) -> int:
        """Number of usernames currently locked or waited on."""
        return len(self._locks)

    async def clear(self) -> None:
        """Invalidate the cache.

        Claims already holding a username lock finish normally, but their
        logins are stored in the new, empty cache.
        """
        self._cache = _create_ttl_cache(self._timer)

    def get(self, username: str) -> GuestUser | None:
        """Retrieve the guest login for a username.

        Parameters
        ----------
        username
            Username of the guest.

        Returns
        -------
        GuestUser or None
            The guest login, or `None` if there is no unexpired login for
            that username.
        """
        return self._cache.get(username)

    def lock(self, username: str) -> UserLock:
        """Return the lock for a username.

        Parameters
        ----------
        username
            Username to lock.

        Returns
        -------
        UserLock
            Async context manager that holds the lock for that username.
        """
        return UserLock(self._locks, username)

    def store(self, user: GuestUser) -> None:
        """Store a new guest login.

        Should only be called with the lock for that username held.

        Parameters
        ----------
        user
            Guest login to store.
        """
        self._cache[user.username] = user
