"""Tests for the guest caches."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
from safir.datetime import current_datetime

from murmurauth.cache import GuestSessionCache, GuestUserCache
from murmurauth.constants import GUEST_SESSION_LIFETIME
from murmurauth.models.guest import GuestSession, GuestUser

from .support.clock import FakeClock


def make_session(token: str) -> GuestSession:
    now = current_datetime(microseconds=True)
    return GuestSession(
        token=token, created=now, expires=now + GUEST_SESSION_LIFETIME
    )


def make_user(username: str, session: str) -> GuestUser:
    return GuestUser(
        username=username,
        session=session,
        password_hash="hash",
        created=current_datetime(microseconds=True),
    )


@pytest.mark.asyncio
async def test_session_cache() -> None:
    clock = FakeClock()
    cache = GuestSessionCache(timer=clock)
    session = make_session("token")
    assert cache.get("token") is None

    await cache.store(session)
    assert cache.get("token") == session

    # Reads do not extend the lifetime of an entry.
    clock.advance(GUEST_SESSION_LIFETIME - timedelta(seconds=1))
    assert cache.get("token") == session
    clock.advance(timedelta(seconds=1))
    assert cache.get("token") is None

    await cache.store(session)
    assert cache.get("token") == session
    await cache.clear()
    assert cache.get("token") is None


@pytest.mark.asyncio
async def test_user_cache() -> None:
    clock = FakeClock()
    cache = GuestUserCache(timer=clock)
    user = make_user("alice", "token")

    async with cache.lock("alice"):
        assert cache.get("alice") is None
        cache.store(user)
    assert cache.get("alice") == user

    clock.advance(GUEST_SESSION_LIFETIME)
    assert cache.get("alice") is None

    async with cache.lock("alice"):
        cache.store(user)
    await cache.clear()
    assert cache.get("alice") is None


@pytest.mark.asyncio
async def test_user_lock() -> None:
    cache = GuestUserCache()
    events: list[str] = []

    async def hold(username: str, name: str) -> None:
        async with cache.lock(username):
            events.append(f"{name} start")
            await asyncio.sleep(0.01)
            events.append(f"{name} end")

    await asyncio.gather(hold("alice", "first"), hold("alice", "second"))
    assert events == ["first start", "first end", "second start", "second end"]
    assert cache.lock_count == 0


@pytest.mark.asyncio
async def test_user_lock_cleanup() -> None:
    cache = GuestUserCache()
    for i in range(5000):
        async with cache.lock(f"user{i}"):
            assert cache.lock_count == 1
    assert cache.lock_count == 0

    # A lock stays registered while anyone is still waiting on it.
    first = cache.lock("alice")
    await first.__aenter__()
    waiter = asyncio.create_task(hold_briefly(cache, "alice"))
    await asyncio.sleep(0)
    assert cache.lock_count == 1
    await first.__aexit__(None, None, None)
    await waiter
    assert cache.lock_count == 0

    # A waiter that is cancelled does not leave its lock behind.
    async with cache.lock("bob"):
        waiter = asyncio.create_task(hold_briefly(cache, "bob"))
        await asyncio.sleep(0)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter
    assert cache.lock_count == 0


async def hold_briefly(cache: GuestUserCache, username: str) -> None:
    async with cache.lock(username):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_no_eviction() -> None:
    clock = FakeClock()
    cache = GuestUserCache(timer=clock)
    for i in range(20000):
        cache.store(make_user(f"user{i}", "token"))

    # Live guests are never pushed out to make room for new ones.
    user = cache.get("user0")
    assert user
    assert user.username == "user0"
    assert cache.get("user19999")

    session_cache = GuestSessionCache(timer=clock)
    for i in range(20000):
        await session_cache.store(make_session(f"token{i}"))
    assert session_cache.get("token0")

    clock.advance(GUEST_SESSION_LIFETIME)
    assert cache.get("user0") is None
    assert session_cache.get("token0") is None
