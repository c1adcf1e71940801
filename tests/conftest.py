"""Test fixtures."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator

import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from murmurauth.config import Config
from murmurauth.factory import Factory
from murmurauth.main import create_app

from .support.config import configure
from .support.constants import TEST_HOSTNAME
from .support.ldap import MockLDAP, patch_ldap


@pytest.fixture(autouse=True)
def environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear environment variables that would override test settings."""
    for setting in ("LDAP_URL", "LOG_LEVEL", "LOG_PROFILE", "CONFIG_PATH"):
        monkeypatch.delenv(f"MURMURAUTH_{setting}", raising=False)


@pytest.fixture
def config() -> Config:
    """Set up and return the default test configuration."""
    return configure("base")


@pytest.fixture
def mock_ldap(config: Config) -> Iterator[MockLDAP]:
    """Replace the bonsai LDAP API with a mock directory."""
    yield from patch_ldap()


@pytest_asyncio.fixture
async def factory(
    config: Config, mock_ldap: MockLDAP
) -> AsyncIterator[Factory]:
    """Return a component factory using the test configuration."""
    async with Factory.standalone(config) as factory:
        yield factory


@pytest_asyncio.fixture
async def app(config: Config, mock_ldap: MockLDAP) -> AsyncIterator[FastAPI]:
    """Return a configured test application.

    Wraps the application in a lifespan manager so that startup and shutdown
    events are sent during test execution.
    """
    app = create_app()
    async with LifespanManager(app):
        yield app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Return an ``httpx.AsyncClient`` configured to talk to the test app."""
    async with AsyncClient(
        base_url=f"https://{TEST_HOSTNAME}",
        transport=ASGITransport(app=app),
    ) as client:
        yield client
