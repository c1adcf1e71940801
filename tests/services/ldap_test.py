"""Tests for LDAP authentication."""

from __future__ import annotations

import pytest

from murmurauth.factory import Factory
from murmurauth.models.auth import Authenticated, Rejected
from murmurauth.util import username_to_id

from ..support.constants import GROUP_BASE_DN, USER_BASE_DN
from ..support.directory import add_test_user
from ..support.ldap import MockLDAP


@pytest.mark.asyncio
async def test_authenticate(factory: Factory, mock_ldap: MockLDAP) -> None:
    add_test_user(mock_ldap, "bob", "hunter2", ["admins"])
    add_test_user(mock_ldap, "alice", "secret")
    ldap_service = factory.create_ldap_service()

    result = await ldap_service.authenticate("bob", "hunter2")
    assert result == Authenticated(id=853927864, groups=["admins"])

    result = await ldap_service.authenticate("alice", "secret")
    assert result == Authenticated(id=username_to_id("alice"), groups=[])


@pytest.mark.asyncio
async def test_reject(factory: Factory, mock_ldap: MockLDAP) -> None:
    add_test_user(mock_ldap, "bob", "hunter2", ["admins"])
    ldap_service = factory.create_ldap_service()

    assert await ldap_service.authenticate("bob", "wrong") == Rejected()
    assert await ldap_service.authenticate("bob", "") == Rejected()
    assert await ldap_service.authenticate("carol", "hunter2") == Rejected()

    # Ambiguous usernames are rejected without trying a bind.
    mock_ldap.add_user(
        USER_BASE_DN,
        f"uid=bob,ou=contractors,{USER_BASE_DN}",
        {"uid": ["bob"], "objectClass": ["inetOrgPerson"]},
        "hunter2",
    )
    binds = len(mock_ldap.binds)
    assert await ldap_service.authenticate("bob", "hunter2") == Rejected()
    assert len(mock_ldap.binds) == binds


@pytest.mark.asyncio
async def test_errors(factory: Factory, mock_ldap: MockLDAP) -> None:
    add_test_user(mock_ldap, "bob", "hunter2", ["admins"])
    ldap_service = factory.create_ldap_service()

    # A failed group search rejects the user even though the password was
    # correct.
    mock_ldap.fail_bases.add(GROUP_BASE_DN)
    assert await ldap_service.authenticate("bob", "hunter2") == Rejected()
    mock_ldap.fail_bases.clear()

    mock_ldap.fail_binds = True
    assert await ldap_service.authenticate("bob", "hunter2") == Rejected()
    mock_ldap.fail_binds = False

    mock_ldap.fail_bases.add(USER_BASE_DN)
    assert await ldap_service.authenticate("bob", "hunter2") == Rejected()
    mock_ldap.fail_bases.clear()

    result = await ldap_service.authenticate("bob", "hunter2")
    assert result == Authenticated(id=853927864, groups=["admins"])
