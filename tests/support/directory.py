"""Populate the mock LDAP directory with test users and groups."""

from __future__ import annotations

from .constants import GROUP_BASE_DN, USER_BASE_DN
from .ldap import MockLDAP

__all__ = ["add_test_user"]


def add_test_user(
    mock_ldap: MockLDAP,
    username: str,
    password: str,
    groups: list[str] | None = None,
) -> str:
    """Add a person and its group memberships to the mock directory.

    Parameters
    ----------
    mock_ldap
        Mock LDAP directory.
    username
        Value of the ``uid`` attribute of the user.
    password
        Password of the user.
    groups
        Names of groups the user should be a member of.

    Returns
    -------
    str
        DN of the new user.
    """
    dn = f"uid={username},{USER_BASE_DN}"
    attributes = {"uid": [username], "objectClass": ["inetOrgPerson"]}
    mock_ldap.add_user(USER_BASE_DN, dn, attributes, password)
    for group in groups or []:
        group_dn = f"cn={group},{GROUP_BASE_DN}"
        mock_ldap.add_group(GROUP_BASE_DN, group_dn, group, [dn])
    return dn
