"""Tests for the murmurauth configuration."""

from __future__ import annotations

import pytest
from pydantic import ValidationError
from safir.logging import LogLevel, Profile

from murmurauth.config import Config
from murmurauth.constants import CONFIG_PATH
from murmurauth.dependencies.config import ConfigDependency

from .support.config import config_path


def test_config_defaults() -> None:
    config = Config.from_file(config_path("minimal"))
    assert config.log_level == LogLevel.INFO
    assert config.log_profile == Profile.production
    assert config.remote_user_header == "X-Auth-Request-User"
    assert config.ldap.url.scheme == "ldap"
    assert config.ldap.url.host == "127.0.0.1"
    assert config.ldap.url.port == 389
    assert config.ldap.username_attr == "cn"
    assert config.ldap.user_filter == "(objectClass=person)"
    assert config.ldap.group_member_attr == "member"
    assert config.ldap.pool_minconn == 3
    assert config.ldap.pool_maxconn == 10
    assert config.guest.display_prefix == "[guest]"
    assert config.guest.group == "guests"
    assert config.guest.mumble_host == "127.0.0.1"
    assert config.guest.mumble_version == "1.2.0"


def test_config_settings() -> None:
    config = Config.from_file(config_path("guest"))
    assert config.log_level == LogLevel.DEBUG
    assert config.remote_user_header == "X-Forwarded-User"
    assert config.ldap.url.scheme == "ldaps"
    assert config.ldap.url.port == 636
    assert config.ldap.username_attr == "uid"
    assert config.ldap.group_member_attr == "uniqueMember"
    assert config.guest.display_prefix == "(visitor)"
    assert config.guest.group == "visitors"
    assert config.guest.mumble_version == "1.4.0"


def test_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MURMURAUTH_LDAP_URL", "ldap://other.example.com")
    monkeypatch.setenv("MURMURAUTH_LOG_LEVEL", "WARNING")
    config = Config.from_file(config_path("base"))
    assert config.ldap.url.host == "other.example.com"
    assert config.log_level == LogLevel.WARNING


def test_config_invalid() -> None:
    with pytest.raises(ValidationError):
        Config.from_file(config_path("bad-filter"))
    with pytest.raises(ValidationError):
        Config.model_validate({"ldap": {"userBaseDn": "dc=example,dc=com"}})
    with pytest.raises(ValidationError):
        Config.model_validate(
            {
                "ldap": {
                    "url": "https://ldap.example.com",
                    "userBaseDn": "ou=people,dc=example,dc=com",
                    "userFilter": "(objectClass=person)",
                    "groupBaseDn": "ou=groups,dc=example,dc=com",
                }
            }
        )


@pytest.mark.asyncio
async def test_config_dependency(monkeypatch: pytest.MonkeyPatch) -> None:
    dependency = ConfigDependency()
    assert str(dependency.config_path) == CONFIG_PATH

    # The environment is read when the configuration is loaded.
    monkeypatch.setenv("MURMURAUTH_CONFIG_PATH", str(config_path("guest")))
    assert dependency.config_path == config_path("guest")
    config = await dependency()
    assert config.guest.group == "visitors"
    assert dependency.config() is config

    # An explicit path takes precedence over the environment.
    dependency = ConfigDependency(config_path("minimal"))
    assert dependency.config().guest.group == "guests"

    dependency.set_config_path(config_path("guest"))
    assert dependency.config().guest.group == "visitors"
    with pytest.raises(ValidationError):
        dependency.set_config_path(config_path("bad-filter"))
    assert dependency.config_path == config_path("guest")
