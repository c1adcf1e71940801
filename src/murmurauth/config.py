"""Configuration for murmurauth.

murmurauth is configured by a YAML file whose path defaults to
:file:`/etc/murmurauth/murmurauth.yaml` and can be overridden with the
``MURMURAUTH_CONFIG_PATH`` environment variable. A few settings can also be
overridden by environment variables, which take precedence over the file.
Only the settings with explicit ``validation_alias`` settings support
configuration via environment variable.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Self, override

import yaml
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    UrlConstraints,
    field_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import Url
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
from safir.logging import LogLevel, Profile, configure_logging

LdapDsn = Annotated[
    Url, UrlConstraints(allowed_schemes=["ldap", "ldaps"], host_required=True)
]
"""DSN for connecting to an LDAP server."""

__all__ = [
    "CamelCaseSettings",
    "Config",
    "EnvFirstSettings",
    "GuestConfig",
    "LDAPConfig",
    "LdapDsn",
]


class CamelCaseSettings(BaseSettings):
    """Base class for Pydantic settings supporting camel-case.

    This base class also forbids all extra attributes. It should be used as
    the base class (possibly indirectly) for all murmurauth configuration
    models.
    """

    model_config = SettingsConfigDict(
        alias_generator=to_camel, extra="forbid", populate_by_name=True
    )


class EnvFirstSettings(CamelCaseSettings):
    """Base class for Pydantic settings with environment overrides.

    Classes that inherit from this base class will prioritize environment
    variables over arguments to the class constructor.
    """

    @override
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Override the sources of settings.

        Deactivate :file:`.env` and secret file support. Allow environment
        variables to override init parameters, since init parameters come
        from the YAML configuration file and we want environment variables to
        take precedent.
        """
        return (env_settings, init_settings)


class LDAPConfig(EnvFirstSettings):
    """Configuration for the LDAP directory.

    Users are found with an anonymous search and then authenticated with a
    simple bind as the DN that search returned. In all known implementations
    ``cn`` holds the name of a group, so this is not configurable.
    """

    url: LdapDsn = Field(
        Url("ldap://127.0.0.1:389"),
        title="LDAP server URL",
        description="URL of LDAP server to query and bind against",
        validation_alias=AliasChoices("MURMURAUTH_LDAP_URL", "url"),
    )

    user_base_dn: str = Field(
        ...,
        title="Base DN for user lookups",
        description=(
            "The base DN under which user entries are located. Users are"
            " searched for in the whole subtree."
        ),
    )

    username_attr: str = Field(
        "cn",
        title="Username attribute",
        description=(
            "The attribute of a user entry that must be equal to the name"
            " the user entered in their Mumble client"
        ),
        validation_alias=AliasChoices("usernameAttr", "usernameAttribute"),
    )

    user_filter: str = Field(
        ...,
        title="User search filter",
        description=(
            "Additional LDAP filter that a user entry must match, such as"
            " ``(objectClass=inetOrgPerson)`` or a group restriction. It is"
            " combined with the username match by a conjunction."
        ),
    )

    group_base_dn: str = Field(
        ...,
        title="Base DN for group lookups",
        description=(
            "Base DN to use when executing an LDAP search for user groups"
        ),
    )

    group_member_attr: str = Field(
        "member",
        title="LDAP attribute holding group members",
        description=(
            "The attribute of a group entry that holds the DNs of its"
            " members. Usually ``member`` as specified in `RFC 2307bis`_."
        ),
        validation_alias=AliasChoices(
            "groupMemberAttr", "groupMemberAttribute"
        ),
    )

    pool_minconn: int = Field(
        3,
        title="Minimum connection pool size",
        description="Number of anonymous connections opened on startup",
        ge=0,
    )

    pool_maxconn: int = Field(
        10,
        title="Maximum connection pool size",
        description=(
            "Maximum number of LDAP connections in use at the same time."
            " Further requests wait for a connection to be released."
        ),
        ge=1,
    )

    @field_validator("user_filter")
    @classmethod
    def _validate_user_filter(cls, v: str) -> str:
        """Ensure the user filter is enclosed in parentheses."""
        v = v.strip()
        if not v:
            raise ValueError("userFilter must not be empty")
        if not (v.startswith("(") and v.endswith(")")):
            v = f"({v})"
        return v


class GuestConfig(BaseModel):
    """Configuration for guest access."""

    model_config = ConfigDict(
        alias_generator=to_camel, extra="forbid", populate_by_name=True
    )

    display_prefix: str = Field(
        "[guest]",
        title="Guest display name prefix",
        description=(
            "Prefix added to the name of guests as shown in Mumble, so that"
            " it is obvious who is a guest"
        ),
    )

    group: str = Field(
        "guests",
        title="Guest group",
        description=(
            "Group assigned to all guests, which allows separate Mumble"
            " permissions for guests"
        ),
    )

    mumble_host: str = Field(
        "127.0.0.1",
        title="Mumble server host",
        description="Host name of the Mumble server used in guest links",
    )

    mumble_version: str = Field(
        "1.2.0",
        title="Mumble client version",
        description="Client version passed as a parameter in guest links",
    )


class Config(EnvFirstSettings):
    """Configuration for murmurauth."""

    log_level: LogLevel = Field(
        LogLevel.INFO,
        title="Logging level",
        description="Python logging level",
        validation_alias=AliasChoices("MURMURAUTH_LOG_LEVEL", "logLevel"),
    )

    log_profile: Profile = Field(
        Profile.production,
        title="Logging profile",
        description=(
            "Logging profile: ``production`` for JSON logs or"
            " ``development`` for human-readable logs"
        ),
        validation_alias=AliasChoices(
            "MURMURAUTH_LOG_PROFILE", "logProfile"
        ),
    )

    remote_user_header: str = Field(
        "X-Auth-Request-User",
        title="Authenticated admin header",
        description=(
            "Header set by the protecting proxy to the username of the"
            " administrator creating guest links. Only used for logging."
        ),
    )

    ldap: LDAPConfig = Field(
        ...,
        title="LDAP configuration",
        description="Configuration for user authentication against LDAP",
    )

    guest: GuestConfig = Field(
        default_factory=GuestConfig,
        title="Guest access configuration",
        description="Configuration for time-limited guest logins",
    )

    @classmethod
    def from_file(cls, path: Path) -> Self:
        """Construct a Config object from a configuration file.

        Parameters
        ----------
        path
            Path to the configuration file in YAML.

        Returns
        -------
        Config
            The corresponding `Config` object.
        """
        with path.open("r") as f:
            return cls.model_validate(yaml.safe_load(f))

    def configure_logging(self) -> None:
        """Configure logging based on the murmurauth configuration."""
        configure_logging(
            name="murmurauth",
            profile=self.log_profile,
            log_level=self.log_level,
        )
