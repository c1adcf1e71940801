"""Constants for murmurauth."""

from datetime import timedelta

__all__ = [
    "AUTH_FAILURE",
    "CONFIG_PATH",
    "GUEST_PASSWORD_BITS",
    "GUEST_PASSWORD_LENGTH",
    "GUEST_SESSION_LIFETIME",
    "LDAP_TIMEOUT",
]

AUTH_FAILURE = -1
"""User ID returned to Murmur when authentication fails."""

CONFIG_PATH = "/etc/murmurauth/murmurauth.yaml"
"""Default configuration path."""

GUEST_PASSWORD_BITS = 128
"""Number of random bits used to generate a guest password."""

GUEST_PASSWORD_LENGTH = 20
"""Length of the guest password shown to the user."""

GUEST_SESSION_LIFETIME = timedelta(hours=4)
"""Lifetime of guest sessions and of the guest logins created from them.

Both caches expire entries this long after they are written, regardless of
how often they are read.
"""

LDAP_TIMEOUT = 5.0
"""Timeout (in seconds) for LDAP queries and binds."""
