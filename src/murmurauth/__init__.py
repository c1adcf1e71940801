"""Murmur authenticator backed by LDAP with time-limited guest access."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

__all__ = ["__version__"]

try:
    __version__ = version("murmurauth")
except PackageNotFoundError:
    __version__ = "0.0.0"
"""The version string of murmurauth."""
