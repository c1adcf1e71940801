"""General utility functions."""

from __future__ import annotations

import base64
import hashlib
import os
import secrets

from .constants import GUEST_PASSWORD_BITS, GUEST_PASSWORD_LENGTH

__all__ = [
    "random_128_bits",
    "random_password",
    "username_to_id",
]


def random_128_bits() -> str:
    """Generate random 128 bits encoded in base64 without padding."""
    return base64.urlsafe_b64encode(os.urandom(16)).decode().rstrip("=")


def random_password() -> str:
    """Generate a random password for a guest.

    Returns
    -------
    str
        Random bits encoded in lowercase base32 without padding, truncated
        to a length that is easy to type.
    """
    data = secrets.token_bytes(GUEST_PASSWORD_BITS // 8)
    encoded = base64.b32encode(data)
    return encoded.decode().rstrip("=").lower()[:GUEST_PASSWORD_LENGTH]


def username_to_id(username: str) -> int:
    """Convert a username to the numeric user ID reported to Murmur.

    Murmur needs a numeric ID for every user but the directory has no
    suitable attribute, so the ID is derived from the username. It is the
    same for a given username in every process.

    Parameters
    ----------
    username
        Username to convert.

    Returns
    -------
    int
        Absolute value of the first four bytes of the SHA-1 hash of the UTF-8
        encoded username, read as a little-endian signed 32-bit integer.
        Always fits in a signed 32-bit integer.

    Notes
    -----
    Different usernames may map to the same ID. This is rare enough to be
    ignored.
    """
    digest = hashlib.sha1(username.encode(), usedforsecurity=False).digest()
    value = int.from_bytes(digest[:4], byteorder="little", signed=True)

    # -2**31 has no positive counterpart in a signed 32-bit integer.
    return min(abs(value), 2**31 - 1)
