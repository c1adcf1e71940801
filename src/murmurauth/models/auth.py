"""Results of authentication attempts."""

from __future__ import annotations

from dataclasses import dataclass, field

__all__ = ["AuthResult", "Authenticated", "Rejected"]


@dataclass(frozen=True, slots=True)
class Authenticated:
    """A successful authentication."""

    id: int
    """Numeric user ID reported to Murmur."""

    groups: list[str] = field(default_factory=list)
    """Groups the user belongs to, in the order the source returned them."""

    display_name: str | None = None
    """Name to show in Murmur instead of the name the user connected with."""


@dataclass(frozen=True, slots=True)
class Rejected:
    """A failed authentication.

    Unknown users, wrong passwords, and errors talking to the directory all
    produce this same result.
    """


AuthResult = Authenticated | Rejected
"""Result of an authentication attempt."""
