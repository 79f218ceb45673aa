"""
Session context consumed by the resolver.

Authentication happens elsewhere; the gate only needs the username of
whoever the transport says is calling.
"""

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class SessionContext(Protocol):
    """Per-call identity information."""

    def get_username(self) -> Optional[str]:
        """Return the authenticated username, or None without a session."""
        ...


@dataclass(frozen=True)
class StaticSession:
    """Session with a fixed username, as populated by the transport."""

    username: Optional[str] = None

    def get_username(self) -> Optional[str]:
        return self.username or None


ANONYMOUS = StaticSession()
