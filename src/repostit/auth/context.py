"""Authentication context for request handling."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class AuthContext:
    """Runtime authentication context for a request."""

    user_id: int | None
    session_id: str | None = None

    @property
    def is_authenticated(self) -> bool:
        """Check if the request carries a logged-in session."""
        return self.user_id is not None
