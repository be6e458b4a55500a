"""Session capability - who is calling and with which token."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol


class SessionProvider(Protocol):
    """Source of the caller's auth token and profile."""

    def get_token(self) -> Optional[str]:
        ...

    def get_current_user(self) -> Optional[Dict[str, Any]]:
        ...


@dataclass
class StaticSessionProvider:
    """Session values fixed for the lifetime of one request."""

    token: Optional[str] = None
    user: Dict[str, Any] = field(default_factory=dict)

    def get_token(self) -> Optional[str]:
        return self.token

    def get_current_user(self) -> Optional[Dict[str, Any]]:
        return self.user or None


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def user_email(session: SessionProvider) -> str:
    user = session.get_current_user() or {}
    return str(user.get("email") or "")


def is_admin(user: Optional[Dict[str, Any]], domain: str) -> bool:
    """Staff accounts are recognised by their email domain."""
    email = str((user or {}).get("email") or "").strip().lower()
    return bool(email) and email.endswith(domain.lower())


__all__ = [
    "SessionProvider",
    "StaticSessionProvider",
    "is_admin",
    "parse_bearer",
    "user_email",
]
