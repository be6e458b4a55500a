"""Shared FastAPI dependencies: caller session, backend client, singletons."""

from __future__ import annotations

from functools import lru_cache
from typing import AsyncIterator, Optional, Set

from fastapi import Depends, Header, HTTPException, status

from ..backend import BackendClient
from ..checkout import CheckoutSessionManager
from ..config import Settings, get_settings
from ..session import StaticSessionProvider, is_admin, parse_bearer, user_email
from ..slip import SlipAuthenticator

# Checkout sessions shared by all requests
checkout_manager = CheckoutSessionManager()

# Orders with an outstanding transition request, per table
admin_in_flight: Set[int] = set()
customer_in_flight: Set[int] = set()


def get_app_settings() -> Settings:
    return get_settings()


def get_checkout_manager() -> CheckoutSessionManager:
    return checkout_manager


@lru_cache(maxsize=1)
def get_authenticator() -> SlipAuthenticator:
    """One authenticator (and one QR detector) for the whole process."""
    return SlipAuthenticator(settings=get_settings())


def get_session(
    authorization: Optional[str] = Header(None),
    x_user_email: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
) -> StaticSessionProvider:
    """Build the caller's session from the forwarded auth headers.

    ``X-User-Email`` and ``X-User-Name`` are supplied by the frontend and are
    not verified here. They only shape what this service shows and offers;
    the remote backend authorizes every call through the forwarded bearer
    token.
    """
    token = parse_bearer(authorization)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing or invalid token")
    user = {}
    if x_user_email and x_user_email.strip():
        user["email"] = x_user_email.strip()
    if x_user_name and x_user_name.strip():
        user["fullname"] = x_user_name.strip()
    return StaticSessionProvider(token=token, user=user)


def require_customer(session: StaticSessionProvider = Depends(get_session)) -> StaticSessionProvider:
    if not user_email(session):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing user email")
    return session


def require_admin(
    session: StaticSessionProvider = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> StaticSessionProvider:
    """Admin view guard by email domain.

    This gates the admin screens only. Order changes are still authorized by
    the remote backend against the caller's bearer token.
    """
    if not is_admin(session.get_current_user(), settings.admin_email_domain):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Staff access only")
    return session


async def get_backend(
    session: StaticSessionProvider = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> AsyncIterator[BackendClient]:
    """Request-scoped backend client carrying the caller's token."""
    async with BackendClient(settings, session=session) as client:
        yield client


__all__ = [
    "admin_in_flight",
    "checkout_manager",
    "customer_in_flight",
    "get_app_settings",
    "get_authenticator",
    "get_backend",
    "get_checkout_manager",
    "get_session",
    "require_admin",
    "require_customer",
]
