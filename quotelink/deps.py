# quotelink/deps.py
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import Client, create_client

from .auth import verify_token
from .errors import AuthError
from .payments import StripeCheckout
from .quotes import QuoteLifecycle
from .settings import Settings

security = HTTPBearer(auto_error=False)


@dataclass
class Services:
    """Capability handles built once at startup and shared by all requests."""
    settings: Settings
    db: Client
    identity: Client
    checkout: Any


def build_services(settings: Optional[Settings] = None) -> Services:
    settings = settings or Settings.from_env()
    # Auth calls store a user session on the client they run on, so sign-in
    # gets its own client and the data client keeps the service role.
    return Services(
        settings=settings,
        db=create_client(settings.supabase_url, settings.supabase_key),
        identity=create_client(settings.supabase_url, settings.supabase_key),
        checkout=StripeCheckout(settings),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_lifecycle(services: Services = Depends(get_services)) -> QuoteLifecycle:
    return QuoteLifecycle(services.db, services.checkout, services.settings)


def get_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    services: Services = Depends(get_services),
) -> str:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError("Unauthorized")
    return verify_token(credentials.credentials, services.settings)
