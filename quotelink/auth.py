# quotelink/auth.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import JWTError, jwt
from supabase import AuthApiError, AuthWeakPasswordError, Client

from .errors import AuthError, NotFoundError, ValidationError
from .settings import Settings

logger = logging.getLogger("uvicorn.error")

ALGORITHM = "HS256"


def create_token(user_id: str, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(days=settings.jwt_ttl_days),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=ALGORITHM)


def verify_token(token: str, settings: Settings) -> str:
    """Return the identity id carried by a bearer token."""
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        raise AuthError("Invalid token") from e
    sub = claims.get("sub")
    if not sub:
        raise AuthError("Token missing subject (sub)")
    return sub


def _user_payload(user) -> Dict[str, Any]:
    return {"id": str(user.id), "email": user.email}


def signup(identity: Client, db: Client, settings: Settings, email: str, password: str, business_name: str) -> Dict[str, Any]:
    try:
        res = identity.auth.sign_up({"email": email, "password": password})
    except (AuthApiError, AuthWeakPasswordError) as e:
        logger.warning(f"Signup failed for {email}: {e}")
        raise ValidationError("Could not create account") from e
    if not res.user:
        raise ValidationError("Could not create account")

    db.table("profiles").upsert({"id": res.user.id, "business_name": business_name}).execute()
    logger.info(f"account {res.user.id} created for {business_name}")
    return {"user": _user_payload(res.user), "token": create_token(res.user.id, settings)}


def login(identity: Client, settings: Settings, email: str, password: str) -> Dict[str, Any]:
    try:
        res = identity.auth.sign_in_with_password({"email": email, "password": password})
    except AuthApiError as e:
        logger.info(f"Login failed for {email}: {e}")
        raise AuthError("Invalid login credentials") from e
    if not res.user:
        raise AuthError("Invalid login credentials")
    return {"user": _user_payload(res.user), "token": create_token(res.user.id, settings)}


def get_profile(db: Client, user_id: str) -> Dict[str, Any]:
    rows = db.table("profiles").select("*").eq("id", user_id).limit(1).execute().data or []
    if not rows:
        raise NotFoundError("Profile not found")
    return rows[0]
