# quotelink/settings.py
import os
from dataclasses import dataclass, field
from typing import List, Optional

REQUIRED = ("SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY", "JWT_SECRET", "STRIPE_SECRET_KEY")


def parse_origins(raw: Optional[str]) -> List[str]:
    raw = raw or "http://localhost:3001"
    return [o.strip() for o in raw.split(",") if o.strip()]


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_key: str
    jwt_secret: str
    stripe_secret_key: str
    stripe_webhook_secret: str = ""
    stripe_currency: str = "usd"
    stripe_timeout: float = 20.0
    frontend_url: str = "http://localhost:3001"
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3001"])
    jwt_ttl_days: int = 7
    store_retries: int = 3
    store_retry_delay: float = 0.2

    @classmethod
    def from_env(cls) -> "Settings":
        missing = [name for name in REQUIRED if not os.environ.get(name)]
        if missing:
            raise RuntimeError(f"Missing {', '.join(missing)}")

        return cls(
            supabase_url=os.environ["SUPABASE_URL"],
            supabase_key=os.environ["SUPABASE_SERVICE_ROLE_KEY"],
            jwt_secret=os.environ["JWT_SECRET"],
            stripe_secret_key=os.environ["STRIPE_SECRET_KEY"],
            stripe_webhook_secret=os.environ.get("STRIPE_WEBHOOK_SECRET", ""),
            stripe_currency=os.environ.get("STRIPE_CURRENCY", "usd"),
            stripe_timeout=float(os.environ.get("STRIPE_TIMEOUT", "20")),
            frontend_url=os.environ.get("FRONTEND_URL", "http://localhost:3001").rstrip("/"),
            cors_origins=parse_origins(os.environ.get("CORS_ORIGINS")),
            jwt_ttl_days=int(os.environ.get("JWT_TTL_DAYS", "7")),
            store_retries=max(1, int(os.environ.get("STORE_RETRIES", "3"))),
            store_retry_delay=float(os.environ.get("STORE_RETRY_DELAY", "0.2")),
        )
