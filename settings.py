"""
Runtime configuration.

Values come from the process environment. A `.env` file next to this module
is loaded first (it never overrides variables that are already set).

Environment variables:
- SUPABASE_URL: Supabase project URL
- SUPABASE_SERVICE_ROLE_KEY: server-side key for the record store
- SUPABASE_ANON_KEY: public key used to verify user access tokens
- STRIPE_SECRET_KEY: Stripe API key
- STRIPE_WEBHOOK_SECRET: signing secret for the Stripe webhook endpoint
- KWAI_ACCESS_TOKEN: Kwai ads API token (analytics disabled when unset)
- KWAI_PIXEL_ID: Kwai pixel id
- FRONTEND_URL: fallback origin for checkout redirect URLs
- RAFFLE_CURRENCY: ISO currency code sent to Stripe (default: brl)
- RAFFLE_PRODUCT_NAME: product label shown on the checkout page
- LOG_LEVEL: logging level name (default: INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)


@dataclass(frozen=True, slots=True)
class Settings:
    supabase_url: Optional[str]
    supabase_service_role_key: Optional[str]
    supabase_anon_key: Optional[str]
    stripe_secret_key: Optional[str]
    stripe_webhook_secret: Optional[str]
    kwai_access_token: Optional[str]
    kwai_pixel_id: str
    frontend_url: str
    currency: str
    product_name: str
    log_level: str

    def require(self, name: str) -> str:
        """
        Return a required setting or fail with a message naming its variable.

        Example:
            key = get_settings().require("stripe_secret_key")
        """

        value = getattr(self, name)
        if not value:
            raise RuntimeError(
                f"Missing environment variable: {name.upper()}. "
                f"Set {name.upper()} before starting the service."
            )
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings from the environment once per process."""

    return Settings(
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
        supabase_anon_key=os.getenv("SUPABASE_ANON_KEY"),
        stripe_secret_key=os.getenv("STRIPE_SECRET_KEY"),
        stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET"),
        kwai_access_token=os.getenv("KWAI_ACCESS_TOKEN") or None,
        kwai_pixel_id=os.getenv("KWAI_PIXEL_ID", ""),
        frontend_url=os.getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/"),
        currency=os.getenv("RAFFLE_CURRENCY", "brl").lower(),
        product_name=os.getenv("RAFFLE_PRODUCT_NAME", "Porsche Taycan"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


__all__ = ["Settings", "get_settings"]
