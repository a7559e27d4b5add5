"""
Supabase client initialization.

This module contains *only* the connection setup. Two clients exist:
- the service client (service-role key) used by repositories for the record
  store; it bypasses row-level security, so it stays on the backend
- the auth client (anon key) used only to resolve user access tokens

Clients are built on first use so that importing repositories does not
require credentials.
"""

from __future__ import annotations

from functools import lru_cache

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, ClientOptions, create_client  # type: ignore[import-not-found]

from settings import get_settings


@lru_cache(maxsize=1)
def get_service_client() -> Client:
    """Supabase client for database operations (service role, no session persistence)."""

    settings = get_settings()
    return create_client(
        settings.require("supabase_url"),
        settings.require("supabase_service_role_key"),
        options=ClientOptions(persist_session=False, auto_refresh_token=False),
    )


@lru_cache(maxsize=1)
def get_auth_client() -> Client:
    """Supabase client for verifying user access tokens (anon key)."""

    settings = get_settings()
    return create_client(
        settings.require("supabase_url"),
        settings.require("supabase_anon_key"),
    )


__all__ = ["get_auth_client", "get_service_client"]
