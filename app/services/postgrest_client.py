"""Shared utilities for talking to Supabase/PostgREST."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from postgrest import APIError as PostgrestAPIError
from postgrest import SyncPostgrestClient

from app.config.supabase_client import SUPABASE_ANON_KEY, rest_url

logger = logging.getLogger(__name__)


def create_postgrest_client(
    access_token: Optional[str] = None,
    *,
    prefer: Optional[str] = None,
) -> SyncPostgrestClient:
    """Instantiate a PostgREST client.

    Without ``access_token`` requests run as the anonymous role, which is
    enough for public content such as specials and testimonials.
    """

    base_url = rest_url()
    headers: Dict[str, str] = {
        "apikey": SUPABASE_ANON_KEY or "",
        "Accept": "application/json",
    }
    if prefer:
        headers["Prefer"] = prefer

    client = SyncPostgrestClient(base_url, headers=headers)
    client.auth(access_token or SUPABASE_ANON_KEY)
    return client


def log_postgrest_error(exc: PostgrestAPIError, *, context: str) -> str:
    """Log ``exc`` and return the message Supabase gave for it."""

    detail = exc.message or "Error while communicating with Supabase."
    logger.error("%s failed (%s): %s", context, exc.code, detail)
    return detail


__all__ = [
    "PostgrestAPIError",
    "create_postgrest_client",
    "log_postgrest_error",
]
