"""Supabase configuration and endpoint helpers."""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")
SITE_URL = (os.getenv("SITE_URL") or "http://localhost:8000").rstrip("/")
COOKIE_SECURE = _env_flag("COOKIE_SECURE")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


class SupabaseNotConfigured(RuntimeError):
    """Raised when the Supabase URL or anon key is missing."""


def _base_url() -> str:
    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        raise SupabaseNotConfigured("SUPABASE_URL and SUPABASE_ANON_KEY must be set.")
    return SUPABASE_URL.rstrip("/")


def auth_url(path: str) -> str:
    """Return the GoTrue endpoint for ``path`` (``token``, ``user``, ...)."""

    return f"{_base_url()}/auth/v1/{path.lstrip('/')}"


def rest_url() -> str:
    return f"{_base_url()}/rest/v1"


__all__ = [
    "COOKIE_SECURE",
    "LOG_LEVEL",
    "SITE_URL",
    "SUPABASE_ANON_KEY",
    "SUPABASE_URL",
    "SupabaseNotConfigured",
    "auth_url",
    "rest_url",
]
