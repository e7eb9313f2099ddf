"""Reusable security helpers for the authentication forms."""

from __future__ import annotations

import os
import threading
import time
from collections import defaultdict, deque
from typing import Deque, DefaultDict

from fastapi import Request


class GuardRejected(RuntimeError):
    """Base error for requests refused before reaching an action."""

    message_key = "genericAuthError"


class ForbiddenOrigin(GuardRejected):
    message_key = "forbiddenOrigin"


class TooManyAttempts(GuardRejected):
    message_key = "tooManyAttempts"


def _normalize_origin(value: str) -> str:
    return value.rstrip("/").lower()


TRUSTED_ORIGINS = tuple(
    _normalize_origin(entry)
    for entry in os.getenv("TRUSTED_ORIGINS", "").split(",")
    if entry.strip()
)

TRUSTED_PROXIES = tuple(
    entry.strip() for entry in os.getenv("TRUSTED_PROXIES", "").split(",") if entry.strip()
)

_RATE_LOCK = threading.Lock()
_RATE_BUCKETS: DefaultDict[str, Deque[float]] = defaultdict(deque)


def get_client_ip(request: Request) -> str:
    """Requester IP address.

    ``X-Forwarded-For`` is only honoured when the connecting peer is listed in
    ``TRUSTED_PROXIES``.
    """

    peer = request.client.host if request.client and request.client.host else "unknown"
    if peer in TRUSTED_PROXIES:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            candidate = forwarded.split(",")[0].strip()
            if candidate:
                return candidate
    return peer


def enforce_same_origin(request: Request) -> None:
    """Block cross-site form posts unless explicitly allowed."""

    origin = request.headers.get("origin")
    if not origin:
        return
    normalized_origin = _normalize_origin(origin)
    if normalized_origin in TRUSTED_ORIGINS:
        return
    host = request.headers.get("host")
    scheme = request.url.scheme or "http"
    if host and normalized_origin == _normalize_origin(f"{scheme}://{host}"):
        return
    raise ForbiddenOrigin(f"Origin {origin} is not allowed.")


def _prune_expired(scope: str, window_seconds: int, now: float) -> None:
    prefix = f"{scope}:"
    expired = [
        key
        for key, bucket in _RATE_BUCKETS.items()
        if key.startswith(prefix) and (not bucket or now - bucket[-1] > window_seconds)
    ]
    for key in expired:
        del _RATE_BUCKETS[key]


def rate_limit_request(
    request: Request,
    *,
    scope: str,
    limit: int,
    window_seconds: int,
) -> None:
    """Sliding window of ``limit`` attempts per client IP and scope."""

    identifier = f"{scope}:{get_client_ip(request)}"
    now = time.monotonic()
    with _RATE_LOCK:
        _prune_expired(scope, window_seconds, now)
        bucket = _RATE_BUCKETS[identifier]
        while bucket and now - bucket[0] > window_seconds:
            bucket.popleft()
        if len(bucket) >= limit:
            raise TooManyAttempts(f"Rate limit reached for {scope}.")
        bucket.append(now)


def reset_rate_limits() -> None:
    with _RATE_LOCK:
        _RATE_BUCKETS.clear()


__all__ = [
    "ForbiddenOrigin",
    "GuardRejected",
    "TooManyAttempts",
    "enforce_same_origin",
    "get_client_ip",
    "rate_limit_request",
    "reset_rate_limits",
]
