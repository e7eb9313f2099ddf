"""Secure interactions with Supabase authentication (GoTrue)."""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import httpx

from app.config.supabase_client import SUPABASE_ANON_KEY, SupabaseNotConfigured, auth_url

logger = logging.getLogger(__name__)

TIMEOUT_SECONDS = 10.0


class AuthenticationError(RuntimeError):
    """Base error raised when the auth flow cannot be completed."""


class InvalidCredentials(AuthenticationError):
    """Raised when Supabase explicitly rejects the request."""


@dataclass(frozen=True)
class AuthSession:
    """Subset of the session information stored in cookies."""

    access_token: str
    refresh_token: str
    token_type: str
    expires_in: int
    expires_at: int
    user: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SignUpResult:
    user: Dict[str, Any]
    session: Optional[AuthSession] = None


def _headers(access_token: Optional[str] = None) -> Dict[str, str]:
    headers = {
        "apikey": SUPABASE_ANON_KEY,
        "Content-Type": "application/json",
    }
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    return headers


def _error_message(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    for key in ("error_description", "msg", "message", "error"):
        value = data.get(key)
        if isinstance(value, str) and value:
            return value
    return None


async def _request(
    method: str,
    path: str,
    *,
    context: str,
    json: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, str]] = None,
    access_token: Optional[str] = None,
) -> Tuple[httpx.Response, Any]:
    try:
        url = auth_url(path)
    except SupabaseNotConfigured as exc:
        raise AuthenticationError("Supabase is not configured on the server.") from exc

    try:
        async with httpx.AsyncClient(timeout=TIMEOUT_SECONDS) as client:
            response = await client.request(
                method, url, json=json, params=params, headers=_headers(access_token)
            )
    except httpx.HTTPError as exc:  # pragma: no cover - network layer
        logger.error("Supabase %s unreachable: %s", context, exc)
        raise AuthenticationError("Unable to reach the authentication service.") from exc

    try:
        data = response.json()
    except ValueError:
        data = None

    if response.status_code in (400, 401, 403, 404, 422):
        raise InvalidCredentials(_error_message(data) or "The request was rejected.")

    if response.status_code >= 500:
        logger.error("Supabase %s failed (%s): %s", context, response.status_code, data)
        raise AuthenticationError("The authentication service is temporarily unavailable.")

    if not response.is_success:
        raise AuthenticationError(_error_message(data) or "The request could not be completed.")

    return response, data


def _parse_session(data: Any, *, context: str) -> AuthSession:
    if not isinstance(data, dict):
        raise AuthenticationError("Invalid Supabase response.")

    required_fields = ("access_token", "refresh_token", "expires_in")
    missing = [name for name in required_fields if name not in data]
    if missing:
        logger.error("Supabase %s response missing fields: %s", context, missing)
        raise AuthenticationError("Invalid Supabase response.")

    try:
        expires_in = int(data.get("expires_in") or 0)
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid Supabase expiry.")

    raw_expires_at = data.get("expires_at")
    try:
        expires_at = int(raw_expires_at) if raw_expires_at is not None else int(time.time()) + expires_in
    except (TypeError, ValueError):
        expires_at = int(time.time()) + expires_in

    user = data.get("user")
    return AuthSession(
        access_token=str(data["access_token"]),
        refresh_token=str(data["refresh_token"]),
        token_type=str(data.get("token_type") or "bearer"),
        expires_in=expires_in,
        expires_at=expires_at,
        user=user if isinstance(user, dict) else {},
    )


def generate_pkce_pair() -> Tuple[str, str]:
    """Return a ``(code_verifier, code_challenge)`` pair using S256."""

    verifier = secrets.token_urlsafe(56)
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return verifier, challenge


async def sign_in_with_password(email: str, password: str) -> AuthSession:
    """Perform a password grant request against Supabase."""

    _, data = await _request(
        "POST",
        "token",
        context="sign-in",
        params={"grant_type": "password"},
        json={"email": email, "password": password},
    )
    return _parse_session(data, context="sign-in")


async def sign_up(
    email: str,
    password: str,
    *,
    email_redirect_to: str,
    code_challenge: Optional[str] = None,
) -> SignUpResult:
    """Register a user; Supabase sends the verification email."""

    payload: Dict[str, Any] = {"email": email, "password": password}
    if code_challenge:
        payload["code_challenge"] = code_challenge
        payload["code_challenge_method"] = "s256"

    _, data = await _request(
        "POST",
        "signup",
        context="sign-up",
        params={"redirect_to": email_redirect_to},
        json=payload,
    )
    if not isinstance(data, dict):
        raise AuthenticationError("Invalid Supabase response.")

    # With email confirmation enabled GoTrue answers with the bare user.
    if "access_token" in data:
        session = _parse_session(data, context="sign-up")
        return SignUpResult(user=session.user, session=session)
    return SignUpResult(user=data)


async def sign_out(access_token: str) -> None:
    await _request("POST", "logout", context="sign-out", access_token=access_token)


async def get_user(access_token: str) -> Optional[Dict[str, Any]]:
    """Return the user for ``access_token``; ``None`` when the token is rejected."""

    if not access_token:
        return None
    try:
        _, data = await _request("GET", "user", context="get-user", access_token=access_token)
    except InvalidCredentials:
        return None
    return data if isinstance(data, dict) else None


async def refresh_session(refresh_token: str) -> AuthSession:
    _, data = await _request(
        "POST",
        "token",
        context="refresh",
        params={"grant_type": "refresh_token"},
        json={"refresh_token": refresh_token},
    )
    return _parse_session(data, context="refresh")


async def verify_otp(token_hash: str, otp_type: str) -> AuthSession:
    """Confirm an email link carrying ``token_hash``."""

    _, data = await _request(
        "POST",
        "verify",
        context="verify",
        json={"token_hash": token_hash, "type": otp_type},
    )
    return _parse_session(data, context="verify")


async def exchange_code_for_session(auth_code: str, code_verifier: str) -> AuthSession:
    _, data = await _request(
        "POST",
        "token",
        context="pkce-exchange",
        params={"grant_type": "pkce"},
        json={"auth_code": auth_code, "code_verifier": code_verifier},
    )
    return _parse_session(data, context="pkce-exchange")


__all__ = [
    "AuthSession",
    "AuthenticationError",
    "InvalidCredentials",
    "SignUpResult",
    "exchange_code_for_session",
    "generate_pkce_pair",
    "get_user",
    "refresh_session",
    "sign_in_with_password",
    "sign_out",
    "sign_up",
    "verify_otp",
]
