"""Session cookies carrying the Supabase tokens."""

from __future__ import annotations

import base64
import json
import time
from typing import Any, Dict, Optional, Tuple

from fastapi import Request
from starlette.responses import Response

from app.config.supabase_client import COOKIE_SECURE
from app.i18n.routing import LOCALE_COOKIE_NAME
from app.services.auth_service import AuthSession

ACCESS_COOKIE = "sb-access-token"
REFRESH_COOKIE = "sb-refresh-token"
CODE_VERIFIER_COOKIE = "sb-auth-token-code-verifier"

REFRESH_MAX_AGE = 60 * 60 * 24 * 30
CODE_VERIFIER_MAX_AGE = 60 * 60
LOCALE_MAX_AGE = 60 * 60 * 24 * 365


class InvalidToken(ValueError):
    """Raised when an access token cannot be decoded."""


def decode_access_token(access_token: str) -> Dict[str, Any]:
    """Return the decoded JWT payload for a Supabase access token.

    The signature is not checked here; Supabase validates the token on every
    call made with it.
    """

    if not access_token:
        raise InvalidToken("Missing access token.")

    try:
        payload_segment = access_token.split(".")[1]
        padding = "=" * (-len(payload_segment) % 4)
        decoded = base64.urlsafe_b64decode((payload_segment + padding).encode("ascii"))
        payload = json.loads(decoded.decode("utf-8"))
    except (IndexError, ValueError, UnicodeError) as exc:
        raise InvalidToken("Invalid access token.") from exc
    if not isinstance(payload, dict):
        raise InvalidToken("Invalid access token.")
    return payload


def is_token_expired(claims: Dict[str, Any], leeway: int = 10) -> bool:
    try:
        expires_at = int(claims.get("exp") or 0)
    except (TypeError, ValueError):
        return True
    return expires_at - leeway <= int(time.time())


def read_session_tokens(request: Request) -> Tuple[Optional[str], Optional[str]]:
    return request.cookies.get(ACCESS_COOKIE), request.cookies.get(REFRESH_COOKIE)


def _set_cookie(response: Response, key: str, value: str, max_age: int) -> None:
    response.set_cookie(
        key,
        value,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
    )


def write_session(response: Response, session: AuthSession) -> None:
    _set_cookie(response, ACCESS_COOKIE, session.access_token, max(session.expires_in, 60))
    _set_cookie(response, REFRESH_COOKIE, session.refresh_token, REFRESH_MAX_AGE)


def clear_session(response: Response) -> None:
    for key in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(key, path="/")


def sets_session_cookies(response: Response) -> bool:
    """True when ``response`` already writes or deletes the session cookies."""

    for header in response.headers.getlist("set-cookie"):
        name = header.split("=", 1)[0].strip()
        if name in (ACCESS_COOKIE, REFRESH_COOKIE):
            return True
    return False


def write_code_verifier(response: Response, verifier: str) -> None:
    _set_cookie(response, CODE_VERIFIER_COOKIE, verifier, CODE_VERIFIER_MAX_AGE)


def pop_code_verifier(request: Request, response: Response) -> Optional[str]:
    verifier = request.cookies.get(CODE_VERIFIER_COOKIE)
    if verifier:
        response.delete_cookie(CODE_VERIFIER_COOKIE, path="/")
    return verifier


def write_locale(response: Response, locale: str) -> None:
    response.set_cookie(
        LOCALE_COOKIE_NAME,
        locale,
        max_age=LOCALE_MAX_AGE,
        path="/",
        secure=COOKIE_SECURE,
        samesite="lax",
    )


__all__ = [
    "ACCESS_COOKIE",
    "CODE_VERIFIER_COOKIE",
    "InvalidToken",
    "REFRESH_COOKIE",
    "clear_session",
    "decode_access_token",
    "is_token_expired",
    "pop_code_verifier",
    "read_session_tokens",
    "sets_session_cookies",
    "write_code_verifier",
    "write_locale",
    "write_session",
]
