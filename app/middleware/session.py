"""Per-request locale resolution, session refresh and route protection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.responses import Response

from app.i18n.routing import (
    LOCALE_COOKIE_NAME,
    get_pathname,
    join_locale,
    negotiate_locale,
    split_locale,
    to_internal_path,
)
from app.security.session import (
    InvalidToken,
    clear_session,
    decode_access_token,
    is_token_expired,
    read_session_tokens,
    sets_session_cookies,
    write_locale,
    write_session,
)
from app.services import auth_service
from app.services.auth_service import AuthSession, AuthenticationError, InvalidCredentials

logger = logging.getLogger(__name__)

PROTECTED_PATHS = ("/reservations",)
PASSTHROUGH_PREFIXES = ("/static", "/api", "/health", "/_next")
PASSTHROUGH_PATHS = ("/favicon.ico", "/auth/callback")

CallNext = Callable[[Request], Awaitable[Response]]


@dataclass
class SessionState:
    user: Optional[Dict[str, Any]] = None
    access_token: Optional[str] = None
    refreshed: Optional[AuthSession] = None
    stale: bool = False


def is_protected_path(internal_path: str) -> bool:
    """True for a protected path or anything nested below it."""

    for protected in PROTECTED_PATHS:
        if internal_path == protected or internal_path.startswith(protected + "/"):
            return True
    return False


def _is_passthrough(path: str) -> bool:
    if path in PASSTHROUGH_PATHS:
        return True
    for prefix in PASSTHROUGH_PREFIXES:
        if path == prefix or path.startswith(prefix + "/"):
            return True
    return "." in path.rsplit("/", 1)[-1]


def _needs_refresh(access_token: str) -> bool:
    try:
        return is_token_expired(decode_access_token(access_token))
    except InvalidToken:
        return True


async def _refresh(state: SessionState, refresh_token: str) -> None:
    session = await auth_service.refresh_session(refresh_token)
    state.refreshed = session
    state.access_token = session.access_token
    state.user = session.user or await auth_service.get_user(session.access_token)


async def resolve_session(request: Request) -> SessionState:
    """Return the signed-in user, refreshing the tokens when needed.

    Auth failures are logged and treated as a logged-out visitor. The
    cookies are only marked stale when the backend rejected the session.
    """

    access_token, refresh_token = read_session_tokens(request)
    state = SessionState()
    if not access_token and not refresh_token:
        return state

    try:
        if access_token and not _needs_refresh(access_token):
            state.user = await auth_service.get_user(access_token)
            state.access_token = access_token if state.user else None
        if state.user is None and refresh_token:
            await _refresh(state, refresh_token)
    except InvalidCredentials as exc:
        logger.info("Session rejected, clearing cookies: %s", exc)
        state = SessionState()
    except AuthenticationError as exc:
        logger.warning("Session lookup failed, continuing anonymously: %s", exc)
        return SessionState()

    if state.user is None:
        state.access_token = None
        state.refreshed = None
        state.stale = True
    return state


def _login_redirect(locale: str, next_path: str) -> RedirectResponse:
    target = f"{get_pathname('/login', locale)}?{urlencode({'next': next_path})}"
    return RedirectResponse(target, status_code=307)


def _apply_cookies(response: Response, state: SessionState) -> None:
    if state.refreshed is not None:
        write_session(response, state.refreshed)
    elif state.stale:
        clear_session(response)


async def update_session(request: Request, call_next: CallNext) -> Response:
    path = request.url.path
    if _is_passthrough(path):
        return await call_next(request)

    locale, rest = split_locale(path)
    prefixed = locale is not None
    if locale is None:
        locale = negotiate_locale(
            request.cookies.get(LOCALE_COOKIE_NAME),
            request.headers.get("accept-language"),
        )
    internal = to_internal_path(rest, locale)

    state = await resolve_session(request)

    if state.user is None and is_protected_path(internal):
        logger.info("Anonymous request to %s redirected to login", path)
        response: Response = _login_redirect(locale, path)
        _apply_cookies(response, state)
        return response

    if not prefixed:
        target = get_pathname(internal, locale)
        if request.url.query:
            target = f"{target}?{request.url.query}"
        response = RedirectResponse(target, status_code=307)
        _apply_cookies(response, state)
        return response

    request.scope["path"] = join_locale(locale, internal)
    request.state.locale = locale
    request.state.user = state.user
    request.state.access_token = state.access_token

    response = await call_next(request)
    if not sets_session_cookies(response):
        _apply_cookies(response, state)
    if request.cookies.get(LOCALE_COOKIE_NAME) != locale:
        write_locale(response, locale)
    return response


__all__ = ["PROTECTED_PATHS", "SessionState", "is_protected_path", "resolve_session", "update_session"]
