"""Login, sign-up, sign-out and the email verification callback."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.i18n.routing import LOCALE_COOKIE_NAME, get_pathname, is_supported_locale, join_locale, negotiate_locale
from app.security.guards import enforce_same_origin, rate_limit_request
from app.security.session import clear_session, pop_code_verifier, write_code_verifier, write_session
from app.services import account_service
from app.templating import current_access_token, page_locale, render

router = APIRouter()

LOGIN_LIMIT = 5
LOGIN_WINDOW_SECONDS = 60
SIGNUP_LIMIT = 3
SIGNUP_WINDOW_SECONDS = 300


@router.get("/{locale}/login", response_class=HTMLResponse)
async def login_page(
    request: Request,
    locale: str = Depends(page_locale),
    next: Optional[str] = Query(default=None),
):
    return render(request, "login.html", locale, state=None, values={}, next=next)


@router.post("/{locale}/login", response_class=HTMLResponse)
async def login_submit(request: Request, locale: str = Depends(page_locale)):
    enforce_same_origin(request)
    rate_limit_request(request, scope="login", limit=LOGIN_LIMIT, window_seconds=LOGIN_WINDOW_SECONDS)

    form = await request.form()
    data = {key: value for key, value in form.items() if isinstance(value, str)}
    failure, session = await account_service.sign_in_with_email_password(data, locale)
    if failure is not None or session is None:
        values = {"email": data.get("email", "")}
        return render(
            request, "login.html", locale, status_code=400, state=failure, values=values, next=data.get("next")
        )

    target = account_service.safe_next_path(data.get("next"), default=join_locale(locale, "/"))
    response = RedirectResponse(target, status_code=303)
    write_session(response, session)
    return response


@router.get("/{locale}/signup", response_class=HTMLResponse)
async def signup_page(request: Request, locale: str = Depends(page_locale)):
    return render(request, "signup.html", locale, state=None, values={})


@router.post("/{locale}/signup", response_class=HTMLResponse)
async def signup_submit(request: Request, locale: str = Depends(page_locale)):
    enforce_same_origin(request)
    rate_limit_request(request, scope="signup", limit=SIGNUP_LIMIT, window_seconds=SIGNUP_WINDOW_SECONDS)

    form = await request.form()
    data = {key: value for key, value in form.items() if isinstance(value, str)}
    state, verifier = await account_service.sign_up_with_email_password(data, locale)
    status_code = 400 if state.is_error else 200
    values = {} if verifier else {"email": data.get("email", "")}
    response = render(request, "signup.html", locale, status_code=status_code, state=state, values=values)
    if verifier:
        write_code_verifier(response, verifier)
    return response


@router.post("/{locale}/logout")
async def logout(request: Request, locale: str = Depends(page_locale)):
    enforce_same_origin(request)
    await account_service.sign_out(current_access_token(request), locale)
    response = RedirectResponse(get_pathname("/login", locale), status_code=303)
    clear_session(response)
    return response


async def _auth_callback(request: Request, locale: str):
    params = request.query_params
    response = RedirectResponse("/", status_code=307)
    outcome = await account_service.complete_auth_callback(
        code=params.get("code"),
        token_hash=params.get("token_hash"),
        otp_type=params.get("type"),
        code_verifier=pop_code_verifier(request, response),
    )
    if outcome.ok and outcome.session is not None:
        response.headers["location"] = account_service.safe_next_path(params.get("next"))
        write_session(response, outcome.session)
    else:
        response.headers["location"] = account_service.auth_error_url(locale, outcome.error or "VerificationFailed")
    return response


@router.get("/{locale}/auth/callback")
async def localized_auth_callback(request: Request, locale: str = Depends(page_locale)):
    return await _auth_callback(request, locale)


@router.get("/auth/callback")
async def auth_callback(request: Request):
    locale = request.query_params.get("locale")
    if not is_supported_locale(locale):
        locale = negotiate_locale(request.cookies.get(LOCALE_COOKIE_NAME), request.headers.get("accept-language"))
    return await _auth_callback(request, locale)


@router.get("/{locale}/auth/error", response_class=HTMLResponse)
async def auth_error_page(
    request: Request,
    locale: str = Depends(page_locale),
    error: Optional[str] = Query(default=None),
    message: Optional[str] = Query(default=None),
):
    display_message = account_service.resolve_auth_error_message(error, message, locale)
    return render(request, "auth_error.html", locale, message=display_message)
