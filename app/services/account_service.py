"""Sign-up, sign-in, sign-out and email verification flows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple
from urllib.parse import urlencode

from app.config.supabase_client import SITE_URL
from app.i18n.messages import get_translator
from app.i18n.routing import join_locale
from app.schemas import SignInForm, SignUpForm
from app.services import auth_service
from app.services.auth_service import AuthSession, AuthenticationError
from app.utils.validation import FormState, validate_form

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallbackOutcome:
    session: Optional[AuthSession] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def safe_next_path(value: Optional[str], default: str = "/") -> str:
    """Only same-site relative paths are followed after authentication."""

    if not value or not value.startswith("/") or value.startswith("//") or value.startswith("/\\"):
        return default
    return value


def email_redirect_url(locale: str) -> str:
    return f"{SITE_URL}/{locale}/auth/callback"


async def sign_up_with_email_password(
    data: Mapping[str, Any],
    locale: str,
) -> Tuple[FormState, Optional[str]]:
    """Register a new account.

    Returns the form result and, on success, the PKCE code verifier that the
    caller stores for the confirmation link.
    """

    t = get_translator(locale, "AuthActions")
    form = validate_form(SignUpForm, data, t)
    if isinstance(form, FormState):
        return form, None

    verifier, challenge = auth_service.generate_pkce_pair()
    try:
        await auth_service.sign_up(
            form.email,
            form.password,
            email_redirect_to=email_redirect_url(locale),
            code_challenge=challenge,
        )
    except AuthenticationError as exc:
        logger.warning("Sign-up rejected: %s", exc)
        return FormState.error(str(exc) or t("signUpError"), message_key="signUpError"), None

    logger.info("Sign-up accepted, confirmation email sent")
    return FormState.success(t("emailConfirmationMessage")), verifier


async def sign_in_with_email_password(
    data: Mapping[str, Any],
    locale: str,
) -> Tuple[Optional[FormState], Optional[AuthSession]]:
    """Return ``(None, session)`` on success, ``(failure, None)`` otherwise."""

    t = get_translator(locale, "AuthActions")
    form = validate_form(SignInForm, data, t)
    if isinstance(form, FormState):
        return form, None

    try:
        session = await auth_service.sign_in_with_password(form.email, form.password)
    except AuthenticationError as exc:
        logger.info("Sign-in failed: %s", exc)
        return FormState.error(str(exc) or t("signInError"), message_key="signInError"), None
    return None, session


async def sign_out(access_token: Optional[str], locale: str) -> None:
    """Revoke the session on the backend; failures are logged only."""

    if not access_token:
        return
    try:
        await auth_service.sign_out(access_token)
    except AuthenticationError as exc:
        t = get_translator(locale, "AuthActions")
        logger.error("%s", t("signOutError", errorMessage=str(exc)))


async def complete_auth_callback(
    *,
    code: Optional[str],
    token_hash: Optional[str],
    otp_type: Optional[str],
    code_verifier: Optional[str],
) -> CallbackOutcome:
    """Finish an email confirmation or OAuth redirect."""

    if code:
        if not code_verifier:
            logger.error("Auth callback received a code without a stored verifier")
            return CallbackOutcome(error="OAuthFailed")
        try:
            session = await auth_service.exchange_code_for_session(code, code_verifier)
        except AuthenticationError as exc:
            logger.error("OAuth code exchange error: %s", exc)
            return CallbackOutcome(error="OAuthFailed")
        return CallbackOutcome(session=session)

    if token_hash and otp_type:
        try:
            session = await auth_service.verify_otp(token_hash, otp_type)
        except AuthenticationError as exc:
            logger.error("OTP verification error: %s", exc)
            return CallbackOutcome(error="VerificationFailed")
        return CallbackOutcome(session=session)

    logger.error("Auth callback called without code or token_hash/type")
    return CallbackOutcome(error="MissingParameters")


def auth_error_url(locale: str, error: str) -> str:
    message = get_translator(locale, "AuthActions")("genericAuthError")
    query = urlencode({"error": error, "message": message})
    return f"{join_locale(locale, '/auth/error')}?{query}"


def resolve_auth_error_message(error: Optional[str], message: Optional[str], locale: str) -> str:
    """Explicit message, else the ``AuthActions`` text for ``error``, else the default."""

    if message:
        return message
    actions = get_translator(locale, "AuthActions")
    if error and actions.has(error):
        return actions(error)
    return get_translator(locale, "AuthErrorPage")("defaultErrorMessage")


__all__ = [
    "CallbackOutcome",
    "auth_error_url",
    "complete_auth_callback",
    "email_redirect_url",
    "resolve_auth_error_message",
    "safe_next_path",
    "sign_in_with_email_password",
    "sign_out",
    "sign_up_with_email_password",
]
