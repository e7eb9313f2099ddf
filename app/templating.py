"""Jinja2 environment and request helpers shared by the page routers."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.templating import Jinja2Templates

from app.i18n.messages import get_translator
from app.i18n.routing import LOCALES, get_pathname, is_supported_locale, to_internal_path, split_locale
from app.utils.localization import get_simple_localized_value

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals["url_for_locale"] = get_pathname
templates.env.globals["localized"] = get_simple_localized_value
templates.env.globals["LOCALES"] = LOCALES


def page_locale(locale: str) -> str:
    """Path-parameter dependency rejecting unknown locales."""

    if not is_supported_locale(locale):
        raise HTTPException(status_code=404, detail="Unknown locale.")
    return locale


def current_user(request: Request) -> Optional[Dict[str, Any]]:
    return getattr(request.state, "user", None)


def current_access_token(request: Request) -> Optional[str]:
    return getattr(request.state, "access_token", None)


def render(
    request: Request,
    name: str,
    locale: str,
    *,
    status_code: int = 200,
    **context: Any,
):
    _, rest = split_locale(request.url.path)
    payload: Dict[str, Any] = {
        "locale": locale,
        "t": get_translator(locale),
        "user": current_user(request),
        "internal_path": to_internal_path(rest, locale),
        "year": datetime.now(timezone.utc).year,
    }
    payload.update(context)
    return templates.TemplateResponse(request, name, payload, status_code=status_code)


__all__ = ["current_access_token", "current_user", "page_locale", "render", "templates"]
