"""FastAPI application serving the localized restaurant website."""

import logging
import sys
from pathlib import Path
from typing import Dict

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles

from app.config.supabase_client import LOG_LEVEL
from app.i18n.messages import get_translator
from app.i18n.routing import DEFAULT_LOCALE, is_supported_locale
from app.middleware.session import update_session
from app.routes import router as pages_router
from app.security.guards import ForbiddenOrigin, GuardRejected, TooManyAttempts
from app.templating import render

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Little Lemon")
logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parents[1] / "static"

app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")
app.middleware("http")(update_session)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


app.include_router(pages_router)


@app.exception_handler(GuardRejected)
async def guard_rejected_handler(request: Request, exc: GuardRejected) -> HTMLResponse:
    locale = getattr(request.state, "locale", None)
    if not is_supported_locale(locale):
        locale = DEFAULT_LOCALE
    status_code = 429 if isinstance(exc, TooManyAttempts) else 403 if isinstance(exc, ForbiddenOrigin) else 400
    logger.warning("Request refused (%s): %s", type(exc).__name__, exc)
    message = get_translator(locale, "AuthActions").get(exc.message_key)
    return render(request, "auth_error.html", locale, status_code=status_code, message=message)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="127.0.0.1", port=8000, reload=True)
