"""Weekly specials shown on the home page."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from httpx import HTTPError as HttpxError

from app.config.supabase_client import SupabaseNotConfigured
from app.schemas import LocalizedSpecial, Special
from app.services.postgrest_client import PostgrestAPIError, create_postgrest_client, log_postgrest_error

logger = logging.getLogger(__name__)

SPECIALS_SELECT = (
    "id, start_date, end_date, "
    "menu_items(id, i18n_content, price, image_url, category_id, created_at, updated_at)"
)
FALLBACK_LOCALE = "en"


async def get_specials(limit: int = 3) -> List[Special]:
    """Return the newest specials; an empty list when they cannot be loaded."""

    def _request() -> List[Dict[str, Any]]:
        with create_postgrest_client() as client:
            response = (
                client.table("specials")
                .select(SPECIALS_SELECT)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
            return response.data or []

    try:
        rows = await asyncio.to_thread(_request)
    except PostgrestAPIError as exc:
        log_postgrest_error(exc, context="specials fetch")
        return []
    except (HttpxError, SupabaseNotConfigured) as exc:
        logger.error("Specials unavailable: %s", exc)
        return []

    return [Special.model_validate(row) for row in rows]


def localize_special(special: Special, locale: str, *, fallback_name: str = "") -> Optional[LocalizedSpecial]:
    """Flatten ``special`` for ``locale``.

    Returns ``None`` when the joined menu item or its content is missing.
    """

    item = special.menu_items
    if item is None or not isinstance(item.i18n_content, dict):
        return None
    content = item.i18n_content.get(locale) or item.i18n_content.get(FALLBACK_LOCALE)
    if not isinstance(content, dict):
        return None
    return LocalizedSpecial(
        id=special.id,
        name=content.get("name") or fallback_name,
        description=content.get("description"),
        price=item.price,
        image_url=item.image_url,
    )


__all__ = ["get_specials", "localize_special"]
