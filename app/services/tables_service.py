"""Restaurant tables offered in the reservation form."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from httpx import HTTPError as HttpxError

from app.config.supabase_client import SupabaseNotConfigured
from app.schemas import ReservableTable, TablesResult
from app.services.postgrest_client import PostgrestAPIError, create_postgrest_client, log_postgrest_error

logger = logging.getLogger(__name__)


async def get_reservable_tables(access_token: Optional[str] = None) -> TablesResult:
    def _request() -> List[Dict[str, Any]]:
        with create_postgrest_client(access_token) as client:
            response = (
                client.table("restaurant_tables")
                .select("id, table_number, capacity, description_i18n")
                .eq("is_reservable", True)
                .order("table_number")
                .execute()
            )
            return response.data or []

    try:
        rows = await asyncio.to_thread(_request)
    except PostgrestAPIError as exc:
        detail = log_postgrest_error(exc, context="reservable tables fetch")
        return TablesResult(type="error", message=detail, message_key="databaseError")
    except (HttpxError, SupabaseNotConfigured) as exc:
        logger.error("Reservable tables unavailable: %s", exc)
        return TablesResult(type="error", message=str(exc), message_key="unknownError")

    return TablesResult(type="success", data=[ReservableTable.model_validate(row) for row in rows])


__all__ = ["get_reservable_tables"]
