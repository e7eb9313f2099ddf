"""Customer testimonials for the home page."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List

from httpx import HTTPError as HttpxError

from app.config.supabase_client import SupabaseNotConfigured
from app.schemas import Testimonial
from app.services.postgrest_client import PostgrestAPIError, create_postgrest_client, log_postgrest_error

logger = logging.getLogger(__name__)


async def get_testimonials(limit: int = 4) -> List[Testimonial]:
    def _request() -> List[Dict[str, Any]]:
        with create_postgrest_client() as client:
            response = (
                client.table("testimonials")
                .select("id, customer_name, quote, rating, image_url, created_at")
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
            return response.data or []

    try:
        rows = await asyncio.to_thread(_request)
    except PostgrestAPIError as exc:
        log_postgrest_error(exc, context="testimonials fetch")
        return []
    except (HttpxError, SupabaseNotConfigured) as exc:
        logger.error("Testimonials unavailable: %s", exc)
        return []

    return [Testimonial.model_validate(row) for row in rows]


__all__ = ["get_testimonials"]
