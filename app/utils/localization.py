"""Helpers for values stored with per-locale variants."""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional

FALLBACK_LOCALE = "en"


def _pick(mapping: Mapping[str, Any], locale: str) -> Optional[str]:
    value = mapping.get(locale) or mapping.get(FALLBACK_LOCALE)
    if not value:
        return None
    return value if isinstance(value, str) else str(value)


def get_simple_localized_value(i18n_field: Any, locale: str) -> Optional[str]:
    """Extract the ``locale`` string from a plain string, JSON string or mapping.

    The requested locale wins, then English. A JSON object with neither key
    returns the raw string, a mapping with neither key returns ``None``.
    Strings that are not JSON objects are returned unchanged.
    """

    if i18n_field is None:
        return None

    if isinstance(i18n_field, str):
        try:
            parsed = json.loads(i18n_field)
        except ValueError:
            return i18n_field
        if isinstance(parsed, dict):
            return _pick(parsed, locale) or i18n_field
        if isinstance(parsed, list):
            return ",".join("" if item is None else str(item) for item in parsed)
        return i18n_field

    if isinstance(i18n_field, Mapping):
        return _pick(i18n_field, locale)

    if isinstance(i18n_field, bool):
        return "true" if i18n_field else "false"
    return str(i18n_field)


__all__ = ["get_simple_localized_value"]
