"""Translation catalogs loaded from ``messages/{locale}.json``."""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from app.i18n.routing import DEFAULT_LOCALE, is_supported_locale

logger = logging.getLogger(__name__)

MESSAGES_DIR = Path(__file__).resolve().parents[2] / "messages"
_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class MissingMessageError(KeyError):
    """Raised when a translation key does not exist in the catalog."""

    code = "MISSING_MESSAGE"

    def __init__(self, locale: str, key: str) -> None:
        super().__init__(f"{locale}:{key}")
        self.locale = locale
        self.key = key


@lru_cache(maxsize=None)
def load_messages(locale: str) -> Dict[str, Any]:
    """Return the full catalog for ``locale`` (default locale if unknown)."""

    if not is_supported_locale(locale):
        logger.warning("Unsupported locale %r, falling back to %s", locale, DEFAULT_LOCALE)
        locale = DEFAULT_LOCALE
    path = MESSAGES_DIR / f"{locale}.json"
    with path.open(encoding="utf-8") as handle:
        return json.load(handle)


def _interpolate(template: str, values: Dict[str, Any]) -> str:
    if not values:
        return template
    return _PLACEHOLDER.sub(
        lambda match: str(values[match.group(1)]) if match.group(1) in values else match.group(0),
        template,
    )


class Translator:
    """Resolve dotted keys below an optional namespace."""

    def __init__(self, locale: str, namespace: Optional[str] = None) -> None:
        self.locale = locale if is_supported_locale(locale) else DEFAULT_LOCALE
        self.namespace = namespace

    def _full_key(self, key: str) -> str:
        return f"{self.namespace}.{key}" if self.namespace else key

    def _lookup(self, key: str) -> Optional[str]:
        node: Any = load_messages(self.locale)
        for part in self._full_key(key).split("."):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node if isinstance(node, str) else None

    def has(self, key: str) -> bool:
        return self._lookup(key) is not None

    def __call__(self, key: str, **values: Any) -> str:
        message = self._lookup(key)
        if message is None:
            raise MissingMessageError(self.locale, self._full_key(key))
        return _interpolate(message, values)

    def get(self, key: str, default: Optional[str] = None, **values: Any) -> str:
        """Lenient lookup used by templates; logs and falls back on misses."""

        message = self._lookup(key)
        if message is None:
            logger.error("Missing message %s for locale %s", self._full_key(key), self.locale)
            return default if default is not None else self._full_key(key)
        return _interpolate(message, values)

    def scoped(self, namespace: str) -> "Translator":
        return Translator(self.locale, self._full_key(namespace))


def get_translator(locale: str, namespace: Optional[str] = None) -> Translator:
    return Translator(locale, namespace)


__all__ = ["MissingMessageError", "Translator", "get_translator", "load_messages"]
