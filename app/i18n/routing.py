"""Locale-aware routing: prefixes, localized pathnames and negotiation."""

from __future__ import annotations

from typing import Dict, Optional, Tuple

LOCALES: Tuple[str, ...] = ("en", "es")
DEFAULT_LOCALE = "en"
LOCALE_COOKIE_NAME = "NEXT_LOCALE"

# Internal path -> external path per locale. Paths missing from a locale's
# mapping are identical in every locale.
PATHNAMES: Dict[str, Dict[str, str]] = {
    "/about": {"en": "/about", "es": "/nosotros"},
    "/menu": {"en": "/menu", "es": "/menu"},
    "/reservations": {"en": "/reservations", "es": "/reservaciones"},
    "/order-online": {"en": "/order-online", "es": "/pedir-en-linea"},
    "/login": {"en": "/login", "es": "/iniciar-sesion"},
}


def is_supported_locale(value: Optional[str]) -> bool:
    return bool(value) and value in LOCALES


def split_locale(path: str) -> Tuple[Optional[str], str]:
    """Split ``/es/reservaciones`` into ``("es", "/reservaciones")``.

    The locale is ``None`` when the first segment is not a supported locale;
    the remainder is then the full path.
    """

    normalized = path if path.startswith("/") else f"/{path}"
    segments = normalized.split("/", 2)
    candidate = segments[1] if len(segments) > 1 else ""
    if is_supported_locale(candidate):
        rest = "/" + segments[2] if len(segments) > 2 else "/"
        return candidate, rest
    return None, normalized


def _translate_prefix(path: str, source: str, target: str) -> Optional[str]:
    if path == source:
        return target
    if path.startswith(source.rstrip("/") + "/"):
        return target + path[len(source):]
    return None


def to_external_path(internal: str, locale: str) -> str:
    """Return the localized external path for an internal path."""

    for internal_prefix, by_locale in PATHNAMES.items():
        external_prefix = by_locale.get(locale, internal_prefix)
        translated = _translate_prefix(internal, internal_prefix, external_prefix)
        if translated is not None:
            return translated
    return internal


def to_internal_path(external: str, locale: str) -> str:
    """Inverse of :func:`to_external_path`.

    Internal paths are accepted as-is, so ``/es/reservations`` keeps working
    alongside ``/es/reservaciones``.
    """

    for internal_prefix, by_locale in PATHNAMES.items():
        external_prefix = by_locale.get(locale, internal_prefix)
        translated = _translate_prefix(external, external_prefix, internal_prefix)
        if translated is not None:
            return translated
    return external


def get_pathname(href: str, locale: str) -> str:
    """Build ``/{locale}{external}`` for an internal ``href``.

    A query string on ``href`` is preserved.
    """

    path, sep, query = href.partition("?")
    if not path.startswith("/"):
        path = f"/{path}"
    pathname = join_locale(locale, to_external_path(path, locale))
    return f"{pathname}?{query}" if sep else pathname


def join_locale(locale: str, path: str) -> str:
    """Prefix ``path`` with the locale; the root maps to ``/{locale}``."""

    if path in ("", "/"):
        return f"/{locale}"
    return f"/{locale}{path}"


def negotiate_locale(cookie_value: Optional[str], accept_language: Optional[str]) -> str:
    """Pick a locale from the locale cookie, then ``Accept-Language``."""

    if is_supported_locale(cookie_value):
        return cookie_value  # type: ignore[return-value]
    if accept_language:
        weighted = []
        for index, part in enumerate(accept_language.split(",")):
            pieces = part.strip().split(";")
            tag = pieces[0].strip().lower()
            if not tag or tag == "*":
                continue
            quality = 1.0
            for param in pieces[1:]:
                name, _, value = param.strip().partition("=")
                if name == "q":
                    try:
                        quality = float(value)
                    except ValueError:
                        quality = 0.0
            if quality <= 0:
                continue
            weighted.append((-quality, index, tag.split("-")[0]))
        for _, _, language in sorted(weighted):
            if language in LOCALES:
                return language
    return DEFAULT_LOCALE


__all__ = [
    "DEFAULT_LOCALE",
    "LOCALES",
    "LOCALE_COOKIE_NAME",
    "PATHNAMES",
    "get_pathname",
    "is_supported_locale",
    "join_locale",
    "negotiate_locale",
    "split_locale",
    "to_external_path",
    "to_internal_path",
]
