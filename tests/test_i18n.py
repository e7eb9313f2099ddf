import pytest

from app.i18n.messages import MissingMessageError, get_translator
from app.i18n.routing import (
    get_pathname,
    negotiate_locale,
    split_locale,
    to_external_path,
    to_internal_path,
)


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/en", ("en", "/")),
        ("/es/reservaciones", ("es", "/reservaciones")),
        ("/es/reservaciones/3/edit", ("es", "/reservaciones/3/edit")),
        ("/fr/menu", (None, "/fr/menu")),
        ("/", (None, "/")),
    ],
)
def test_split_locale(path, expected):
    assert split_locale(path) == expected


def test_localized_pathnames_round_trip_by_prefix():
    assert to_external_path("/reservations/new", "es") == "/reservaciones/new"
    assert to_internal_path("/reservaciones/new", "es") == "/reservations/new"
    assert to_internal_path("/iniciar-sesion", "es") == "/login"
    assert to_internal_path("/reservations", "es") == "/reservations"
    assert to_external_path("/reservationsX", "es") == "/reservationsX"


def test_get_pathname_keeps_query_and_maps_root():
    assert get_pathname("/", "es") == "/es"
    assert get_pathname("/about", "es") == "/es/nosotros"
    assert get_pathname("/reservations?notice=created", "es") == "/es/reservaciones?notice=created"
    assert get_pathname("/menu", "en") == "/en/menu"


def test_negotiate_locale_prefers_cookie_then_header():
    assert negotiate_locale("es", "en-US,en;q=0.9") == "es"
    assert negotiate_locale(None, "fr-FR,es;q=0.8,en;q=0.5") == "es"
    assert negotiate_locale("fr", None) == "en"
    assert negotiate_locale(None, "de") == "en"


def test_negotiate_locale_ignores_unacceptable_languages():
    assert negotiate_locale(None, "fr, es;q=0") == "en"
    assert negotiate_locale(None, "es;q=0.0, en;q=0.1") == "en"


def test_translator_interpolates_and_raises_on_missing_keys():
    t = get_translator("es", "ReservationsPage")

    assert t("atTime", time="19:30") == "A las 19:30"
    with pytest.raises(MissingMessageError) as excinfo:
        t("doesNotExist")
    assert excinfo.value.code == "MISSING_MESSAGE"


def test_translator_get_is_lenient():
    t = get_translator("en")

    assert t.get("Navbar.home") == "Home"
    assert t.get("Navbar.unknown") == "Navbar.unknown"
    assert t.get("Navbar.unknown", default="fallback") == "fallback"


def test_unknown_locale_uses_default_catalog():
    assert get_translator("fr", "Navbar")("home") == "Home"
