import asyncio
from datetime import datetime, timezone

import pytest
from postgrest import APIError

from app.services import reservations_service

USER = {"id": "user-1"}
FUTURE_FORM = {
    "reservation_date": "2031-06-01",
    "reservation_time": "19:30",
    "party_size": "4",
    "customer_notes": "Window please",
    "table_id": "3",
}


@pytest.fixture(name="backend")
def backend_fixture(monkeypatch: pytest.MonkeyPatch):
    """Replace the PostgREST helpers with in-memory fakes."""

    state = {
        "capacity": {3: 4, 5: 8},
        "conflict": False,
        "owned": {"id": "42", "status": "pending", "user_id": "user-1", "table_id": 3},
        "inserted": [],
        "updated": [],
        "conflict_calls": [],
        "insert_error": None,
    }

    async def fake_capacity(table_id, access_token):
        return state["capacity"].get(table_id)

    async def fake_conflict(access_token, **kwargs):
        state["conflict_calls"].append(kwargs)
        if isinstance(state["conflict"], Exception):
            raise state["conflict"]
        return state["conflict"]

    async def fake_owned(reservation_id, user_id, access_token):
        return state["owned"]

    async def fake_insert(payload, access_token):
        if state["insert_error"] is not None:
            raise state["insert_error"]
        state["inserted"].append(payload)

    async def fake_update(reservation_id, user_id, payload, access_token):
        state["updated"].append((reservation_id, user_id, payload))

    monkeypatch.setattr(reservations_service, "_fetch_table_capacity", fake_capacity)
    monkeypatch.setattr(reservations_service, "_has_conflict", fake_conflict)
    monkeypatch.setattr(reservations_service, "_fetch_owned_row", fake_owned)
    monkeypatch.setattr(reservations_service, "_insert_reservation", fake_insert)
    monkeypatch.setattr(reservations_service, "_update_reservation", fake_update)
    monkeypatch.setattr(
        reservations_service, "_utcnow", lambda: datetime(2031, 1, 1, 12, 0, tzinfo=timezone.utc)
    )
    return state


def _create(data, user=USER, locale="en"):
    return asyncio.run(reservations_service.create_reservation(data, user, "token", locale))


def _update(data, user=USER, locale="en"):
    return asyncio.run(reservations_service.update_reservation(data, user, "token", locale))


def test_create_requires_a_user(backend):
    state = _create(FUTURE_FORM, user=None)

    assert state.type == "error"
    assert state.message_key == "userNotAuthenticated"
    assert backend["inserted"] == []


def test_create_inserts_pending_reservation(backend):
    state = _create(FUTURE_FORM, locale="es")

    assert state.type == "success"
    assert state.message == "Tu reservación ha sido creada."
    assert backend["inserted"] == [
        {
            "user_id": "user-1",
            "reservation_date": "2031-06-01",
            "reservation_time": "19:30",
            "party_size": 4,
            "customer_notes_i18n": {"es": "Window please"},
            "status": "pending",
            "table_id": 3,
        }
    ]


def test_create_without_table_skips_table_checks(backend):
    data = dict(FUTURE_FORM, table_id="unassign", customer_notes="")

    state = _create(data)

    assert state.type == "success"
    assert backend["conflict_calls"] == []
    assert "table_id" not in backend["inserted"][0]
    assert backend["inserted"][0]["customer_notes_i18n"] is None


def test_create_returns_validation_errors(backend):
    state = _create({"reservation_time": "7pm", "party_size": "0"})

    assert state.message == "Please correct the errors below."
    assert state.field_errors == {
        "reservation_date": ["This field is required."],
        "reservation_time": ["Please enter a valid time (HH:MM)."],
        "party_size": ["Party size must be at least 1."],
    }


def test_create_rejects_unknown_table(backend):
    state = _create(dict(FUTURE_FORM, table_id="99"))

    assert state.field_errors == {"table_id": ["The selected table is not valid."]}


def test_create_rejects_party_larger_than_table(backend):
    state = _create(dict(FUTURE_FORM, party_size="6"))

    assert state.field_errors == {"party_size": ["The party is too large for the selected table."]}


def test_create_rejects_double_booking(backend):
    backend["conflict"] = True

    state = _create(FUTURE_FORM)

    assert state.message_key == "tableAlreadyBookedAtTime"
    assert set(state.field_errors) == {"table_id", "reservation_date", "reservation_time"}
    assert backend["conflict_calls"][0]["exclude_id"] is None


def test_create_rejects_past_slots(backend):
    state = _create(dict(FUTURE_FORM, reservation_date="2031-01-01", reservation_time="12:00"))

    assert state.message_key == "reservationTimeNotInFuture"
    assert set(state.field_errors) == {"reservation_date", "reservation_time"}


def test_create_reports_database_errors(backend):
    backend["insert_error"] = APIError({"message": "duplicate key", "code": "23505"})

    state = _create(FUTURE_FORM)

    assert state.message_key == "databaseError"
    assert state.message == "duplicate key"


def test_update_changes_fields_and_excludes_itself_from_conflicts(backend):
    data = dict(FUTURE_FORM, reservationId="42", table_id="5", party_size="6")

    state = _update(data)

    assert state.type == "success"
    assert state.message == "Your reservation has been updated."
    assert backend["conflict_calls"][0]["exclude_id"] == "42"
    reservation_id, user_id, payload = backend["updated"][0]
    assert (reservation_id, user_id) == ("42", "user-1")
    assert payload["table_id"] == 5
    assert payload["party_size"] == 6


def test_update_can_unassign_table(backend):
    data = dict(FUTURE_FORM, reservationId="42", table_id="unassign", party_size="10")

    state = _update(data)

    assert state.type == "success"
    assert backend["conflict_calls"] == []
    assert backend["updated"][0][2]["table_id"] is None


def test_update_keeps_current_table_and_checks_capacity(backend):
    data = {key: value for key, value in FUTURE_FORM.items() if key != "table_id"}
    data.update(reservationId="42", party_size="5")

    state = _update(data)

    assert state.field_errors == {"party_size": ["The party is too large for the selected table."]}
    assert backend["updated"] == []


def test_update_rejects_missing_or_closed_reservations(backend):
    data = dict(FUTURE_FORM, reservationId="42")

    backend["owned"] = None
    assert _update(data).message == "Reservation not found."

    backend["owned"] = {"id": "42", "status": "completed", "user_id": "user-1", "table_id": None}
    assert _update(data).message == "This reservation can no longer be changed."
    assert backend["updated"] == []


def test_cancel_marks_reservation_cancelled(backend):
    state = asyncio.run(reservations_service.cancel_reservation("42", USER, "token", "en"))

    assert state.type == "success"
    assert backend["updated"] == [("42", "user-1", {"status": "cancelled"})]


def test_cancel_refuses_finished_reservations(backend):
    backend["owned"] = {"id": "42", "status": "cancelled", "user_id": "user-1", "table_id": None}

    state = asyncio.run(reservations_service.cancel_reservation("42", USER, "token", "en"))

    assert state.message_key == "cancelFailed"
    assert backend["updated"] == []


def test_edit_lookup_outcomes(monkeypatch: pytest.MonkeyPatch):
    async def fake_fetch(reservation_id, user_id, access_token):
        if reservation_id == "missing":
            return None
        status = "completed" if reservation_id == "old" else "confirmed"
        return reservations_service.Reservation.model_validate(
            {"id": reservation_id, "reservation_date": "2031-06-01", "party_size": 2, "status": status}
        )

    monkeypatch.setattr(reservations_service, "fetch_reservation_by_id_for_user", fake_fetch)

    def lookup(reservation_id, user=USER):
        return asyncio.run(reservations_service.get_reservation_for_edit(reservation_id, user, "token", "en"))

    assert lookup("7", user=None).error_key == "userNotAuthenticated"
    assert lookup("").error_key == "missingReservationId"
    assert lookup("missing").error_key == "notFound"
    assert lookup("old").error_key == "cannotEditStatus"
    found = lookup("7")
    assert found.success and found.data.id == "7"
