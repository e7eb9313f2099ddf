"""Reservation queries and the create/update/cancel actions behind the forms."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from httpx import HTTPError as HttpxError

from app.config.supabase_client import SupabaseNotConfigured
from app.i18n.messages import Translator, get_translator
from app.schemas import (
    EDITABLE_STATUSES,
    EditLookup,
    Reservation,
    ReservationForm,
    UpdateReservationForm,
)
from app.services.postgrest_client import PostgrestAPIError, create_postgrest_client, log_postgrest_error
from app.utils.validation import FormState, now_ms, validate_form

logger = logging.getLogger(__name__)

LIST_SELECT = "*, restaurant_tables(table_number, description_i18n)"
EDIT_SELECT = (
    "id, user_id, reservation_date, reservation_time, party_size, status, "
    "customer_notes_i18n, table_id, created_at, updated_at, "
    "restaurant_tables(table_number, description_i18n, capacity)"
)
ACTIVE_STATUSES = ["pending", "confirmed"]
MISSING_FIELD_KEY = "requiredField"

User = Mapping[str, Any]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Queries ---------------------------------------------------------------


async def get_user_reservations(user_id: Optional[str], access_token: Optional[str]) -> Optional[List[Reservation]]:
    """Return the user's reservations, newest first; ``None`` when they cannot be loaded."""

    if not user_id:
        logger.warning("Reservations requested without a user id")
        return None

    def _request() -> List[Dict[str, Any]]:
        with create_postgrest_client(access_token) as client:
            response = (
                client.table("reservations")
                .select(LIST_SELECT)
                .eq("user_id", user_id)
                .order("reservation_date", desc=True)
                .order("reservation_time", desc=True)
                .execute()
            )
            return response.data or []

    try:
        rows = await asyncio.to_thread(_request)
    except PostgrestAPIError as exc:
        log_postgrest_error(exc, context="reservations fetch")
        return None
    except (HttpxError, SupabaseNotConfigured) as exc:
        logger.error("Reservations unavailable: %s", exc)
        return None
    return [Reservation.model_validate(row) for row in rows]


async def fetch_reservation_by_id_for_user(
    reservation_id: Optional[str],
    user_id: Optional[str],
    access_token: Optional[str],
) -> Optional[Reservation]:
    """Return one reservation owned by ``user_id``.

    ``None`` when an argument is missing or Supabase reports an error (a
    missing row included). Transport failures propagate.
    """

    if not reservation_id or not user_id:
        return None

    def _request() -> Optional[Dict[str, Any]]:
        with create_postgrest_client(access_token) as client:
            response = (
                client.table("reservations")
                .select(EDIT_SELECT)
                .eq("id", reservation_id)
                .eq("user_id", user_id)
                .single()
                .execute()
            )
            return response.data

    try:
        row = await asyncio.to_thread(_request)
    except PostgrestAPIError as exc:
        log_postgrest_error(exc, context="reservation fetch")
        return None
    if not row:
        return None
    return Reservation.model_validate(row)


async def _fetch_table_capacity(table_id: int, access_token: Optional[str]) -> Optional[int]:
    def _request() -> Optional[Dict[str, Any]]:
        with create_postgrest_client(access_token) as client:
            response = (
                client.table("restaurant_tables")
                .select("capacity")
                .eq("id", table_id)
                .single()
                .execute()
            )
            return response.data

    try:
        row = await asyncio.to_thread(_request)
    except PostgrestAPIError as exc:
        log_postgrest_error(exc, context="table capacity fetch")
        return None
    if not row or row.get("capacity") is None:
        return None
    return int(row["capacity"])


async def _has_conflict(
    access_token: Optional[str],
    *,
    table_id: int,
    reservation_date: str,
    reservation_time: str,
    exclude_id: Optional[str] = None,
) -> bool:
    def _request() -> List[Dict[str, Any]]:
        with create_postgrest_client(access_token) as client:
            query = (
                client.table("reservations")
                .select("id")
                .eq("table_id", table_id)
                .eq("reservation_date", reservation_date)
                .eq("reservation_time", reservation_time)
                .in_("status", ACTIVE_STATUSES)
            )
            if exclude_id is not None:
                query = query.neq("id", exclude_id)
            response = query.limit(1).execute()
            return response.data or []

    return bool(await asyncio.to_thread(_request))


async def _fetch_owned_row(reservation_id: str, user_id: str, access_token: Optional[str]) -> Optional[Dict[str, Any]]:
    def _request() -> Optional[Dict[str, Any]]:
        with create_postgrest_client(access_token) as client:
            response = (
                client.table("reservations")
                .select("id, status, user_id, table_id")
                .eq("id", reservation_id)
                .eq("user_id", user_id)
                .single()
                .execute()
            )
            return response.data

    try:
        return await asyncio.to_thread(_request)
    except PostgrestAPIError as exc:
        log_postgrest_error(exc, context="owned reservation fetch")
        return None


async def _insert_reservation(payload: Dict[str, Any], access_token: Optional[str]) -> None:
    def _request() -> None:
        with create_postgrest_client(access_token) as client:
            client.table("reservations").insert(payload).execute()

    await asyncio.to_thread(_request)


async def _update_reservation(
    reservation_id: str,
    user_id: str,
    payload: Dict[str, Any],
    access_token: Optional[str],
) -> None:
    def _request() -> None:
        with create_postgrest_client(access_token) as client:
            (
                client.table("reservations")
                .update(payload)
                .eq("id", reservation_id)
                .eq("user_id", user_id)
                .execute()
            )

    await asyncio.to_thread(_request)


# --- Actions ---------------------------------------------------------------


def _error(message: str, key: str, fields: Optional[List[str]] = None) -> FormState:
    field_errors = {field: [message] for field in fields} if fields else None
    return FormState.error(message, message_key=key, field_errors=field_errors)


def _field_error(t: Translator, key: str, field: str) -> FormState:
    """A failure reported like a validation error on a single field."""

    return FormState(
        type="error",
        message=t("validationError"),
        field_errors={field: [t(key)]},
        timestamp=now_ms(),
    )


def _is_in_future(reservation_date: str, reservation_time: str) -> bool:
    year, month, day = (int(part) for part in reservation_date.split("-"))
    hours, minutes = (int(part) for part in reservation_time.split(":"))
    scheduled = datetime(year, month, day, hours, minutes, tzinfo=timezone.utc)
    return scheduled > _utcnow()


def _notes_payload(notes: Optional[str], locale: str) -> Optional[Dict[str, str]]:
    return {locale: notes} if notes else None


async def _check_table(
    form: ReservationForm,
    table_id: int,
    access_token: Optional[str],
    errors: Translator,
    *,
    exclude_id: Optional[str] = None,
) -> Optional[FormState]:
    """Capacity and double-booking checks for an assigned table."""

    capacity = await _fetch_table_capacity(table_id, access_token)
    if capacity is None:
        return _field_error(errors, "table_id_invalid", "table_id")
    if form.party_size > capacity:
        return _field_error(errors, "partySizeExceedsTableCapacity", "party_size")

    try:
        conflict = await _has_conflict(
            access_token,
            table_id=table_id,
            reservation_date=form.reservation_date,
            reservation_time=form.reservation_time,
            exclude_id=exclude_id,
        )
    except PostgrestAPIError as exc:
        detail = log_postgrest_error(exc, context="reservation conflict check")
        return _error(detail or errors("databaseError"), "databaseError")
    if conflict:
        return _error(
            errors("tableAlreadyBookedAtTime"),
            "tableAlreadyBookedAtTime",
            ["table_id", "reservation_date", "reservation_time"],
        )
    return None


def _not_in_future(errors: Translator) -> FormState:
    return _error(
        errors("reservationTimeNotInFuture"),
        "reservationTimeNotInFuture",
        ["reservation_date", "reservation_time"],
    )


def _unknown_error(errors: Translator, exc: Exception) -> FormState:
    logger.exception("Reservation write failed")
    detail = str(exc)
    message = errors("unknownError") + (f": {detail}" if detail else "")
    return _error(message, "unknownError")


async def create_reservation(
    data: Mapping[str, Any],
    user: Optional[User],
    access_token: Optional[str],
    locale: str,
) -> FormState:
    """Validate and insert a new pending reservation for ``user``."""

    t = get_translator(locale, "ReservationForm")
    errors = t.scoped("errors")

    if not user:
        return _error(errors("userNotAuthenticated"), "userNotAuthenticated")

    form = validate_form(ReservationForm, data, errors, missing_key=MISSING_FIELD_KEY)
    if isinstance(form, FormState):
        return form

    table_id = form.selected_table_id
    if table_id is not None:
        try:
            failure = await _check_table(form, table_id, access_token, errors)
        except (HttpxError, SupabaseNotConfigured) as exc:
            return _unknown_error(errors, exc)
        if failure is not None:
            return failure

    if not _is_in_future(form.reservation_date, form.reservation_time):
        return _not_in_future(errors)

    payload: Dict[str, Any] = {
        "user_id": user["id"],
        "reservation_date": form.reservation_date,
        "reservation_time": form.reservation_time,
        "party_size": form.party_size,
        "customer_notes_i18n": _notes_payload(form.customer_notes, locale),
        "status": "pending",
    }
    if table_id is not None:
        payload["table_id"] = table_id

    try:
        await _insert_reservation(payload, access_token)
    except PostgrestAPIError as exc:
        detail = log_postgrest_error(exc, context="reservation insert")
        return _error(detail or errors("databaseError"), "databaseError")
    except (HttpxError, SupabaseNotConfigured) as exc:
        return _unknown_error(errors, exc)

    logger.info("Reservation created", extra={"user_id": user["id"], "table_id": table_id})
    return FormState.success(t("success.reservationCreated"))


async def get_reservation_for_edit(
    reservation_id: Optional[str],
    user: Optional[User],
    access_token: Optional[str],
    locale: str,
) -> EditLookup:
    errors = get_translator(locale, "ReservationForm.errors")
    edit_errors = get_translator(locale, "EditReservationPage.errors")
    common = get_translator(locale, "Common")

    if not user:
        return EditLookup(success=False, error_key="userNotAuthenticated", message=errors("userNotAuthenticated"))
    if not reservation_id:
        return EditLookup(success=False, error_key="missingReservationId", message=common("genericError"))

    try:
        reservation = await fetch_reservation_by_id_for_user(reservation_id, user["id"], access_token)
    except (HttpxError, SupabaseNotConfigured) as exc:
        logger.error("Reservation lookup for edit failed: %s", exc)
        return EditLookup(success=False, error_key="genericError", message=common("genericError"))

    if reservation is None:
        return EditLookup(success=False, error_key="notFound", message=edit_errors("notFound"))
    if reservation.status not in EDITABLE_STATUSES:
        return EditLookup(success=False, error_key="cannotEditStatus", message=edit_errors("updateFailed"))
    return EditLookup(success=True, data=reservation)


async def update_reservation(
    data: Mapping[str, Any],
    user: Optional[User],
    access_token: Optional[str],
    locale: str,
) -> FormState:
    """Validate and apply changes to one of ``user``'s active reservations.

    A ``table_id`` of ``unassign`` (or empty) removes the table; an absent
    ``table_id`` keeps the current one.
    """

    t = get_translator(locale, "ReservationForm")
    errors = t.scoped("errors")
    edit = get_translator(locale, "EditReservationPage")

    if not user:
        return _error(errors("userNotAuthenticated"), "userNotAuthenticated")

    form = validate_form(UpdateReservationForm, data, errors, missing_key=MISSING_FIELD_KEY)
    if isinstance(form, FormState):
        return form

    try:
        existing = await _fetch_owned_row(form.reservation_id, user["id"], access_token)
    except (HttpxError, SupabaseNotConfigured) as exc:
        return _unknown_error(errors, exc)
    if not existing:
        return _error(edit("errors.notFound"), "databaseError")
    if existing.get("status") not in EDITABLE_STATUSES:
        return _error(edit("errors.updateFailed"), "databaseError")

    if not _is_in_future(form.reservation_date, form.reservation_time):
        return _not_in_future(errors)

    if form.clears_table:
        table_id: Optional[int] = None
    elif form.selected_table_id is not None:
        table_id = form.selected_table_id
    else:
        table_id = existing.get("table_id")

    if table_id is not None:
        try:
            failure = await _check_table(form, int(table_id), access_token, errors, exclude_id=form.reservation_id)
        except (HttpxError, SupabaseNotConfigured) as exc:
            return _unknown_error(errors, exc)
        if failure is not None:
            return failure

    payload = {
        "reservation_date": form.reservation_date,
        "reservation_time": form.reservation_time,
        "party_size": form.party_size,
        "customer_notes_i18n": _notes_payload(form.customer_notes, locale),
        "table_id": table_id,
    }
    try:
        await _update_reservation(form.reservation_id, user["id"], payload, access_token)
    except PostgrestAPIError as exc:
        detail = log_postgrest_error(exc, context="reservation update")
        return _error(detail or errors("databaseError"), "databaseError")
    except (HttpxError, SupabaseNotConfigured) as exc:
        return _unknown_error(errors, exc)

    logger.info("Reservation updated", extra={"reservation_id": form.reservation_id, "table_id": table_id})
    return FormState.success(edit("success.reservationUpdated"))


async def cancel_reservation(
    reservation_id: Optional[str],
    user: Optional[User],
    access_token: Optional[str],
    locale: str,
) -> FormState:
    """Mark one of ``user``'s active reservations as cancelled."""

    errors = get_translator(locale, "ReservationForm.errors")
    edit = get_translator(locale, "EditReservationPage")

    if not user:
        return _error(errors("userNotAuthenticated"), "userNotAuthenticated")
    if not reservation_id:
        return _error(edit("errors.notFound"), "notFound")

    try:
        existing = await _fetch_owned_row(reservation_id, user["id"], access_token)
        if not existing:
            return _error(edit("errors.notFound"), "notFound")
        if existing.get("status") not in EDITABLE_STATUSES:
            return _error(edit("errors.cancelFailed"), "cancelFailed")
        await _update_reservation(reservation_id, user["id"], {"status": "cancelled"}, access_token)
    except PostgrestAPIError as exc:
        detail = log_postgrest_error(exc, context="reservation cancel")
        return _error(detail or errors("databaseError"), "databaseError")
    except (HttpxError, SupabaseNotConfigured) as exc:
        return _unknown_error(errors, exc)

    logger.info("Reservation cancelled", extra={"reservation_id": reservation_id})
    return FormState.success(edit("success.reservationCancelled"))


__all__ = [
    "cancel_reservation",
    "create_reservation",
    "fetch_reservation_by_id_for_user",
    "get_reservation_for_edit",
    "get_user_reservations",
    "update_reservation",
]
