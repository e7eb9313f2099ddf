"""Reservation list, booking form, edit form and cancellation."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.i18n.messages import get_translator
from app.i18n.routing import get_pathname
from app.schemas import Reservation
from app.security.guards import enforce_same_origin
from app.services import reservations_service
from app.services.tables_service import get_reservable_tables
from app.templating import current_access_token, current_user, page_locale, render
from app.utils.localization import get_simple_localized_value
from app.utils.validation import FormState

router = APIRouter()

NOTICES = ("created", "updated", "cancelled")


def _form_values(form: Any) -> Dict[str, str]:
    return {key: value for key, value in form.items() if isinstance(value, str)}


def _values_from_reservation(reservation: Reservation, locale: str) -> Dict[str, str]:
    return {
        "reservation_date": reservation.reservation_date,
        "reservation_time": reservation.time_label or "",
        "party_size": str(reservation.party_size),
        "customer_notes": get_simple_localized_value(reservation.customer_notes_i18n, locale) or "",
        "table_id": "" if reservation.table_id is None else str(reservation.table_id),
    }


def _redirect_to_list(locale: str, notice: str) -> RedirectResponse:
    return RedirectResponse(get_pathname(f"/reservations?notice={notice}", locale), status_code=303)


async def _render_list(
    request: Request,
    locale: str,
    *,
    state: Optional[FormState] = None,
    notice: Optional[str] = None,
    status_code: int = 200,
):
    user = current_user(request) or {}
    reservations = await reservations_service.get_user_reservations(user.get("id"), current_access_token(request))
    load_error = None
    if reservations is None:
        load_error = get_translator(locale, "Common")("genericError")
    notice_message = None
    if notice in NOTICES:
        notice_message = get_translator(locale, "ReservationsPage")(f"notices.{notice}")
    return render(
        request,
        "reservations/list.html",
        locale,
        status_code=status_code,
        reservations=reservations or [],
        load_error=load_error,
        notice=notice_message,
        state=state,
    )


async def _render_form(
    request: Request,
    template: str,
    locale: str,
    *,
    values: Dict[str, str],
    state: Optional[FormState] = None,
    status_code: int = 200,
    **context: Any,
):
    tables = await get_reservable_tables(current_access_token(request))
    return render(
        request,
        template,
        locale,
        status_code=status_code,
        tables=tables.data,
        tables_error=tables.type == "error",
        values=values,
        state=state,
        **context,
    )


@router.get("/{locale}/reservations", response_class=HTMLResponse)
async def reservations_page(
    request: Request,
    locale: str = Depends(page_locale),
    notice: Optional[str] = Query(default=None),
):
    return await _render_list(request, locale, notice=notice)


@router.get("/{locale}/reservations/new", response_class=HTMLResponse)
async def new_reservation_page(request: Request, locale: str = Depends(page_locale)):
    return await _render_form(request, "reservations/new.html", locale, values={})


@router.post("/{locale}/reservations/new", response_class=HTMLResponse)
async def create_reservation(
    request: Request,
    locale: str = Depends(page_locale),
    user: Optional[Dict[str, Any]] = Depends(current_user),
    access_token: Optional[str] = Depends(current_access_token),
):
    enforce_same_origin(request)
    values = _form_values(await request.form())
    state = await reservations_service.create_reservation(values, user, access_token, locale)
    if not state.is_error:
        return _redirect_to_list(locale, "created")
    return await _render_form(request, "reservations/new.html", locale, values=values, state=state, status_code=400)


@router.get("/{locale}/reservations/{reservation_id}/edit", response_class=HTMLResponse)
async def edit_reservation_page(
    request: Request,
    reservation_id: str,
    locale: str = Depends(page_locale),
    user: Optional[Dict[str, Any]] = Depends(current_user),
    access_token: Optional[str] = Depends(current_access_token),
):
    lookup = await reservations_service.get_reservation_for_edit(reservation_id, user, access_token, locale)
    if not lookup.success or lookup.data is None:
        status_code = 404 if lookup.error_key == "notFound" else 400
        return render(
            request,
            "reservations/edit.html",
            locale,
            status_code=status_code,
            lookup_error=lookup.message,
            reservation_id=reservation_id,
        )
    return await _render_form(
        request,
        "reservations/edit.html",
        locale,
        values=_values_from_reservation(lookup.data, locale),
        reservation_id=reservation_id,
        lookup_error=None,
    )


@router.post("/{locale}/reservations/{reservation_id}/edit", response_class=HTMLResponse)
async def update_reservation(
    request: Request,
    reservation_id: str,
    locale: str = Depends(page_locale),
    user: Optional[Dict[str, Any]] = Depends(current_user),
    access_token: Optional[str] = Depends(current_access_token),
):
    enforce_same_origin(request)
    values = _form_values(await request.form())
    values["reservationId"] = reservation_id
    state = await reservations_service.update_reservation(values, user, access_token, locale)
    if not state.is_error:
        return _redirect_to_list(locale, "updated")
    return await _render_form(
        request,
        "reservations/edit.html",
        locale,
        values=values,
        state=state,
        status_code=400,
        reservation_id=reservation_id,
        lookup_error=None,
    )


@router.post("/{locale}/reservations/{reservation_id}/cancel", response_class=HTMLResponse)
async def cancel_reservation(
    request: Request,
    reservation_id: str,
    locale: str = Depends(page_locale),
    user: Optional[Dict[str, Any]] = Depends(current_user),
    access_token: Optional[str] = Depends(current_access_token),
):
    enforce_same_origin(request)
    state = await reservations_service.cancel_reservation(reservation_id, user, access_token, locale)
    if not state.is_error:
        return _redirect_to_list(locale, "cancelled")
    return await _render_list(request, locale, state=state, status_code=400)
