import re
from datetime import date
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator
from pydantic.networks import validate_email
from pydantic_core import PydanticCustomError

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MAX_PARTY_SIZE = 20
UNASSIGN_TABLE = "unassign"

ReservationStatus = Literal["pending", "confirmed", "cancelled", "completed", "no_show"]
EDITABLE_STATUSES = ("pending", "confirmed")


def _key_error(key: str) -> PydanticCustomError:
    # The error type doubles as the translation key.
    return PydanticCustomError(key, key)


def _check_email(value: str) -> str:
    try:
        _, normalized = validate_email(value.strip())
    except PydanticCustomError as exc:
        raise _key_error("invalidEmail") from exc
    return normalized


class SignUpForm(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    password: str
    confirm_password: str = Field(alias="confirmPassword")

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def _long_enough(cls, value: str) -> str:
        if len(value) < 6:
            raise _key_error("passwordTooShort")
        return value

    @field_validator("confirm_password")
    @classmethod
    def _matches_password(cls, value: str, info: ValidationInfo) -> str:
        password = info.data.get("password")
        if password is not None and value != password:
            raise _key_error("passwordNoMatch")
        return value


class SignInForm(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def _present(cls, value: str) -> str:
        if len(value) < 1:
            raise _key_error("passwordRequired")
        return value


class ReservationForm(BaseModel):
    """Fields posted by the reservation form (all raw strings)."""

    model_config = ConfigDict(populate_by_name=True)

    reservation_date: str
    reservation_time: str
    party_size: int
    customer_notes: Optional[str] = None
    table_id: Optional[str] = None

    @field_validator("reservation_date")
    @classmethod
    def _valid_date(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise _key_error("requiredField")
        if not DATE_PATTERN.match(cleaned):
            raise _key_error("reservationDateInvalid")
        try:
            date.fromisoformat(cleaned)
        except ValueError as exc:
            raise _key_error("reservationDateInvalid") from exc
        return cleaned

    @field_validator("reservation_time")
    @classmethod
    def _valid_time(cls, value: str) -> str:
        cleaned = value.strip()
        if not TIME_PATTERN.match(cleaned):
            raise _key_error("reservationTimeInvalid")
        hours, minutes = cleaned.split(":")
        return f"{int(hours):02d}:{minutes}"

    @field_validator("party_size", mode="before")
    @classmethod
    def _coerce_party_size(cls, value: Any) -> int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        try:
            return int(str(value).strip() or "0")
        except (TypeError, ValueError) as exc:
            raise _key_error("partySizeInvalid") from exc

    @field_validator("party_size")
    @classmethod
    def _party_size_range(cls, value: int) -> int:
        if value < 1:
            raise _key_error("partySizeInvalid")
        if value > MAX_PARTY_SIZE:
            raise _key_error("partySizeTooLarge")
        return value

    @field_validator("customer_notes", mode="before")
    @classmethod
    def _blank_notes(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @field_validator("table_id", mode="before")
    @classmethod
    def _normalize_table(cls, value: Any) -> Any:
        if value is None:
            return None
        cleaned = str(value).strip()
        if not cleaned or cleaned == UNASSIGN_TABLE:
            return UNASSIGN_TABLE
        if not cleaned.isdigit():
            raise _key_error("table_id_invalid")
        return cleaned

    @property
    def selected_table_id(self) -> Optional[int]:
        if self.table_id is None or self.table_id == UNASSIGN_TABLE:
            return None
        return int(self.table_id)

    @property
    def clears_table(self) -> bool:
        return self.table_id == UNASSIGN_TABLE


class UpdateReservationForm(ReservationForm):
    reservation_id: str = Field(alias="reservationId")

    @field_validator("reservation_id")
    @classmethod
    def _present(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise _key_error("requiredField")
        return cleaned


class ReservableTable(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    table_number: str
    capacity: int
    description_i18n: Optional[Any] = None

    @field_validator("table_number", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> str:
        return "" if value is None else str(value)


class ReservationTableDetails(BaseModel):
    model_config = ConfigDict(extra="allow")

    table_number: Optional[str] = None
    description_i18n: Optional[Any] = None
    capacity: Optional[int] = None

    @field_validator("table_number", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)


class Reservation(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Union[int, str]
    user_id: Optional[str] = None
    reservation_date: str
    reservation_time: Optional[str] = None
    party_size: int
    status: str = "pending"
    customer_notes_i18n: Optional[Any] = None
    internal_notes_i18n: Optional[Any] = None
    table_id: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    restaurant_tables: Optional[ReservationTableDetails] = None

    @field_validator("restaurant_tables", mode="before")
    @classmethod
    def _single_table(cls, value: Any) -> Any:
        if isinstance(value, list):
            return value[0] if value else None
        return value

    @property
    def time_label(self) -> Optional[str]:
        return self.reservation_time[:5] if self.reservation_time else None

    @property
    def is_editable(self) -> bool:
        return self.status in EDITABLE_STATUSES


class MenuItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Union[int, str]
    i18n_content: Optional[Any] = None
    price: Optional[float] = None
    image_url: Optional[str] = None
    category_id: Optional[Union[int, str]] = None


class Special(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Union[int, str]
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    menu_items: Optional[MenuItem] = None

    @model_validator(mode="before")
    @classmethod
    def _single_menu_item(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("menu_items"), list):
            data = dict(data)
            items = data["menu_items"]
            data["menu_items"] = items[0] if items else None
        return data


class Testimonial(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Union[int, str]
    customer_name: Optional[str] = None
    quote: Optional[str] = None
    rating: Optional[int] = None
    image_url: Optional[str] = None
    created_at: Optional[str] = None


class LocalizedSpecial(BaseModel):
    """A special flattened for rendering in one locale."""

    id: Union[int, str]
    name: str
    description: Optional[str] = None
    price: Optional[float] = None
    image_url: Optional[str] = None


class EditLookup(BaseModel):
    success: bool
    data: Optional[Reservation] = None
    error_key: Optional[
        Literal["userNotAuthenticated", "genericError", "notFound", "cannotEditStatus", "missingReservationId"]
    ] = None
    message: Optional[str] = None


class TablesResult(BaseModel):
    type: Literal["success", "error"]
    data: List[ReservableTable] = Field(default_factory=list)
    message: Optional[str] = None
    message_key: Optional[str] = None


__all__ = [
    "EDITABLE_STATUSES",
    "EditLookup",
    "LocalizedSpecial",
    "MenuItem",
    "Reservation",
    "ReservableTable",
    "ReservationForm",
    "ReservationStatus",
    "ReservationTableDetails",
    "SignInForm",
    "SignUpForm",
    "Special",
    "TablesResult",
    "Testimonial",
    "UNASSIGN_TABLE",
    "UpdateReservationForm",
]
