"""Turn pydantic validation failures into renderable form results."""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from app.i18n.messages import MissingMessageError

ModelT = TypeVar("ModelT", bound=BaseModel)
TranslateFn = Callable[[str], str]

DEFAULT_MISSING_KEY = "requiredFields"


def now_ms() -> int:
    return int(time.time() * 1000)


class FormState(BaseModel):
    """Outcome of a form submission, rendered next to the form."""

    type: Literal["success", "error"]
    message: str
    message_key: Optional[str] = None
    field_errors: Optional[Dict[str, List[str]]] = None
    timestamp: Optional[int] = None

    @property
    def is_error(self) -> bool:
        return self.type == "error"

    def errors_for(self, field: str) -> List[str]:
        if not self.field_errors:
            return []
        return self.field_errors.get(field) or []

    @classmethod
    def error(
        cls,
        message: str,
        *,
        message_key: Optional[str] = None,
        field_errors: Optional[Dict[str, List[str]]] = None,
    ) -> "FormState":
        return cls(
            type="error",
            message=message,
            message_key=message_key,
            field_errors=field_errors,
            timestamp=now_ms(),
        )

    @classmethod
    def success(cls, message: str) -> "FormState":
        return cls(type="success", message=message, timestamp=now_ms())


def _error_key(error: Mapping[str, Any], missing_key: str) -> str:
    if error.get("type") == "missing":
        return missing_key
    return str(error.get("type") or "unknownValidationError")


def _translate(t: TranslateFn, key: str) -> str:
    try:
        return t(key)
    except MissingMessageError:
        return t("unknownValidationError")


def process_validation_errors(
    error: Optional[ValidationError],
    t: TranslateFn,
    *,
    missing_key: str = DEFAULT_MISSING_KEY,
) -> Optional[FormState]:
    """Return an error :class:`FormState` for ``error``, or ``None`` if valid.

    Field-level errors are keyed by the first ``loc`` element. The pydantic
    error type doubles as the translation key; unknown keys fall back to
    ``unknownValidationError``. Errors without a location are not attached to
    any field.
    """

    if error is None:
        return None

    field_errors: Dict[str, List[str]] = {}
    for item in error.errors():
        loc = item.get("loc") or ()
        if not loc:
            continue
        field = str(loc[0])
        message = _translate(t, _error_key(item, missing_key))
        field_errors.setdefault(field, []).append(message)

    return FormState(
        type="error",
        message=t("validationError"),
        field_errors=field_errors,
        timestamp=now_ms(),
    )


def validate_form(
    model: Type[ModelT],
    data: Mapping[str, Any],
    t: TranslateFn,
    *,
    missing_key: str = DEFAULT_MISSING_KEY,
) -> Union[ModelT, FormState]:
    """Return the validated ``model`` instance, or the failure to render."""

    try:
        return model.model_validate(dict(data))
    except ValidationError as exc:
        return process_validation_errors(exc, t, missing_key=missing_key)


__all__ = ["FormState", "process_validation_errors", "validate_form"]
