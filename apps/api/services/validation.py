"""Explicit input validation run before any store or media call."""

from __future__ import annotations

import uuid
from typing import Any, Optional

from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from services.errors import NotFound, ValidationFailed

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 16

_email_adapter = TypeAdapter(EmailStr)
_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_fields(message: str = "Please fill all the required fields.", **fields: Any) -> None:
    """Reject the request when any named field is missing or blank."""
    missing = [name for name, value in fields.items() if is_blank(value)]
    if missing:
        raise ValidationFailed(
            message,
            errors=[{"field": name, "message": "is required"} for name in missing],
        )


def reject_blank_if_present(message: str = "Fields cannot be blank.", **fields: Any) -> None:
    blank = [name for name, value in fields.items() if value is not None and is_blank(value)]
    if blank:
        raise ValidationFailed(
            message,
            errors=[{"field": name, "message": "cannot be blank"} for name in blank],
        )


def normalize_email(value: str) -> str:
    candidate = (value or "").strip().lower()
    try:
        _email_adapter.validate_python(candidate)
    except ValidationError as exc:
        raise ValidationFailed("Invalid email.", errors=[{"field": "email", "message": "invalid email"}]) from exc
    return candidate


def check_password_length(password: str, field: str = "password") -> None:
    if not (PASSWORD_MIN_LENGTH <= len(password or "") <= PASSWORD_MAX_LENGTH):
        raise ValidationFailed(
            f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters long.",
            errors=[{"field": field, "message": "invalid length"}],
        )


def parse_bool(value: Any, field: str) -> Optional[bool]:
    """Parse a form/JSON boolean; ``None`` stays ``None``."""
    if value is None or isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValidationFailed(f"Invalid value for {field}.", errors=[{"field": field, "message": "expected a boolean"}])


def parse_resource_id(value: Any, label: str) -> str:
    """Return the canonical id string or raise ``Invalid <label> ID.``"""
    try:
        return str(uuid.UUID(str(value or "").strip()))
    except ValueError as exc:
        raise ValidationFailed(f"Invalid {label} ID.") from exc


async def get_or_404(db: AsyncSession, model: Any, resource_id: str, label: str) -> Any:
    result = await db.execute(select(model).where(model.id == resource_id))
    record = result.scalar_one_or_none()
    if record is None:
        raise NotFound(f"{label.capitalize()} not found.")
    return record

