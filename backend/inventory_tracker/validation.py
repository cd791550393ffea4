from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Integer, String
from sqlalchemy.orm import DeclarativeMeta


class InventoryError(Exception):
    """Base class for every error the inventory core raises."""


class ValidationError(InventoryError, ValueError):
    """400-level input problem."""


class ConflictError(InventoryError, ValueError):
    """409-level business rule conflict (e.g., duplicate item code)."""


class DuplicateUserError(ConflictError):
    """Registration for a username that already exists."""


class NotFoundError(InventoryError, LookupError):
    """404-level unknown item or user."""


class InvalidCredentialsError(InventoryError):
    """
    Login failure.

    The message is identical for an unknown username and a wrong password.
    """

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class PermissionDeniedError(InventoryError):
    """Role lacks the capability for the requested action."""


class BackendUnavailableError(InventoryError):
    """Database or remote API could not be reached. Recoverable."""


class SessionClosedError(InventoryError):
    """A torn-down list controller was used."""


class NotificationDeliveryError(InventoryError):
    """Raised by a notification channel when a message cannot be sent."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which columns a caller may write, and which of those a create must carry.
    Anything outside writable_fields is rejected before it reaches the model.
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def coerce_int(value: Any, field: str) -> int:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an integer")

    text = value.strip()
    if "." in text:
        raise ValidationError(f"{field} must be an integer (no decimals)")
    if "e" in text.lower():
        raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
    try:
        return int(text)
    except ValueError:
        raise ValidationError(f"{field} must be an integer") from None


def _clean_column_value(column, raw: Any) -> Any:
    if isinstance(column.type, Integer):
        return coerce_int(raw, column.key)
    if isinstance(column.type, String):
        text = str(raw).strip()
        if not text and not column.nullable:
            raise ValidationError(f"{column.key} cannot be blank")
        limit = column.type.length
        if limit and len(text) > limit:
            raise ValidationError(f"{column.key} exceeds max length {limit}")
        return text
    return raw


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Check a JSON body against the policy and the model's column metadata.

    Returns a new dict holding only the supplied writable fields, coerced to
    their column types. With partial=False every required_on_create field
    must be present (create and full replacement).
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        absent = sorted((policy.required_on_create or set()) - set(payload))
        if absent:
            raise ValidationError(f"Missing required fields: {', '.join(absent)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    cleaned: dict = {}

    for key, raw in payload.items():
        if key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {key}")
        column = columns.get(key)
        if column is None:
            raise ValidationError(f"Unknown field: {key}")

        if raw is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null")
            cleaned[key] = None
        else:
            cleaned[key] = _clean_column_value(column, raw)

    return cleaned


def enforce_rules_item(patch: dict) -> None:
    """Item rules the column metadata cannot express."""
    if "name" in patch:
        name = patch["name"]
        if name is None or not str(name).strip():
            raise ValidationError("name cannot be blank")

    if "quantity" in patch:
        if patch["quantity"] is None:
            raise ValidationError("quantity is required")
        if coerce_int(patch["quantity"], "quantity") < 0:
            raise ValidationError("quantity must be >= 0")

    # Blank code means no code; NULLs never collide on the unique index
    code = patch.get("code")
    if code is not None and not str(code).strip():
        patch["code"] = None
