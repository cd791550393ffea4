# backend/inventory_tracker/services/item_service.py
"""
Item Store (local variant)

Owns the canonical set of inventory items in the relational database.

Invariants:
- name is never blank
- quantity is an integer and never negative
- code, when present, is unique among live items
- id is assigned on create and never changes
- delete is permanent (no soft-delete)

Items cross this boundary as plain dicts ({id, code, name, quantity, ...}),
the same shape the remote variant returns, so the list controller works
against either backend.

The store never sends notifications. Callers that need a stock-depleted hook
inspect the returned quantity (see list_controller.py).
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Item
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_item,
    validate_payload,
)
from .concurrency import lock_for_update, read_guard, serialized_write

logger = logging.getLogger(__name__)

ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"code", "name", "quantity"},
    required_on_create={"name", "quantity"},
)

ITEM_MUTABLE_FIELDS = {"code", "name", "quantity"}


def clean_item_fields(payload: dict) -> dict:
    """Validate and normalize {code, name, quantity}; raises ValidationError."""
    patch = validate_payload(model=Item, payload=payload, policy=ITEM_POLICY, partial=False)
    enforce_rules_item(patch)
    patch.setdefault("code", None)
    return patch


def apply_item_fields(item: Item, fields: dict) -> None:
    for k, v in fields.items():
        if k not in ITEM_MUTABLE_FIELDS:
            continue
        setattr(item, k, v)


def _item_id(item) -> int:
    """Accept an item dict or a bare id."""
    if isinstance(item, dict):
        item_id = item.get("id")
    else:
        item_id = item
    if item_id is None or isinstance(item_id, bool):
        raise ValidationError("item id is required")
    try:
        return int(item_id)
    except (TypeError, ValueError):
        raise ValidationError("item id must be an integer")


def _ensure_code_available(code: str | None, *, exclude_id: int | None = None) -> None:
    if code is None:
        return
    query = db.session.query(Item).filter(Item.code == code)
    if exclude_id is not None:
        query = query.filter(Item.id != exclude_id)
    if query.first():
        raise ConflictError("Item code already exists.")


class ItemStore:
    """Database-backed item store."""

    def create(self, name: str, quantity: int, code: str | None = None) -> dict:
        """
        Create an item.

        Raises:
            ValidationError: blank name, negative or non-integer quantity
            ConflictError: code already used by another item
        """
        fields = clean_item_fields({"name": name, "quantity": quantity, "code": code})

        with serialized_write():
            _ensure_code_available(fields["code"])

            item = Item()
            apply_item_fields(item, fields)
            db.session.add(item)
            try:
                db.session.commit()
            except IntegrityError as exc:
                db.session.rollback()
                raise ConflictError("Item code already exists.") from exc

        logger.info("Created item id=%s code=%s quantity=%s", item.id, item.code, item.quantity)
        return item.to_dict()

    def update(self, item: dict) -> dict:
        """
        Fully replace name, quantity and code of the item with item["id"].

        Missing fields are not merged from the stored row: name and quantity
        are required, and an absent code clears it.

        Raises:
            NotFoundError: unknown id
            ValidationError, ConflictError: as for create
        """
        if not isinstance(item, dict):
            raise ValidationError("item must be an object")
        item_id = _item_id(item)
        fields = clean_item_fields({k: item.get(k) for k in ITEM_MUTABLE_FIELDS if k in item})

        with serialized_write():
            row = lock_for_update(db.session.query(Item).filter_by(id=item_id)).first()
            if row is None:
                raise NotFoundError("Item not found")

            _ensure_code_available(fields["code"], exclude_id=row.id)

            apply_item_fields(row, fields)
            try:
                db.session.commit()
            except IntegrityError as exc:
                db.session.rollback()
                raise ConflictError("Item code already exists.") from exc

        logger.info("Updated item id=%s quantity=%s", row.id, row.quantity)
        return row.to_dict()

    def delete(self, item) -> None:
        """
        Permanently remove an item (dict or id).

        Raises:
            NotFoundError: unknown id
        """
        item_id = _item_id(item)

        with serialized_write():
            row = lock_for_update(db.session.query(Item).filter_by(id=item_id)).first()
            if row is None:
                raise NotFoundError("Item not found")
            db.session.delete(row)
            db.session.commit()

        logger.info("Deleted item id=%s", item_id)

    def list(self) -> list[dict]:
        """Full snapshot. No ordering guarantee."""
        rows = read_guard(lambda: db.session.query(Item).all())
        return [row.to_dict() for row in rows]

    def get(self, item_id: int) -> dict | None:
        row = read_guard(lambda: db.session.get(Item, _item_id(item_id)))
        return row.to_dict() if row else None

    def find_by_code(self, code: str) -> dict | None:
        if code is None or not str(code).strip():
            return None
        row = read_guard(
            lambda: db.session.query(Item).filter_by(code=str(code).strip()).first()
        )
        return row.to_dict() if row else None
