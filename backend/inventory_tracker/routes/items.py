# Overview: Flask API routes for inventory items; parses input and returns JSON responses.

# backend/inventory_tracker/routes/items.py
"""
Inventory item routes.

Items are addressed by code, matching the web client:
    /api/items/<code>

Every request gets its own ListController bound to the caller's
SessionContext, so capability checks, the post-mutation refresh and the
stock-depleted notification hook run the same way as in any other client.

SECURITY: All routes require authentication.
- Read operations require View
- POST requires Add, PUT and quantity changes require Edit, DELETE requires Delete
"""
from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_capability
from ..permissions import Capability
from ..services.item_service import ItemStore, clean_item_fields
from ..services.list_controller import ListController, validate_page_size
from ..services.notification_service import NotificationGate, build_channel, get_preferences
from ..validation import (
    BackendUnavailableError,
    ConflictError,
    InventoryError,
    InvalidCredentialsError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

items_bp = Blueprint("items", __name__, url_prefix="/api/items")


# Most specific first: DuplicateUserError is a ConflictError
ERROR_STATUS = (
    (ValidationError, 400),
    (InvalidCredentialsError, 401),
    (PermissionDeniedError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (BackendUnavailableError, 503),
)


def error_response(exc: InventoryError):
    for exc_type, status in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return {"error": str(exc)}, status
    current_app.logger.exception("Unhandled inventory error")
    return {"error": "Internal server error"}, 500


def _controller() -> ListController:
    context = g.session_context
    gate = NotificationGate(build_channel(current_app.config["NOTIFICATION_CHANNEL"]))
    return ListController(
        ItemStore(),
        context,
        gate,
        get_preferences(context.user_id),
        page_size=current_app.config["DEFAULT_PAGE_SIZE"],
    )


def _existing(code: str) -> dict:
    item = ItemStore().find_by_code(code)
    if item is None:
        raise NotFoundError("Item not found")
    return item


@items_bp.get("")
@require_auth
@require_capability(Capability.VIEW)
def list_items():
    """Full item list ordered by name. Empty inventory returns []."""
    controller = _controller()
    try:
        controller.refresh()
        return controller.filtered(), 200
    except InventoryError as e:
        return error_response(e)
    finally:
        controller.close()


@items_bp.get("/view")
@require_auth
@require_capability(Capability.VIEW)
def list_view():
    """
    Searchable, sorted, paginated view with the caller's allowed actions.

    Query params:
    - search: str (optional) - case-insensitive substring of name
    - page: int (optional) - 1-indexed, clamped to the last page
    - per_page: int (optional) - default DEFAULT_PAGE_SIZE, max MAX_PAGE_SIZE
    - sort_by: name | quantity (default name)
    - sort_order: asc | desc (default asc)
    """
    controller = _controller()
    try:
        per_page = request.args.get("per_page")
        if per_page is not None:
            controller.set_page_size(
                validate_page_size(per_page, current_app.config["MAX_PAGE_SIZE"])
            )
        controller.set_sort(request.args.get("sort_by"), request.args.get("sort_order"))
        controller.refresh()
        controller.set_search_term(request.args.get("search"))
        page = request.args.get("page")
        if page is not None:
            controller.go_to_page(page)
        return controller.page().to_dict(), 200
    except InventoryError as e:
        return error_response(e)
    finally:
        controller.close()


@items_bp.post("")
@require_auth
@require_capability(Capability.ADD)
def create_item_route():
    """Create an item from {code, name, quantity}. Returns 201."""
    payload = request.get_json(silent=True)
    controller = _controller()
    try:
        fields = clean_item_fields(payload)
        change = controller.add_item(fields["name"], fields["quantity"], fields["code"])
        return change.to_dict(), 201
    except InventoryError as e:
        return error_response(e)
    finally:
        controller.close()


@items_bp.get("/<code>")
@require_auth
@require_capability(Capability.VIEW)
def get_item_route(code: str):
    try:
        return _existing(code), 200
    except InventoryError as e:
        return error_response(e)


@items_bp.put("/<code>")
@require_auth
@require_capability(Capability.EDIT)
def update_item_route(code: str):
    """
    Replace name, quantity and code of the item with this code.

    Fields not sent are not merged from the stored item: an omitted code
    clears it. The response carries the stock-depleted notification outcome.
    """
    payload = request.get_json(silent=True)
    controller = _controller()
    try:
        fields = clean_item_fields(payload)
        existing = _existing(code)
        change = controller.update_item({**fields, "id": existing["id"]})
        return change.to_dict(), 200
    except InventoryError as e:
        return error_response(e)
    finally:
        controller.close()


@items_bp.delete("/<code>")
@require_auth
@require_capability(Capability.DELETE)
def delete_item_route(code: str):
    controller = _controller()
    try:
        controller.delete_item(_existing(code))
        return {"message": "Item deleted successfully"}, 200
    except InventoryError as e:
        return error_response(e)
    finally:
        controller.close()


@items_bp.post("/<code>/increment")
@require_auth
@require_capability(Capability.EDIT)
def increment_item_route(code: str):
    controller = _controller()
    try:
        change = controller.increment(_existing(code))
        return change.to_dict(), 200
    except InventoryError as e:
        return error_response(e)
    finally:
        controller.close()


@items_bp.post("/<code>/decrement")
@require_auth
@require_capability(Capability.EDIT)
def decrement_item_route(code: str):
    """Lower quantity by one. At 0 nothing changes and the response carries a warning."""
    controller = _controller()
    try:
        change = controller.decrement(_existing(code))
        return change.to_dict(), 200
    except InventoryError as e:
        return error_response(e)
    finally:
        controller.close()
