# Overview: Searchable, sorted, paginated, role-scoped view over an item store.

"""
List Controller

Holds per-session view state over an item store snapshot:

    (full_set, search_term, page_index, page_size, sort_by, sort_order)

Pipeline on every page() call:
    full_set -> filter(search_term) -> sort(sort_by, sort_order) -> slice(page)

and each row is paired with the actions the session's role allows, so the
display layer performs no authorization of its own.

Mutations go through the controller so capability checks, the post-mutation
refresh and the stock-depleted notification hook live in one place:

    controller -> item store -> (quantity == 0) notification gate

View state rules:
- Setting the search term always resets page_index to 1.
- Changing page_size does not reset page_index; the index is clamped to the
  last page the next time a page is computed.
- A failed refresh keeps the last snapshot (BackendUnavailableError is
  re-raised so the caller can report it).
- After close(), results of an in-flight refresh are discarded and every
  other call raises SessionClosedError.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from ..permissions import Capability, global_actions, item_actions, require_capability
from ..validation import (
    BackendUnavailableError,
    NotFoundError,
    SessionClosedError,
    ValidationError,
    coerce_int,
)
from .notification_service import NotificationGate, NotificationPrefs, NotificationResult
from .session_service import SessionContext

logger = logging.getLogger(__name__)


DEFAULT_PAGE_SIZE = 10

SORT_BY_NAME = "name"
SORT_BY_QUANTITY = "quantity"
VALID_SORT_FIELDS = {SORT_BY_NAME, SORT_BY_QUANTITY}

SORT_ASC = "asc"
SORT_DESC = "desc"
VALID_SORT_ORDERS = {SORT_ASC, SORT_DESC}

QUANTITY_FLOOR_WARNING = "Quantity cannot be less than 0"


def filter_items(items: list[dict], search_term: str | None) -> list[dict]:
    """Case-insensitive substring match on name. An empty term matches everything."""
    term = (search_term or "").strip().lower()
    if not term:
        return list(items)
    return [item for item in items if term in (item.get("name") or "").lower()]


def _name_key(item: dict) -> str:
    return (item.get("name") or "").lower()


def sort_items(items: list[dict], sort_by: str = SORT_BY_NAME, sort_order: str = SORT_ASC) -> list[dict]:
    """Stable ordering; ties are broken by id so pages never shuffle between calls."""
    if sort_by == SORT_BY_QUANTITY:
        key = lambda item: (item.get("quantity") or 0, _name_key(item), str(item.get("id")))
    else:
        key = lambda item: (_name_key(item), str(item.get("id")))
    return sorted(items, key=key, reverse=(sort_order == SORT_DESC))


def total_pages_for(total: int, page_size: int) -> int:
    return (total + page_size - 1) // page_size if total > 0 else 1


def paginate(items: list[dict], page_index: int, page_size: int) -> list[dict]:
    """filtered[(p-1)*size : min(p*size, len)]"""
    start = (page_index - 1) * page_size
    end = min(page_index * page_size, len(items))
    return items[start:end]


@dataclass(frozen=True)
class ListRow:
    item: dict
    actions: frozenset

    def to_dict(self) -> dict:
        return {"item": self.item, "actions": sorted(self.actions)}


@dataclass(frozen=True)
class ListPage:
    """What the display layer renders: one page plus the affordances to show."""
    rows: tuple
    capabilities: frozenset
    global_actions: frozenset
    search_term: str
    sort_by: str
    sort_order: str
    page_index: int
    page_size: int
    total: int
    total_pages: int
    can_go_next: bool
    can_go_previous: bool
    is_empty: bool

    @property
    def items(self) -> list[dict]:
        return [row.item for row in self.rows]

    def to_dict(self) -> dict:
        return {
            "items": [row.to_dict() for row in self.rows],
            "count": len(self.rows),
            "capabilities": sorted(self.capabilities),
            "global_actions": sorted(self.global_actions),
            "search": self.search_term,
            "sort_by": self.sort_by,
            "sort_order": self.sort_order,
            "empty": self.is_empty,
            "pagination": {
                "page": self.page_index,
                "per_page": self.page_size,
                "total": self.total,
                "total_pages": self.total_pages,
                "has_next": self.can_go_next,
                "has_prev": self.can_go_previous,
            },
        }


@dataclass(frozen=True)
class ItemChange:
    """
    Outcome of a controller mutation.

    changed is False when nothing was written (decrement at 0); warning then
    carries the user-visible reason. notification is set when the stock
    depleted hook ran.
    """
    item: dict
    changed: bool = True
    warning: str | None = None
    notification: NotificationResult | None = None

    def to_dict(self) -> dict:
        return {
            "item": self.item,
            "changed": self.changed,
            "warning": self.warning,
            "notification": self.notification.to_dict() if self.notification else None,
        }


def validate_page_size(page_size, max_page_size: int | None = None) -> int:
    size = coerce_int(page_size, "page_size")
    if size < 1:
        raise ValidationError("page_size must be >= 1")
    if max_page_size is not None and size > max_page_size:
        raise ValidationError(f"page_size cannot exceed {max_page_size}")
    return size


class ListController:
    """
    Per-session view over an item store.

    store:   anything with list/get/find_by_code/create/update/delete
             (ItemStore or RemoteItemStore)
    session: the SessionContext whose role scopes actions
    gate:    NotificationGate for the stock-depleted hook (optional)
    prefs:   the session user's NotificationPrefs
    """

    def __init__(
        self,
        store,
        session: SessionContext,
        gate: NotificationGate | None = None,
        prefs: NotificationPrefs | None = None,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self.store = store
        self.gate = gate
        self.prefs = prefs or NotificationPrefs()
        self._session = session
        self._lock = threading.RLock()
        self._closed = False

        self._full_set: list[dict] = []
        self._search_term = ""
        self._page_index = 1
        self._page_size = validate_page_size(page_size)
        self._sort_by = SORT_BY_NAME
        self._sort_order = SORT_ASC

    # -- lifecycle --

    @property
    def session(self) -> SessionContext:
        self._ensure_open()
        return self._session

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Tear down: drop the snapshot and the session context."""
        with self._lock:
            self._closed = True
            self._full_set = []
            self._session = None

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("List view has been closed")

    # -- view state --

    @property
    def full_set(self) -> list[dict]:
        with self._lock:
            return list(self._full_set)

    @property
    def search_term(self) -> str:
        return self._search_term

    @property
    def page_index(self) -> int:
        return self._page_index

    @property
    def page_size(self) -> int:
        return self._page_size

    def refresh(self) -> bool:
        """
        Replace the snapshot with the store's current list().

        Returns False when the controller was closed while the store call was
        in flight (the result is discarded). On BackendUnavailableError the
        previous snapshot is kept and the error re-raised.
        """
        self._ensure_open()
        try:
            snapshot = self.store.list()
        except BackendUnavailableError:
            logger.warning("Refresh failed; keeping last snapshot of %d items", len(self._full_set))
            raise

        with self._lock:
            if self._closed:
                logger.debug("Discarding refresh result after close")
                return False
            self._full_set = list(snapshot)
        return True

    def set_search_term(self, search_term: str | None) -> None:
        self._ensure_open()
        with self._lock:
            self._search_term = (search_term or "").strip()
            self._page_index = 1

    def set_page_size(self, page_size: int) -> None:
        self._ensure_open()
        size = validate_page_size(page_size)
        with self._lock:
            self._page_size = size

    def set_sort(self, sort_by: str | None = None, sort_order: str | None = None) -> None:
        self._ensure_open()
        sort_by = (sort_by or SORT_BY_NAME).strip().lower()
        sort_order = (sort_order or SORT_ASC).strip().lower()
        if sort_by not in VALID_SORT_FIELDS:
            raise ValidationError("sort_by must be name or quantity")
        if sort_order not in VALID_SORT_ORDERS:
            raise ValidationError("sort_order must be asc or desc")
        with self._lock:
            self._sort_by = sort_by
            self._sort_order = sort_order

    def filtered(self) -> list[dict]:
        """The snapshot after search and sort, before slicing."""
        self._ensure_open()
        with self._lock:
            matched = filter_items(self._full_set, self._search_term)
            return sort_items(matched, self._sort_by, self._sort_order)

    def _clamp_page_index(self, total: int) -> int:
        last = total_pages_for(total, self._page_size)
        self._page_index = max(1, min(self._page_index, last))
        return self._page_index

    def can_go_next(self) -> bool:
        with self._lock:
            total = len(self.filtered())
            return self._clamp_page_index(total) * self._page_size < total

    def can_go_previous(self) -> bool:
        with self._lock:
            self._clamp_page_index(len(self.filtered()))
            return self._page_index > 1

    def next_page(self) -> bool:
        with self._lock:
            if not self.can_go_next():
                return False
            self._page_index += 1
            return True

    def previous_page(self) -> bool:
        with self._lock:
            if not self.can_go_previous():
                return False
            self._page_index -= 1
            return True

    def go_to_page(self, page_index: int) -> int:
        """Jump to a page, clamped to the pages that exist. Returns the page now current."""
        self._ensure_open()
        wanted = coerce_int(page_index, "page")
        with self._lock:
            self._page_index = max(1, wanted)
            return self._clamp_page_index(len(self.filtered()))

    def page(self) -> ListPage:
        """Present the current page with the session's allowed actions."""
        self._ensure_open()
        with self._lock:
            matched = self.filtered()
            total = len(matched)
            page_index = self._clamp_page_index(total)
            caps = self._session.capabilities
            row_actions = item_actions(caps)
            rows = tuple(
                ListRow(item=item, actions=row_actions)
                for item in paginate(matched, page_index, self._page_size)
            )
            return ListPage(
                rows=rows,
                capabilities=caps,
                global_actions=global_actions(caps),
                search_term=self._search_term,
                sort_by=self._sort_by,
                sort_order=self._sort_order,
                page_index=page_index,
                page_size=self._page_size,
                total=total,
                total_pages=total_pages_for(total, self._page_size),
                can_go_next=page_index * self._page_size < total,
                can_go_previous=page_index > 1,
                is_empty=total == 0,
            )

    # -- mutations --

    def _require(self, capability: str) -> None:
        self._ensure_open()
        require_capability(self._session.role, capability)

    def _refresh_after_mutation(self) -> None:
        try:
            self.refresh()
        except BackendUnavailableError:
            # The mutation itself committed; the stale snapshot stays on screen
            pass

    def _after_save(self, saved: dict) -> NotificationResult | None:
        if self.gate is None or saved.get("quantity") != 0:
            return None
        return self.gate.evaluate(saved, self.prefs)

    def _current(self, item) -> dict:
        """Re-read an item (dict or id) from the store."""
        current = None
        if isinstance(item, dict):
            if item.get("code"):
                current = self.store.find_by_code(item["code"])
            elif item.get("id") is not None:
                current = self.store.get(item["id"])
        elif item is not None:
            current = self.store.get(item)
        if current is None:
            raise NotFoundError("Item not found")
        return current

    def add_item(self, name: str, quantity: int, code: str | None = None) -> ItemChange:
        self._require(Capability.ADD)
        created = self.store.create(name=name, quantity=quantity, code=code)
        self._refresh_after_mutation()
        return ItemChange(item=created, notification=self._after_save(created))

    def update_item(self, item: dict) -> ItemChange:
        """Full replacement of name, quantity and code."""
        self._require(Capability.EDIT)
        saved = self.store.update(item)
        self._refresh_after_mutation()
        return ItemChange(item=saved, notification=self._after_save(saved))

    def delete_item(self, item) -> None:
        self._require(Capability.DELETE)
        self.store.delete(item)
        self._refresh_after_mutation()

    def increment(self, item) -> ItemChange:
        self._require(Capability.EDIT)
        current = self._current(item)
        saved = self.store.update({**current, "quantity": current["quantity"] + 1})
        self._refresh_after_mutation()
        return ItemChange(item=saved)

    def decrement(self, item) -> ItemChange:
        """
        Lower quantity by one, flooring at 0.

        At 0 nothing is written and the result carries QUANTITY_FLOOR_WARNING.
        Reaching 0 runs the stock-depleted hook.
        """
        self._require(Capability.EDIT)
        current = self._current(item)
        if current["quantity"] <= 0:
            return ItemChange(item=current, changed=False, warning=QUANTITY_FLOOR_WARNING)
        saved = self.store.update({**current, "quantity": current["quantity"] - 1})
        self._refresh_after_mutation()
        return ItemChange(item=saved, notification=self._after_save(saved))
