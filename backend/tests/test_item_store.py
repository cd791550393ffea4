"""
Item store tests (local variant).

Verifies:
- create/list round-trips every field
- name, quantity and code invariants hold on create and update
- update is a full replacement
- delete is permanent
"""

import pytest

from inventory_tracker.extensions import db
from inventory_tracker.models import Item
from inventory_tracker.validation import ConflictError, NotFoundError, ValidationError


class TestCreate:

    def test_create_then_list_round_trips(self, item_store):
        created = item_store.create(name="Widget", quantity=3, code="A1")

        items = item_store.list()
        assert len(items) == 1
        listed = items[0]
        assert listed["id"] == created["id"]
        assert listed["code"] == "A1"
        assert listed["name"] == "Widget"
        assert listed["quantity"] == 3

    def test_ids_are_unique(self, item_store):
        a = item_store.create(name="A", quantity=1)
        b = item_store.create(name="B", quantity=1)
        assert a["id"] != b["id"]

    def test_name_is_trimmed(self, item_store):
        created = item_store.create(name="  Gadget  ", quantity=1)
        assert created["name"] == "Gadget"

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_empty_name_rejected_and_nothing_persisted(self, item_store, name):
        with pytest.raises(ValidationError):
            item_store.create(name=name, quantity=1)
        assert db.session.query(Item).count() == 0

    @pytest.mark.parametrize("quantity", [-1, 1.5, "2.0", "1e3", True, None, "ten"])
    def test_bad_quantity_rejected(self, item_store, quantity):
        with pytest.raises(ValidationError):
            item_store.create(name="Widget", quantity=quantity)
        assert db.session.query(Item).count() == 0

    def test_numeric_string_quantity_accepted(self, item_store):
        created = item_store.create(name="Widget", quantity="7")
        assert created["quantity"] == 7

    def test_duplicate_code_rejected(self, item_store):
        item_store.create(name="Widget", quantity=1, code="A1")
        with pytest.raises(ConflictError):
            item_store.create(name="Other", quantity=2, code="A1")
        assert db.session.query(Item).count() == 1

    def test_items_without_code_never_collide(self, item_store):
        item_store.create(name="One", quantity=1)
        item_store.create(name="Two", quantity=1, code="  ")
        assert [i["code"] for i in item_store.list()] == [None, None]


class TestUpdate:

    def test_full_replacement(self, item_store):
        created = item_store.create(name="Widget", quantity=3, code="A1")

        updated = item_store.update({"id": created["id"], "name": "Widget XL", "quantity": 0})
        assert updated["name"] == "Widget XL"
        assert updated["quantity"] == 0
        # Omitted code is cleared, not merged
        assert updated["code"] is None

    def test_unknown_id(self, item_store):
        with pytest.raises(NotFoundError):
            item_store.update({"id": 9999, "name": "Ghost", "quantity": 1})

    def test_negative_quantity_rejected(self, item_store):
        created = item_store.create(name="Widget", quantity=3)
        with pytest.raises(ValidationError):
            item_store.update({**created, "quantity": -1})
        assert item_store.get(created["id"])["quantity"] == 3

    def test_code_taken_by_another_item(self, item_store):
        item_store.create(name="Widget", quantity=1, code="A1")
        other = item_store.create(name="Gadget", quantity=1, code="B1")
        with pytest.raises(ConflictError):
            item_store.update({**other, "code": "A1"})

    def test_keeping_own_code_is_not_a_conflict(self, item_store):
        created = item_store.create(name="Widget", quantity=1, code="A1")
        updated = item_store.update({**created, "quantity": 5})
        assert updated["code"] == "A1"
        assert updated["quantity"] == 5

    def test_missing_id_rejected(self, item_store):
        with pytest.raises(ValidationError):
            item_store.update({"name": "Widget", "quantity": 1})


class TestDeleteAndLookup:

    def test_delete_is_permanent(self, item_store):
        created = item_store.create(name="Widget", quantity=1, code="A1")
        item_store.delete(created)
        assert item_store.list() == []
        assert item_store.get(created["id"]) is None
        assert item_store.find_by_code("A1") is None

    def test_delete_by_id(self, item_store):
        created = item_store.create(name="Widget", quantity=1)
        item_store.delete(created["id"])
        assert item_store.list() == []

    def test_delete_unknown(self, item_store):
        with pytest.raises(NotFoundError):
            item_store.delete({"id": 12345})

    def test_find_by_code(self, item_store):
        created = item_store.create(name="Widget", quantity=1, code="A1")
        assert item_store.find_by_code("A1")["id"] == created["id"]
        assert item_store.find_by_code(" A1 ")["id"] == created["id"]
        assert item_store.find_by_code("Z9") is None
        assert item_store.find_by_code("") is None
