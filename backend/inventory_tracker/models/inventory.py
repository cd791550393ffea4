from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Item(db.Model):
    """
    A single inventory record.

    CODE DESIGN DECISION:
    Item.code is the external SKU. It is optional, and unique among live items
    when present: UniqueConstraint("code"). NULL codes never collide, so any
    number of items may be created without one.

    Deletion is a hard delete. There is no is_active flag.

    LOOKUP PATTERN:
    - By internal id: db.session.get(Item, item_id)
    - By external code: Item.query.filter_by(code=X)
    """
    __tablename__ = "items"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_items_code"),
        db.CheckConstraint("quantity >= 0", name="ck_items_quantity_non_negative"),
        db.Index("ix_items_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    code = db.Column(db.String(64), nullable=True)
    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Item id={self.id} code={self.code!r} name={self.name!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "quantity": self.quantity,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
