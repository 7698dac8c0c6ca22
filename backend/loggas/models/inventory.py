from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import new_id


class Product(db.Model):
    """
    Catalog entry for one tenant.

    Stock is a stored counter. It moves only through restock (increase) and
    sale commit (atomic conditional decrement), never through a plain patch.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "sku", name="uq_products_tenant_sku"),
        db.Index("ix_products_tenant_online", "tenant_id", "active", "show_online"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("min_stock >= 0", name="ck_products_min_stock_non_negative"),
        db.CheckConstraint("cost_price_cents >= 0", name="ck_products_cost_non_negative"),
        db.CheckConstraint("sell_price_cents >= 0", name="ck_products_sell_non_negative"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    tenant_id = db.Column(db.String(64), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(16), nullable=False, default="gas")
    sku = db.Column(db.String(64), nullable=False)
    unit = db.Column(db.String(16), nullable=False, default="un")

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=0)

    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    sell_price_cents = db.Column(db.Integer, nullable=False)

    active = db.Column(db.Boolean, nullable=False, default=True)
    show_online = db.Column(db.Boolean, nullable=False, default=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "category": self.category,
            "sku": self.sku,
            "unit": self.unit,
            "stock": self.stock,
            "min_stock": self.min_stock,
            "cost_price_cents": self.cost_price_cents,
            "sell_price_cents": self.sell_price_cents,
            "active": self.active,
            "show_online": self.show_online,
            "is_low_stock": self.is_low_stock,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    def to_public_dict(self) -> dict:
        """Storefront view: no cost basis, no internal counters."""
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "sell_price_cents": self.sell_price_cents,
            "in_stock": self.stock > 0,
            "stock": self.stock,
        }
