from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import new_id


class Sale(db.Model):
    """
    Committed order, in-person or online.

    Everything except the fulfillment status is frozen at creation:
    total_cents is the sum of the line snapshots and is never recomputed.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "request_id", name="uq_sales_tenant_request_id"),
        db.Index("ix_sales_tenant_created", "tenant_id", "created_at"),
        db.Index("ix_sales_tenant_status", "tenant_id", "status"),
        db.Index("ix_sales_tenant_customer", "tenant_id", "customer_id"),
        db.CheckConstraint("total_cents >= 0", name="ck_sales_total_non_negative"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    tenant_id = db.Column(db.String(64), nullable=False, index=True)

    # Client-chosen idempotency key; a retried commit with the same key is a no-op
    request_id = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    customer_id = db.Column(db.String(64), nullable=False, default="0")
    customer_name = db.Column(db.String(255), nullable=False)
    customer_address = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)

    total_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False)
    origin = db.Column(db.String(16), nullable=False)

    status = db.Column(db.String(16), nullable=False)
    status_changed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Sale id={self.id} status={self.status} total_cents={self.total_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "request_id": self.request_id,
            "created_at": to_utc_z(self.created_at),
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "customer_address": self.customer_address,
            "customer_phone": self.customer_phone,
            "items": [item.to_dict() for item in self.items],
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "origin": self.origin,
            "status": self.status,
            "status_changed_at": to_utc_z(self.status_changed_at),
            "version_id": self.version_id,
        }


class SaleItem(db.Model):
    """Line item with the unit price captured when it entered the cart."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.String(32), db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.String(32), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }


class DeliveryRoute(db.Model):
    """A driver's batch of online orders dispatched together."""
    __tablename__ = "delivery_routes"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    tenant_id = db.Column(db.String(64), nullable=False, index=True)
    driver_id = db.Column(db.String(64), nullable=False)
    sale_ids = db.Column(db.JSON, nullable=False, default=list)
    status = db.Column(db.String(16), nullable=False, default="pending")
    suggestion = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "driver_id": self.driver_id,
            "sale_ids": list(self.sale_ids or []),
            "status": self.status,
            "suggestion": self.suggestion,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at),
        }
