from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Customer(db.Model):
    """
    Customer master data with purchase aggregates.

    Identity is (tenant_id, id) where id is the buyer's user id, a
    caller-chosen id, or a phone surrogate ("phone:<digits>") for anonymous
    storefront buyers.

    purchase_count / total_spent_cents only grow; they are maintained by
    server-side increments in customer_service.record_purchase().
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_tenant_name", "tenant_id", "name"),
        db.CheckConstraint("purchase_count >= 0", name="ck_customers_purchase_count_non_negative"),
        db.CheckConstraint("total_spent_cents >= 0", name="ck_customers_total_spent_non_negative"),
    )

    tenant_id = db.Column(db.String(64), primary_key=True)
    id = db.Column(db.String(64), primary_key=True)

    name = db.Column(db.String(255), nullable=True)
    document = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    credit_limit_cents = db.Column(db.Integer, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active")

    last_purchase_at = db.Column(db.DateTime(timezone=True), nullable=True)
    purchase_count = db.Column(db.Integer, nullable=False, default=0)
    total_spent_cents = db.Column(db.Integer, nullable=False, default=0)
    average_interval_days = db.Column(db.Float, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "document": self.document,
            "address": self.address,
            "phone": self.phone,
            "credit_limit_cents": self.credit_limit_cents,
            "status": self.status,
            "last_purchase_at": to_utc_z(self.last_purchase_at),
            "purchase_count": self.purchase_count,
            "total_spent_cents": self.total_spent_cents,
            "average_interval_days": self.average_interval_days,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
