from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import new_id


class LedgerTransaction(db.Model):
    """
    Append-only financial entry (income from sales, expense from restocks).

    Rows are never updated or deleted; corrections are new entries.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_tenant_occurred", "tenant_id", "occurred_at"),
        db.CheckConstraint("amount_cents >= 0", name="ck_transactions_amount_non_negative"),
        db.CheckConstraint("type IN ('income', 'expense')", name="ck_transactions_type_valid"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    tenant_id = db.Column(db.String(64), nullable=False, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    description = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(16), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(64), nullable=False)

    # Provenance (optional)
    sale_id = db.Column(db.String(32), nullable=True, index=True)
    product_id = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<LedgerTransaction id={self.id} type={self.type} amount_cents={self.amount_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "description": self.description,
            "type": self.type,
            "amount_cents": self.amount_cents,
            "category": self.category,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "created_at": to_utc_z(self.created_at),
        }
