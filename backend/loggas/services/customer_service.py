# Overview: Service-layer operations for customers and their running purchase statistics.

"""
Customer aggregator invariants

- purchase_count and total_spent_cents only grow, and always equal the
  cumulative effect of every sale attributed to the customer.
- Stats are applied with server-side increments (count = count + 1), never
  by writing caller-computed totals, so two sales committing close together
  cannot lose an update.
- A customer row is created lazily by the first attributed sale
  (increment-or-initialize).
- The anonymous sentinel "0" is never aggregated. Anonymous buyers who leave
  a phone number are aggregated under "phone:<digits>". Two buyers sharing a
  phone share one record.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Customer, Sale
from ..models.common import new_id
from ..constants import ANONYMOUS_CUSTOMER_ID, CustomerStatus, values
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ConflictError,
    ValidationError,
    enforce_money,
    validate_payload,
)
from ..time_utils import days_between, utcnow
from .concurrency import begin_write, lock_for_update, run_with_retry
from .subscription_service import mark_changed

logger = logging.getLogger(__name__)

PHONE_KEY_PREFIX = "phone:"

PROFILE_FIELDS = ("name", "address", "phone")

CUSTOMER_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"id", "name", "document", "address", "phone", "credit_limit_cents", "status"},
    required_on_create={"name"},
    choices={"status": values(CustomerStatus)},
)

CUSTOMER_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "document", "address", "phone", "credit_limit_cents", "status"},
    choices={"status": values(CustomerStatus)},
)


def customer_key(customer_id: str | None, phone: str | None = None) -> str | None:
    """Aggregation key for a sale's buyer, or None when the sale is not attributed."""
    if customer_id and customer_id != ANONYMOUS_CUSTOMER_ID:
        return customer_id
    digits = re.sub(r"\D", "", phone or "")
    if digits:
        return f"{PHONE_KEY_PREFIX}{digits}"
    return None


def _profile_values(profile: dict | None) -> dict:
    if not profile:
        return {}
    return {k: profile[k] for k in PROFILE_FIELDS if profile.get(k)}


def _increment(tenant_id: str, key: str, amount_cents: int, purchased_at: datetime, merged: dict) -> int:
    stmt = (
        update(Customer)
        .where(Customer.tenant_id == tenant_id, Customer.id == key)
        .values(
            purchase_count=Customer.purchase_count + 1,
            total_spent_cents=Customer.total_spent_cents + amount_cents,
            last_purchase_at=purchased_at,
            updated_at=utcnow(),
            version_id=Customer.version_id + 1,
            **merged,
        )
        .execution_options(synchronize_session="fetch")
    )
    return db.session.execute(stmt).rowcount


def _average_interval(tenant_id: str, key: str) -> float | None:
    dates = [
        row[0]
        for row in db.session.query(Sale.created_at)
        .filter(Sale.tenant_id == tenant_id, Sale.customer_id == key)
        .order_by(Sale.created_at.asc())
        .all()
    ]
    if len(dates) < 2:
        return None
    return round(days_between(dates[0], dates[-1]) / (len(dates) - 1), 2)


def record_purchase(
    *,
    tenant_id: str,
    key: str,
    amount_cents: int,
    purchased_at: datetime,
    profile: dict | None = None,
) -> None:
    """
    Increment-or-initialize the stats of one customer.

    Joins the caller's unit of work; never commits. Profile fields supplied
    with the purchase (name / address / phone) are merged; absent ones stay
    untouched.
    """
    merged = _profile_values(profile)

    if _increment(tenant_id, key, amount_cents, purchased_at, merged) == 0:
        try:
            with db.session.begin_nested():
                db.session.add(Customer(
                    tenant_id=tenant_id,
                    id=key,
                    purchase_count=1,
                    total_spent_cents=amount_cents,
                    last_purchase_at=purchased_at,
                    status=CustomerStatus.ACTIVE.value,
                    **merged,
                ))
        except IntegrityError:
            # Another writer initialized the row first; fall back to incrementing it.
            logger.info("Customer %s initialized concurrently, incrementing", key)
            if _increment(tenant_id, key, amount_cents, purchased_at, merged) == 0:
                raise

    db.session.execute(
        update(Customer)
        .where(Customer.tenant_id == tenant_id, Customer.id == key)
        .values(average_interval_days=_average_interval(tenant_id, key))
        .execution_options(synchronize_session="fetch")
    )
    mark_changed(Customer, tenant_id, [key])


def get_customer(tenant_id: str, customer_id: str) -> Customer:
    customer = db.session.get(Customer, (tenant_id, customer_id))
    if customer is None:
        raise NotFoundError("Customer", customer_id)
    return customer


def list_customers(tenant_id: str, *, search: str | None = None, status: str | None = None) -> list[Customer]:
    query = db.session.query(Customer).filter(Customer.tenant_id == tenant_id)
    if status:
        if status not in values(CustomerStatus):
            raise ValidationError(f"status must be one of: {', '.join(values(CustomerStatus))}")
        query = query.filter(Customer.status == status)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(or_(
            db.func.lower(Customer.name).like(pattern),
            Customer.document.like(pattern),
        ))
    return query.order_by(Customer.name.asc(), Customer.id.asc()).all()


def create_customer(tenant_id: str, data: dict) -> Customer:
    """Register a customer ahead of their first sale. Stats start at zero."""
    patch = validate_payload(model=Customer, payload=data, policy=CUSTOMER_CREATE_POLICY, partial=False)
    enforce_money("credit_limit_cents", patch.get("credit_limit_cents"))
    customer_id = patch.pop("id", None)
    if customer_id == ANONYMOUS_CUSTOMER_ID:
        raise ValidationError("id '0' is reserved for anonymous buyers")

    def _op():
        begin_write()
        if customer_id and db.session.get(Customer, (tenant_id, customer_id)) is not None:
            raise ConflictError("Customer id already exists.")
        customer = Customer(tenant_id=tenant_id, id=customer_id or new_id(), **patch)
        db.session.add(customer)
        db.session.commit()
        return customer

    return run_with_retry(_op)


def update_customer(tenant_id: str, customer_id: str, data: dict) -> Customer:
    """Merge profile fields. Purchase statistics are not client-writable."""
    patch = validate_payload(model=Customer, payload=data, policy=CUSTOMER_UPDATE_POLICY, partial=True)
    enforce_money("credit_limit_cents", patch.get("credit_limit_cents"))

    def _op():
        begin_write()
        customer = lock_for_update(
            db.session.query(Customer).filter(Customer.tenant_id == tenant_id, Customer.id == customer_id)
        ).first()
        if customer is None:
            raise NotFoundError("Customer", customer_id)
        for key, value in patch.items():
            setattr(customer, key, value)
        db.session.commit()
        return customer

    return run_with_retry(_op)


def purchase_history(tenant_id: str, customer_id: str) -> list[Sale]:
    get_customer(tenant_id, customer_id)
    return (
        db.session.query(Sale)
        .filter(Sale.tenant_id == tenant_id, Sale.customer_id == customer_id)
        .order_by(Sale.created_at.desc())
        .all()
    )
