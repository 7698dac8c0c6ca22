"""
Collection Service: document-style access to the named collections.

get / create / update / snapshot over products, sales, transactions,
customers and users, always scoped to one tenant and always returning plain
dicts. Writes are routed through the owning service so the same rules apply
whichever door a change comes in by:
- transactions are append-only (no update)
- sales accept only a status update, checked by the state machine
- users are read-only here (they come from sign-up)
"""

from __future__ import annotations

import logging
import threading

from ..extensions import db
from ..models import Customer
from ..constants import TransactionType
from ..validation import NotFoundError, ValidationError
from . import catalog_service, customer_service, fulfillment_service, ledger_service, sales_service
from .concurrency import begin_write, run_with_retry
from .subscription_service import COLLECTION_MODELS, ChangeNotice, subscribe

logger = logging.getLogger(__name__)

COLLECTION_NAMES = tuple(COLLECTION_MODELS)


def _model(collection: str):
    model = COLLECTION_MODELS.get(collection)
    if model is None:
        raise NotFoundError("Collection", collection)
    return model


def _doc(obj) -> dict:
    return obj.to_dict()


def get(collection: str, tenant_id: str, doc_id: str) -> dict:
    model = _model(collection)
    if model is Customer:
        return _doc(customer_service.get_customer(tenant_id, doc_id))
    obj = db.session.query(model).filter(model.tenant_id == tenant_id, model.id == doc_id).first()
    if obj is None:
        raise NotFoundError(model.__name__, doc_id)
    return _doc(obj)


def snapshot(collection: str, tenant_id: str) -> list[dict]:
    """Every document of the collection for the tenant, in a stable order."""
    model = _model(collection)
    query = db.session.query(model).filter(model.tenant_id == tenant_id)
    order = getattr(model, "created_at", None)
    if order is not None:
        query = query.order_by(order.asc(), model.id.asc())
    return [_doc(obj) for obj in query.all()]


def _append_transaction(tenant_id: str, fields: dict):
    fields = dict(fields or {})

    def _op():
        begin_write()
        entry = ledger_service.append_transaction(
            tenant_id=tenant_id,
            type=fields.get("type", TransactionType.EXPENSE.value),
            amount_cents=fields.get("amount_cents"),
            category=fields.get("category") or "",
            description=fields.get("description") or "",
        )
        db.session.commit()
        return entry

    return run_with_retry(_op)


def create(collection: str, tenant_id: str, fields: dict) -> dict:
    _model(collection)
    if not isinstance(fields, dict):
        raise ValidationError("Invalid JSON payload")

    if collection == "products":
        return _doc(catalog_service.add_product(tenant_id, fields))
    if collection == "customers":
        return _doc(customer_service.create_customer(tenant_id, fields))
    if collection == "transactions":
        return _doc(_append_transaction(tenant_id, fields))
    if collection == "sales":
        return _doc(sales_service.process_sale(
            tenant_id,
            items=fields.get("items"),
            payment_method=fields.get("payment_method"),
            origin=fields.get("origin", "in_person"),
            customer=fields.get("customer"),
            request_id=fields.get("request_id"),
        ))
    raise ValidationError(f"{collection} is read-only")


def update(collection: str, tenant_id: str, doc_id: str, fields: dict) -> dict:
    """Merge fields into one document."""
    _model(collection)
    if not isinstance(fields, dict):
        raise ValidationError("Invalid JSON payload")

    if collection == "products":
        return _doc(catalog_service.update_product(tenant_id, doc_id, fields))
    if collection == "customers":
        return _doc(customer_service.update_customer(tenant_id, doc_id, fields))
    if collection == "sales":
        if set(fields) != {"status"}:
            raise ValidationError("Only status can change on a committed sale")
        return _doc(fulfillment_service.advance_status(tenant_id, doc_id, fields["status"]))
    if collection == "transactions":
        raise ValidationError("Ledger entries are append-only")
    raise ValidationError(f"{collection} is read-only")


class CollectionCache:
    """
    Pull-based mirror of one tenant's collections.

    A change notice only marks the collection stale; the next read reloads it
    from the database. Readers may therefore see a snapshot that is one
    commit behind until they read again.
    """

    def __init__(self, tenant_id: str, collections=COLLECTION_NAMES):
        self.tenant_id = tenant_id
        self._lock = threading.Lock()
        self._data: dict[str, list[dict]] = {}
        self._stale: set[str] = set()
        self._unsubscribers = []
        for name in collections:
            _model(name)
            self._stale.add(name)
            self._unsubscribers.append(subscribe(name, tenant_id, self._on_change))

    def _on_change(self, notice: ChangeNotice) -> None:
        with self._lock:
            self._stale.add(notice.collection)

    def is_stale(self, collection: str) -> bool:
        with self._lock:
            return collection in self._stale

    def get(self, collection: str) -> list[dict]:
        with self._lock:
            if collection not in self._stale and collection in self._data:
                return self._data[collection]
            if collection not in self._stale:
                raise NotFoundError("Collection", collection)
            self._stale.discard(collection)
        docs = snapshot(collection, self.tenant_id)
        with self._lock:
            self._data[collection] = docs
        return docs

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
