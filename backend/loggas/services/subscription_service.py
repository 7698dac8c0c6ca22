"""
Subscription Service: change notices for the named collections.

Writers never call subscribers directly. Flushed ORM changes are collected
on the session (after_flush) and server-side UPDATE statements register
theirs with mark_changed(). Once the transaction commits, subscribers of
each (collection, tenant) receive one ChangeNotice. A rollback discards the
pending notices, so readers never hear about work that did not persist.

Callbacks run synchronously inside after_commit and must not touch the
database. A failing callback is logged and never reaches the committing
workflow.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable

from sqlalchemy import event
from sqlalchemy.orm import Session

from ..extensions import db
from ..models import Product, Sale, LedgerTransaction, Customer, User

logger = logging.getLogger(__name__)

COLLECTION_MODELS = {
    "products": Product,
    "sales": Sale,
    "transactions": LedgerTransaction,
    "customers": Customer,
    "users": User,
}

_COLLECTION_BY_MODEL = {model: name for name, model in COLLECTION_MODELS.items()}

_PENDING_KEY = "loggas_pending_changes"


@dataclass(frozen=True)
class ChangeNotice:
    collection: str
    tenant_id: str
    ids: tuple[str, ...]


_subscribers: dict[tuple[str, str], list[Callable[[ChangeNotice], None]]] = defaultdict(list)
_lock = threading.Lock()
_registered = False


def collection_for(model) -> str | None:
    return _COLLECTION_BY_MODEL.get(model)


def subscribe(collection: str, tenant_id: str, callback: Callable[[ChangeNotice], None]) -> Callable[[], None]:
    """Register callback for one tenant's collection. Returns the unsubscribe function."""
    if collection not in COLLECTION_MODELS:
        raise KeyError(collection)

    key = (collection, tenant_id)
    with _lock:
        _subscribers[key].append(callback)

    def unsubscribe() -> None:
        with _lock:
            callbacks = _subscribers.get(key)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
            if key in _subscribers and not _subscribers[key]:
                del _subscribers[key]

    return unsubscribe


def subscriber_count(collection: str, tenant_id: str) -> int:
    with _lock:
        return len(_subscribers.get((collection, tenant_id), ()))


def _pending(session) -> dict[tuple[str, str], set[str]]:
    return session.info.setdefault(_PENDING_KEY, defaultdict(set))


def mark_changed(model, tenant_id: str, ids, session=None) -> None:
    """Record rows changed outside the ORM unit of work (bulk UPDATE statements)."""
    collection = collection_for(model)
    if collection is None or tenant_id is None:
        return
    session = session if session is not None else db.session()
    _pending(session)[(collection, tenant_id)].update(str(i) for i in ids)


def _after_flush(session, flush_context) -> None:
    for obj in list(session.new) + list(session.dirty) + list(session.deleted):
        collection = collection_for(type(obj))
        tenant_id = getattr(obj, "tenant_id", None)
        if collection is None or tenant_id is None:
            continue
        _pending(session)[(collection, tenant_id)].add(str(obj.id))


def _after_commit(session) -> None:
    if session.in_nested_transaction():
        return
    pending = session.info.pop(_PENDING_KEY, None)
    if not pending:
        return
    for (collection, tenant_id), ids in pending.items():
        notify(ChangeNotice(collection=collection, tenant_id=tenant_id, ids=tuple(sorted(ids))))


def _after_soft_rollback(session, previous_transaction) -> None:
    # Savepoint rollbacks leave the outer unit of work (and its notices) alive
    if previous_transaction.parent is None:
        session.info.pop(_PENDING_KEY, None)


def notify(notice: ChangeNotice) -> None:
    with _lock:
        callbacks = list(_subscribers.get((notice.collection, notice.tenant_id), ()))
    for callback in callbacks:
        try:
            callback(notice)
        except Exception:
            logger.exception("Subscriber failed for %s/%s", notice.collection, notice.tenant_id)


def register_session_events() -> None:
    """Attach the flush/commit/rollback listeners once per process."""
    global _registered
    if _registered:
        return
    event.listen(Session, "after_flush", _after_flush)
    event.listen(Session, "after_commit", _after_commit)
    event.listen(Session, "after_soft_rollback", _after_soft_rollback)
    _registered = True


def reset_subscribers() -> None:
    with _lock:
        _subscribers.clear()
