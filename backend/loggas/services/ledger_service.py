# Overview: Service-layer operations for the financial ledger; append-only income/expense entries.

from __future__ import annotations

from typing import Optional
from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import LedgerTransaction
from ..constants import TransactionType, OPERATING_CATEGORY, values
from ..validation import ValidationError, enforce_money
from ..time_utils import day_window, to_utc_z
from .concurrency import begin_write, run_with_retry
"""
Ledger invariants (authoritative)

- Append-only: entries are never updated or deleted.
- Entries are written inside the same DB transaction as the workflow step
  they record (sale commit, restock), so they commit or roll back together.
- append_transaction() is not idempotent; callers must not re-append on retry.
- Window filtering is inclusive on both ends: start <= occurred_at <= end.
- Oversized descriptions are rejected, never truncated. Workflows that
  build their own labels from stored names pass them through
  clip_description() first.
"""

DESCRIPTION_MAX_LENGTH = LedgerTransaction.__table__.c.description.type.length
CATEGORY_MAX_LENGTH = LedgerTransaction.__table__.c.category.type.length


def clip_description(text: str) -> str:
    return text[:DESCRIPTION_MAX_LENGTH]


def append_transaction(
    *,
    tenant_id: str,
    type: str,
    amount_cents: int,
    category: str,
    description: str,
    occurred_at: Optional[datetime] = None,
    sale_id: str | None = None,
    product_id: str | None = None,
) -> LedgerTransaction:
    """
    Append one ledger entry to the current unit of work.

    Flushes (so the id is assigned) but never commits.
    """
    if type not in values(TransactionType):
        raise ValidationError(f"type must be one of: {', '.join(values(TransactionType))}")
    enforce_money("amount_cents", amount_cents)
    if amount_cents is None:
        raise ValidationError("amount_cents is required")
    if not isinstance(category, str) or not isinstance(description, str):
        raise ValidationError("category and description must be strings")
    if not description or not description.strip():
        raise ValidationError("description is required")
    description = description.strip()
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(f"description exceeds max length {DESCRIPTION_MAX_LENGTH}")
    if len(category) > CATEGORY_MAX_LENGTH:
        raise ValidationError(f"category exceeds max length {CATEGORY_MAX_LENGTH}")

    entry = LedgerTransaction(
        tenant_id=tenant_id,
        type=type,
        amount_cents=amount_cents,
        category=category,
        description=description,
        sale_id=sale_id,
        product_id=product_id,
    )
    if occurred_at is not None:
        entry.occurred_at = occurred_at

    db.session.add(entry)
    db.session.flush()
    return entry


def record_expense(
    *,
    tenant_id: str,
    description: str,
    amount_cents: int,
    category: str | None = None,
    occurred_at: Optional[datetime] = None,
) -> LedgerTransaction:
    """Book a manual operating expense (rent, fuel, payroll...)."""
    def _op():
        begin_write()
        entry = append_transaction(
            tenant_id=tenant_id,
            type=TransactionType.EXPENSE.value,
            amount_cents=amount_cents,
            category=(category or OPERATING_CATEGORY).strip() or OPERATING_CATEGORY,
            description=description,
            occurred_at=occurred_at,
        )
        db.session.commit()
        return entry

    return run_with_retry(_op)


def resolve_window(start, end) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt, end_dt = day_window(start, end)
    except ValueError:
        raise ValidationError("start and end must be ISO-8601 dates or datetimes")
    if start_dt is not None and end_dt is not None and start_dt > end_dt:
        raise ValidationError("start must not be after end")
    return start_dt, end_dt


def _window_query(query, start, end):
    start_dt, end_dt = resolve_window(start, end)
    if start_dt is not None:
        query = query.filter(LedgerTransaction.occurred_at >= start_dt)
    if end_dt is not None:
        query = query.filter(LedgerTransaction.occurred_at <= end_dt)
    return query, start_dt, end_dt


def list_transactions(
    tenant_id: str,
    *,
    start=None,
    end=None,
    type: str | None = None,
    limit: int | None = None,
) -> list[LedgerTransaction]:
    """Entries in the window, newest first."""
    query = db.session.query(LedgerTransaction).filter(LedgerTransaction.tenant_id == tenant_id)
    query, _, _ = _window_query(query, start, end)
    if type is not None:
        if type not in values(TransactionType):
            raise ValidationError(f"type must be one of: {', '.join(values(TransactionType))}")
        query = query.filter(LedgerTransaction.type == type)

    query = query.order_by(LedgerTransaction.occurred_at.desc(), LedgerTransaction.created_at.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def summarize(tenant_id: str, *, start=None, end=None) -> dict:
    """
    Net result for a window: sum(income) - sum(expense).

    Entries outside [start, end] never contribute.
    """
    query = db.session.query(
        LedgerTransaction.type,
        func.coalesce(func.sum(LedgerTransaction.amount_cents), 0),
        func.count(LedgerTransaction.id),
    ).filter(LedgerTransaction.tenant_id == tenant_id)
    query, start_dt, end_dt = _window_query(query, start, end)

    totals = {TransactionType.INCOME.value: (0, 0), TransactionType.EXPENSE.value: (0, 0)}
    for tx_type, amount, count in query.group_by(LedgerTransaction.type).all():
        totals[tx_type] = (int(amount or 0), int(count or 0))

    income_cents, income_count = totals[TransactionType.INCOME.value]
    expense_cents, expense_count = totals[TransactionType.EXPENSE.value]

    return {
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "income_cents": income_cents,
        "expense_cents": expense_cents,
        "net_cents": income_cents - expense_cents,
        "income_count": income_count,
        "expense_count": expense_count,
    }
