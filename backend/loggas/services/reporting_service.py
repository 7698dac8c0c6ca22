# Overview: Service-layer operations for reporting; read-only aggregates over sales, ledger and catalog.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Sale, SaleItem, Product, User
from ..constants import SaleOrigin, SaleStatus, UserRole
from ..time_utils import to_utc_z, utcnow
from .ledger_service import resolve_window, summarize


def ledger_summary(tenant_id: str, *, start=None, end=None) -> dict:
    return summarize(tenant_id, start=start, end=end)


def _sales_in_window(tenant_id: str, start_dt, end_dt):
    query = db.session.query(Sale).filter(Sale.tenant_id == tenant_id)
    if start_dt is not None:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt is not None:
        query = query.filter(Sale.created_at <= end_dt)
    return query


def sales_report(tenant_id: str, *, start=None, end=None) -> dict:
    """
    Revenue for a window, split by payment method and by product.

    Product revenue uses each line's snapshot price, so later catalog price
    changes never rewrite history.
    """
    start_dt, end_dt = resolve_window(start, end)
    sales_q = _sales_in_window(tenant_id, start_dt, end_dt)

    count, revenue = sales_q.with_entities(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total_cents), 0),
    ).one()

    by_payment = (
        sales_q.with_entities(
            Sale.payment_method,
            func.count(Sale.id).label("sales_count"),
            func.coalesce(func.sum(Sale.total_cents), 0).label("revenue_cents"),
        )
        .group_by(Sale.payment_method)
        .order_by(func.sum(Sale.total_cents).desc(), Sale.payment_method.asc())
        .all()
    )

    product_rows = (
        sales_q.join(SaleItem, SaleItem.sale_id == Sale.id)
        .with_entities(
            SaleItem.product_name,
            func.coalesce(func.sum(SaleItem.quantity), 0).label("quantity"),
            func.coalesce(func.sum(SaleItem.line_total_cents), 0).label("revenue_cents"),
        )
        .group_by(SaleItem.product_name)
        .order_by(func.sum(SaleItem.line_total_cents).desc(), SaleItem.product_name.asc())
        .all()
    )

    return {
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "sales_count": int(count or 0),
        "revenue_cents": int(revenue or 0),
        "by_payment_method": [
            {
                "payment_method": row.payment_method,
                "sales_count": int(row.sales_count or 0),
                "revenue_cents": int(row.revenue_cents or 0),
            }
            for row in by_payment
        ],
        "product_performance": [
            {
                "product_name": row.product_name,
                "quantity": int(row.quantity or 0),
                "revenue_cents": int(row.revenue_cents or 0),
            }
            for row in product_rows
        ],
    }


def dashboard(tenant_id: str) -> dict:
    total_revenue = db.session.query(func.coalesce(func.sum(Sale.total_cents), 0)).filter(
        Sale.tenant_id == tenant_id,
    ).scalar()

    critical = (
        db.session.query(Product)
        .filter(Product.tenant_id == tenant_id, Product.stock <= Product.min_stock)
        .order_by(Product.stock.asc(), Product.name.asc())
        .all()
    )

    stock_value = db.session.query(
        func.coalesce(func.sum(Product.stock * Product.sell_price_cents), 0)
    ).filter(Product.tenant_id == tenant_id).scalar()

    pending_online = db.session.query(func.count(Sale.id)).filter(
        Sale.tenant_id == tenant_id,
        Sale.origin == SaleOrigin.ONLINE.value,
        Sale.status == SaleStatus.PENDING.value,
    ).scalar()

    return {
        "total_revenue_cents": int(total_revenue or 0),
        "critical_stock": [p.to_dict() for p in critical],
        "critical_stock_count": len(critical),
        "total_stock_value_cents": int(stock_value or 0),
        "pending_online_orders": int(pending_online or 0),
        "generated_at": to_utc_z(utcnow()),
    }


def platform_metrics() -> dict:
    """Cross-tenant SaaS metrics for the super admin."""
    distributors = db.session.query(func.count(User.id)).filter(User.role == UserRole.ADMIN.value).scalar() or 0
    active = db.session.query(func.count(User.id)).filter(
        User.role == UserRole.ADMIN.value,
        User.is_active.is_(True),
        func.coalesce(User.subscription_status, "active") == "active",
    ).scalar() or 0

    plan_price = int(current_app.config.get("PLAN_PRICE_CENTS", 19900))

    return {
        "total_distributors": int(distributors),
        "active_subscriptions": int(active),
        "monthly_recurring_revenue_cents": int(distributors) * plan_price,
        "system_health": "perfect",
    }
