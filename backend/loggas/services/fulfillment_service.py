"""
Fulfillment Service: sale status state machine and delivery routes.

Status changes are the only mutation a committed sale accepts. They carry
no stock or ledger effects.

    PENDING -> PREPARING -> SHIPPED -> COMPLETED
    PENDING -> CANCELLED
    PREPARING -> CANCELLED

COMPLETED and CANCELLED are terminal.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Sale, DeliveryRoute
from ..constants import SaleStatus, RouteStatus, values
from ..validation import NotFoundError, ValidationError
from ..time_utils import utcnow
from .concurrency import begin_write, lock_for_update, run_with_retry

logger = logging.getLogger(__name__)


TRANSITIONS: dict[str, frozenset[str]] = {
    SaleStatus.PENDING.value: frozenset({SaleStatus.PREPARING.value, SaleStatus.CANCELLED.value}),
    SaleStatus.PREPARING.value: frozenset({SaleStatus.SHIPPED.value, SaleStatus.CANCELLED.value}),
    SaleStatus.SHIPPED.value: frozenset({SaleStatus.COMPLETED.value}),
    SaleStatus.COMPLETED.value: frozenset(),
    SaleStatus.CANCELLED.value: frozenset(),
}

DELIVERY_QUEUE_STATES = (SaleStatus.PREPARING.value, SaleStatus.SHIPPED.value)


class InvalidTransitionError(Exception):
    """Requested status change is not in the transition table."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def allowed_transitions(status: str) -> frozenset[str]:
    if status not in TRANSITIONS:
        raise ValidationError(f"status must be one of: {', '.join(values(SaleStatus))}")
    return TRANSITIONS[status]


def _check_transition(sale: Sale, new_status: str) -> None:
    if new_status not in TRANSITIONS.get(sale.status, frozenset()):
        raise InvalidTransitionError(
            f"Cannot move sale from {sale.status} to {new_status}",
            details={
                "sale_id": sale.id,
                "current_status": sale.status,
                "requested_status": new_status,
                "allowed": sorted(TRANSITIONS.get(sale.status, ())),
            },
        )


def _apply_transition(sale: Sale, new_status: str) -> None:
    _check_transition(sale, new_status)
    sale.status = new_status
    sale.status_changed_at = utcnow()


def _locked_sale(tenant_id: str, sale_id: str) -> Sale:
    sale = lock_for_update(
        db.session.query(Sale).filter(Sale.tenant_id == tenant_id, Sale.id == sale_id)
    ).first()
    if sale is None:
        raise NotFoundError("Sale", sale_id)
    return sale


def advance_status(tenant_id: str, sale_id: str, new_status: str) -> Sale:
    """
    Move a sale to new_status.

    Raises:
        NotFoundError: unknown sale for this tenant
        InvalidTransitionError: not allowed from the current status
            (includes same-state and unknown-status requests)
    """
    def _op():
        begin_write()
        sale = _locked_sale(tenant_id, sale_id)
        previous = sale.status
        _apply_transition(sale, new_status)
        db.session.commit()
        logger.info("Sale %s status %s -> %s", sale.id, previous, new_status)
        return sale

    return run_with_retry(_op)


def list_delivery_queue(tenant_id: str) -> list[Sale]:
    """Orders being prepared or out for delivery, oldest first."""
    return (
        db.session.query(Sale)
        .filter(Sale.tenant_id == tenant_id, Sale.status.in_(DELIVERY_QUEUE_STATES))
        .order_by(Sale.created_at.asc(), Sale.id.asc())
        .all()
    )


def _normalize_sale_ids(sale_ids) -> list[str]:
    if not isinstance(sale_ids, (list, tuple)) or not sale_ids:
        raise ValidationError("sale_ids must be a non-empty list")
    if not all(isinstance(s, str) and s for s in sale_ids):
        raise ValidationError("sale_ids must contain sale ids")
    if len(set(sale_ids)) != len(sale_ids):
        raise ValidationError("sale_ids must not repeat")
    return list(sale_ids)


def create_delivery_route(
    tenant_id: str,
    driver_id: str,
    sale_ids,
    *,
    suggestion: str | None = None,
) -> DeliveryRoute:
    """
    Dispatch a batch of orders with one driver.

    All-or-nothing: every listed sale must exist and be allowed to move to
    SHIPPED, otherwise no sale changes and no route is recorded.
    """
    if not driver_id or not isinstance(driver_id, str) or not driver_id.strip():
        raise ValidationError("driver_id is required")
    sale_ids = _normalize_sale_ids(sale_ids)

    def _op():
        begin_write()
        sales = [_locked_sale(tenant_id, sale_id) for sale_id in sale_ids]
        for sale in sales:
            _check_transition(sale, SaleStatus.SHIPPED.value)
        for sale in sales:
            _apply_transition(sale, SaleStatus.SHIPPED.value)

        route = DeliveryRoute(
            tenant_id=tenant_id,
            driver_id=driver_id.strip(),
            sale_ids=sale_ids,
            status=RouteStatus.IN_PROGRESS.value,
            suggestion=suggestion,
        )
        db.session.add(route)
        db.session.commit()
        logger.info("Route %s dispatched with %s sale(s)", route.id, len(sale_ids))
        return route

    return run_with_retry(_op)


def complete_delivery_route(tenant_id: str, route_id: str) -> DeliveryRoute:
    """
    Close a route and mark its delivered orders COMPLETED.

    Sales that already left SHIPPED (completed individually) are left as they are.
    """
    def _op():
        begin_write()
        route = lock_for_update(
            db.session.query(DeliveryRoute).filter(
                DeliveryRoute.tenant_id == tenant_id,
                DeliveryRoute.id == route_id,
            )
        ).first()
        if route is None:
            raise NotFoundError("Route", route_id)
        if route.status == RouteStatus.COMPLETED.value:
            raise InvalidTransitionError("Route already completed", details={"route_id": route.id})

        for sale_id in route.sale_ids or []:
            sale = _locked_sale(tenant_id, sale_id)
            if sale.status == SaleStatus.SHIPPED.value:
                _apply_transition(sale, SaleStatus.COMPLETED.value)

        route.status = RouteStatus.COMPLETED.value
        route.completed_at = utcnow()
        db.session.commit()
        return route

    return run_with_retry(_op)


def list_routes(tenant_id: str, *, status: str | None = None) -> list[DeliveryRoute]:
    query = db.session.query(DeliveryRoute).filter(DeliveryRoute.tenant_id == tenant_id)
    if status is not None:
        if status not in values(RouteStatus):
            raise ValidationError(f"status must be one of: {', '.join(values(RouteStatus))}")
        query = query.filter(DeliveryRoute.status == status)
    return query.order_by(DeliveryRoute.created_at.desc()).all()


def get_route(tenant_id: str, route_id: str) -> DeliveryRoute:
    route = db.session.query(DeliveryRoute).filter(
        DeliveryRoute.tenant_id == tenant_id,
        DeliveryRoute.id == route_id,
    ).first()
    if route is None:
        raise NotFoundError("Route", route_id)
    return route
