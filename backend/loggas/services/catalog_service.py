# backend/loggas/services/catalog_service.py
"""
Catalog Service: products, stock and pricing for one tenant.

TENANCY: every operation takes tenant_id and never touches another
tenant's rows. A product id from another tenant is reported as not found.

STOCK: stock is a stored counter guarded by a CHECK (stock >= 0).
- restock() increases it and books the matching expense in the same
  transaction.
- decrement_stock() is an atomic conditional decrement used by the sale
  workflow; it never drives stock negative.
- update_product() cannot write stock.
"""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import or_, update

from ..extensions import db
from ..models import Product, LedgerTransaction
from ..constants import ProductCategory, TransactionType, INVENTORY_CATEGORY, values
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_money,
    enforce_rules_product,
    require_positive_quantity,
    validate_payload,
)
from .concurrency import begin_write, lock_for_update, run_with_retry
from .ledger_service import append_transaction, clip_description
from .subscription_service import mark_changed


PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "category", "sku", "unit", "stock", "min_stock",
        "cost_price_cents", "sell_price_cents", "active", "show_online",
    },
    required_on_create={"name", "sku", "cost_price_cents", "sell_price_cents"},
    choices={"category": values(ProductCategory)},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "category", "sku", "unit", "min_stock",
        "cost_price_cents", "sell_price_cents", "active", "show_online",
    },
    choices={"category": values(ProductCategory)},
)


class InsufficientStockError(Exception):
    """Requested quantity exceeds the product's available stock."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class RestockResult:
    product: Product
    transaction: LedgerTransaction


def _get_product(tenant_id: str, product_id: str, *, lock: bool = False) -> Product:
    query = db.session.query(Product).filter(
        Product.tenant_id == tenant_id,
        Product.id == product_id,
    )
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


def _ensure_unique_sku(tenant_id: str, sku: str, *, exclude_id: str | None = None) -> None:
    query = db.session.query(Product.id).filter(Product.tenant_id == tenant_id, Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("SKU already exists for this distributor.")


def get_product(tenant_id: str, product_id: str) -> Product:
    return _get_product(tenant_id, product_id)


def list_products(
    tenant_id: str,
    *,
    online_only: bool = False,
    low_stock: bool = False,
    search: str | None = None,
    category: str | None = None,
) -> list[Product]:
    """
    Tenant-scoped product listing.

    online_only: active products flagged for the storefront.
    low_stock: products at or below their reorder threshold.
    search: case-insensitive match on name or SKU.
    """
    query = db.session.query(Product).filter(Product.tenant_id == tenant_id)

    if online_only:
        query = query.filter(Product.active.is_(True), Product.show_online.is_(True))
    if low_stock:
        query = query.filter(Product.stock <= Product.min_stock)
    if category:
        if category not in values(ProductCategory):
            raise ValidationError(f"category must be one of: {', '.join(values(ProductCategory))}")
        query = query.filter(Product.category == category)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(or_(
            db.func.lower(Product.name).like(pattern),
            db.func.lower(Product.sku).like(pattern),
        ))

    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def add_product(tenant_id: str, data: dict) -> Product:
    """
    Create a product from client data.

    Raises:
        ValidationError: name / SKU / prices missing, negative or malformed
        ConflictError: SKU already used by this tenant
    """
    patch = validate_payload(model=Product, payload=data, policy=PRODUCT_CREATE_POLICY, partial=False)
    enforce_rules_product(patch)
    if patch.get("stock") is not None and patch["stock"] < 0:
        raise ValidationError("stock must be >= 0")

    def _op():
        begin_write()
        _ensure_unique_sku(tenant_id, patch["sku"])
        product = Product(tenant_id=tenant_id, **patch)
        db.session.add(product)
        db.session.commit()
        return product

    return run_with_retry(_op)


def update_product(tenant_id: str, product_id: str, data: dict) -> Product:
    """
    Merge client fields into an existing product.

    Raises:
        NotFoundError: unknown product id for this tenant
        ValidationError: malformed fields, or an attempt to write stock
        ConflictError: new SKU already used by this tenant
    """
    if isinstance(data, dict) and "stock" in data:
        raise ValidationError("stock changes go through restock or sales")
    patch = validate_payload(model=Product, payload=data, policy=PRODUCT_UPDATE_POLICY, partial=True)
    enforce_rules_product(patch)

    def _op():
        begin_write()
        product = _get_product(tenant_id, product_id, lock=True)
        if "sku" in patch and patch["sku"] != product.sku:
            _ensure_unique_sku(tenant_id, patch["sku"], exclude_id=product.id)
        for key, value in patch.items():
            setattr(product, key, value)
        db.session.commit()
        return product

    return run_with_retry(_op)


def toggle_online_visibility(tenant_id: str, product_id: str) -> Product:
    def _op():
        begin_write()
        product = _get_product(tenant_id, product_id, lock=True)
        product.show_online = not product.show_online
        db.session.commit()
        return product

    return run_with_retry(_op)


def restock(tenant_id: str, product_id: str, quantity, unit_cost_cents) -> RestockResult:
    """
    Receive stock and book the purchase as an expense.

    The stock increase, the new cost basis and the expense entry
    (quantity x unit cost, category "Inventory") commit together or not
    at all.
    """
    quantity = require_positive_quantity(quantity)
    if unit_cost_cents is None:
        raise ValidationError("unit_cost_cents is required")
    enforce_money("unit_cost_cents", unit_cost_cents)

    def _op():
        begin_write()
        product = _get_product(tenant_id, product_id, lock=True)

        product.stock = product.stock + quantity
        product.cost_price_cents = unit_cost_cents

        entry = append_transaction(
            tenant_id=tenant_id,
            type=TransactionType.EXPENSE.value,
            amount_cents=quantity * unit_cost_cents,
            category=INVENTORY_CATEGORY,
            description=clip_description(f"Restock: {product.name} (+{quantity})"),
            product_id=product.id,
        )

        db.session.commit()
        return RestockResult(product=product, transaction=entry)

    return run_with_retry(_op)


def decrement_stock(tenant_id: str, product_id: str, quantity: int) -> None:
    """
    Atomic conditional decrement: stock = stock - quantity WHERE stock >= quantity.

    Joins the caller's unit of work (no commit). Raises InsufficientStockError
    when the row does not have enough stock, NotFoundError when it is absent.
    """
    stmt = (
        update(Product)
        .where(
            Product.tenant_id == tenant_id,
            Product.id == product_id,
            Product.stock >= quantity,
        )
        .values(stock=Product.stock - quantity, version_id=Product.version_id + 1)
        .execution_options(synchronize_session="fetch")
    )
    result = db.session.execute(stmt)
    if result.rowcount == 1:
        mark_changed(Product, tenant_id, [product_id])
        return

    product = _get_product(tenant_id, product_id)
    raise InsufficientStockError(
        "Insufficient stock",
        details={"items": [{
            "product_id": product.id,
            "product_name": product.name,
            "requested_quantity": quantity,
            "stock": product.stock,
        }]},
    )
