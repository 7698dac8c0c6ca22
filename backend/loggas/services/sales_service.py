"""
Sales Service: cart building and the sale commit workflow.

ProcessSale is the heart of the console. One commit writes, atomically:
- the Sale document with its priced line snapshots
- one conditional stock decrement per product
- one income ledger entry for the sale total
- the buyer's purchase statistics (increment-or-initialize)

If any step fails nothing is written. A retried commit carrying the same
request_id returns the original sale instead of applying it twice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..extensions import db
from ..models import Product, Sale, SaleItem
from ..constants import (
    ANONYMOUS_CUSTOMER_ID,
    DEFAULT_CUSTOMER_NAME,
    PaymentMethod,
    SaleOrigin,
    SaleStatus,
    TransactionType,
    SALES_CATEGORY,
    values,
)
from ..validation import NotFoundError, ValidationError, enforce_money, require_choice, require_positive_quantity
from ..time_utils import utcnow
from .concurrency import begin_write, run_with_retry
from .catalog_service import InsufficientStockError, decrement_stock
from .customer_service import customer_key, record_purchase
from .ledger_service import append_transaction, clip_description, resolve_window

logger = logging.getLogger(__name__)

__all__ = [
    "EmptyCartError",
    "InsufficientStockError",
    "Cart",
    "CartLine",
    "process_sale",
    "find_by_request_id",
    "build_storefront_cart",
    "list_sales",
    "get_sale",
]


class EmptyCartError(ValidationError):
    """Commit attempted with no lines."""


@dataclass
class CartLine:
    product_id: str
    product_name: str
    quantity: int
    unit_price_cents: int
    stock: int

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }


@dataclass
class Cart:
    """
    In-memory cart for the point of sale and the storefront.

    The sell price is captured when a product enters the cart; later catalog
    price changes do not affect lines already in it. Quantities are bounded
    by the stock known at add time. Commit re-checks stock authoritatively.
    """
    lines: list[CartLine] = field(default_factory=list)

    def _find(self, product_id: str) -> CartLine | None:
        return next((line for line in self.lines if line.product_id == product_id), None)

    def add(self, product: Product, quantity: int = 1) -> CartLine:
        quantity = require_positive_quantity(quantity)
        if not product.active:
            raise ValidationError(f"{product.name} is not available for sale")
        if product.stock <= 0:
            raise ValidationError(f"{product.name} is out of stock")

        line = self._find(product.id)
        current = line.quantity if line else 0
        if current + quantity > product.stock:
            raise ValidationError(
                f"Only {product.stock} {product.unit} of {product.name} available",
                details={"product_id": product.id, "stock": product.stock},
            )

        if line is None:
            line = CartLine(
                product_id=product.id,
                product_name=product.name,
                quantity=quantity,
                unit_price_cents=product.sell_price_cents,
                stock=product.stock,
            )
            self.lines.append(line)
        else:
            line.quantity += quantity
            line.stock = product.stock
        return line

    def change_quantity(self, product_id: str, delta: int) -> CartLine:
        """Move a line's quantity by delta, clamped to 1..known stock."""
        line = self._find(product_id)
        if line is None:
            raise NotFoundError("Cart line", product_id)
        line.quantity = max(1, min(line.stock, line.quantity + delta))
        return line

    def remove(self, product_id: str) -> None:
        self.lines = [line for line in self.lines if line.product_id != product_id]

    def clear(self) -> None:
        self.lines = []

    @property
    def total_cents(self) -> int:
        return sum(line.line_total_cents for line in self.lines)

    def is_empty(self) -> bool:
        return not self.lines

    def to_items(self) -> list[dict]:
        """Line payloads for process_sale(), price snapshots included."""
        return [
            {
                "product_id": line.product_id,
                "quantity": line.quantity,
                "unit_price_cents": line.unit_price_cents,
            }
            for line in self.lines
        ]


def _normalize_items(items) -> list[dict]:
    if items is None or (isinstance(items, (list, tuple)) and not items):
        raise EmptyCartError("Cart is empty")
    if not isinstance(items, (list, tuple)):
        raise ValidationError("items must be a list")

    normalized = []
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = raw.get("product_id")
        if not product_id or not isinstance(product_id, str):
            raise ValidationError(f"items[{index}].product_id is required")
        quantity = require_positive_quantity(raw.get("quantity"), name=f"items[{index}].quantity")
        unit_price = raw.get("unit_price_cents")
        enforce_money(f"items[{index}].unit_price_cents", unit_price)
        normalized.append({"product_id": product_id, "quantity": quantity, "unit_price_cents": unit_price})
    return normalized


def _normalize_customer(customer: dict | None) -> dict:
    customer = customer or {}
    if not isinstance(customer, dict):
        raise ValidationError("customer must be an object")

    def _text(key):
        value = customer.get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValidationError(f"customer.{key} must be a string")
        return value.strip() or None

    return {
        "id": _text("id") or ANONYMOUS_CUSTOMER_ID,
        "name": _text("name"),
        "address": _text("address"),
        "phone": _text("phone"),
    }


def _load_products(tenant_id: str, product_ids: set[str]) -> dict[str, Product]:
    products = {
        p.id: p
        for p in db.session.query(Product).filter(
            Product.tenant_id == tenant_id,
            Product.id.in_(product_ids),
        ).populate_existing().all()
    }
    for product_id in sorted(product_ids):
        if product_id not in products:
            raise NotFoundError("Product", product_id)
    return products


def _validate_on_hand(products: dict[str, Product], requested: dict[str, int]) -> None:
    insufficient = []
    for product_id, qty in requested.items():
        product = products[product_id]
        if product.stock < qty:
            insufficient.append({
                "product_id": product_id,
                "product_name": product.name,
                "requested_quantity": qty,
                "stock": product.stock,
            })
    if insufficient:
        raise InsufficientStockError("Insufficient stock", details={"items": insufficient})


def _income_description(sale: Sale) -> str:
    label = "Online sale" if sale.origin == SaleOrigin.ONLINE.value else "Sale"
    return f"{label} #{sale.id[:6]} - {sale.customer_name}"


def process_sale(
    tenant_id: str,
    *,
    items,
    payment_method: str,
    origin: str = SaleOrigin.IN_PERSON.value,
    customer: dict | None = None,
    request_id: str | None = None,
) -> Sale:
    """
    Validate and commit a sale.

    items: [{"product_id", "quantity", "unit_price_cents"?}]. Lines without
    a price snapshot are priced from the product's sell price at commit.

    Raises:
        EmptyCartError: no lines
        ValidationError: bad quantity, payment method or origin
        NotFoundError: unknown product
        InsufficientStockError: any line exceeds stock; whole order rejected
        StorageError: storage unavailable after retries
    """
    lines = _normalize_items(items)
    require_choice(payment_method, values(PaymentMethod), "payment_method")
    require_choice(origin, values(SaleOrigin), "origin")
    buyer = _normalize_customer(customer)
    if request_id is not None and (not isinstance(request_id, str) or not request_id.strip()):
        raise ValidationError("request_id must be a non-empty string")

    key = customer_key(buyer["id"], buyer["phone"])

    requested: dict[str, int] = {}
    for line in lines:
        requested[line["product_id"]] = requested.get(line["product_id"], 0) + line["quantity"]

    def _op():
        begin_write()

        if request_id is not None:
            existing = find_by_request_id(tenant_id, request_id)
            if existing is not None:
                logger.info("Sale request %s already committed as %s", request_id, existing.id)
                db.session.rollback()
                return existing

        products = _load_products(tenant_id, set(requested))
        _validate_on_hand(products, requested)

        now = utcnow()
        status = SaleStatus.PENDING if origin == SaleOrigin.ONLINE.value else SaleStatus.COMPLETED

        sale = Sale(
            tenant_id=tenant_id,
            request_id=request_id,
            created_at=now,
            customer_id=key or ANONYMOUS_CUSTOMER_ID,
            customer_name=buyer["name"] or DEFAULT_CUSTOMER_NAME,
            customer_address=buyer["address"],
            customer_phone=buyer["phone"],
            payment_method=payment_method,
            origin=origin,
            status=status.value,
            status_changed_at=now,
            total_cents=0,
        )

        total = 0
        for position, line in enumerate(lines, start=1):
            product = products[line["product_id"]]
            unit_price = line["unit_price_cents"]
            if unit_price is None:
                unit_price = product.sell_price_cents
            line_total = unit_price * line["quantity"]
            total += line_total
            sale.items.append(SaleItem(
                position=position,
                product_id=product.id,
                product_name=product.name,
                quantity=line["quantity"],
                unit_price_cents=unit_price,
                line_total_cents=line_total,
            ))
        sale.total_cents = total

        db.session.add(sale)
        db.session.flush()

        for product_id, qty in requested.items():
            decrement_stock(tenant_id, product_id, qty)

        append_transaction(
            tenant_id=tenant_id,
            type=TransactionType.INCOME.value,
            amount_cents=total,
            category=SALES_CATEGORY,
            description=clip_description(_income_description(sale)),
            occurred_at=now,
            sale_id=sale.id,
        )

        if key is not None:
            record_purchase(
                tenant_id=tenant_id,
                key=key,
                amount_cents=total,
                purchased_at=now,
                profile=buyer,
            )

        db.session.commit()
        logger.info("Sale %s committed: %s cents, %s line(s), origin=%s", sale.id, total, len(lines), origin)
        return sale

    return run_with_retry(_op)


def find_by_request_id(tenant_id: str, request_id: str) -> Sale | None:
    return db.session.query(Sale).filter(
        Sale.tenant_id == tenant_id,
        Sale.request_id == request_id,
    ).first()


def build_storefront_cart(tenant_id: str, items) -> Cart:
    """
    Cart for a public or signed-in storefront order.

    Only active products shown online can be ordered and prices always come
    from the catalog; client-supplied prices are ignored.
    """
    if not isinstance(items, (list, tuple)) or not items:
        raise EmptyCartError("Cart is empty")

    cart = Cart()
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = raw.get("product_id")
        product = db.session.query(Product).filter(
            Product.tenant_id == tenant_id,
            Product.id == product_id,
            Product.active.is_(True),
            Product.show_online.is_(True),
        ).first()
        if product is None:
            raise NotFoundError("Product", product_id)
        cart.add(product, raw.get("quantity", 1))
    return cart


def get_sale(tenant_id: str, sale_id: str) -> Sale:
    sale = db.session.query(Sale).filter(Sale.tenant_id == tenant_id, Sale.id == sale_id).first()
    if sale is None:
        raise NotFoundError("Sale", sale_id)
    return sale


def list_sales(
    tenant_id: str,
    *,
    origin: str | None = None,
    status: str | None = None,
    customer_id: str | None = None,
    start=None,
    end=None,
    limit: int | None = None,
) -> list[Sale]:
    """Sales newest first, optionally filtered by origin, status, buyer and date window."""
    query = db.session.query(Sale).filter(Sale.tenant_id == tenant_id)
    if origin is not None:
        query = query.filter(Sale.origin == require_choice(origin, values(SaleOrigin), "origin"))
    if status is not None:
        query = query.filter(Sale.status == require_choice(status, values(SaleStatus), "status"))
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)

    start_dt, end_dt = resolve_window(start, end)
    if start_dt is not None:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt is not None:
        query = query.filter(Sale.created_at <= end_dt)

    query = query.order_by(Sale.created_at.desc(), Sale.id.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()
