"""Enumerations shared by models, services and routes.

Values are the strings persisted in the database and exchanged over the API.
"""

from __future__ import annotations

from enum import Enum


class ProductCategory(str, Enum):
    GAS = "gas"
    WATER = "water"
    BEVERAGE = "beverage"


class PaymentMethod(str, Enum):
    CASH = "cash"
    PIX = "pix"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BOLETO = "boleto"
    ONLINE = "online"


class SaleStatus(str, Enum):
    """Fulfillment status of a sale. Transitions live in fulfillment_service."""

    PENDING = "PENDING"
    PREPARING = "PREPARING"
    SHIPPED = "SHIPPED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class SaleOrigin(str, Enum):
    IN_PERSON = "in_person"
    ONLINE = "online"


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class CustomerStatus(str, Enum):
    ACTIVE = "active"
    DEBTOR = "debtor"


class UserRole(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"
    SUPER_ADMIN = "super_admin"


class RouteStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# Customer id used for walk-in / anonymous buyers; never aggregated.
ANONYMOUS_CUSTOMER_ID = "0"
DEFAULT_CUSTOMER_NAME = "Consumidor Final"

# Ledger categories written by the workflows.
SALES_CATEGORY = "Sales"
INVENTORY_CATEGORY = "Inventory"
OPERATING_CATEGORY = "Operating"


def values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


__all__ = [
    "ProductCategory",
    "PaymentMethod",
    "SaleStatus",
    "SaleOrigin",
    "TransactionType",
    "CustomerStatus",
    "UserRole",
    "RouteStatus",
    "ANONYMOUS_CUSTOMER_ID",
    "DEFAULT_CUSTOMER_NAME",
    "SALES_CATEGORY",
    "INVENTORY_CATEGORY",
    "OPERATING_CATEGORY",
    "values",
]
