# Overview: Pytest coverage for catalog service behavior.

"""
Catalog tests

- Product creation validates required fields, prices and SKU uniqueness
- Stock is never writable through a plain update
- Restock raises stock, sets the cost basis and books one expense
- Conditional decrement never drives stock negative
"""

import pytest
from sqlalchemy.exc import OperationalError

from loggas.extensions import db
from loggas.models import Product, LedgerTransaction
from loggas.services import catalog_service
from loggas.services.catalog_service import InsufficientStockError
from loggas.services.concurrency import StorageError
from loggas.validation import ValidationError, ConflictError, NotFoundError


class TestAddProduct:

    def test_creates_product_for_tenant(self, tenant_a):
        product = catalog_service.add_product(tenant_a, {
            "name": "Botijão P13",
            "category": "gas",
            "sku": "GAS-P13",
            "stock": 45,
            "min_stock": 20,
            "cost_price_cents": 8500,
            "sell_price_cents": 11000,
            "show_online": True,
        })
        assert product.id
        assert product.tenant_id == tenant_a
        assert product.stock == 45
        assert product.active is True

    def test_missing_required_field_rejected(self, tenant_a):
        with pytest.raises(ValidationError):
            catalog_service.add_product(tenant_a, {"name": "Sem SKU", "cost_price_cents": 1, "sell_price_cents": 2})

    def test_negative_price_rejected(self, tenant_a):
        with pytest.raises(ValidationError):
            catalog_service.add_product(tenant_a, {
                "name": "X", "sku": "X-1", "cost_price_cents": 100, "sell_price_cents": -1,
            })

    def test_unknown_category_rejected(self, tenant_a):
        with pytest.raises(ValidationError):
            catalog_service.add_product(tenant_a, {
                "name": "X", "sku": "X-1", "category": "food",
                "cost_price_cents": 100, "sell_price_cents": 200,
            })

    def test_duplicate_sku_in_same_tenant_conflicts(self, tenant_a, make_product):
        make_product(tenant_a, sku="GAS-P13")
        with pytest.raises(ConflictError):
            catalog_service.add_product(tenant_a, {
                "name": "Outro", "sku": "GAS-P13", "cost_price_cents": 1, "sell_price_cents": 2,
            })

    def test_same_sku_allowed_across_tenants(self, tenant_a, tenant_b, make_product):
        make_product(tenant_a, sku="GAS-P13")
        product = catalog_service.add_product(tenant_b, {
            "name": "Botijão", "sku": "GAS-P13", "cost_price_cents": 1, "sell_price_cents": 2,
        })
        assert product.tenant_id == tenant_b


class TestUpdateProduct:

    def test_merges_fields(self, tenant_a, make_product):
        product = make_product(tenant_a, sell_price_cents=11000)
        updated = catalog_service.update_product(tenant_a, product.id, {"sell_price_cents": 11500, "name": "P13"})
        assert updated.sell_price_cents == 11500
        assert updated.name == "P13"

    def test_stock_not_writable(self, tenant_a, make_product):
        product = make_product(tenant_a, stock=10)
        with pytest.raises(ValidationError):
            catalog_service.update_product(tenant_a, product.id, {"stock": 999})
        assert db.session.get(Product, product.id).stock == 10

    def test_other_tenant_product_not_found(self, tenant_a, tenant_b, make_product):
        product = make_product(tenant_b)
        with pytest.raises(NotFoundError):
            catalog_service.update_product(tenant_a, product.id, {"name": "hijack"})

    def test_toggle_online_visibility(self, tenant_a, make_product):
        product = make_product(tenant_a, show_online=False)
        assert catalog_service.toggle_online_visibility(tenant_a, product.id).show_online is True
        assert catalog_service.toggle_online_visibility(tenant_a, product.id).show_online is False


class TestListProducts:

    def test_filters(self, tenant_a, tenant_b, make_product):
        make_product(tenant_a, name="Botijão P13", sku="GAS-P13", stock=45, min_stock=20)
        make_product(tenant_a, name="Galão Água 20L", sku="AGU-20L", category="water", stock=12, min_stock=30)
        make_product(tenant_a, name="Botijão P45", sku="GAS-P45", stock=5, min_stock=8, show_online=False)
        make_product(tenant_b, name="Botijão P13", sku="GAS-P13")

        assert len(catalog_service.list_products(tenant_a)) == 3
        assert {p.sku for p in catalog_service.list_products(tenant_a, online_only=True)} == {"GAS-P13", "AGU-20L"}
        assert {p.sku for p in catalog_service.list_products(tenant_a, low_stock=True)} == {"AGU-20L", "GAS-P45"}
        assert [p.sku for p in catalog_service.list_products(tenant_a, category="water")] == ["AGU-20L"]
        assert {p.sku for p in catalog_service.list_products(tenant_a, search="botij")} == {"GAS-P13", "GAS-P45"}


class TestRestock:

    def test_restock_increases_stock_and_books_expense(self, tenant_a, make_product):
        product = make_product(tenant_a, name="Galão Água 20L", stock=12, cost_price_cents=650)

        result = catalog_service.restock(tenant_a, product.id, 50, 700)

        assert result.product.stock == 62
        assert result.product.cost_price_cents == 700
        assert result.transaction.type == "expense"
        assert result.transaction.amount_cents == 35000
        assert result.transaction.category == "Inventory"
        assert result.transaction.description == "Restock: Galão Água 20L (+50)"
        assert db.session.query(LedgerTransaction).count() == 1

    def test_restock_ten_at_five_reais(self, tenant_a, make_product):
        product = make_product(tenant_a, stock=5)
        result = catalog_service.restock(tenant_a, product.id, 10, 500)
        assert result.product.stock == 15
        assert result.transaction.amount_cents == 5000

    @pytest.mark.parametrize("quantity", [0, -5, "abc", None])
    def test_bad_quantity_writes_nothing(self, tenant_a, make_product, quantity):
        product = make_product(tenant_a, stock=12)
        with pytest.raises(ValidationError):
            catalog_service.restock(tenant_a, product.id, quantity, 700)
        assert db.session.get(Product, product.id).stock == 12
        assert db.session.query(LedgerTransaction).count() == 0

    def test_unknown_product(self, tenant_a):
        with pytest.raises(NotFoundError):
            catalog_service.restock(tenant_a, "missing", 1, 100)
        assert db.session.query(LedgerTransaction).count() == 0


class TestDecrementStock:

    def test_decrements_when_enough(self, tenant_a, make_product):
        product = make_product(tenant_a, stock=5)
        catalog_service.decrement_stock(tenant_a, product.id, 5)
        db.session.commit()
        assert db.session.get(Product, product.id).stock == 0

    def test_refuses_to_go_negative(self, tenant_a, make_product):
        product = make_product(tenant_a, stock=3)
        with pytest.raises(InsufficientStockError) as exc:
            catalog_service.decrement_stock(tenant_a, product.id, 4)
        db.session.rollback()
        assert exc.value.details["items"][0]["stock"] == 3
        assert db.session.get(Product, product.id).stock == 3


class TestRestockStorageFailure:

    def test_failed_ledger_write_rolls_back_stock(self, tenant_a, make_product, monkeypatch):
        product = make_product(tenant_a, stock=5, cost_price_cents=650)

        def locked(**kwargs):
            raise OperationalError("INSERT INTO transactions", {}, Exception("database is locked"))

        monkeypatch.setattr(catalog_service, "append_transaction", locked)

        with pytest.raises(StorageError):
            catalog_service.restock(tenant_a, product.id, 10, 700)

        product = db.session.get(Product, product.id)
        assert product.stock == 5
        assert product.cost_price_cents == 650
        assert db.session.query(LedgerTransaction).count() == 0
