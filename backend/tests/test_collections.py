# Overview: Pytest coverage for collection access and change notices.

"""
Collections and change notices

- Subscribers hear about a write only after it commits
- A rolled-back write produces no notice
- Server-side stock/customer increments are reported too
- A failing subscriber never breaks the writer
"""

import pytest

from loggas.services import collection_service, catalog_service, sales_service, subscription_service
from loggas.services.collection_service import CollectionCache
from loggas.services.sales_service import InsufficientStockError
from loggas.validation import ValidationError, NotFoundError


@pytest.fixture
def notices():
    received = []
    return received


class TestSubscriptions:

    def test_notice_after_commit(self, tenant_a, notices):
        subscription_service.subscribe("products", tenant_a, notices.append)
        product = catalog_service.add_product(tenant_a, {
            "name": "Botijão P13", "sku": "GAS-P13", "cost_price_cents": 8500, "sell_price_cents": 11000,
        })
        assert len(notices) == 1
        assert notices[0].collection == "products"
        assert notices[0].ids == (product.id,)

    def test_other_tenant_not_notified(self, tenant_a, tenant_b, notices, make_product):
        subscription_service.subscribe("products", tenant_b, notices.append)
        make_product(tenant_a)
        assert notices == []

    def test_rollback_sends_nothing(self, tenant_a, make_product, notices):
        product = make_product(tenant_a, stock=1)
        subscription_service.subscribe("products", tenant_a, notices.append)
        subscription_service.subscribe("sales", tenant_a, notices.append)

        with pytest.raises(InsufficientStockError):
            sales_service.process_sale(
                tenant_a, items=[{"product_id": product.id, "quantity": 5}], payment_method="cash",
            )
        assert notices == []

    def test_sale_notifies_each_touched_collection(self, tenant_a, make_product, notices):
        product = make_product(tenant_a, stock=5)
        for name in ("products", "sales", "transactions", "customers"):
            subscription_service.subscribe(name, tenant_a, notices.append)

        sales_service.process_sale(
            tenant_a, items=[{"product_id": product.id, "quantity": 1}],
            payment_method="cash", customer={"id": "c-1"},
        )

        by_collection = {n.collection: n for n in notices}
        assert set(by_collection) == {"products", "sales", "transactions", "customers"}
        assert product.id in by_collection["products"].ids
        assert by_collection["customers"].ids == ("c-1",)

    def test_failing_subscriber_does_not_break_writer(self, tenant_a, notices):
        def boom(notice):
            raise RuntimeError("subscriber crashed")

        subscription_service.subscribe("products", tenant_a, boom)
        subscription_service.subscribe("products", tenant_a, notices.append)

        product = catalog_service.add_product(tenant_a, {
            "name": "Galão", "sku": "AGU-20L", "cost_price_cents": 650, "sell_price_cents": 1400,
        })
        assert product.id
        assert len(notices) == 1

    def test_unsubscribe(self, tenant_a, make_product, notices):
        unsubscribe = subscription_service.subscribe("products", tenant_a, notices.append)
        assert subscription_service.subscriber_count("products", tenant_a) == 1
        unsubscribe()
        assert subscription_service.subscriber_count("products", tenant_a) == 0
        make_product(tenant_a)
        assert notices == []

    def test_unknown_collection(self, tenant_a):
        with pytest.raises(KeyError):
            subscription_service.subscribe("invoices", tenant_a, print)


class TestCollectionAccess:

    def test_snapshot_and_get(self, tenant_a, tenant_b, make_product):
        product = make_product(tenant_a)
        make_product(tenant_b)

        docs = collection_service.snapshot("products", tenant_a)
        assert [d["id"] for d in docs] == [product.id]
        assert collection_service.get("products", tenant_a, product.id)["sku"] == product.sku
        with pytest.raises(NotFoundError):
            collection_service.get("products", tenant_b, product.id)

    def test_unknown_collection(self, tenant_a):
        with pytest.raises(NotFoundError):
            collection_service.snapshot("invoices", tenant_a)

    def test_create_routes_through_services(self, tenant_a, make_product):
        product = make_product(tenant_a, stock=5)
        sale = collection_service.create("sales", tenant_a, {
            "items": [{"product_id": product.id, "quantity": 2}],
            "payment_method": "cash",
        })
        assert sale["total_cents"] == 2 * product.sell_price_cents
        assert collection_service.get("products", tenant_a, product.id)["stock"] == 3

    def test_transactions_are_append_only(self, tenant_a):
        entry = collection_service.create("transactions", tenant_a, {
            "type": "expense", "amount_cents": 5000, "category": "Fuel", "description": "Diesel",
        })
        with pytest.raises(ValidationError):
            collection_service.update("transactions", tenant_a, entry["id"], {"amount_cents": 1})

    def test_sales_accept_only_status(self, tenant_a, make_product):
        product = make_product(tenant_a)
        sale = collection_service.create("sales", tenant_a, {
            "items": [{"product_id": product.id, "quantity": 1}],
            "payment_method": "online",
            "origin": "online",
        })
        with pytest.raises(ValidationError):
            collection_service.update("sales", tenant_a, sale["id"], {"total_cents": 1})
        updated = collection_service.update("sales", tenant_a, sale["id"], {"status": "PREPARING"})
        assert updated["status"] == "PREPARING"

    def test_users_read_only(self, tenant_a):
        with pytest.raises(ValidationError):
            collection_service.create("users", tenant_a, {"email": "x@y.z"})


class TestCollectionCache:

    def test_reloads_only_after_change(self, tenant_a, make_product):
        make_product(tenant_a)
        cache = CollectionCache(tenant_a, collections=("products",))
        try:
            first = cache.get("products")
            assert len(first) == 1
            assert cache.is_stale("products") is False
            assert cache.get("products") is first

            make_product(tenant_a)
            assert cache.is_stale("products") is True
            assert len(cache.get("products")) == 2
        finally:
            cache.close()
        assert subscription_service.subscriber_count("products", tenant_a) == 0
