# Overview: Pytest coverage for customer records and purchase history.

import pytest
from sqlalchemy import insert

from loggas.extensions import db
from loggas.models import Customer, Sale
from loggas.services import customer_service, sales_service
from loggas.services.customer_service import customer_key
from loggas.validation import ValidationError, ConflictError, NotFoundError


class TestCustomerKey:

    @pytest.mark.parametrize("customer_id,phone,expected", [
        ("c-1", None, "c-1"),
        ("c-1", "(11) 98888-7777", "c-1"),
        ("0", "(11) 98888-7777", "phone:11988887777"),
        (None, "11 9 8888 7777", "phone:11988887777"),
        ("0", None, None),
        ("0", "---", None),
    ])
    def test_key(self, customer_id, phone, expected):
        assert customer_key(customer_id, phone) == expected


class TestCustomerRecords:

    def test_create_with_zero_stats(self, tenant_a):
        customer = customer_service.create_customer(tenant_a, {
            "name": "João Silva",
            "document": "123.456.789-00",
            "phone": "(11) 98888-7777",
            "credit_limit_cents": 50000,
        })
        assert customer.id
        assert customer.purchase_count == 0
        assert customer.total_spent_cents == 0
        assert customer.status == "active"

    def test_reserved_and_duplicate_ids(self, tenant_a):
        with pytest.raises(ValidationError):
            customer_service.create_customer(tenant_a, {"id": "0", "name": "Anon"})
        customer_service.create_customer(tenant_a, {"id": "c-1", "name": "João"})
        with pytest.raises(ConflictError):
            customer_service.create_customer(tenant_a, {"id": "c-1", "name": "Outro"})

    def test_same_id_in_two_tenants(self, tenant_a, tenant_b):
        customer_service.create_customer(tenant_a, {"id": "c-1", "name": "João"})
        customer_service.create_customer(tenant_b, {"id": "c-1", "name": "Maria"})
        assert customer_service.get_customer(tenant_b, "c-1").name == "Maria"

    def test_stats_not_client_writable(self, tenant_a, make_customer):
        make_customer(tenant_a, "c-1", purchase_count=2)
        with pytest.raises(ValidationError):
            customer_service.update_customer(tenant_a, "c-1", {"purchase_count": 99})
        assert db.session.get(Customer, (tenant_a, "c-1")).purchase_count == 2

    def test_update_profile(self, tenant_a, make_customer):
        make_customer(tenant_a, "c-1")
        customer = customer_service.update_customer(tenant_a, "c-1", {"status": "debtor", "address": "Rua B, 2"})
        assert customer.status == "debtor"
        assert customer.address == "Rua B, 2"

    def test_update_unknown(self, tenant_a):
        with pytest.raises(NotFoundError):
            customer_service.update_customer(tenant_a, "missing", {"name": "x"})

    def test_list_filters(self, tenant_a, make_customer):
        make_customer(tenant_a, "1", name="João Silva", document="123.456.789-00")
        make_customer(tenant_a, "2", name="Maria Santos", status="debtor")
        assert [c.id for c in customer_service.list_customers(tenant_a, status="debtor")] == ["2"]
        assert [c.id for c in customer_service.list_customers(tenant_a, search="silva")] == ["1"]
        assert [c.id for c in customer_service.list_customers(tenant_a, search="123.456")] == ["1"]

    def test_purchase_history(self, tenant_a, make_product, make_customer):
        make_customer(tenant_a, "c-1")
        gas = make_product(tenant_a)
        for _ in range(2):
            sales_service.process_sale(
                tenant_a, items=[{"product_id": gas.id, "quantity": 1}],
                payment_method="cash", customer={"id": "c-1"},
            )
        sales_service.process_sale(tenant_a, items=[{"product_id": gas.id, "quantity": 1}], payment_method="cash")

        history = customer_service.purchase_history(tenant_a, "c-1")
        assert len(history) == 2
        assert all(s.customer_id == "c-1" for s in history)


class TestIncrementOrInitialize:

    def test_concurrent_initializer_is_absorbed_by_increment(self, tenant_a, make_product, monkeypatch):
        gas = make_product(tenant_a, sell_price_cents=11000)
        real_increment = customer_service._increment
        calls = []

        def increment_after_other_writer(tenant_id, key, *args):
            calls.append(key)
            if len(calls) == 1:
                # Another writer creates the row after our first increment found nothing
                db.session.execute(insert(Customer.__table__).values(
                    tenant_id=tenant_id, id=key, name="Ana",
                    purchase_count=3, total_spent_cents=15000,
                ))
                return 0
            return real_increment(tenant_id, key, *args)

        monkeypatch.setattr(customer_service, "_increment", increment_after_other_writer)

        sale = sales_service.process_sale(
            tenant_a, items=[{"product_id": gas.id, "quantity": 1}],
            payment_method="cash", customer={"id": "c-1"},
        )

        assert calls == ["c-1", "c-1"]
        customer = db.session.get(Customer, (tenant_a, "c-1"))
        assert customer.purchase_count == 4
        assert customer.total_spent_cents == 15000 + 11000
        assert customer.name == "Ana"
        assert db.session.get(Sale, sale.id) is not None
