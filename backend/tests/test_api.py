# Overview: Pytest coverage for the HTTP surface: auth, role checks, tenancy and error mapping.

"""
API tests

Verifies:
- Unauthenticated requests return 401
- Customers cannot reach console routes (403)
- Tenants only see their own data
- Domain errors map to 400 / 404 / 409
- The public storefront takes anonymous orders at catalog prices
"""

import pytest

from loggas.extensions import db
from loggas.models import Product, Sale
from loggas.services.auth_service import create_user
from loggas.services.session_service import create_session

from conftest import PASSWORD, auth_headers, get_auth_token


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("GET", "/api/ledger"),
            ("GET", "/api/customers"),
            ("GET", "/api/deliveries/queue"),
            ("GET", "/api/reports/dashboard"),
            ("GET", "/api/reports/platform"),
            ("GET", "/api/insights/financial"),
            ("GET", "/api/collections/products"),
            ("GET", "/api/shop/products"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_bad_token(self, client, db_session):
        resp = client.get("/api/products", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401


class TestAuthFlow:

    def test_register_login_me_logout(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "name": "Gás Central",
            "email": "Dono@GasCentral.com",
            "password": PASSWORD,
            "company_name": "Gás Central",
        })
        assert resp.status_code == 201
        user = resp.json["user"]
        assert user["role"] == "admin"
        assert user["tenant_id"] == user["id"]

        token = get_auth_token(client, "dono@gascentral.com")
        assert token

        me = client.get("/api/auth/me", headers=auth_headers(token))
        assert me.status_code == 200
        assert me.json["tenant_id"] == user["id"]

        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401

    def test_weak_password(self, client, db_session):
        resp = client.post("/api/auth/register", json={"name": "X", "email": "x@x.com", "password": "short"})
        assert resp.status_code == 400

    def test_duplicate_email(self, client, admin_a):
        resp = client.post("/api/auth/register", json={
            "name": "Outro", "email": admin_a.email, "password": PASSWORD,
        })
        assert resp.status_code == 409

    def test_self_service_super_admin_refused(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "name": "Root", "email": "root@x.com", "password": PASSWORD, "role": "super_admin",
        })
        assert resp.status_code == 400

    def test_wrong_password(self, client, admin_a):
        resp = client.post("/api/auth/login", json={"email": admin_a.email, "password": "Wrong123!"})
        assert resp.status_code == 401


class TestRoles:

    @pytest.fixture
    def customer_headers(self, admin_a):
        customer = create_user(
            name="Ana", email="ana@cliente.com", password=PASSWORD,
            role="customer", tenant_id=admin_a.tenant_id,
        )
        _, token = create_session(customer)
        return auth_headers(token)

    def test_customer_denied_console(self, client, customer_headers):
        resp = client.get("/api/products", headers=customer_headers)
        assert resp.status_code == 403
        assert resp.json["required_roles"] == ["admin"]

    def test_admin_denied_platform_metrics(self, client, admin_headers):
        assert client.get("/api/reports/platform", headers=admin_headers).status_code == 403

    def test_super_admin_platform_metrics(self, client, admin_a):
        root = create_user(name="Root", email="root@loggas.local", password=PASSWORD, role="super_admin")
        _, token = create_session(root)
        resp = client.get("/api/reports/platform", headers=auth_headers(token))
        assert resp.status_code == 200
        assert resp.json["total_distributors"] == 1

    def test_customer_signup_needs_known_distributor(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "name": "Ana", "email": "ana@x.com", "password": PASSWORD,
            "role": "customer", "tenant_id": "nope",
        })
        assert resp.status_code == 404

    def test_shop_order_attributed_to_customer(self, client, admin_a, customer_headers, make_product):
        gas = make_product(admin_a.tenant_id, sell_price_cents=11000)
        resp = client.post("/api/shop/orders", json={
            "items": [{"product_id": gas.id, "quantity": 1}],
            "address": "Rua A, 10",
        }, headers=customer_headers)
        assert resp.status_code == 201
        sale = resp.json["sale"]
        assert sale["origin"] == "online"
        assert sale["status"] == "PENDING"

        orders = client.get("/api/shop/orders", headers=customer_headers)
        assert [o["id"] for o in orders.json["items"]] == [sale["id"]]


class TestProductsApi:

    def test_create_list_restock(self, client, admin_headers):
        resp = client.post("/api/products", json={
            "name": "Botijão P13", "sku": "GAS-P13", "category": "gas",
            "stock": 10, "min_stock": 20, "cost_price_cents": 8500, "sell_price_cents": 11000,
        }, headers=admin_headers)
        assert resp.status_code == 201
        product_id = resp.json["product"]["id"]

        listed = client.get("/api/products?low_stock=true", headers=admin_headers)
        assert [p["id"] for p in listed.json["items"]] == [product_id]

        restocked = client.post(f"/api/products/{product_id}/restock",
                                json={"quantity": 5, "unit_cost_cents": 9000}, headers=admin_headers)
        assert restocked.status_code == 200
        assert restocked.json["product"]["stock"] == 15
        assert restocked.json["transaction"]["amount_cents"] == 45000

    def test_stock_patch_rejected(self, client, admin_a, admin_headers, make_product):
        gas = make_product(admin_a.tenant_id)
        resp = client.patch(f"/api/products/{gas.id}", json={"stock": 500}, headers=admin_headers)
        assert resp.status_code == 400

    def test_cross_tenant_product_is_404(self, client, admin_b, admin_headers, make_product):
        foreign = make_product(admin_b.tenant_id)
        assert client.get(f"/api/products/{foreign.id}", headers=admin_headers).status_code == 404
        resp = client.patch(f"/api/products/{foreign.id}", json={"name": "x"}, headers=admin_headers)
        assert resp.status_code == 404


class TestSalesApi:

    def test_commit_and_idempotent_retry(self, client, admin_a, admin_headers, make_product):
        gas = make_product(admin_a.tenant_id, stock=5, sell_price_cents=11000)
        body = {
            "items": [{"product_id": gas.id, "quantity": 2}],
            "payment_method": "pix",
            "request_id": "pos-1-0001",
        }

        first = client.post("/api/sales", json=body, headers=admin_headers)
        assert first.status_code == 201
        assert first.json["sale"]["total_cents"] == 22000

        retry = client.post("/api/sales", json=body, headers=admin_headers)
        assert retry.status_code == 200
        assert retry.json["sale"]["id"] == first.json["sale"]["id"]
        assert db.session.get(Product, gas.id).stock == 3

    def test_insufficient_stock_is_409(self, client, admin_a, admin_headers, make_product):
        gas = make_product(admin_a.tenant_id, stock=1)
        resp = client.post("/api/sales", json={
            "items": [{"product_id": gas.id, "quantity": 2}], "payment_method": "cash",
        }, headers=admin_headers)
        assert resp.status_code == 409
        assert resp.json["details"]["items"][0]["stock"] == 1
        assert db.session.query(Sale).count() == 0

    def test_empty_cart_is_400(self, client, admin_headers):
        resp = client.post("/api/sales", json={"items": [], "payment_method": "cash"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_invalid_transition_is_409(self, client, admin_a, admin_headers, make_product):
        gas = make_product(admin_a.tenant_id)
        sale = client.post("/api/sales", json={
            "items": [{"product_id": gas.id, "quantity": 1}], "payment_method": "cash",
        }, headers=admin_headers).json["sale"]

        resp = client.post(f"/api/sales/{sale['id']}/status", json={"status": "PREPARING"}, headers=admin_headers)
        assert resp.status_code == 409

        detail = client.get(f"/api/sales/{sale['id']}", headers=admin_headers)
        assert detail.json["allowed_transitions"] == []


class TestStorefront:

    def test_public_catalog_hides_cost(self, client, admin_a, make_product):
        make_product(admin_a.tenant_id, name="Botijão P13")
        make_product(admin_a.tenant_id, name="Botijão P45", show_online=False)

        resp = client.get(f"/api/store/{admin_a.tenant_id}")
        assert resp.status_code == 200
        assert resp.json["distributor"]["company_name"] == "Gás Central"
        assert [p["name"] for p in resp.json["products"]] == ["Botijão P13"]
        assert "cost_price_cents" not in resp.json["products"][0]

    def test_anonymous_order(self, client, admin_a, make_product):
        gas = make_product(admin_a.tenant_id, sell_price_cents=11000, stock=4)
        resp = client.post(f"/api/store/{admin_a.tenant_id}/orders", json={
            "items": [{"product_id": gas.id, "quantity": 2, "unit_price_cents": 1}],
            "customer": {"name": "Ana", "address": "Rua A, 10"},
        })
        assert resp.status_code == 201
        sale = resp.json["sale"]
        assert sale["customer_id"] == "0"
        assert sale["total_cents"] == 22000
        assert sale["status"] == "PENDING"
        assert db.session.get(Product, gas.id).stock == 2

    def test_unknown_distributor(self, client, db_session):
        assert client.get("/api/store/nope").status_code == 404


class TestSystem:

    def test_version(self, client):
        resp = client.get("/version")
        assert resp.status_code == 200
        assert resp.json["api_version"] == "1.0.0"
