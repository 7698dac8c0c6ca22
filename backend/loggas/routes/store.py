# Overview: Public storefront and signed-in customer shop routes.

"""
Storefront routes

/api/store/<tenant_id>: no authentication. Lists the distributor's online
catalog and takes anonymous online orders (customer_id "0"; buyers who
leave a phone number are tracked under a phone surrogate key).

/api/shop: signed-in storefront customers. Orders carry the customer's user
id so their purchase statistics accumulate on one record.

Both take prices from the catalog, never from the request body.
"""

from flask import Blueprint, jsonify, g, current_app

from ..constants import PaymentMethod, SaleOrigin, ANONYMOUS_CUSTOMER_ID
from ..services import auth_service, catalog_service, sales_service
from ..decorators import require_auth, require_role
from .common import DOMAIN_ERRORS, api_error, json_body


store_bp = Blueprint("store", __name__, url_prefix="/api/store")
shop_bp = Blueprint("shop", __name__, url_prefix="/api/shop")


def _place_online_order(tenant_id: str, data: dict, customer: dict):
    cart = sales_service.build_storefront_cart(tenant_id, data.get("items"))
    return sales_service.process_sale(
        tenant_id,
        items=cart.to_items(),
        payment_method=data.get("payment_method") or PaymentMethod.ONLINE.value,
        origin=SaleOrigin.ONLINE.value,
        customer=customer,
        request_id=data.get("request_id"),
    )


@store_bp.get("/<tenant_id>")
def storefront_route(tenant_id: str):
    try:
        distributor = auth_service.get_distributor(tenant_id)
        products = catalog_service.list_products(tenant_id, online_only=True)
        return jsonify({
            "distributor": {
                "id": distributor.id,
                "company_name": distributor.company_name or distributor.name,
                "address": distributor.address,
            },
            "products": [p.to_public_dict() for p in products],
        }), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)


@store_bp.post("/<tenant_id>/orders")
def storefront_order_route(tenant_id: str):
    """
    Anonymous online order.

    Body: {"items": [{"product_id", "quantity"}], "customer": {"name", "address", "phone"},
           "payment_method"?, "request_id"?}
    """
    try:
        auth_service.get_distributor(tenant_id)
        data = json_body()
        buyer = data.get("customer") or {}
        if not isinstance(buyer, dict):
            return jsonify({"error": "customer must be an object"}), 400
        customer = {
            "id": ANONYMOUS_CUSTOMER_ID,
            "name": buyer.get("name"),
            "address": buyer.get("address"),
            "phone": buyer.get("phone"),
        }
        sale = _place_online_order(tenant_id, data, customer)
        return jsonify({"sale": sale.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return api_error(e)
    except Exception:
        current_app.logger.exception("Failed to place storefront order")
        return jsonify({"error": "Internal server error"}), 500


@shop_bp.get("/products")
@require_auth
@require_role("customer")
def shop_products_route():
    products = catalog_service.list_products(g.tenant_id, online_only=True)
    return jsonify({"items": [p.to_public_dict() for p in products]}), 200


@shop_bp.post("/orders")
@require_auth
@require_role("customer")
def shop_order_route():
    try:
        data = json_body()
        user = g.current_user
        customer = {
            "id": user.id,
            "name": user.name,
            "address": data.get("address") or user.address,
            "phone": data.get("phone"),
        }
        sale = _place_online_order(g.tenant_id, data, customer)
        return jsonify({"sale": sale.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return api_error(e)
    except Exception:
        current_app.logger.exception("Failed to place shop order")
        return jsonify({"error": "Internal server error"}), 500


@shop_bp.get("/orders")
@require_auth
@require_role("customer")
def shop_orders_route():
    sales = sales_service.list_sales(g.tenant_id, customer_id=g.current_user.id)
    return jsonify({"items": [s.to_dict() for s in sales]}), 200
