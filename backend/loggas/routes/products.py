# Overview: Flask API routes for catalog operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import catalog_service
from ..decorators import require_auth, require_role
from .common import DOMAIN_ERRORS, api_error, bool_arg, json_body


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_role("admin")
def list_products_route():
    try:
        products = catalog_service.list_products(
            g.tenant_id,
            online_only=bool_arg("online_only"),
            low_stock=bool_arg("low_stock"),
            search=request.args.get("search"),
            category=request.args.get("category"),
        )
        return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)


@products_bp.post("")
@require_auth
@require_role("admin")
def create_product_route():
    try:
        product = catalog_service.add_product(g.tenant_id, json_body())
        return jsonify({"product": product.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return api_error(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<product_id>")
@require_auth
@require_role("admin")
def get_product_route(product_id: str):
    try:
        product = catalog_service.get_product(g.tenant_id, product_id)
        return jsonify({"product": product.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)


@products_bp.patch("/<product_id>")
@require_auth
@require_role("admin")
def update_product_route(product_id: str):
    try:
        product = catalog_service.update_product(g.tenant_id, product_id, json_body())
        return jsonify({"product": product.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<product_id>/restock")
@require_auth
@require_role("admin")
def restock_route(product_id: str):
    """
    Receive stock for a product.

    Body: {"quantity": int > 0, "unit_cost_cents": int >= 0}
    Books an "Inventory" expense of quantity x unit_cost_cents.
    """
    try:
        data = json_body()
        result = catalog_service.restock(
            g.tenant_id,
            product_id,
            data.get("quantity"),
            data.get("unit_cost_cents"),
        )
        return jsonify({
            "product": result.product.to_dict(),
            "transaction": result.transaction.to_dict(),
        }), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)
    except Exception:
        current_app.logger.exception("Failed to restock product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<product_id>/toggle-online")
@require_auth
@require_role("admin")
def toggle_online_route(product_id: str):
    try:
        product = catalog_service.toggle_online_visibility(g.tenant_id, product_id)
        return jsonify({"product": product.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)
