# Overview: Flask API routes for customer operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import customer_service
from ..decorators import require_auth, require_role
from .common import DOMAIN_ERRORS, api_error, json_body


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_role("admin")
def list_customers_route():
    try:
        customers = customer_service.list_customers(
            g.tenant_id,
            search=request.args.get("search"),
            status=request.args.get("status"),
        )
        return jsonify({"items": [c.to_dict() for c in customers], "count": len(customers)}), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)


@customers_bp.post("")
@require_auth
@require_role("admin")
def create_customer_route():
    try:
        customer = customer_service.create_customer(g.tenant_id, json_body())
        return jsonify({"customer": customer.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return api_error(e)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<customer_id>")
@require_auth
@require_role("admin")
def get_customer_route(customer_id: str):
    try:
        customer = customer_service.get_customer(g.tenant_id, customer_id)
        history = customer_service.purchase_history(g.tenant_id, customer_id)
        return jsonify({
            "customer": customer.to_dict(),
            "sales": [s.to_dict() for s in history],
        }), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)


@customers_bp.patch("/<customer_id>")
@require_auth
@require_role("admin")
def update_customer_route(customer_id: str):
    try:
        customer = customer_service.update_customer(g.tenant_id, customer_id, json_body())
        return jsonify({"customer": customer.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500
