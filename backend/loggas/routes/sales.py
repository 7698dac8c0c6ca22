# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/loggas/routes/sales.py
"""Sales API routes: point-of-sale commit, history and fulfillment status"""

from flask import Blueprint, request, jsonify, current_app, g

from ..constants import SaleOrigin
from ..services import sales_service, fulfillment_service
from ..decorators import require_auth, require_role
from .common import DOMAIN_ERRORS, api_error, int_arg, json_body


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
@require_role("admin")
def list_sales_route():
    try:
        sales = sales_service.list_sales(
            g.tenant_id,
            origin=request.args.get("origin"),
            status=request.args.get("status"),
            customer_id=request.args.get("customer_id"),
            start=request.args.get("start"),
            end=request.args.get("end"),
            limit=int_arg("limit"),
        )
        return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)}), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)


@sales_bp.post("")
@require_auth
@require_role("admin")
def create_sale_route():
    """
    Commit a sale from the console.

    Body:
        items: [{"product_id", "quantity", "unit_price_cents"?}]
        payment_method: cash | pix | credit_card | debit_card | boleto | online
        origin: in_person (default) | online
        customer: {"id"?, "name"?, "address"?, "phone"?}
        request_id: optional idempotency key

    Returns 201 for a new sale, 200 when request_id matched an existing one.
    """
    try:
        data = json_body()
        request_id = data.get("request_id")
        existed = bool(request_id) and sales_service.find_by_request_id(g.tenant_id, request_id) is not None

        sale = sales_service.process_sale(
            g.tenant_id,
            items=data.get("items"),
            payment_method=data.get("payment_method"),
            origin=data.get("origin") or SaleOrigin.IN_PERSON.value,
            customer=data.get("customer"),
            request_id=request_id,
        )
        return jsonify({"sale": sale.to_dict()}), 200 if existed else 201

    except DOMAIN_ERRORS as e:
        return api_error(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<sale_id>")
@require_auth
@require_role("admin")
def get_sale_route(sale_id: str):
    try:
        sale = sales_service.get_sale(g.tenant_id, sale_id)
        return jsonify({
            "sale": sale.to_dict(),
            "allowed_transitions": sorted(fulfillment_service.allowed_transitions(sale.status)),
        }), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)


@sales_bp.post("/<sale_id>/status")
@require_auth
@require_role("admin")
def advance_status_route(sale_id: str):
    """Body: {"status": "PREPARING" | "SHIPPED" | "COMPLETED" | "CANCELLED"}"""
    try:
        data = json_body()
        status = data.get("status")
        if not status:
            return jsonify({"error": "status required"}), 400

        sale = fulfillment_service.advance_status(g.tenant_id, sale_id, status)
        return jsonify({"sale": sale.to_dict()}), 200

    except DOMAIN_ERRORS as e:
        return api_error(e)
    except Exception:
        current_app.logger.exception("Failed to update sale status")
        return jsonify({"error": "Internal server error"}), 500
