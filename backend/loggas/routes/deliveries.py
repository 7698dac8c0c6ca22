# Overview: Flask API routes for delivery coordination; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import fulfillment_service, textgen_service
from ..decorators import require_auth, require_role
from .common import DOMAIN_ERRORS, api_error, json_body


deliveries_bp = Blueprint("deliveries", __name__, url_prefix="/api/deliveries")


@deliveries_bp.get("/queue")
@require_auth
@require_role("admin")
def delivery_queue_route():
    sales = fulfillment_service.list_delivery_queue(g.tenant_id)
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)}), 200


@deliveries_bp.get("/routes")
@require_auth
@require_role("admin")
def list_routes_route():
    try:
        routes = fulfillment_service.list_routes(g.tenant_id, status=request.args.get("status"))
        return jsonify({"items": [r.to_dict() for r in routes]}), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)


@deliveries_bp.get("/routes/<route_id>")
@require_auth
@require_role("admin")
def get_route_route(route_id: str):
    try:
        route = fulfillment_service.get_route(g.tenant_id, route_id)
        return jsonify({"route": route.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)


@deliveries_bp.post("/routes")
@require_auth
@require_role("admin")
def create_route_route():
    """
    Dispatch orders with a driver.

    Body: {"driver_id", "sale_ids": [...], "suggest": bool}
    All listed orders move to SHIPPED, or none do. With suggest=true an
    advisory stop ordering is stored on the route.
    """
    try:
        data = json_body()
        suggestion = None
        if data.get("suggest"):
            suggestion = textgen_service.delivery_route_suggestion(g.tenant_id, data.get("sale_ids"))

        route = fulfillment_service.create_delivery_route(
            g.tenant_id,
            data.get("driver_id"),
            data.get("sale_ids"),
            suggestion=suggestion,
        )
        return jsonify({"route": route.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return api_error(e)
    except Exception:
        current_app.logger.exception("Failed to create delivery route")
        return jsonify({"error": "Internal server error"}), 500


@deliveries_bp.post("/routes/<route_id>/complete")
@require_auth
@require_role("admin")
def complete_route_route(route_id: str):
    try:
        route = fulfillment_service.complete_delivery_route(g.tenant_id, route_id)
        return jsonify({"route": route.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)
    except Exception:
        current_app.logger.exception("Failed to complete delivery route")
        return jsonify({"error": "Internal server error"}), 500
