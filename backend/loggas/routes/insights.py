# Overview: Flask API routes for advisory text; always 200 with generated or fallback text.

from flask import Blueprint, jsonify, g

from ..services import textgen_service
from ..decorators import require_auth, require_role
from .common import DOMAIN_ERRORS, api_error, json_body


insights_bp = Blueprint("insights", __name__, url_prefix="/api/insights")


@insights_bp.get("/financial")
@require_auth
@require_role("admin")
def financial_route():
    return jsonify({"text": textgen_service.financial_insights(g.tenant_id)}), 200


@insights_bp.get("/customers/<customer_id>")
@require_auth
@require_role("admin")
def customer_route(customer_id: str):
    try:
        return jsonify({"text": textgen_service.customer_projection(g.tenant_id, customer_id)}), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)


@insights_bp.post("/route")
@require_auth
@require_role("admin")
def route_route():
    try:
        data = json_body()
        text = textgen_service.delivery_route_suggestion(g.tenant_id, data.get("sale_ids"))
        return jsonify({"text": text}), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)
