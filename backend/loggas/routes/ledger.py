# Overview: Flask API routes for ledger operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import ledger_service
from ..decorators import require_auth, require_role
from .common import DOMAIN_ERRORS, api_error, int_arg, json_body

"""
Time semantics:
- start / end accept dates (whole day) or ISO-8601 datetimes with Z/offsets.
- Windows are inclusive on both ends.
"""

ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("")
@require_auth
@require_role("admin")
def list_transactions_route():
    try:
        entries = ledger_service.list_transactions(
            g.tenant_id,
            start=request.args.get("start"),
            end=request.args.get("end"),
            type=request.args.get("type"),
            limit=int_arg("limit", default=100),
        )
        return jsonify({"items": [t.to_dict() for t in entries], "count": len(entries)}), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)


@ledger_bp.get("/summary")
@require_auth
@require_role("admin")
def summary_route():
    try:
        summary = ledger_service.summarize(
            g.tenant_id,
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
        return jsonify(summary), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)


@ledger_bp.post("/expenses")
@require_auth
@require_role("admin")
def record_expense_route():
    """Body: {"description", "amount_cents", "category"?}"""
    try:
        data = json_body()
        entry = ledger_service.record_expense(
            tenant_id=g.tenant_id,
            description=data.get("description"),
            amount_cents=data.get("amount_cents"),
            category=data.get("category"),
        )
        return jsonify({"transaction": entry.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return api_error(e)
    except Exception:
        current_app.logger.exception("Failed to record expense")
        return jsonify({"error": "Internal server error"}), 500
