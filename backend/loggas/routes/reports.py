# Overview: Flask API routes for reports; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import reporting_service
from ..decorators import require_auth, require_role
from .common import DOMAIN_ERRORS, api_error


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales")
@require_auth
@require_role("admin")
def sales_report_route():
    try:
        report = reporting_service.sales_report(
            g.tenant_id,
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
        return jsonify(report), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)


@reports_bp.get("/ledger")
@require_auth
@require_role("admin")
def ledger_report_route():
    try:
        report = reporting_service.ledger_summary(
            g.tenant_id,
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
        return jsonify(report), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)


@reports_bp.get("/dashboard")
@require_auth
@require_role("admin")
def dashboard_route():
    return jsonify(reporting_service.dashboard(g.tenant_id)), 200


@reports_bp.get("/platform")
@require_auth
@require_role("super_admin")
def platform_route():
    return jsonify(reporting_service.platform_metrics()), 200
