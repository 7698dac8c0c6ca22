# Overview: Flask API routes for document-style collection access (tenant-scoped).

from flask import Blueprint, jsonify, g, current_app

from ..services import collection_service
from ..decorators import require_auth, require_role
from .common import DOMAIN_ERRORS, api_error, json_body


collections_bp = Blueprint("collections", __name__, url_prefix="/api/collections")


@collections_bp.get("/<name>")
@require_auth
@require_role("admin")
def snapshot_route(name: str):
    try:
        docs = collection_service.snapshot(name, g.tenant_id)
        return jsonify({"collection": name, "items": docs, "count": len(docs)}), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)


@collections_bp.get("/<name>/<doc_id>")
@require_auth
@require_role("admin")
def get_document_route(name: str, doc_id: str):
    try:
        return jsonify({"document": collection_service.get(name, g.tenant_id, doc_id)}), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)


@collections_bp.post("/<name>")
@require_auth
@require_role("admin")
def create_document_route(name: str):
    try:
        doc = collection_service.create(name, g.tenant_id, json_body())
        return jsonify({"document": doc}), 201
    except DOMAIN_ERRORS as e:
        return api_error(e)
    except Exception:
        current_app.logger.exception("Failed to create document in %s", name)
        return jsonify({"error": "Internal server error"}), 500


@collections_bp.patch("/<name>/<doc_id>")
@require_auth
@require_role("admin")
def update_document_route(name: str, doc_id: str):
    try:
        doc = collection_service.update(name, g.tenant_id, doc_id, json_body())
        return jsonify({"document": doc}), 200
    except DOMAIN_ERRORS as e:
        return api_error(e)
    except Exception:
        current_app.logger.exception("Failed to update document in %s", name)
        return jsonify({"error": "Internal server error"}), 500
