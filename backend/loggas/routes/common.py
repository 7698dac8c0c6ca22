# Overview: Shared helpers for API routes; maps domain errors to JSON responses.

from flask import jsonify, request

from ..validation import ValidationError, ConflictError, NotFoundError
from ..services.concurrency import StorageError
from ..services.catalog_service import InsufficientStockError
from ..services.fulfillment_service import InvalidTransitionError


DOMAIN_ERRORS = (
    ValidationError,
    ConflictError,
    NotFoundError,
    InsufficientStockError,
    InvalidTransitionError,
    StorageError,
)


def api_error(e: Exception):
    """
    Domain error -> (json, status).

    ValidationError (EmptyCartError included) 400, NotFoundError 404,
    ConflictError / InsufficientStockError / InvalidTransitionError 409,
    StorageError 503.
    """
    if isinstance(e, ValidationError):
        return jsonify({"error": str(e), "details": e.details}), 400
    if isinstance(e, NotFoundError):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, (InsufficientStockError, InvalidTransitionError)):
        return jsonify({"error": str(e), "details": e.details}), 409
    if isinstance(e, ConflictError):
        return jsonify({"error": str(e)}), 409
    if isinstance(e, StorageError):
        return jsonify({"error": str(e)}), 503
    raise e


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


def bool_arg(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in {"1", "true", "yes"}


def int_arg(name: str, default: int | None = None, maximum: int = 500) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
    if value < 1:
        raise ValidationError(f"{name} must be >= 1")
    return min(value, maximum)
