# backend/loggas/routes/system.py
"""
System health and version endpoints.
"""

import sys
import time

from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, Sale, User, SessionToken
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)

API_VERSION = "1.0.0"


def check_database_health() -> dict:
    start_time = time.time()
    try:
        details = {
            "users": db.session.query(User).count(),
            "products": db.session.query(Product).count(),
            "sales": db.session.query(Sale).count(),
            "active_sessions": db.session.query(SessionToken).filter_by(is_revoked=False).count(),
        }
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "details": details,
        }
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database error",
        }


def check_textgen_config() -> dict:
    if current_app.config.get("GEMINI_API_KEY"):
        return {"status": "healthy", "model": current_app.config.get("GEMINI_MODEL")}
    return {"status": "degraded", "warning": "GEMINI_API_KEY not set; advisory text uses fallbacks"}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable (text generation may be degraded)
    - 503: database unhealthy
    """
    database_health = check_database_health()
    textgen_health = check_textgen_config()

    if database_health["status"] == "unhealthy":
        overall_status, http_status = "unhealthy", 503
    elif textgen_health["status"] == "degraded":
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "checks": {
            "database": database_health,
            "text_generation": textgen_health,
        },
    }, http_status


@system_bp.get("/version")
def version():
    env = "production" if not current_app.debug else "development"
    return {
        "api_version": API_VERSION,
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
