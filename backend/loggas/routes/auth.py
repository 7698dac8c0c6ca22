# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- POST /register: distributor sign-up (role admin) or storefront customer
  sign-up (role customer + tenant_id of the distributor)
- POST /login: email + password -> bearer token
- POST /logout: revoke the presented token
- GET /me: current user
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..constants import UserRole
from ..time_utils import to_utc_z
from ..decorators import require_auth, bearer_token
from .common import DOMAIN_ERRORS, api_error, json_body


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

SELF_SERVICE_ROLES = {UserRole.ADMIN.value, UserRole.CUSTOMER.value}


@auth_bp.post("/register")
def register_route():
    try:
        data = json_body()
        role = data.get("role") or UserRole.ADMIN.value
        if role not in SELF_SERVICE_ROLES:
            return jsonify({"error": "role must be admin or customer"}), 400

        user = auth_service.create_user(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=role,
            tenant_id=data.get("tenant_id"),
            company_name=data.get("company_name"),
            address=data.get("address"),
        )
        session, token = session_service.create_session(
            user,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        current_app.logger.info("Registered %s user %s", user.role, user.id)
        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "expires_at": to_utc_z(session.expires_at),
        }), 201

    except DOMAIN_ERRORS as e:
        return api_error(e)
    except Exception:
        current_app.logger.exception("Registration failed")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    try:
        data = json_body()
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            current_app.logger.info("Failed login for %s", email)
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "expires_at": to_utc_z(session.expires_at),
        }), 200

    except DOMAIN_ERRORS as e:
        return api_error(e)
    except Exception:
        current_app.logger.exception("Login failed")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(bearer_token())
    return jsonify({"message": "Logged out successfully"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict(), "tenant_id": g.tenant_id}), 200
