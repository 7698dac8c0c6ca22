# Overview: Request and role decorators for API routes.

from functools import wraps

from flask import request, jsonify, g

from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, "current_user") and hasattr(g, "tenant_id")


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require authentication and establish tenant context.

    Sets the following Flask g attributes:
    - g.current_user: the authenticated User
    - g.tenant_id: the tenant captured on the session (None for super admins)
    - g.session_context: the full SessionContext

    Returns 401 when the Authorization header is missing or the token is
    invalid, expired, idle or belongs to a deactivated account.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.tenant_id = context.tenant_id
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Restrict a route to the given roles. Use after @require_auth.

    Tenant-scoped roles (admin, customer) must also carry a tenant.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            user = g.current_user
            if user.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                }), 403

            if user.role != "super_admin" and not g.tenant_id:
                return jsonify({"error": "Invalid session: missing tenant context"}), 401

            return f(*args, **kwargs)

        return decorated_function

    return decorator
