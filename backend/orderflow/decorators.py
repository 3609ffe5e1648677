# Overview: Request decorators that establish the acting user for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user_id') and hasattr(g, 'is_staff')


def require_actor(f):
    """
    Establish the acting user from gateway headers.

    Authentication happens upstream; the gateway forwards the verified user
    id and role. Sets:
    - g.current_user_id: the caller's identifier
    - g.is_staff: True for staff/admin roles

    Returns 401 if the id header is missing or blank.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        id_header = current_app.config.get("ACTOR_ID_HEADER", "X-User-Id")
        role_header = current_app.config.get("ACTOR_ROLE_HEADER", "X-User-Role")

        user_id = (request.headers.get(id_header) or "").strip()
        if not user_id:
            return jsonify({"error": "Authentication required", "code": "unauthenticated"}), 401

        role = (request.headers.get(role_header) or "customer").strip().lower()
        staff_roles = set(current_app.config.get("STAFF_ROLES", ("staff", "admin")))

        g.current_user_id = user_id
        g.is_staff = role in staff_roles

        return f(*args, **kwargs)

    return decorated_function


def require_staff(f):
    """Require the acting user to hold a staff role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        # Ensure @require_actor was called first
        if not _is_authenticated():
            return jsonify({"error": "Authentication required", "code": "unauthenticated"}), 401
        if not g.is_staff:
            current_app.logger.warning(
                "Staff access denied for user %s on %s %s",
                g.current_user_id, request.method, request.path,
            )
            return jsonify({"error": "Staff access required", "code": "forbidden"}), 403
        return f(*args, **kwargs)
    return decorated_function
