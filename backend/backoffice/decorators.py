# Overview: Request actor and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g


ROLE_OWNER = "Owner"
ROLE_MANAGER = "Manager"

# Roles allowed to confirm money movements and approve documents
MANAGER_ROLES = (ROLE_OWNER, ROLE_MANAGER)


def _has_actor() -> bool:
    return getattr(g, "user_id", None) is not None


def require_actor(f):
    """
    Establish who is acting on this request.

    Authentication happens upstream; the gateway forwards the verified
    identity as headers. Sets:
    - g.user_id:   X-User-Id (required)
    - g.user_name: X-User-Name
    - g.user_role: X-User-Role

    Returns 401 if X-User-Id is missing.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = (request.headers.get("X-User-Id") or "").strip()
        if not user_id:
            return jsonify({"error": "Authentication required"}), 401

        g.user_id = user_id
        g.user_name = (request.headers.get("X-User-Name") or "").strip() or None
        g.user_role = (request.headers.get("X-User-Role") or "").strip() or None

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """
    Require the acting user to hold one of `roles`.

    Must be stacked under @require_actor.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _has_actor():
                return jsonify({"error": "Authentication required"}), 401

            if g.user_role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def actor_kwargs() -> dict:
    """user_id / user_name for service calls."""
    return {"user_id": g.user_id, "user_name": g.user_name}
