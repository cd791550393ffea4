# Overview: Request and capability decorators for API routes.

from functools import wraps
from datetime import timedelta

from flask import current_app, request, jsonify, g

from .permissions import has_capability
from .services import session_service


def _bearer_token():
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.session_context (SessionContext) and g.token for the route.

    SECURITY: Returns 401 if the Authorization header is missing, or the token
    is unknown, expired, idle too long or revoked.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        idle_hours = current_app.config.get("SESSION_IDLE_TIMEOUT_HOURS", 2)
        context = session_service.validate_session(token, idle_timeout=timedelta(hours=idle_hours))
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.session_context = context
        g.token = token
        return f(*args, **kwargs)

    return decorated_function


def require_capability(capability: str):
    """Require the session's role to grant a capability. Use after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            context = getattr(g, "session_context", None)
            if context is None:
                return jsonify({"error": "Authentication required"}), 401

            if not has_capability(context.role, capability):
                return jsonify({
                    "error": "Permission denied",
                    "required_capability": capability,
                    "message": f"Role {context.role} lacks capability: {capability}",
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
