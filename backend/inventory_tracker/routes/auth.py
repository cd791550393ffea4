# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/inventory_tracker/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- bcrypt password hashing (see auth_service.py)
- Uniform "Invalid credentials" answer for unknown user and wrong password
- Session management with token-based auth
- Self-registration always yields role User
"""

from datetime import timedelta

from flask import Blueprint, request, jsonify, current_app, g

from ..services.auth_service import CredentialStore
from ..services import session_service
from ..validation import DuplicateUserError, InvalidCredentialsError, ValidationError, BackendUnavailableError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api")


def _credential_store() -> CredentialStore:
    return CredentialStore(bcrypt_rounds=current_app.config["BCRYPT_ROUNDS"])


def _credentials(data):
    """Accept {email, password} (web client) or {username, password}."""
    if not isinstance(data, dict):
        return None, None
    username = data.get("username") or data.get("email")
    password = data.get("password")
    return username, password


@auth_bp.post("/register")
def register_route():
    """
    Register a new account with role User.

    Returns 201 with the created user, 409 if the username is taken.
    """
    try:
        username, password = _credentials(request.get_json(silent=True))
        if not all([username, password]):
            return jsonify({"error": "username/email and password required"}), 400

        user = _credential_store().register(username, password)

        return jsonify({"message": "User registered successfully", "user": user}), 201

    except DuplicateUserError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except BackendUnavailableError as e:
        return jsonify({"error": str(e)}), 503
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Returns user info, role, capabilities and the session token.
    Token must be included in Authorization header for protected routes.
    """
    try:
        username, password = _credentials(request.get_json(silent=True))
        if not all([username, password]):
            return jsonify({"error": "username/email and password required"}), 400

        try:
            user = _credential_store().authenticate(username, password)
        except InvalidCredentialsError as e:
            return jsonify({"error": str(e)}), 401

        timeout = timedelta(hours=current_app.config["SESSION_ABSOLUTE_TIMEOUT_HOURS"])
        context, session = session_service.create_session(user["id"], absolute_timeout=timeout)

        return jsonify({
            "user": user,
            "role": context.role,
            "capabilities": sorted(context.capabilities),
            "token": context.token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except BackendUnavailableError as e:
        return jsonify({"error": str(e)}), 503
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    try:
        revoked = session_service.revoke_session(g.token, reason="User logout")

        if not revoked:
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current session context: user, role and capabilities."""
    return jsonify(g.session_context.to_dict()), 200
