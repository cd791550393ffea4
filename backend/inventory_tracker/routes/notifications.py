# Overview: Flask API routes for stock alert preferences.

from flask import Blueprint, request, g, current_app

from ..decorators import require_auth
from ..services import notification_service
from ..validation import ValidationError, BackendUnavailableError

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("/preferences")
@require_auth
def get_preferences_route():
    """Current user's stock alert preference, plus whether to show the opt-in prompt."""
    prefs = notification_service.get_preferences(g.session_context.user_id)
    return prefs.to_dict(), 200


@notifications_bp.put("/preferences")
@require_auth
def update_preferences_route():
    """
    Update the stock alert preference.

    Body (all optional):
    - receive_notifications: bool
    - dont_ask_again: bool
    - recipient: str | null
    """
    payload = request.get_json(silent=True)
    try:
        prefs = notification_service.update_preferences(g.session_context.user_id, payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except BackendUnavailableError as e:
        return {"error": str(e)}, 503
    except Exception:
        current_app.logger.exception("Failed to update notification preferences")
        return {"error": "Internal server error"}, 500
    return prefs.to_dict(), 200
