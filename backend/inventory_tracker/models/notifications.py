from __future__ import annotations

from ..extensions import db


class NotificationPreference(db.Model):
    """
    Per-user stock alert preference.

    receive_notifications: explicit opt-in; alerts are never sent without it.
    prompt_dismissed: "don't ask me again". Suppresses the opt-in prompt
    without turning alerts on.
    """
    __tablename__ = "notification_preferences"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_notification_preferences_user"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    receive_notifications = db.Column(db.Boolean, nullable=False, default=False)
    prompt_dismissed = db.Column(db.Boolean, nullable=False, default=False)

    # Phone number or address handed to the channel
    recipient = db.Column(db.String(255), nullable=True)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )


class NotificationMessage(db.Model):
    """Outbox row written by the database-backed notification channel."""
    __tablename__ = "notification_messages"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    recipient = db.Column(db.String(255), nullable=True)
    message = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
