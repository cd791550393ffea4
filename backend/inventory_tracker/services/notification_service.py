from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from ..extensions import db
from ..models import NotificationMessage, NotificationPreference
from ..validation import NotificationDeliveryError, ValidationError
from .concurrency import serialized_write

logger = logging.getLogger(__name__)


CHANNEL_LOG = "log"
CHANNEL_OUTBOX = "outbox"
VALID_CHANNELS = {CHANNEL_LOG, CHANNEL_OUTBOX}

PREFERENCE_FIELDS = {"receive_notifications", "dont_ask_again", "recipient"}


class NotificationChannel(Protocol):
    def send(self, recipient: str | None, message: str) -> None:
        """Deliver one message. Raise on failure."""


@dataclass(frozen=True)
class NotificationPrefs:
    """Snapshot of a user's stock alert preference."""
    receive_notifications: bool = False
    prompt_dismissed: bool = False
    recipient: str | None = None

    @classmethod
    def from_model(cls, pref: NotificationPreference | None) -> "NotificationPrefs":
        if pref is None:
            return cls()
        return cls(
            receive_notifications=bool(pref.receive_notifications),
            prompt_dismissed=bool(pref.prompt_dismissed),
            recipient=pref.recipient,
        )

    def to_dict(self) -> dict:
        return {
            "receive_notifications": self.receive_notifications,
            "dont_ask_again": self.prompt_dismissed,
            "recipient": self.recipient,
            "should_prompt": should_prompt(self),
        }


@dataclass(frozen=True)
class NotificationResult:
    item_name: str
    sent: bool
    error: str | None = None

    def to_dict(self) -> dict:
        return {"item_name": self.item_name, "sent": self.sent, "error": self.error}


class LogChannel:
    """Writes stock alerts to the application log."""

    def send(self, recipient: str | None, message: str) -> None:
        logger.warning("Stock alert for %s: %s", recipient or "<default>", message)


class OutboxChannel:
    """Persists stock alerts as NotificationMessage rows for a delivery worker."""

    def send(self, recipient: str | None, message: str) -> None:
        with serialized_write():
            db.session.add(NotificationMessage(recipient=recipient, message=message))
            try:
                db.session.commit()
            except Exception as exc:
                db.session.rollback()
                raise NotificationDeliveryError("Could not queue notification") from exc


def channel_key(name: str | None) -> str:
    """Canonical NOTIFICATION_CHANNEL value; ValueError for anything unknown."""
    key = (name or CHANNEL_LOG).strip().lower()
    if key not in VALID_CHANNELS:
        raise ValueError(f"Unknown notification channel: {name}")
    return key


def build_channel(name: str) -> NotificationChannel:
    """Resolve the NOTIFICATION_CHANNEL config value to a channel."""
    if channel_key(name) == CHANNEL_OUTBOX:
        return OutboxChannel()
    return LogChannel()


def should_notify(prefs: NotificationPrefs | None) -> bool:
    """True only when the user has explicitly opted in to stock alerts."""
    return bool(prefs and prefs.receive_notifications)


def should_prompt(prefs: NotificationPrefs | None) -> bool:
    """
    Whether to offer the opt-in prompt.

    "Don't ask again" suppresses the prompt but never turns alerts on.
    """
    if prefs is None:
        return True
    return not prefs.receive_notifications and not prefs.prompt_dismissed


def depleted_message(item_name: str) -> str:
    return f"The item '{item_name}' has reached a quantity of 0."


class NotificationGate:
    """
    Decides whether a stock-depleted alert goes out and sends it.

    Delivery failures are logged and reported in the result; they never
    propagate, so the inventory change that triggered them stands.
    """

    def __init__(self, channel: NotificationChannel):
        self.channel = channel

    def should_notify(self, prefs: NotificationPrefs | None) -> bool:
        return should_notify(prefs)

    def notify(self, item_name: str, recipient: str | None = None) -> NotificationResult:
        try:
            self.channel.send(recipient, depleted_message(item_name))
        except Exception as exc:
            logger.warning("Stock alert for %r not delivered: %s", item_name, exc)
            return NotificationResult(item_name=item_name, sent=False, error=str(exc) or type(exc).__name__)
        return NotificationResult(item_name=item_name, sent=True)

    def evaluate(self, item: dict, prefs: NotificationPrefs | None) -> NotificationResult | None:
        """Notify for an item whose quantity is exactly 0, if the user opted in."""
        if item.get("quantity") != 0:
            return None
        if not self.should_notify(prefs):
            logger.debug("User has opted out of stock alerts")
            return None
        return self.notify(item["name"], prefs.recipient)


def get_preferences(user_id: int | None) -> NotificationPrefs:
    if user_id is None:
        return NotificationPrefs()
    pref = db.session.query(NotificationPreference).filter_by(user_id=user_id).first()
    return NotificationPrefs.from_model(pref)


def update_preferences(user_id: int, data: dict) -> NotificationPrefs:
    """
    Update a user's stock alert preference.

    Accepts receive_notifications, dont_ask_again and recipient; omitted keys
    keep their stored value.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    unknown = set(data) - PREFERENCE_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")
    for key in ("receive_notifications", "dont_ask_again"):
        if key in data and not isinstance(data[key], bool):
            raise ValidationError(f"{key} must be a boolean")
    recipient = data.get("recipient")
    if recipient is not None:
        if not isinstance(recipient, str):
            raise ValidationError("recipient must be a string")
        recipient = recipient.strip() or None
        if recipient and len(recipient) > 255:
            raise ValidationError("recipient exceeds max length 255")

    with serialized_write():
        pref = db.session.query(NotificationPreference).filter_by(user_id=user_id).first()
        if pref is None:
            pref = NotificationPreference(
                user_id=user_id,
                receive_notifications=False,
                prompt_dismissed=False,
            )
            db.session.add(pref)

        if "receive_notifications" in data:
            pref.receive_notifications = data["receive_notifications"]
        if "dont_ask_again" in data:
            pref.prompt_dismissed = data["dont_ask_again"]
        if "recipient" in data:
            pref.recipient = recipient
        db.session.commit()

    return NotificationPrefs.from_model(pref)
