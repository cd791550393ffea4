from .inventory import Item
from .auth import User, SessionToken
from .notifications import NotificationPreference, NotificationMessage

__all__ = [
    'Item',
    'User', 'SessionToken',
    'NotificationPreference', 'NotificationMessage',
]
