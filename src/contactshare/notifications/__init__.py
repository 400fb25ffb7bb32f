"""
In-process notifications
"""

from .channel import NotificationChannel, Subscription, get_notification_channel

__all__ = [
    "NotificationChannel",
    "Subscription",
    "get_notification_channel",
]
