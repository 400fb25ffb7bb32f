"""
contactshare Notification Channel
In-process publish/subscribe used to tell sibling sessions that a logical
exchange already completed. Delivery is best-effort and nothing is persisted.
"""

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

NotificationCallback = Callable[[str, Any], None]


@dataclass
class Subscription:
    """Handle for one subscriber on one topic"""
    topic: str
    callback: NotificationCallback = field(repr=False)
    subscription_id: int = 0
    active: bool = True


class NotificationChannel:
    """Topic-keyed publish/subscribe within one process"""

    def __init__(self):
        self._subscriptions: Dict[str, List[Subscription]] = {}
        self._ids = itertools.count(1)

    def subscribe(self, topic: str, callback: NotificationCallback) -> Subscription:
        """Register callback(topic, data) for publishes on topic"""
        subscription = Subscription(topic=topic, callback=callback, subscription_id=next(self._ids))
        self._subscriptions.setdefault(topic, []).append(subscription)
        logger.debug(f"Subscription {subscription.subscription_id} added on {topic}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription; repeated calls are harmless"""
        if not subscription.active:
            return
        subscription.active = False

        subscribers = self._subscriptions.get(subscription.topic, [])
        if subscription in subscribers:
            subscribers.remove(subscription)
        if not subscribers:
            self._subscriptions.pop(subscription.topic, None)
        logger.debug(f"Subscription {subscription.subscription_id} removed from {subscription.topic}")

    def publish(self, topic: str, data: Any = None) -> int:
        """
        Deliver to every active subscriber of topic

        Returns:
            Number of subscribers the notification was delivered to
        """
        # Snapshot: callbacks may unsubscribe while we iterate
        subscribers = list(self._subscriptions.get(topic, []))
        if not subscribers:
            logger.debug(f"Publish on {topic} with no subscribers")
            return 0

        delivered = 0
        for subscription in subscribers:
            if not subscription.active:
                continue
            try:
                subscription.callback(topic, data)
                delivered += 1
            except Exception as e:
                logger.error(f"Notification handler error on {topic}: {e}")

        return delivered

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscriptions.get(topic, []))


# Global notification channel instance
_notification_channel: Optional[NotificationChannel] = None


def get_notification_channel() -> NotificationChannel:
    """Get the process-wide notification channel"""
    global _notification_channel
    if _notification_channel is None:
        _notification_channel = NotificationChannel()
    return _notification_channel
