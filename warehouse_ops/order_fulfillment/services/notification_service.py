"""
Best-effort notification dispatch.
"""

import logging

from django.db import transaction

from ..adapters.notification_adapter import get_notification_adapter

logger = logging.getLogger(__name__)


class NotificationService:
    """Sends notifications once the surrounding transaction has committed."""

    @staticmethod
    def dispatch_after_commit(user_id, payload):
        """
        Queue a notification for ``user_id``.

        Delivery runs after commit so a rolled back change never notifies
        anyone, and a failed delivery never undoes a committed change.
        """
        transaction.on_commit(lambda: NotificationService.deliver(user_id, payload))

    @staticmethod
    def deliver(user_id, payload):
        try:
            get_notification_adapter().notify(user_id, payload)
        except Exception:
            logger.exception(f"Failed to deliver '{payload.get('title')}' notification to user {user_id}")
            return False

        logger.info(f"Notification '{payload.get('title')}' delivered to user {user_id}")
        return True

    @staticmethod
    def build_payload(notification_type, title, message, link="", **metadata):
        return {
            'type': notification_type,
            'title': title,
            'message': message,
            'link': link,
            'metadata': metadata,
        }
