"""
Notification Adapter for Order Fulfillment.

Delivery mechanics live behind this interface; the default implementation
stores an in-app Notification row, the mock keeps deliveries in memory.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any

from django.conf import settings
from django.utils.module_loading import import_string


class NotificationAdapterInterface(ABC):
    """Contract for informing a user about work handed to them."""

    @abstractmethod
    def notify(self, user_id: int, payload: Dict[str, Any]) -> None:
        """
        Deliver a notification.

        Args:
            user_id: Recipient user primary key
            payload: {"type", "title", "message", "link", "metadata"}
        """
        pass


class DatabaseNotificationAdapter(NotificationAdapterInterface):
    """Stores notifications in the database for the in-app inbox."""

    def notify(self, user_id: int, payload: Dict[str, Any]) -> None:
        from ..models import Notification

        Notification.objects.create(
            recipient_id=user_id,
            notification_type=payload['type'],
            title=payload['title'],
            message=payload['message'],
            link=payload.get('link', ''),
            metadata=payload.get('metadata', {}),
        )


class MockNotificationAdapter(NotificationAdapterInterface):
    """
    Records deliveries in memory for tests.

    Set ``fail_with`` to an exception to simulate a broken delivery channel.
    """

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []
        self.fail_with = None

    def notify(self, user_id: int, payload: Dict[str, Any]) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({'user_id': user_id, **payload})


notification_adapter = None


def get_notification_adapter() -> NotificationAdapterInterface:
    """Return the active adapter, building the configured one on first use."""
    global notification_adapter
    if notification_adapter is None:
        adapter_path = getattr(
            settings,
            'WMS_NOTIFICATION_ADAPTER',
            'order_fulfillment.adapters.notification_adapter.DatabaseNotificationAdapter',
        )
        notification_adapter = import_string(adapter_path)()
    return notification_adapter


def switch_to_mock_adapter() -> MockNotificationAdapter:
    """Switch to mock adapter for testing."""
    global notification_adapter
    notification_adapter = MockNotificationAdapter()
    return notification_adapter


def switch_to_real_adapter(real_adapter: NotificationAdapterInterface = None):
    """Switch back to the configured adapter or to ``real_adapter``."""
    global notification_adapter
    notification_adapter = real_adapter
