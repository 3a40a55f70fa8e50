"""Notification sink port: where order-complete messages are delivered."""

from abc import ABC, abstractmethod


class NotificationSink(ABC):
    """Abstract interface for customer notification adapters."""

    @abstractmethod
    def notify_order_complete(
        self,
        email: str,
        order_number: str,
        total: int,
        customer_name: str,
        shipping_address: str,
        items_text: str,
    ) -> None:
        """Tell the customer their order is complete. ``total`` is in minor units."""
        ...
