"""Recording notification sink: keeps deliveries in memory for testing."""

from storefront.notification.port import NotificationSink


class RecordingNotificationSink(NotificationSink):
    """Sink that records every delivery for test assertions."""

    def __init__(self):
        self.deliveries: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification delivery failed"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def notify_order_complete(
        self,
        email: str,
        order_number: str,
        total: int,
        customer_name: str,
        shipping_address: str,
        items_text: str,
    ) -> None:
        if not self.should_succeed:
            raise ConnectionError(self.failure_reason)

        self.deliveries.append(
            {
                "email": email,
                "order_number": order_number,
                "total": total,
                "customer_name": customer_name,
                "shipping_address": shipping_address,
                "items_text": items_text,
            }
        )

    def reset(self):
        """Clear deliveries (useful between tests)."""
        self.deliveries.clear()
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"
