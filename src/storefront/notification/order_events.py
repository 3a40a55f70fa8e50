"""Sends the order-complete notification when an order is finalized.

Delivery is best effort. A failing sink is logged and never undoes the
completed order.
"""

from protean import handle
from protean.utils.globals import current_domain

from storefront.domain import logger, storefront
from storefront.notification import get_notifier
from storefront.order.events import OrderCompleted
from storefront.order.order import Order


def format_money(cents: int) -> str:
    return f"${cents / 100:,.2f}"


def format_customer_name(order: Order) -> str:
    address = order.ship_address
    if address is not None:
        name = " ".join(part for part in (address.firstname, address.lastname) if part)
        if name:
            return name
    return "Customer"


def format_items(order: Order) -> str:
    return "\n".join(
        f"{line.quantity} x {line.product_name or line.sku} - {format_money(line.total)}" for line in order.line_items
    )


@storefront.event_handler(part_of=Order)
class OrderCompletionNotifier:
    """Reacts to OrderCompleted by notifying the customer."""

    @handle(OrderCompleted)
    def on_order_completed(self, event: OrderCompleted) -> None:
        if not event.email:
            logger.info("Order complete notification skipped, no email", order_id=str(event.order_id))
            return

        order = current_domain.repository_for(Order).get(event.order_id)
        try:
            get_notifier().notify_order_complete(
                email=event.email,
                order_number=event.number,
                total=event.total,
                customer_name=format_customer_name(order),
                shipping_address=order.ship_address.formatted() if order.ship_address else "",
                items_text=format_items(order),
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Order complete notification failed",
                order_id=str(event.order_id),
                number=event.number,
                error=str(exc),
            )
            return

        logger.info("Order complete notification sent", order_id=str(event.order_id), number=event.number)
