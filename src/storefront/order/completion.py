"""Finalizing a paid order.

Shared by checkout completion and every payment settlement path, so the
effects are identical whichever one runs: one payment row, one ``sold``
movement per line through the inventory ledger, inventory units, and
the order flipped to ``complete``/``paid``.
"""

from protean.utils.globals import current_domain

from storefront.domain import logger
from storefront.inventory.ledger import move_stock
from storefront.inventory.stock import DEFAULT_STOCK_LOCATION, MovementAction
from storefront.order.order import Order
from storefront.payment.payment import Payment, PaymentSource


def finalize_order(order: Order, amount: int, source: PaymentSource, reference: str | None = None) -> Payment:
    payment = Payment.capture(order.id, amount, source, reference=reference)
    current_domain.repository_for(Payment).add(payment)

    for line in order.line_items:
        move_stock(
            line.variant_id,
            -line.quantity,
            MovementAction.SOLD.value,
            stock_location_id=(order.shipment.stock_location_id if order.shipment else None) or DEFAULT_STOCK_LOCATION,
            originator_type="Order",
            originator_id=order.id,
        )

    order.complete()
    current_domain.repository_for(Order).add(order)

    logger.info(
        "Order completed",
        order_id=str(order.id),
        number=order.number,
        total=order.total,
        source=source.value,
        reference=reference,
    )
    return payment
