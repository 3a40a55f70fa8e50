"""Order recalculation: the single path that writes order totals.

Every mutating command finishes by calling ``recalculate`` on the order it
changed, inside the same unit of work. Promotion and tax adjustments are
regenerated from scratch each time rather than patched, so a repeated
call on an unchanged order produces the same totals.
"""

from protean.utils.globals import current_domain

from storefront.catalog.variant import Variant
from storefront.order.order import Order, OrderState
from storefront.pricing.shipping import ShippableLine, ShippingMethod, get_shipping_calculator
from storefront.pricing.tax import TaxableLine, compute_tax_adjustments, rates_for_address
from storefront.promotion.engine import OrderSnapshot, is_eligible, reward_adjustments
from storefront.promotion.promotion import Promotion


def completed_order_count(user_id) -> int:
    if not user_id:
        return 0
    return (
        current_domain.repository_for(Order)
        ._dao.query.filter(user_id=str(user_id), state=OrderState.COMPLETE.value)
        .all()
        .total
    )


def snapshot_for(order: Order) -> OrderSnapshot:
    return OrderSnapshot(
        order_id=str(order.id),
        item_total=order.line_total,
        user_id=str(order.user_id) if order.user_id else None,
        completed_order_count=completed_order_count(order.user_id),
    )


def promotion_adjustments_for(order: Order, snapshot: OrderSnapshot):
    repo = current_domain.repository_for(Promotion)
    adjustments = []
    for promotion_id in order.applied_promotion_ids:
        promotion = repo._dao.query.filter(id=promotion_id).all().first
        if promotion is None or not is_eligible(promotion, snapshot):
            continue
        adjustments.extend(reward_adjustments(promotion, snapshot))
    return adjustments


def tax_lines_for(order: Order):
    address = order.ship_address
    if address is None:
        return []
    rates = rates_for_address(address.country_code, address.state_name)
    lines = [TaxableLine(line_item_id=str(line.id), total=line.total) for line in order.line_items]
    return compute_tax_adjustments(lines, rates)


def shippable_lines(order: Order) -> list[ShippableLine]:
    variants = current_domain.repository_for(Variant)
    return [
        ShippableLine(
            variant_id=str(line.variant_id),
            quantity=line.quantity,
            weight=variants.get(line.variant_id).weight or 0.0,
        )
        for line in order.line_items
    ]


def shipping_cost_for(order: Order) -> int | None:
    """Price of the chosen shipping method for the current lines, if one is chosen."""
    shipment = order.shipment
    if shipment is None or not shipment.shipping_method_id:
        return None
    # Shipping is fixed once checkout moves past delivery
    if order.current_state not in (OrderState.ADDRESS, OrderState.DELIVERY):
        return None
    method = (
        current_domain.repository_for(ShippingMethod)
        ._dao.query.filter(id=str(shipment.shipping_method_id))
        .all()
        .first
    )
    if method is None:
        return None
    return get_shipping_calculator().cost(method, shippable_lines(order))


def recalculate(order: Order) -> Order:
    """Re-derive item totals, promotion and tax adjustments, and the order total."""
    snapshot = snapshot_for(order)
    order.reprice(
        promotion_adjustments=promotion_adjustments_for(order, snapshot),
        tax_lines=tax_lines_for(order),
        shipping_cost=shipping_cost_for(order),
    )
    return order
