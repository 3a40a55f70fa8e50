"""Applying a coupon code to the caller's cart."""

from datetime import UTC, datetime

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import logger, storefront
from storefront.identity import Actor
from storefront.order.cart import current_cart
from storefront.order.order import Order
from storefront.order.recalculation import recalculate, snapshot_for
from storefront.promotion.engine import is_eligible
from storefront.promotion.management import find_active_by_code
from storefront.promotion.promotion import Promotion
from storefront.utils.paging import iterate_all


@storefront.command(part_of="Order")
class ApplyCoupon:
    code = String(required=True, max_length=100)
    user_id = Identifier()
    session_token = String(max_length=255)
    admin_id = Identifier()


@storefront.command_handler(part_of=Order)
class CouponHandler:
    @handle(ApplyCoupon)
    def apply_coupon(self, command):
        order = current_cart(Actor.from_command(command))
        if order is None:
            raise ObjectNotFoundError("No active cart found")

        promotion = find_active_by_code(command.code.strip())
        if promotion is None:
            raise ValidationError({"code": ["Invalid or inactive promotion code"]})

        now = datetime.now(UTC)
        if not promotion.has_started(now):
            raise ValidationError({"code": ["Promotion has not started yet"]})
        if promotion.has_expired(now):
            raise ValidationError({"code": ["Promotion has expired"]})
        if promotion.usage_limit is not None and usage_count(promotion) >= promotion.usage_limit:
            raise ValidationError({"code": ["Promotion usage limit reached"]})
        if order.has_promotion_adjustment(promotion.id) or str(promotion.id) in order.applied_promotion_ids:
            raise ValidationError({"code": ["Promotion already applied to this order"]})
        if not is_eligible(promotion, snapshot_for(order)):
            raise ValidationError({"code": ["Order does not meet the requirements for this promotion"]})

        order.record_promotion(promotion.id, code=promotion.code)
        recalculate(order)
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Coupon applied",
            order_id=str(order.id),
            promotion_id=str(promotion.id),
            code=promotion.code,
            promo_total=order.promo_total,
        )
        return str(order.id)


def usage_count(promotion: Promotion) -> int:
    """Orders carrying an adjustment sourced from this promotion."""
    orders = current_domain.repository_for(Order)._dao.query
    return sum(1 for order in iterate_all(orders) if order.has_promotion_adjustment(promotion.id))
