"""Read-side lookups over orders.

Shoppers see their own orders. The back office filters every placed
order through an ``OrderQuery``, a small composable description of
predicates plus paging and sort order.
"""

from dataclasses import dataclass, field
from enum import Enum

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from storefront.errors import Unauthorized
from storefront.identity import Actor
from storefront.order.order import Order, OrderState

MAX_PER_PAGE = 100


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class StatePredicate:
    states: tuple[str, ...]

    def criteria(self) -> dict:
        return {"state__in": list(self.states)}


@dataclass(frozen=True)
class PaymentStatePredicate:
    payment_state: str

    def criteria(self) -> dict:
        return {"payment_state": self.payment_state}


@dataclass(frozen=True)
class ShipmentStatePredicate:
    shipment_state: str

    def criteria(self) -> dict:
        return {"shipment_state": self.shipment_state}


@dataclass(frozen=True)
class EmailPredicate:
    email: str

    def criteria(self) -> dict:
        return {"email__icontains": self.email}


class OrderSort(Enum):
    NEWEST = "-created_at"
    OLDEST = "created_at"
    RECENTLY_COMPLETED = "-completed_at"
    TOTAL_DESC = "-total"


@dataclass(frozen=True)
class OrderQuery:
    predicates: tuple = ()
    page: int = 1
    per_page: int = 25
    sort: OrderSort = OrderSort.NEWEST

    def __post_init__(self):
        if self.page < 1:
            raise ValidationError({"page": ["Page must be at least 1"]})
        if not 1 <= self.per_page <= MAX_PER_PAGE:
            raise ValidationError({"per_page": [f"per_page must be between 1 and {MAX_PER_PAGE}"]})

    def criteria(self) -> dict:
        merged = {}
        for predicate in self.predicates:
            merged.update(predicate.criteria())
        return merged


@dataclass
class OrderPage:
    orders: list = field(default_factory=list)
    total: int = 0
    page: int = 1
    per_page: int = 25

    @property
    def pages(self) -> int:
        return max(1, -(-self.total // self.per_page))


def find_orders(query: OrderQuery) -> OrderPage:
    """Placed orders matching every predicate. Carts never appear here."""
    criteria = query.criteria()
    placed = [state.value for state in OrderState if state != OrderState.CART]
    if "state__in" in criteria:
        placed = [state for state in criteria.pop("state__in") if state in placed]

    queryset = (
        current_domain.repository_for(Order)
        ._dao.query.filter(state__in=placed, **criteria)
        .order_by(query.sort.value)
    )
    results = queryset.offset((query.page - 1) * query.per_page).limit(query.per_page).all()
    return OrderPage(orders=results.items, total=results.total, page=query.page, per_page=query.per_page)


def orders_for(actor: Actor) -> list[Order]:
    if actor.user_id is None:
        return []
    return (
        current_domain.repository_for(Order)
        ._dao.query.filter(user_id=actor.user_id)
        .exclude(state=OrderState.CART.value)
        .order_by("-created_at")
        .all()
        .items
    )


def order_by_number(number: str, actor: Actor) -> Order:
    order = current_domain.repository_for(Order)._dao.query.filter(number=number).all().first
    if order is None:
        raise ObjectNotFoundError(f"Order {number} not found")
    if not order.is_owned_by(actor):
        raise Unauthorized("Not authorized to view this order", number=number)
    return order
