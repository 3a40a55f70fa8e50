"""Shipping methods and the pluggable cost strategy.

The checkout state machine asks the active ``ShippingCostCalculator`` for
a price and never hard-codes a formula. The default strategy charges the
method's base cost plus one minor unit per hundredth of a weight unit.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from protean.fields import Boolean, Integer, String

from storefront.domain import storefront


@storefront.aggregate
class ShippingMethod:
    name = String(required=True, max_length=100)
    admin_name = String(max_length=100)
    code = String(max_length=50)
    carrier = String(max_length=100)
    service_level = String(max_length=100)
    tracking_url = String(max_length=255)
    base_cost = Integer(required=True, min_value=0)
    active = Boolean(default=True)
    deleted = Boolean(default=False)

    @property
    def available(self) -> bool:
        return bool(self.active) and not self.deleted


@dataclass(frozen=True)
class ShippableLine:
    variant_id: str
    quantity: int
    weight: float  # per unit


class ShippingCostCalculator(ABC):
    """Prices a shipment for a method and the lines it carries."""

    @abstractmethod
    def cost(self, method: ShippingMethod, lines: list[ShippableLine]) -> int: ...


class WeightBasedShippingCalculator(ShippingCostCalculator):
    """``base_cost + int(total_weight * 100)``."""

    def cost(self, method: ShippingMethod, lines: list[ShippableLine]) -> int:
        total_weight = sum((line.weight or 0.0) * line.quantity for line in lines)
        return method.base_cost + int(total_weight * 100)


class FlatShippingCalculator(ShippingCostCalculator):
    """Charges the base cost regardless of weight."""

    def cost(self, method: ShippingMethod, lines: list[ShippableLine]) -> int:  # noqa: ARG002
        return method.base_cost


_current_calculator: ShippingCostCalculator | None = None


def get_shipping_calculator() -> ShippingCostCalculator:
    """Return the active calculator. Defaults to the weight-based strategy."""
    global _current_calculator
    if _current_calculator is None:
        _current_calculator = WeightBasedShippingCalculator()
    return _current_calculator


def set_shipping_calculator(calculator: ShippingCostCalculator) -> None:
    global _current_calculator
    _current_calculator = calculator


def reset_shipping_calculator() -> None:
    global _current_calculator
    _current_calculator = None
