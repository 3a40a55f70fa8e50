"""Tax calculator.

Pure functions over a line-item snapshot and the applicable rates. The
caller replaces every existing tax adjustment on the order with the
result, so roundoff never compounds across recalculations.
"""

import math
from dataclasses import dataclass

from protean.utils.globals import current_domain

from storefront.pricing.zone import TaxRate, Zone
from storefront.utils.paging import iterate_all


@dataclass(frozen=True)
class TaxableLine:
    line_item_id: str
    total: int  # price * quantity, minor units


@dataclass(frozen=True)
class ApplicableRate:
    rate_id: str
    amount: float
    included_in_price: bool = False
    name: str | None = None

    @property
    def label(self) -> str:
        return self.name or f"Tax ({self.amount * 100:.1f}%)"


@dataclass(frozen=True)
class TaxLine:
    rate_id: str
    line_item_id: str
    amount: int
    label: str
    included: bool


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def line_tax(total: int, rate: ApplicableRate) -> int:
    if rate.included_in_price:
        return round_half_away(total - total / (1 + rate.amount))
    return round_half_away(total * rate.amount)


def compute_tax_adjustments(lines: list[TaxableLine], rates: list[ApplicableRate]) -> list[TaxLine]:
    """One TaxLine per (rate, line) pair with a non-zero tax."""
    result = []
    for rate in rates:
        for line in lines:
            amount = line_tax(line.total, rate)
            if amount == 0:
                continue
            result.append(
                TaxLine(
                    rate_id=rate.rate_id,
                    line_item_id=line.line_item_id,
                    amount=amount,
                    label=rate.label,
                    included=rate.included_in_price,
                )
            )
    return result


def rates_for_address(country_code: str | None, state_name: str | None) -> list[ApplicableRate]:
    """Every tax rate whose zone lists the address's country or state."""
    zone_ids = {
        str(zone.id)
        for zone in iterate_all(current_domain.repository_for(Zone)._dao.query)
        if zone.contains(country_code, state_name)
    }
    if not zone_ids:
        return []

    rates = current_domain.repository_for(TaxRate)._dao.query.filter(zone_id__in=sorted(zone_ids))
    return [
        ApplicableRate(
            rate_id=str(rate.id),
            amount=rate.amount,
            included_in_price=bool(rate.included_in_price),
            name=rate.name,
        )
        for rate in iterate_all(rates)
    ]
