"""Tax zones and the rates attached to them."""

from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, HasMany, Identifier, String, Text

from storefront.domain import storefront


class ZoneableType(Enum):
    COUNTRY = "Country"
    STATE = "State"


@storefront.entity(part_of="Zone")
class ZoneMember:
    zoneable_type = String(required=True, choices=ZoneableType)
    zoneable_id = String(required=True, max_length=100)  # country code or state code


@storefront.aggregate
class Zone:
    name = String(required=True, max_length=100)
    description = Text()
    members = HasMany(ZoneMember)

    def add_member(self, zoneable_type: str, zoneable_id: str) -> None:
        self.add_members(ZoneMember(zoneable_type=zoneable_type, zoneable_id=zoneable_id))

    def contains(self, country_code: str | None, state_name: str | None) -> bool:
        """Simple membership: the country or the state is listed. No hierarchy."""
        for member in self.members:
            if member.zoneable_type == ZoneableType.COUNTRY.value and member.zoneable_id == country_code:
                return True
            if member.zoneable_type == ZoneableType.STATE.value and state_name and member.zoneable_id == state_name:
                return True
        return False


@storefront.aggregate
class TaxRate:
    name = String(max_length=100)
    amount = Float(required=True)  # decimal rate, 0.08 == 8%
    zone_id = Identifier(required=True)
    included_in_price = Boolean(default=False)

    @invariant.post
    def rate_must_not_be_negative(self):
        if self.amount is not None and self.amount < 0:
            raise ValidationError({"amount": ["Tax rate cannot be negative"]})
