"""Admin commands for zones, tax rates and shipping methods."""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.identity import require_permission
from storefront.pricing.shipping import ShippingMethod
from storefront.pricing.zone import TaxRate, Zone, ZoneableType


# ---------------------------------------------------------------------------
# Zones
# ---------------------------------------------------------------------------
@storefront.command(part_of="Zone")
class CreateZone:
    name = String(required=True, max_length=100)
    description = Text()
    members = Text()  # JSON array of {zoneable_type, zoneable_id}
    admin_id = Identifier()


@storefront.command_handler(part_of=Zone)
class ZoneManagementHandler:
    @handle(CreateZone)
    def create_zone(self, command):
        require_permission(command, "manage_pricing")
        zone = Zone(name=command.name, description=command.description)
        for member in json.loads(command.members) if command.members else []:
            if member.get("zoneable_type") not in [t.value for t in ZoneableType]:
                raise ValidationError({"members": [f"Unknown zone member type: {member.get('zoneable_type')}"]})
            zone.add_member(member["zoneable_type"], member["zoneable_id"])
        current_domain.repository_for(Zone).add(zone)
        return str(zone.id)


# ---------------------------------------------------------------------------
# Tax rates
# ---------------------------------------------------------------------------
@storefront.command(part_of="TaxRate")
class CreateTaxRate:
    name = String(max_length=100)
    amount = Float(required=True)
    zone_id = Identifier(required=True)
    included_in_price = Boolean(default=False)
    admin_id = Identifier()


@storefront.command_handler(part_of=TaxRate)
class TaxRateManagementHandler:
    @handle(CreateTaxRate)
    def create_tax_rate(self, command):
        require_permission(command, "manage_pricing")
        current_domain.repository_for(Zone).get(command.zone_id)
        rate = TaxRate(
            name=command.name,
            amount=command.amount,
            zone_id=command.zone_id,
            included_in_price=bool(command.included_in_price),
        )
        current_domain.repository_for(TaxRate).add(rate)
        return str(rate.id)


# ---------------------------------------------------------------------------
# Shipping methods
# ---------------------------------------------------------------------------
@storefront.command(part_of="ShippingMethod")
class CreateShippingMethod:
    name = String(required=True, max_length=100)
    admin_name = String(max_length=100)
    code = String(max_length=50)
    carrier = String(max_length=100)
    service_level = String(max_length=100)
    tracking_url = String(max_length=255)
    base_cost = Integer(required=True, min_value=0)
    active = Boolean(default=True)
    admin_id = Identifier()


@storefront.command(part_of="ShippingMethod")
class UpdateShippingMethod:
    shipping_method_id = Identifier(required=True)
    name = String(max_length=100)
    base_cost = Integer(min_value=0)
    active = Boolean()
    deleted = Boolean()
    admin_id = Identifier()


@storefront.command_handler(part_of=ShippingMethod)
class ShippingMethodManagementHandler:
    @handle(CreateShippingMethod)
    def create_shipping_method(self, command):
        require_permission(command, "manage_pricing")
        method = ShippingMethod(
            name=command.name,
            admin_name=command.admin_name,
            code=command.code,
            carrier=command.carrier,
            service_level=command.service_level,
            tracking_url=command.tracking_url,
            base_cost=command.base_cost,
            active=command.active if command.active is not None else True,
        )
        current_domain.repository_for(ShippingMethod).add(method)
        return str(method.id)

    @handle(UpdateShippingMethod)
    def update_shipping_method(self, command):
        require_permission(command, "manage_pricing")
        repo = current_domain.repository_for(ShippingMethod)
        method = repo.get(command.shipping_method_id)
        if command.name is not None:
            method.name = command.name
        if command.base_cost is not None:
            method.base_cost = command.base_cost
        if command.active is not None:
            method.active = command.active
        if command.deleted is not None:
            method.deleted = command.deleted
        repo.add(method)
