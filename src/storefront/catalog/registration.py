"""Variant registration: mirror a catalog variant into the order engine."""

from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.catalog.variant import Variant
from storefront.domain import storefront


@storefront.command(part_of="Variant")
class RegisterVariant:
    variant_id = Identifier()
    product_name = String(required=True, max_length=255)
    sku = String(required=True, max_length=100)
    price = Integer(min_value=0)
    currency = String(max_length=3, default="USD")
    weight = Float(default=0.0)


@storefront.command(part_of="Variant")
class UpdateVariant:
    variant_id = Identifier(required=True)
    price = Integer(min_value=0)
    weight = Float()
    deleted = Boolean()


@storefront.command_handler(part_of=Variant)
class VariantRegistrationHandler:
    @handle(RegisterVariant)
    def register_variant(self, command):
        fields = {
            "product_name": command.product_name,
            "sku": command.sku,
            "price": command.price,
            "currency": command.currency or "USD",
            "weight": command.weight or 0.0,
        }
        if command.variant_id:
            fields["id"] = command.variant_id
        variant = Variant(**fields)
        current_domain.repository_for(Variant).add(variant)
        return str(variant.id)

    @handle(UpdateVariant)
    def update_variant(self, command):
        repo = current_domain.repository_for(Variant)
        variant = repo.get(command.variant_id)
        if command.price is not None:
            variant.price = command.price
        if command.weight is not None:
            variant.weight = command.weight
        if command.deleted is not None:
            variant.deleted = command.deleted
        repo.add(variant)
