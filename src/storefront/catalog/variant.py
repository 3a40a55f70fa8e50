"""Variant: the purchasable SKU as the order engine sees it.

Products, option types and taxonomies are managed by the catalog, outside
this domain. Only the facts needed to price, weigh and describe a line
item are mirrored here.
"""

from protean.fields import Boolean, Float, Integer, String

from storefront.domain import storefront


@storefront.aggregate
class Variant:
    product_name = String(required=True, max_length=255)
    sku = String(required=True, max_length=100)
    price = Integer(min_value=0)  # minor units; None when the variant is not for sale
    currency = String(max_length=3, default="USD")
    weight = Float(default=0.0)
    deleted = Boolean(default=False)

    @property
    def purchasable(self) -> bool:
        return not self.deleted and self.price is not None
