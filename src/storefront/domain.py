"""Storefront domain: the order lifecycle engine.

Turns a mutable cart into a finalized, paid, fulfillable order. Orders,
stock, promotions, tax rates and payments live in one domain so that
checkout completion and payment settlement change all of them inside a
single unit of work.
"""

from protean.domain import Domain

from storefront.utils.logging import get_logger

logger = get_logger(__name__)

# Domain Composition Root
storefront = Domain(name="storefront")
