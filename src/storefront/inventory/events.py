"""Domain events for the stock ledger."""

from protean.fields import Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="StockItem")
class StockMoved:
    """On-hand count changed by a recorded movement."""

    __version__ = 1

    stock_item_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    quantity = Integer(required=True)
    action = String(required=True, max_length=50)
    count_on_hand = Integer(required=True)
