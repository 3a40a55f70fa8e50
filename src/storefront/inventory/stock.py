"""Stock aggregates: on-hand counts per (variant, location) and their ledger.

StockMovement rows are the source of truth. StockItem.count_on_hand is a
cached running sum that is only ever changed together with the insert of
the movement that explains it (see ``storefront.inventory.ledger``).
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from storefront.domain import storefront
from storefront.inventory.events import StockMoved

DEFAULT_STOCK_LOCATION = "default"


class MovementAction(Enum):
    SOLD = "sold"
    RECEIVED = "received"
    ADJUSTMENT = "adjustment"
    RETURNED = "returned"


@storefront.aggregate
class StockItem:
    variant_id = Identifier(required=True)
    stock_location_id = Identifier(required=True, default=DEFAULT_STOCK_LOCATION)
    count_on_hand = Integer(default=0)  # may go negative for backorderable items
    backorderable = Boolean(default=True)
    updated_at = DateTime()

    @classmethod
    def open(cls, variant_id, stock_location_id=DEFAULT_STOCK_LOCATION):
        return cls(
            variant_id=str(variant_id),
            stock_location_id=str(stock_location_id),
            count_on_hand=0,
            backorderable=True,
            updated_at=datetime.now(UTC),
        )

    def apply_movement(self, quantity: int, action: str) -> None:
        self.count_on_hand = (self.count_on_hand or 0) + quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockMoved(
                stock_item_id=str(self.id),
                variant_id=str(self.variant_id),
                quantity=quantity,
                action=action,
                count_on_hand=self.count_on_hand,
            )
        )


@storefront.aggregate
class StockMovement:
    """Append-only ledger entry. Never updated once written."""

    stock_item_id = Identifier(required=True)
    quantity = Integer(required=True)
    action = String(required=True, max_length=50)
    originator_type = String(max_length=50)
    originator_id = Identifier()
    created_at = DateTime()

    @classmethod
    def record(cls, stock_item_id, quantity, action, originator_type=None, originator_id=None):
        return cls(
            stock_item_id=str(stock_item_id),
            quantity=quantity,
            action=action,
            originator_type=originator_type,
            originator_id=str(originator_id) if originator_id is not None else None,
            created_at=datetime.now(UTC),
        )
