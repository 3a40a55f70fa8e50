"""Inventory ledger: the only code path that changes stock counts.

``move_stock`` finds (or lazily opens) the stock row for a variant at a
location, adds the delta to ``count_on_hand`` and appends the movement
that explains it. Both writes join the caller's unit of work, so they are
committed or discarded together.

``stock_guard`` serializes every stock-touching operation in the process.
API routes hold it around the whole command, commit included, so two
checkouts racing for the last unit are decided one after the other.
"""

import threading

from protean.utils.globals import current_domain

from storefront.domain import logger
from storefront.inventory.stock import DEFAULT_STOCK_LOCATION, StockItem, StockMovement
from storefront.utils.paging import iterate_all

stock_guard = threading.RLock()


# ---------------------------------------------------------------------------
# Mutation
# ---------------------------------------------------------------------------
def move_stock(
    variant_id,
    quantity: int,
    action: str,
    stock_location_id=DEFAULT_STOCK_LOCATION,
    originator_type: str | None = None,
    originator_id=None,
) -> StockItem:
    """Apply a signed delta to a stock row and append the ledger entry."""
    with stock_guard:
        item_repo = current_domain.repository_for(StockItem)
        stock_item = find_stock_item(variant_id, stock_location_id)
        if stock_item is None:
            stock_item = StockItem.open(variant_id, stock_location_id)

        stock_item.apply_movement(quantity, action)
        item_repo.add(stock_item)

        current_domain.repository_for(StockMovement).add(
            StockMovement.record(
                stock_item_id=stock_item.id,
                quantity=quantity,
                action=action,
                originator_type=originator_type,
                originator_id=originator_id,
            )
        )

    logger.info(
        "Stock moved",
        variant_id=str(variant_id),
        stock_location_id=str(stock_location_id),
        quantity=quantity,
        action=action,
        count_on_hand=stock_item.count_on_hand,
    )
    return stock_item


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def find_stock_item(variant_id, stock_location_id=DEFAULT_STOCK_LOCATION) -> StockItem | None:
    return (
        current_domain.repository_for(StockItem)
        ._dao.query.filter(variant_id=str(variant_id), stock_location_id=str(stock_location_id))
        .all()
        .first
    )


def on_hand(variant_id) -> int:
    """Physical count for a variant, summed over every location."""
    query = current_domain.repository_for(StockItem)._dao.query.filter(variant_id=str(variant_id))
    return sum(item.count_on_hand or 0 for item in iterate_all(query))


def movement_total(stock_item_id) -> int:
    """Running sum of the ledger for one stock row."""
    query = current_domain.repository_for(StockMovement)._dao.query.filter(stock_item_id=str(stock_item_id))
    return sum(movement.quantity for movement in iterate_all(query))



def process_serialized(command):
    """Process a command with ``stock_guard`` held through its commit."""
    with stock_guard:
        return current_domain.process(command, asynchronous=False)
