"""Product current-stock synchronisation.

The stock ledger is the source of truth; ``Product.current_stock`` is a
denormalized copy for menus and stand screens.
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from concessions.models.product import Product

logger = logging.getLogger(__name__)


def get_venue_product(db: Session, venue_id: int, product_id: int) -> Optional[Product]:
    return (
        db.query(Product)
        .filter(Product.id == product_id, Product.venue_id == venue_id)
        .first()
    )


def sync_product_stock(
    db: Session, venue_id: int, product_id: int, quantity: Decimal
) -> Optional[Product]:
    """Write ``quantity`` to the product's current stock and flag low levels.

    A missing product is logged and skipped; the ledger write that triggered
    the sync stands on its own.
    """
    product = get_venue_product(db, venue_id, product_id)
    if product is None:
        logger.warning(
            f"Product {product_id} not found for venue {venue_id}; current stock not updated"
        )
        return None

    product.current_stock = max(Decimal("0"), Decimal(quantity or 0))
    db.flush()

    status = product.stock_status
    if status == "out_of_stock":
        logger.warning(f"Out of stock: '{product.name}' at venue {venue_id}")
    elif status == "low_stock":
        logger.warning(
            f"Low stock: '{product.name}' at venue {venue_id} has {product.current_stock} "
            f"{product.unit} (threshold {product.low_stock_threshold})"
        )
    return product
