"""
Namespace protection for shop abbreviations.

A shop's abbreviation is the prefix of every SKU it has minted, so it must
stay fixed (and the shop must stay alive) while any product references it.
The products.shop_abbr foreign key enforces the same rule inside the store;
this check runs first so callers get a readable error.
"""

from sqlalchemy import func
from sqlalchemy.orm import Session

from salesdesk.models.product import Product


class IntegrityGuard:
    def count_products_for_abbr(self, db: Session, abbr: str) -> int:
        """Number of products whose SKU namespace is ``abbr``."""
        return (
            db.query(func.count(Product.id))
            .filter(Product.shop_abbr == abbr)
            .scalar()
        ) or 0

    def is_locked(self, db: Session, abbr: str) -> bool:
        return self.count_products_for_abbr(db, abbr) > 0


integrity_guard = IntegrityGuard()
