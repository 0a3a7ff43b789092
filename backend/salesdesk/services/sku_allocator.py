"""
SKU allocation for shop-scoped product identifiers.

Format: ``<shop abbr><zero-padded serial>``, at most 8 characters, e.g.
``ACM00001``. The serial width is ``8 - len(abbr)`` (5 for the usual
3-letter abbreviation, i.e. 99,999 products per shop).

Allocation is optimistic: the next candidate is computed from a fresh scan
of the store, the insert is guarded by the unique constraint on
``products.sku``, and the caller re-scans on violation. Candidates are never
cached between attempts.
"""

import logging
import time
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from salesdesk.exceptions import CapacityExceededError, ValidationError
from salesdesk.models.product import Product

logger = logging.getLogger(__name__)

SKU_MAX_LENGTH = 8


def serial_width(shop_abbr: str) -> int:
    """
    Digits available for the serial part of a SKU in ``shop_abbr``'s namespace.

    Every SKU of a shop is padded to this same width, which is what makes
    lexical and numeric ordering of a shop's SKUs agree.
    """
    width = SKU_MAX_LENGTH - len(shop_abbr)
    if width < 1:
        raise ValidationError(f"Shop abbreviation '{shop_abbr}' leaves no room for a serial")
    return width


def max_serial(shop_abbr: str) -> int:
    return 10 ** serial_width(shop_abbr) - 1


def format_sku(shop_abbr: str, serial: int) -> str:
    return f"{shop_abbr}{serial:0{serial_width(shop_abbr)}d}"


class SKUAllocator:
    def generate_next(self, db: Session, shop_abbr: str) -> str:
        """
        Next free SKU for ``shop_abbr`` based on the highest existing serial.

        Raises:
            CapacityExceededError: the shop's serial space is used up.
        """
        limit = max_serial(shop_abbr)
        try:
            existing = self._scan(db, shop_abbr)
        except SQLAlchemyError as e:
            # Degraded mode: not collision-free, the insert's unique
            # constraint and the retry loop catch duplicates.
            candidate = self._time_based_candidate(shop_abbr)
            logger.warning(
                f"SKU scan for {shop_abbr} failed ({e}); using time-derived candidate {candidate}"
            )
            return candidate

        highest = 0
        for sku in existing:
            serial = self._parse_serial(sku, shop_abbr)
            if serial is not None and serial > highest:
                highest = serial

        next_serial = highest + 1
        if next_serial > limit:
            raise CapacityExceededError(shop_abbr, limit)

        sku = format_sku(shop_abbr, next_serial)
        logger.debug(f"Next SKU for {shop_abbr}: {sku} (scanned {len(existing)})")
        return sku

    def validate(self, sku: str, shop_abbr: str) -> None:
        """Check a caller-supplied SKU against ``shop_abbr``'s namespace."""
        if not sku or len(sku) > SKU_MAX_LENGTH:
            raise ValidationError(f"SKU must be 1-{SKU_MAX_LENGTH} characters long")
        if not sku.startswith(shop_abbr):
            raise ValidationError(f"SKU must start with shop abbreviation: {shop_abbr}")
        serial = sku[len(shop_abbr):]
        if serial and not (serial.isascii() and serial.isdigit()):
            raise ValidationError("SKU number part must contain only digits")

    def exists(self, db: Session, sku: str, exclude_id: Optional[int] = None) -> bool:
        query = db.query(Product.id).filter(Product.sku == sku)
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        return query.first() is not None

    def _scan(self, db: Session, shop_abbr: str) -> List[str]:
        rows = (
            db.query(Product.sku)
            .filter(Product.sku.startswith(shop_abbr, autoescape=True))
            .all()
        )
        return [row[0] for row in rows]

    @staticmethod
    def _parse_serial(sku: str, shop_abbr: str) -> Optional[int]:
        remainder = sku[len(shop_abbr):]
        if not remainder or not (remainder.isascii() and remainder.isdigit()):
            return None
        return int(remainder)

    @staticmethod
    def _time_based_candidate(shop_abbr: str) -> str:
        serial = int(time.time() * 1000) % (max_serial(shop_abbr) + 1)
        return format_sku(shop_abbr, serial or 1)


sku_allocator = SKUAllocator()
