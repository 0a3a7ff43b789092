"""
Shop registry: owns shop identity and the SKU namespace each shop holds.
"""

import logging
import re
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from salesdesk.exceptions import ConflictError, NotFoundError, ValidationError
from salesdesk.models.product import Product
from salesdesk.models.shop import Shop
from salesdesk.schemas import ShopCreate, ShopUpdate
from salesdesk.services.integrity_guard import IntegrityGuard, integrity_guard

logger = logging.getLogger(__name__)

SHOP_NAME_MAX_LENGTH = 100
ABBR_PATTERN = re.compile(r"^[A-Z]{3}$")


def normalize_abbr(abbr: Optional[str]) -> str:
    """Trim and upper-case an abbreviation, then check it is three letters A-Z."""
    value = (abbr or "").strip().upper()
    if len(value) != 3:
        raise ValidationError("Shop abbreviation must be exactly 3 characters")
    if not ABBR_PATTERN.match(value):
        raise ValidationError("Shop abbreviation must contain only uppercase letters")
    return value


def normalize_name(name: Optional[str]) -> str:
    value = (name or "").strip()
    if not value:
        raise ValidationError("Shop name is required")
    if len(value) > SHOP_NAME_MAX_LENGTH:
        raise ValidationError(f"Shop name must be at most {SHOP_NAME_MAX_LENGTH} characters")
    return value


class ShopRegistry:
    """
    CRUD for shops with namespace protection.

    Abbreviation changes and deletions are refused while any product
    references the shop's current abbreviation.
    """

    def __init__(self, guard: IntegrityGuard = integrity_guard):
        self.guard = guard

    def list(self, db: Session) -> List[Shop]:
        return db.query(Shop).order_by(Shop.created_at.asc(), Shop.id.asc()).all()

    def get_by_id(self, db: Session, shop_id: int) -> Shop:
        shop = db.query(Shop).filter(Shop.id == shop_id).first()
        if not shop:
            raise NotFoundError(f"Shop {shop_id} not found")
        return shop

    def get_by_abbr(self, db: Session, abbr: str) -> Shop:
        value = (abbr or "").strip().upper()
        shop = db.query(Shop).filter(Shop.abbr == value).first()
        if not shop:
            raise NotFoundError(f"Shop with abbreviation '{abbr}' not found")
        return shop

    def get_default(self, db: Session) -> Optional[Shop]:
        """Earliest-created shop, used when a caller has not picked one."""
        return db.query(Shop).order_by(Shop.created_at.asc(), Shop.id.asc()).first()

    def has_shops(self, db: Session) -> bool:
        return db.query(Shop.id).first() is not None

    def create(self, db: Session, data: ShopCreate) -> Shop:
        """Create a shop. Name and abbreviation must both be unused."""
        name = normalize_name(data.name)
        abbr = normalize_abbr(data.abbr)

        if self._abbr_exists(db, abbr):
            raise ConflictError(f"Shop abbreviation '{abbr}' already exists")
        if self._name_exists(db, name):
            raise ConflictError(f"Shop name '{name}' already exists")

        shop = Shop(name=name, abbr=abbr)
        db.add(shop)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise self._conflict_from(e, name, abbr) from e
        db.refresh(shop)
        logger.info(f"Created shop '{shop.name}' ({shop.abbr})")
        return shop

    def update(self, db: Session, shop_id: int, data: ShopUpdate) -> Shop:
        """
        Update name and/or abbreviation, re-validating only what changed.

        Raises:
            ConflictError: abbreviation is locked by existing products, or the
                new name/abbreviation is taken.
        """
        shop = self.get_by_id(db, shop_id)
        changes = {}

        if data.name is not None:
            name = normalize_name(data.name)
            if name != shop.name:
                if self._name_exists(db, name, exclude_id=shop.id):
                    raise ConflictError(f"Shop name '{name}' already exists")
                changes["name"] = name

        if data.abbr is not None:
            abbr = normalize_abbr(data.abbr)
            if abbr != shop.abbr:
                # Locked namespace wins over availability of the new value.
                if self.guard.is_locked(db, shop.abbr):
                    raise ConflictError(
                        f"Shop abbreviation '{shop.abbr}' is locked by existing products"
                    )
                if self._abbr_exists(db, abbr, exclude_id=shop.id):
                    raise ConflictError(f"Shop abbreviation '{abbr}' already exists")
                changes["abbr"] = abbr

        if not changes:
            return shop

        for field, value in changes.items():
            setattr(shop, field, value)

        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise self._conflict_from(
                e, changes.get("name", shop.name), changes.get("abbr", shop.abbr)
            ) from e
        db.refresh(shop)
        logger.info(f"Updated shop {shop.id} -> '{shop.name}' ({shop.abbr})")
        return shop

    def delete(self, db: Session, shop_id: int) -> None:
        shop = self.get_by_id(db, shop_id)
        count = self.guard.count_products_for_abbr(db, shop.abbr)
        if count > 0:
            raise ConflictError(
                f"Cannot delete shop '{shop.name}': {count} product(s) reference '{shop.abbr}'"
            )

        db.delete(shop)
        try:
            db.commit()
        except IntegrityError as e:
            # A product was inserted after the pre-flight count.
            db.rollback()
            raise ConflictError(
                f"Cannot delete shop '{shop.name}' as it has existing products"
            ) from e
        logger.info(f"Deleted shop {shop_id} ({shop.abbr})")

    def stats(self, db: Session, shop_id: Optional[int] = None) -> Dict:
        """Shop count, product count and products per abbreviation."""
        shops = [self.get_by_id(db, shop_id)] if shop_id else self.list(db)
        products_by_shop: Dict[str, int] = {shop.abbr: 0 for shop in shops}

        rows = (
            db.query(Product.shop_abbr, func.count(Product.id))
            .group_by(Product.shop_abbr)
            .all()
        )
        for abbr, count in rows:
            if abbr in products_by_shop:
                products_by_shop[abbr] = count

        return {
            "total_shops": len(shops),
            "total_products": sum(products_by_shop.values()),
            "products_by_shop": products_by_shop,
        }

    def _abbr_exists(self, db: Session, abbr: str, exclude_id: Optional[int] = None) -> bool:
        query = db.query(Shop.id).filter(Shop.abbr == abbr)
        if exclude_id is not None:
            query = query.filter(Shop.id != exclude_id)
        return query.first() is not None

    def _name_exists(self, db: Session, name: str, exclude_id: Optional[int] = None) -> bool:
        query = db.query(Shop.id).filter(func.lower(Shop.name) == name.lower())
        if exclude_id is not None:
            query = query.filter(Shop.id != exclude_id)
        return query.first() is not None

    @staticmethod
    def _conflict_from(error: IntegrityError, name: Optional[str], abbr: Optional[str]) -> ConflictError:
        message = str(error.orig)
        if "abbr" in message:
            return ConflictError(f"Shop abbreviation '{abbr}' already exists")
        if "name" in message:
            return ConflictError(f"Shop name '{name}' already exists")
        return ConflictError(f"Shop could not be saved: {message}")


shop_registry = ShopRegistry()
