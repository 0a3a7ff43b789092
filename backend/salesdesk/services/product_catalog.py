"""
Product catalog: create, update and delete products while keeping SKUs and
image assets consistent.

Ordering rules:
- a product's SKU is claimed in the store (row flushed inside the
  transaction) before its image is uploaded, since the asset path is derived
  from the SKU;
- if the transaction then fails, the freshly uploaded blob is removed
  (single best-effort compensation, no retry queue);
- on delete the row goes first and is never restored because of a blob
  cleanup failure.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from salesdesk.config import settings
from salesdesk.exceptions import ConflictError, NotFoundError, StorageError, ValidationError
from salesdesk.models.product import Product
from salesdesk.models.shop import Shop
from salesdesk.schemas import ProductCreate, ProductUpdate
from salesdesk.services.asset_store import AssetStore, ImageUpload, asset_store
from salesdesk.services.shop_registry import ShopRegistry, shop_registry
from salesdesk.services.sku_allocator import SKUAllocator, sku_allocator

logger = logging.getLogger(__name__)

ANONYMOUS_ACTOR = "anonymous"


@dataclass
class CatalogContext:
    """
    Request-scoped values supplied by the calling layer.

    ``default_shop_abbr`` is the shop currently selected in the caller's UI;
    it is only used when a create request names no shop.
    """

    actor_id: str = ANONYMOUS_ACTOR
    default_shop_abbr: Optional[str] = None


class ProductCatalog:
    def __init__(
        self,
        shops: ShopRegistry = shop_registry,
        allocator: SKUAllocator = sku_allocator,
        assets: AssetStore = asset_store,
        max_retries: int = settings.SKU_ALLOCATION_MAX_RETRIES,
    ):
        self.shops = shops
        self.allocator = allocator
        self.assets = assets
        self.max_retries = max_retries

    # --- Queries ---

    def get(self, db: Session, product_id: int) -> Product:
        product = db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    def list(
        self,
        db: Session,
        shop_abbr: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[int, List[Product]]:
        """Products newest first, optionally restricted to one shop."""
        query = db.query(Product)
        if shop_abbr:
            query = query.filter(Product.shop_abbr == shop_abbr.strip().upper())

        total = query.count()
        products = (
            query.order_by(Product.created_at.desc(), Product.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return total, products

    def stats(self, db: Session, shop_abbr: Optional[str] = None) -> Dict:
        query = db.query(
            Product.shop_abbr,
            func.count(Product.id),
            func.count(Product.image_url),
        )
        if shop_abbr:
            query = query.filter(Product.shop_abbr == shop_abbr.strip().upper())
        rows = query.group_by(Product.shop_abbr).all()

        return {
            "total": sum(total for _, total, _ in rows),
            "with_images": sum(with_images for _, _, with_images in rows),
            "by_shop": {abbr: total for abbr, total, _ in rows},
        }

    # --- Commands ---

    def create(
        self,
        db: Session,
        data: ProductCreate,
        image: Optional[ImageUpload] = None,
        context: Optional[CatalogContext] = None,
    ) -> Product:
        """
        Create a product, allocating its SKU unless one is supplied.

        An auto-allocated SKU that loses a race for the unique constraint is
        re-allocated from a fresh scan, up to ``max_retries`` attempts.

        Raises:
            ValidationError, NotFoundError, ConflictError, CapacityExceededError,
            StorageError
        """
        context = context or CatalogContext()
        shop = self._resolve_shop(db, data.shop_abbr, context)
        title = self._clean_title(data.title)
        etsy_url = self._clean_etsy_url(data.etsy_url)

        supplied_sku = (data.sku or "").strip()
        if supplied_sku:
            self.allocator.validate(supplied_sku, shop.abbr)
            if self.allocator.exists(db, supplied_sku):
                raise ConflictError(f"SKU '{supplied_sku}' already exists")

        attempts = 1 if supplied_sku else self.max_retries
        for attempt in range(1, attempts + 1):
            sku = supplied_sku or self.allocator.generate_next(db, shop.abbr)
            product = Product(
                shop_abbr=shop.abbr,
                title=title,
                sku=sku,
                etsy_url=etsy_url,
                created_by=context.actor_id,
                updated_by=context.actor_id,
            )
            db.add(product)
            try:
                db.flush()
            except IntegrityError as e:
                db.rollback()
                if supplied_sku or not self.allocator.exists(db, sku):
                    raise ConflictError(f"Product with SKU '{sku}' could not be saved") from e
                logger.warning(
                    f"SKU {sku} taken concurrently (attempt {attempt}/{attempts}), re-scanning"
                )
                continue

            uploaded_url = None
            try:
                if image is not None:
                    uploaded_url = self.assets.upload(image, shop.abbr, sku)
                    product.image_url = uploaded_url
                db.commit()
            except Exception as e:
                db.rollback()
                if uploaded_url:
                    self._discard_asset(uploaded_url)
                if isinstance(e, IntegrityError):
                    raise ConflictError(f"Product with SKU '{sku}' could not be saved") from e
                raise

            db.refresh(product)
            logger.info(f"Created product {product.id} {sku} in shop {shop.abbr}")
            return product

        raise ConflictError(
            f"Could not allocate a unique SKU for shop {shop.abbr} after {attempts} attempts"
        )

    def update(
        self,
        db: Session,
        product_id: int,
        data: ProductUpdate,
        image: Optional[ImageUpload] = None,
        context: Optional[CatalogContext] = None,
    ) -> Product:
        """
        Update a product. Title and URL change freely; SKU and shop changes are
        re-validated and move the image asset to the new path. Blank SKU or
        shop values mean "unchanged".

        With a new image the upload happens before the old blob is removed, so
        there is never a moment without an image; a failed removal leaves an
        orphaned old blob and is only logged. Moving an existing image after
        a SKU or shop change is best-effort: if the copy fails the product
        keeps its new identity without an image.
        """
        context = context or CatalogContext()
        product = self.get(db, product_id)
        old_sku = product.sku
        old_abbr = product.shop_abbr
        old_image = product.image_url

        requested_abbr = (data.shop_abbr or "").strip().upper()
        target_abbr = old_abbr
        if requested_abbr and requested_abbr != old_abbr:
            target_abbr = self.shops.get_by_abbr(db, requested_abbr).abbr

        requested_sku = (data.sku or "").strip()
        target_sku = requested_sku or old_sku

        identity_changed = (target_sku, target_abbr) != (old_sku, old_abbr)
        if identity_changed:
            self.allocator.validate(target_sku, target_abbr)
        if target_sku != old_sku and self.allocator.exists(db, target_sku, exclude_id=product.id):
            raise ConflictError(f"SKU '{target_sku}' already exists")

        title = self._clean_title(data.title) if data.title is not None else product.title
        etsy_url = self._clean_etsy_url(data.etsy_url) if data.etsy_url is not None else product.etsy_url

        product.title = title
        product.etsy_url = etsy_url
        product.sku = target_sku
        product.shop_abbr = target_abbr
        product.updated_by = context.actor_id

        try:
            db.flush()
        except IntegrityError as e:
            db.rollback()
            raise ConflictError(f"SKU '{target_sku}' already exists") from e

        new_url = None
        stale_url = None
        try:
            if image is not None:
                new_url = self.assets.upload(image, target_abbr, target_sku)
                product.image_url = new_url
                if identity_changed and old_image:
                    stale_url = old_image
            elif data.remove_image and old_image:
                product.image_url = None
                stale_url = old_image
            elif identity_changed and old_image:
                if self.assets.path_from_url(old_image) is not None:
                    new_url = self._copy_asset(old_image, target_abbr, target_sku)
                    product.image_url = new_url
                    stale_url = old_image
            db.commit()
        except Exception as e:
            db.rollback()
            if new_url and new_url != old_image:
                self._discard_asset(new_url)
            if isinstance(e, IntegrityError):
                raise ConflictError(f"Product {product_id} could not be saved") from e
            raise

        if stale_url and stale_url != product.image_url:
            self._discard_owned_asset(stale_url, old_abbr, old_sku)

        db.refresh(product)
        logger.info(f"Updated product {product.id} ({old_sku} -> {product.sku})")
        return product

    def delete(self, db: Session, product_id: int) -> None:
        """Delete the row, then best-effort delete its image."""
        product = self.get(db, product_id)
        image_url = product.image_url
        shop_abbr = product.shop_abbr
        sku = product.sku

        db.delete(product)
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info(f"Deleted product {product_id} ({sku})")

        if image_url:
            self._discard_owned_asset(image_url, shop_abbr, sku)

    # --- Helpers ---

    def _resolve_shop(self, db: Session, shop_abbr: Optional[str], context: CatalogContext) -> Shop:
        abbr = (shop_abbr or "").strip() or context.default_shop_abbr
        if not abbr:
            raise ValidationError("No shop selected. Please create or select a shop first.")
        return self.shops.get_by_abbr(db, abbr)

    def _discard_asset(self, url: str) -> None:
        try:
            self.assets.delete(url)
        except Exception as e:
            logger.warning(f"Asset cleanup for {url} failed, blob may be orphaned: {e}")

    def _discard_owned_asset(self, url: str, shop_abbr: str, sku: str) -> None:
        # Only the blob at this product's own path may be removed.
        if self.assets.path_from_url(url) != self.assets.derive_path(shop_abbr, sku):
            logger.warning(f"Image {url} does not belong to {sku}, leaving it in place")
            return
        self._discard_asset(url)

    def _copy_asset(self, url: str, shop_abbr: str, sku: str) -> Optional[str]:
        try:
            return self.assets.copy(url, shop_abbr, sku)
        except StorageError as e:
            logger.warning(f"Could not move image {url} to {sku}, clearing it: {e}")
            return None

    @staticmethod
    def _clean_title(title: Optional[str]) -> str:
        value = (title or "").strip()
        if not value:
            raise ValidationError("Product title is required")
        return value

    @staticmethod
    def _clean_etsy_url(etsy_url: Optional[str]) -> str:
        value = (etsy_url or "").strip()
        if not value:
            raise ValidationError("Etsy URL is required")
        if "etsy.com" not in value.lower():
            logger.warning(f"URL does not appear to be an Etsy URL: {value}")
        return value


product_catalog = ProductCatalog()
