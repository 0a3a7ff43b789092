"""
Product image assets.

Each product image lives at a path derived only from (shop abbreviation, SKU):
``shops/{abbr}/images/{sku}.jpg``. Changing either value moves the asset.

Uploads validate and surface storage failures. Deletes are best-effort: the
product row is the system of record, so a failed blob removal is logged and
never raised.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote, urlparse

from salesdesk.config import settings
from salesdesk.exceptions import StorageError, ValidationError
from salesdesk.services.blob_store import LocalBlobStore

logger = logging.getLogger(__name__)


@dataclass
class ImageUpload:
    """An image supplied by the caller for a product."""

    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


class AssetStore:
    def __init__(self, backend, max_size: int = settings.MAX_IMAGE_SIZE):
        self.backend = backend
        self.max_size = max_size

    @staticmethod
    def derive_path(shop_abbr: str, sku: str) -> str:
        return f"shops/{shop_abbr}/images/{sku}.jpg"

    def upload(self, image: ImageUpload, shop_abbr: str, sku: str) -> str:
        """
        Store ``image`` at the path for (shop_abbr, sku), replacing any previous
        content there, and return its public URL.

        Raises:
            ValidationError: not an image, or larger than ``max_size``.
            StorageError: the blob store failed.
        """
        if not (image.content_type or "").startswith("image/"):
            raise ValidationError("File must be an image")
        if image.size > self.max_size:
            raise ValidationError(
                f"Image must be at most {self.max_size / 1024 / 1024:.0f} MB"
            )

        path = self.derive_path(shop_abbr, sku)
        url = self.backend.put(path, image.content, image.content_type)
        logger.info(f"Uploaded image for {sku} to {path} ({image.size} bytes)")
        return url

    def copy(self, url: str, shop_abbr: str, sku: str) -> str:
        """
        Copy the asset behind ``url`` to the path for (shop_abbr, sku) and
        return the new URL. The old blob is left in place.
        """
        old_path = self.path_from_url(url)
        if old_path is None:
            raise StorageError(f"Cannot copy asset outside bucket: {url}")

        new_path = self.derive_path(shop_abbr, sku)
        if new_path == old_path:
            return url

        new_url = self.backend.copy(old_path, new_path)
        logger.info(f"Copied image {old_path} -> {new_path}")
        return new_url

    def delete(self, url: Optional[str]) -> None:
        """Best-effort removal of the blob behind ``url``; never raises."""
        if not url:
            return
        try:
            path = self.path_from_url(url)
            if path is None:
                logger.warning(f"Image URL is not in bucket '{self.backend.bucket}': {url}")
                return
            self.backend.remove(path)
            logger.info(f"Deleted image {path}")
        except Exception as e:
            logger.warning(f"Failed to delete image {url}: {e}")

    def path_from_url(self, url: str) -> Optional[str]:
        parts = unquote(urlparse(url).path).split("/")
        try:
            bucket_index = parts.index(self.backend.bucket)
        except ValueError:
            return None
        path = "/".join(parts[bucket_index + 1:])
        return path or None


asset_store = AssetStore(
    LocalBlobStore(settings.ASSET_ROOT, settings.ASSET_BASE_URL, settings.ASSET_BUCKET)
)
