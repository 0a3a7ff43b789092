"""
Catalog error taxonomy.

Raised by the service layer when catalog rules are violated. The HTTP layer
(main.py) translates them into responses; in-process callers handle them
directly.
"""


class CatalogError(Exception):
    """Base class for all catalog errors."""


class ValidationError(CatalogError):
    """Malformed input the caller can fix (bad abbreviation, SKU format, image type)."""


class ConflictError(CatalogError):
    """Uniqueness or namespace-lock violation; retryable with different input."""


class NotFoundError(CatalogError):
    """The requested shop or product does not exist."""


class CapacityExceededError(CatalogError):
    """A shop's numeric SKU space is exhausted."""

    def __init__(self, shop_abbr: str, max_serial: int):
        self.shop_abbr = shop_abbr
        self.max_serial = max_serial
        super().__init__(f"SKU limit reached for shop {shop_abbr} (max serial {max_serial})")


class StorageError(CatalogError):
    """The blob store rejected or failed an asset operation."""
