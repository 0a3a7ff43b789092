"""
Shared API dependencies.
"""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from salesdesk.database import get_db
from salesdesk.services.product_catalog import ANONYMOUS_ACTOR, CatalogContext
from salesdesk.services.shop_registry import shop_registry


def get_catalog_context(
    db: Session = Depends(get_db),
    x_actor_id: Optional[str] = Header(default=None),
    x_shop_abbr: Optional[str] = Header(default=None),
) -> CatalogContext:
    """
    Build the request-scoped catalog context.

    The actor id comes from the identity layer in front of this API
    (``X-Actor-Id``). The default shop is the one selected by the client
    (``X-Shop-Abbr``), falling back to the earliest-created shop.
    """
    default_shop_abbr = (x_shop_abbr or "").strip().upper() or None
    if default_shop_abbr is None:
        shop = shop_registry.get_default(db)
        if shop is not None:
            default_shop_abbr = shop.abbr

    return CatalogContext(
        actor_id=(x_actor_id or "").strip() or ANONYMOUS_ACTOR,
        default_shop_abbr=default_shop_abbr,
    )
