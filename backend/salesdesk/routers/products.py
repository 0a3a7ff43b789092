"""
API endpoints for product management.

Create and update take multipart form data so that an image can be sent
together with the product fields.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from salesdesk.database import get_db
from salesdesk.dependencies import get_catalog_context
from salesdesk.schemas import (
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductStats,
    ProductUpdate,
)
from salesdesk.services.asset_store import ImageUpload
from salesdesk.services.product_catalog import CatalogContext, product_catalog

router = APIRouter()


def _read_image(file: Optional[UploadFile]) -> Optional[ImageUpload]:
    if file is None or not file.filename:
        return None
    content = file.file.read()
    return ImageUpload(
        filename=file.filename,
        content_type=file.content_type or "",
        content=content,
    )


@router.get("", response_model=ProductListResponse)
def list_products(
    shop_abbr: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
):
    """List products, newest first, optionally for one shop."""
    total, products = product_catalog.list(db, shop_abbr=shop_abbr, skip=skip, limit=limit)
    return {"total": total, "skip": skip, "limit": limit, "products": products}


@router.get("/stats", response_model=ProductStats)
def get_product_stats(shop_abbr: Optional[str] = None, db: Session = Depends(get_db)):
    return product_catalog.stats(db, shop_abbr=shop_abbr)


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return product_catalog.get(db, product_id)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    title: str = Form(...),
    etsy_url: str = Form(...),
    sku: Optional[str] = Form(None),
    shop_abbr: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    context: CatalogContext = Depends(get_catalog_context),
):
    """Create a product; the SKU is allocated when not given."""
    data = ProductCreate(title=title, etsy_url=etsy_url, sku=sku, shop_abbr=shop_abbr)
    return product_catalog.create(db, data, image=_read_image(image), context=context)


@router.patch("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: int,
    title: Optional[str] = Form(None),
    etsy_url: Optional[str] = Form(None),
    sku: Optional[str] = Form(None),
    shop_abbr: Optional[str] = Form(None),
    remove_image: bool = Form(False),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    context: CatalogContext = Depends(get_catalog_context),
):
    """Update product fields and/or replace or remove its image."""
    data = ProductUpdate(
        title=title, etsy_url=etsy_url, sku=sku, shop_abbr=shop_abbr, remove_image=remove_image
    )
    return product_catalog.update(
        db, product_id, data, image=_read_image(image), context=context
    )


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(product_id: int, db: Session = Depends(get_db)):
    """Delete a product and, best-effort, its image."""
    product_catalog.delete(db, product_id)
