from typing import Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, Field


# --- Shop ---
class ShopBase(BaseModel):
    name: str
    abbr: str


class ShopCreate(ShopBase):
    pass


class ShopUpdate(BaseModel):
    name: Optional[str] = None
    abbr: Optional[str] = None


class ShopResponse(ShopBase):
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ShopStats(BaseModel):
    total_shops: int
    total_products: int
    products_by_shop: Dict[str, int] = {}


# --- Product ---
class ProductCreate(BaseModel):
    title: str
    etsy_url: str
    sku: Optional[str] = None
    shop_abbr: Optional[str] = None


class ProductUpdate(BaseModel):
    title: Optional[str] = None
    etsy_url: Optional[str] = None
    sku: Optional[str] = None
    shop_abbr: Optional[str] = None
    remove_image: bool = False


class ProductResponse(BaseModel):
    id: int
    shop_abbr: str
    title: str
    sku: str
    etsy_url: str
    image_url: Optional[str] = None
    created_by: str
    updated_by: str
    created_at: datetime
    updated_at: datetime
    shop: Optional[ShopResponse] = None

    class Config:
        from_attributes = True


class ProductListResponse(BaseModel):
    total: int
    skip: int
    limit: int
    products: List[ProductResponse]


class ProductStats(BaseModel):
    total: int
    with_images: int
    by_shop: Dict[str, int] = {}


# --- Errors ---
class ErrorResponse(BaseModel):
    code: str = Field(..., description="Machine-readable error class")
    detail: str
