"""
API endpoints for shop management.
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from salesdesk.database import get_db
from salesdesk.schemas import ShopCreate, ShopResponse, ShopStats, ShopUpdate
from salesdesk.services.shop_registry import shop_registry

router = APIRouter()


@router.get("", response_model=List[ShopResponse])
def list_shops(db: Session = Depends(get_db)):
    """List shops in creation order."""
    return shop_registry.list(db)


@router.get("/stats", response_model=ShopStats)
def get_shop_stats(db: Session = Depends(get_db)):
    """Shop and product counts."""
    return shop_registry.stats(db)


@router.get("/by-abbr/{abbr}", response_model=ShopResponse)
def get_shop_by_abbr(abbr: str, db: Session = Depends(get_db)):
    return shop_registry.get_by_abbr(db, abbr)


@router.get("/{shop_id}", response_model=ShopResponse)
def get_shop(shop_id: int, db: Session = Depends(get_db)):
    return shop_registry.get_by_id(db, shop_id)


@router.post("", response_model=ShopResponse, status_code=status.HTTP_201_CREATED)
def create_shop(shop: ShopCreate, db: Session = Depends(get_db)):
    """Create a new shop."""
    return shop_registry.create(db, shop)


@router.patch("/{shop_id}", response_model=ShopResponse)
def update_shop(shop_id: int, shop: ShopUpdate, db: Session = Depends(get_db)):
    """Rename a shop or change its abbreviation (only while it has no products)."""
    return shop_registry.update(db, shop_id, shop)


@router.delete("/{shop_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_shop(shop_id: int, db: Session = Depends(get_db)):
    """Delete a shop that has no products."""
    shop_registry.delete(db, shop_id)
