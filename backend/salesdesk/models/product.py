"""
Product database model.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from salesdesk.database import Base


class Product(Base):
    """Catalog product identified by a shop-scoped SKU."""

    __tablename__ = "products"
    __table_args__ = (
        Index("idx_product_shop_created", "shop_abbr", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    shop_abbr = Column(
        String(3),
        ForeignKey("shops.abbr", ondelete="RESTRICT", onupdate="RESTRICT"),
        nullable=False,
        index=True,
    )
    title = Column(String, nullable=False)
    sku = Column(String(8), nullable=False, unique=True, index=True)
    etsy_url = Column(String, nullable=False)
    image_url = Column(String, nullable=True)
    created_by = Column(String, nullable=False)
    updated_by = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    shop = relationship("Shop", back_populates="products")
