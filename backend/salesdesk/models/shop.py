"""
Shop database model.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Index, func
from sqlalchemy.orm import relationship

from salesdesk.database import Base


class Shop(Base):
    """Shop model; its abbreviation is the namespace prefix of product SKUs."""

    __tablename__ = "shops"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    abbr = Column(String(3), nullable=False, unique=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    # Rows are never cascaded: the FK on products.shop_abbr restricts deletion.
    products = relationship("Product", back_populates="shop", passive_deletes="all")


# Case-insensitive uniqueness of shop names
Index("uq_shop_name_lower", func.lower(Shop.name), unique=True)
