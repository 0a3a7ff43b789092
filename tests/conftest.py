"""
Pytest configuration - shared fixtures
"""
import sys
import os
from typing import Generator
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add backend directory to sys.path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../backend"))

from salesdesk.database import Base, enable_sqlite_foreign_keys
from salesdesk.models.shop import Shop
from salesdesk.models.product import Product
from salesdesk.schemas import ShopCreate
from salesdesk.services.asset_store import AssetStore, ImageUpload
from salesdesk.services.blob_store import LocalBlobStore
from salesdesk.services.product_catalog import CatalogContext, ProductCatalog
from salesdesk.services.shop_registry import ShopRegistry
from salesdesk.services.sku_allocator import SKUAllocator

ASSET_BASE_URL = "http://assets.test/storage"
ASSET_BUCKET = "product-images"


@pytest.fixture
def test_db() -> Generator[Session, None, None]:
    """Create in-memory SQLite database for testing"""
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def db_session(test_db):
    """Alias for test_db for clarity"""
    return test_db


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
    """Local blob store rooted in a temporary directory"""
    return LocalBlobStore(str(tmp_path / "assets"), ASSET_BASE_URL, ASSET_BUCKET)


@pytest.fixture
def assets(blob_store) -> AssetStore:
    return AssetStore(blob_store, max_size=5 * 1024 * 1024)


@pytest.fixture
def registry() -> ShopRegistry:
    return ShopRegistry()


@pytest.fixture
def allocator() -> SKUAllocator:
    return SKUAllocator()


@pytest.fixture
def catalog(registry, allocator, assets) -> ProductCatalog:
    return ProductCatalog(shops=registry, allocator=allocator, assets=assets, max_retries=5)


@pytest.fixture
def context() -> CatalogContext:
    return CatalogContext(actor_id="user-1")


@pytest.fixture
def acme(test_db, registry) -> Shop:
    """Shop 'Acme Prints' (ACM)"""
    return registry.create(test_db, ShopCreate(name="Acme Prints", abbr="ACM"))


@pytest.fixture
def jpeg_image() -> ImageUpload:
    """Small fake JPEG upload"""
    return ImageUpload(
        filename="poster.jpg",
        content_type="image/jpeg",
        content=b"\xff\xd8\xff\xe0fake-jpeg-content",
    )


@pytest.fixture
def seed_product(test_db):
    """Factory inserting product rows directly, bypassing the catalog service"""

    def _seed(shop_abbr: str, sku: str, title: str = "Existing", image_url: str = None) -> Product:
        product = Product(
            shop_abbr=shop_abbr,
            title=title,
            sku=sku,
            etsy_url="https://etsy.com/listing/1",
            image_url=image_url,
            created_by="seed",
            updated_by="seed",
        )
        test_db.add(product)
        test_db.commit()
        return product

    return _seed
