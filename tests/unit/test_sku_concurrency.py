"""
Tests for optimistic SKU allocation under concurrent inserts.

Two sessions on a file-backed SQLite database stand in for two concurrent
requests: the competitor commits the same candidate between our scan and our
insert.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from salesdesk.database import Base, enable_sqlite_foreign_keys
from salesdesk.exceptions import ConflictError
from salesdesk.models.product import Product
from salesdesk.schemas import ProductCreate, ShopCreate
from salesdesk.services.product_catalog import ProductCatalog
from salesdesk.services.shop_registry import ShopRegistry
from salesdesk.services.sku_allocator import SKUAllocator


class RacingAllocator(SKUAllocator):
    """Allocator whose first N candidates are stolen by another session."""

    def __init__(self, session_factory, steal: int):
        self.session_factory = session_factory
        self.steal = steal
        self.candidates = []

    def generate_next(self, db, shop_abbr):
        sku = super().generate_next(db, shop_abbr)
        self.candidates.append(sku)
        if self.steal > 0:
            self.steal -= 1
            other = self.session_factory()
            try:
                other.add(Product(
                    shop_abbr=shop_abbr,
                    title="Competing request",
                    sku=sku,
                    etsy_url="https://etsy.com/other",
                    created_by="other",
                    updated_by="other",
                ))
                other.commit()
            finally:
                other.close()
        return sku


@pytest.fixture
def file_db(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'catalog.db'}",
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False)

    session = SessionLocal()
    ShopRegistry().create(session, ShopCreate(name="Acme Prints", abbr="ACM"))
    try:
        yield SessionLocal, session
    finally:
        session.close()
        engine.dispose()


@pytest.mark.unit
class TestConcurrentAllocation:

    def test_losing_request_retries_with_distinct_sku(self, file_db, assets):
        SessionLocal, session = file_db
        allocator = RacingAllocator(SessionLocal, steal=1)
        catalog = ProductCatalog(allocator=allocator, assets=assets, max_retries=5)

        product = catalog.create(
            session, ProductCreate(title="Poster A", etsy_url="https://etsy.com/x", shop_abbr="ACM")
        )

        assert allocator.candidates == ["ACM00001", "ACM00002"]
        assert product.sku == "ACM00002"
        skus = sorted(sku for (sku,) in session.query(Product.sku).all())
        assert skus == ["ACM00001", "ACM00002"]

    def test_gives_up_after_retry_limit(self, file_db, assets):
        SessionLocal, session = file_db
        allocator = RacingAllocator(SessionLocal, steal=10)
        catalog = ProductCatalog(allocator=allocator, assets=assets, max_retries=3)

        with pytest.raises(ConflictError):
            catalog.create(
                session,
                ProductCreate(title="Poster A", etsy_url="https://etsy.com/x", shop_abbr="ACM"),
            )

        # Every attempt re-scanned instead of replaying a stale candidate
        assert allocator.candidates == ["ACM00001", "ACM00002", "ACM00003"]

    def test_image_uploaded_only_for_the_winning_sku(self, file_db, assets, blob_store, jpeg_image):
        SessionLocal, session = file_db
        allocator = RacingAllocator(SessionLocal, steal=1)
        catalog = ProductCatalog(allocator=allocator, assets=assets, max_retries=5)

        product = catalog.create(
            session,
            ProductCreate(title="Poster A", etsy_url="https://etsy.com/x", shop_abbr="ACM"),
            image=jpeg_image,
        )

        assert product.image_url.endswith("shops/ACM/images/ACM00002.jpg")
        assert not blob_store.exists("shops/ACM/images/ACM00001.jpg")
