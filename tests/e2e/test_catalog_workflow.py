"""
End-to-end catalog workflow through the service layer.
"""
import pytest

from salesdesk.exceptions import ConflictError, NotFoundError
from salesdesk.schemas import ProductCreate, ShopCreate


@pytest.mark.e2e
def test_shop_lifecycle_with_products(test_db, registry, catalog, context):
    shop = registry.create(test_db, ShopCreate(name="Acme Prints", abbr="ACM"))

    first = catalog.create(
        test_db,
        ProductCreate(title="Poster A", etsy_url="https://etsy.com/x", shop_abbr="ACM"),
        context=context,
    )
    assert first.sku == "ACM00001"
    assert first.image_url is None

    second = catalog.create(
        test_db,
        ProductCreate(title="Poster A", etsy_url="https://etsy.com/x", shop_abbr="ACM"),
        context=context,
    )
    assert second.sku == "ACM00002"

    with pytest.raises(ConflictError):
        registry.delete(test_db, registry.get_by_abbr(test_db, "ACM").id)

    catalog.delete(test_db, first.id)
    catalog.delete(test_db, second.id)

    registry.delete(test_db, shop.id)
    with pytest.raises(NotFoundError):
        registry.get_by_abbr(test_db, "ACM")


@pytest.mark.e2e
def test_every_sku_carries_its_shop_prefix(test_db, registry, catalog):
    for name, abbr in [("Acme Prints", "ACM"), ("Beta Canvas", "BET")]:
        registry.create(test_db, ShopCreate(name=name, abbr=abbr))
        for i in range(3):
            catalog.create(
                test_db,
                ProductCreate(title=f"{abbr} {i}", etsy_url="https://etsy.com/x", shop_abbr=abbr),
            )

    _, products = catalog.list(test_db, limit=100)
    assert len(products) == 6
    for product in products:
        assert product.sku.startswith(product.shop_abbr)
        assert len(product.sku) <= 8
