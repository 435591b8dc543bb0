from decimal import Decimal

import httpx
import pytest

from multistore.exceptions import PlatformError, UnsupportedPlatformError
from multistore.models import Product, ProductVariant, StorePlatform, StoreProductMap
from multistore.schemas.shopify import DuplicateStrategy
from multistore.services.shopify_import import ShopifyImporter

SHOP_URL = "https://outdoor.example.com"


def shopify_product(id, title, handle, variants=(), **kwargs):
    data = {
        "id": id,
        "title": title,
        "handle": handle,
        "body_html": f"<p>{title}</p>",
        "vendor": "Acme",
        "product_type": "Garden",
        "tags": ["outdoor"],
        "variants": list(variants),
        "images": [{"id": id * 10, "src": f"https://cdn.example.com/{handle}.jpg", "position": 1}],
    }
    data.update(kwargs)
    return data


def variant(id, sku, price="10.00", **kwargs):
    return {"id": id, "title": "Default Title", "sku": sku, "price": price, "compare_at_price": None, **kwargs}


def shopify_site(*pages):
    """Handler serving /products.json; the un-paged limit=1 request is the store check."""
    calls = []

    def handler(request):
        assert request.url.path == "/products.json"
        calls.append(dict(request.url.params))
        if "page" not in request.url.params:
            return httpx.Response(200, json={"products": list(pages[0][:1]) if pages else []})
        page = int(request.url.params["page"])
        return httpx.Response(200, json={"products": pages[page - 1] if page <= len(pages) else []})

    handler.calls = calls
    return handler


@pytest.fixture
def importer_for(repos, detector):
    def _importer_for(handler, **kwargs):
        kwargs.setdefault("page_delay", 0)
        kwargs.setdefault("batch_delay", 0)
        return ShopifyImporter(repos, detector, transport=httpx.MockTransport(handler), **kwargs)
    return _importer_for


def test_new_products_are_imported_as_shared(db, importer_for):
    hose = shopify_product(1, "Garden Hose", "garden-hose", [
        variant(11, "HOSE-1", "25.00", compare_at_price="30.00",
                featured_image={"id": 3, "src": "https://cdn.example.com/hose-green.jpg"}),
        variant(12, "", "27.00"),
    ], tags="outdoor, water")
    handler = shopify_site([hose])

    progress = importer_for(handler).import_products(SHOP_URL)

    assert (progress.total, progress.success, progress.skipped, progress.failed) == (1, 1, 0, 0)
    product = db.query(Product).one()
    assert product.title == "Garden Hose"
    assert product.handle == "garden-hose"
    assert product.vendor == "Acme"
    assert product.is_shared is True
    assert product.categories == ["outdoor", "water", "Garden"]
    assert product.images == ["https://cdn.example.com/garden-hose.jpg"]
    assert product.raw_payload["id"] == 1

    green = db.query(ProductVariant).filter_by(sku="HOSE-1").one()
    assert green.price == Decimal("25.00")
    assert green.compare_at_price == Decimal("30.00")
    assert green.featured_image == "https://cdn.example.com/hose-green.jpg"
    assert green.currency == "USD"
    assert db.query(ProductVariant).filter_by(product_id=product.id, sku=None).count() == 1

    assert handler.calls[0] == {"limit": "1"}
    assert handler.calls[1] == {"limit": "250", "page": "1"}


def test_skip_strategy_leaves_duplicates_alone(db, make_product, importer_for):
    existing = make_product("Garden Hose", handle="garden-hose", sku="HOSE-1", price="20.00")
    handler = shopify_site([
        shopify_product(1, "Garden Hose Deluxe", "garden-hose", [variant(11, "HOSE-9", "25.00")]),
        shopify_product(2, "Watering Can", "watering-can", [variant(21, "CAN-1", "12.00")]),
    ])

    progress = importer_for(handler).import_products(SHOP_URL, duplicate_strategy=DuplicateStrategy.SKIP)

    assert (progress.total, progress.success, progress.skipped) == (2, 1, 1)
    db.refresh(existing)
    assert existing.title == "Garden Hose"
    assert db.query(ProductVariant).filter_by(sku="HOSE-9").count() == 0
    assert db.query(Product).count() == 2


def test_overwrite_strategy_replaces_product_and_variants(db, make_product, importer_for):
    existing = make_product("Garden Hose", handle="garden-hose", sku="HOSE-1", price="20.00", brand_id=4)
    db.add(ProductVariant(product_id=existing.id, sku="OLD-1", price=Decimal("5.00"), currency="USD"))
    db.commit()
    handler = shopify_site([shopify_product(1, "Garden Hose Pro", "garden-hose", [
        variant(11, "HOSE-1", "25.00"),
        variant(12, "HOSE-2", "27.00"),
    ])])

    progress = importer_for(handler).import_products(SHOP_URL, duplicate_strategy=DuplicateStrategy.OVERWRITE)

    assert (progress.success, progress.skipped, progress.failed) == (1, 0, 0)
    assert db.query(Product).count() == 1
    db.refresh(existing)
    assert existing.title == "Garden Hose Pro"
    assert existing.brand_id == 4
    assert sorted(v.sku for v in existing.variants) == ["HOSE-1", "HOSE-2"]
    assert db.query(ProductVariant).filter_by(sku="HOSE-1").one().price == Decimal("25.00")
    assert db.query(ProductVariant).filter_by(sku="OLD-1").count() == 0


def test_keepboth_strategy_adds_a_copy(db, make_product, importer_for):
    existing = make_product("Garden Hose", handle="garden-hose", sku="HOSE-1", price="20.00")
    handler = shopify_site([shopify_product(1, "Garden Hose", "garden-hose", [variant(11, "HOSE-1", "25.00")])])

    progress = importer_for(handler).import_products(SHOP_URL, duplicate_strategy=DuplicateStrategy.KEEPBOTH)

    assert progress.success == 1
    assert db.query(Product).count() == 2
    copy = db.query(Product).filter(Product.id != existing.id).one()
    assert copy.title.startswith("Garden Hose (Copy ")
    assert copy.handle.startswith("garden-hose-")
    assert copy.is_shared is True
    assert copy.variants[0].sku.startswith("HOSE-1-")
    assert copy.variants[0].price == Decimal("25.00")
    # the original keeps its SKU and price
    assert db.query(ProductVariant).filter_by(sku="HOSE-1").one().price == Decimal("20.00")


def test_bad_records_fail_alone(db, importer_for):
    handler = shopify_site([
        shopify_product(1, "Garden Hose", "garden-hose", [variant(11, "HOSE-1", "25.00")]),
        shopify_product(2, "Broken Rake", "broken-rake", [variant(21, "RAKE-1", "cheap")]),
        {"id": 3, "handle": "no-title"},
    ])

    progress = importer_for(handler).import_products(SHOP_URL)

    assert (progress.total, progress.success, progress.failed) == (3, 1, 2)
    assert [e.product_id for e in progress.errors] == ["2", "3"]
    assert progress.errors[0].title == "Broken Rake"
    assert db.query(Product).filter_by(title="Broken Rake").count() == 0
    assert db.query(Product).count() == 1


def test_pages_batches_and_progress(importer_for):
    handler = shopify_site(
        [shopify_product(1, "Garden Hose", "garden-hose"), shopify_product(2, "Watering Can", "watering-can")],
        [shopify_product(3, "Seed Tray", "seed-tray")],
    )
    sleeps = []
    snapshots = []

    progress = importer_for(
        handler, page_delay=1.0, batch_size=2, batch_delay=180.0, sleep=sleeps.append
    ).import_products(SHOP_URL, on_progress=lambda p: snapshots.append((p.current, p.success)))

    assert progress.success == 3
    assert [c.get("page") for c in handler.calls] == [None, "1", "2", "3"]
    assert sleeps == [1.0, 1.0, 180.0]
    assert snapshots[-1] == (3, 3)
    assert any("Batch 2" in line for line in progress.logs)


def test_end_page_bounds_the_import(importer_for):
    handler = shopify_site(
        [shopify_product(1, "Garden Hose", "garden-hose")],
        [shopify_product(2, "Watering Can", "watering-can")],
    )

    progress = importer_for(handler).import_products(SHOP_URL, start_page=2, end_page=2)

    assert progress.total == 1
    assert [c.get("page") for c in handler.calls] == [None, "2"]


def test_failing_page_keeps_collected_products(importer_for):
    def handler(request):
        page = request.url.params.get("page")
        if page == "2":
            return httpx.Response(500)
        products = [shopify_product(1, "Garden Hose", "garden-hose")] if page in (None, "1") else []
        return httpx.Response(200, json={"products": products})

    progress = importer_for(handler).import_products(SHOP_URL)

    assert progress.total == 1
    assert progress.success == 1


def test_non_shopify_site_is_rejected(importer_for):
    handler = lambda request: httpx.Response(404, text="Not Found")

    with pytest.raises(PlatformError):
        importer_for(handler).import_products(SHOP_URL)


def test_import_store_maps_products_to_the_store(db, make_store, importer_for):
    store = make_store(
        name="Outdoor Shop", platform=StorePlatform.SHOPIFY, domain=SHOP_URL,
        consumer_key=None, consumer_secret=None, currency="CAD",
    )
    handler = shopify_site([shopify_product(1, "Garden Hose", "garden-hose", [variant(11, "HOSE-1", "25.00")])])

    progress = importer_for(handler).import_store(store.id)

    assert progress.success == 1
    mapping = db.query(StoreProductMap).one()
    assert mapping.store_id == store.id
    assert mapping.external_id == "1"
    assert mapping.sync_source == "SHOPIFY_IMPORT"
    assert db.query(ProductVariant).filter_by(sku="HOSE-1").one().currency == "CAD"


def test_import_store_requires_a_shopify_store(make_store, importer_for):
    store = make_store()

    with pytest.raises(UnsupportedPlatformError):
        importer_for(shopify_site([])).import_store(store.id)
