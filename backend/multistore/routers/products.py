"""Product endpoints: duplicate checks, resolved prices, and pushing to stores."""
from fastapi import APIRouter, Depends, HTTPException

from multistore.dependencies import get_detector, get_price_resolver, get_publisher
from multistore.schemas.duplicate import DuplicateCheckInput, DuplicateCheckResult, DuplicateGroup
from multistore.schemas.price import PriceComparison, ProductWithPrice
from multistore.schemas.push import PushOptions, PushResult
from multistore.services.catalog_push import CatalogPublisher
from multistore.services.duplicate_detection import DuplicateDetector
from multistore.services.price_resolver import PriceResolver

router = APIRouter(prefix="/products", tags=["products"])


@router.post("/check-duplicates", response_model=DuplicateCheckResult)
def check_duplicates(
    check: DuplicateCheckInput,
    detector: DuplicateDetector = Depends(get_detector),
):
    """Would this product duplicate one already in the catalog?"""
    return detector.find_duplicates(check)


@router.get("/duplicates", response_model=list[DuplicateGroup])
def list_duplicates(detector: DuplicateDetector = Depends(get_detector)):
    """Products already sharing a SKU or handle."""
    return detector.find_all_duplicates()


@router.get("/{product_id}/price", response_model=ProductWithPrice)
def get_product_price(
    product_id: int,
    store_id: int | None = None,
    resolver: PriceResolver = Depends(get_price_resolver),
):
    """Product with its price in a store, or its master price when no store is given."""
    product = resolver.get_product_with_price(product_id, store_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("/{product_id}/prices", response_model=PriceComparison)
def compare_product_prices(
    product_id: int,
    resolver: PriceResolver = Depends(get_price_resolver),
):
    """Resolved price of a product in every store that carries it."""
    comparison = resolver.compare_product_prices(product_id)
    if not comparison:
        raise HTTPException(status_code=404, detail="Product not found")
    return comparison


@router.post("/{product_id}/push", response_model=dict[int, PushResult])
def push_product(
    product_id: int,
    store_id: int | None = None,
    options: PushOptions | None = None,
    publisher: CatalogPublisher = Depends(get_publisher),
):
    """Push a product to one store, or to every active store when none is given."""
    if not publisher.repos.products.get(product_id):
        raise HTTPException(status_code=404, detail="Product not found")

    if store_id is not None:
        return {store_id: publisher.push_product_to_store(product_id, store_id, options)}
    return publisher.push_product_to_all_stores(product_id, options)


@router.delete("/{product_id}/stores/{store_id}")
def delete_product_from_store(
    product_id: int,
    store_id: int,
    publisher: CatalogPublisher = Depends(get_publisher),
):
    """Remove a product from a store's platform and drop its mapping."""
    return {"deleted": publisher.delete_product_from_store(product_id, store_id)}
