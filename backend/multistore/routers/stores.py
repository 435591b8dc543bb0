"""Store endpoints: catalog sync and import triggers, and per-store product prices."""
from fastapi import APIRouter, Depends, HTTPException, Query

from multistore.config import get_settings
from multistore.dependencies import get_price_resolver, get_repositories, get_shopify_importer, get_synchronizer
from multistore.exceptions import PlatformError, StoreMappingNotFoundError, StoreNotFoundError, SyncConfigurationError
from multistore.schemas.price import (
    AdjustmentUnit,
    NoOverride,
    PriceAdjustmentRule,
    ProductWithPrice,
    StorePriceUpdate,
    StoreProductsPage,
)
from multistore.schemas.shopify import ImportProgress, ShopifyImportRequest
from multistore.schemas.store import Store
from multistore.schemas.sync import SyncAllResult, SyncOptions, SyncRequest, SyncResult
from multistore.services.catalog_repository import CatalogRepositories
from multistore.services.catalog_sync import CatalogSynchronizer
from multistore.services.price_resolver import PriceResolver
from multistore.services.shopify_import import ShopifyImporter

router = APIRouter(prefix="/stores", tags=["stores"])


@router.get("", response_model=list[Store])
def list_stores(
    is_active: bool | None = None,
    repos: CatalogRepositories = Depends(get_repositories),
):
    """List configured stores."""
    return repos.stores.list(is_active=is_active)


@router.post("/sync-all", response_model=SyncAllResult)
def sync_all_stores(
    modified_only: bool = Query(False, alias="modifiedOnly"),
    synchronizer: CatalogSynchronizer = Depends(get_synchronizer),
):
    """Sync every active WooCommerce store."""
    return synchronizer.sync_all_stores(modified_only=modified_only)


@router.post("/{store_id}/sync", response_model=SyncResult)
def sync_store(
    store_id: int,
    request: SyncRequest | None = None,
    modified_only: bool = Query(False, alias="modifiedOnly"),
    synchronizer: CatalogSynchronizer = Depends(get_synchronizer),
):
    """Pull a store's products into the master catalog."""
    request = request or SyncRequest()

    try:
        if modified_only or request.modified_only:
            return synchronizer.sync_modified_products(store_id)

        options = SyncOptions(
            page_size=request.page_size or get_settings().sync_page_size,
            max_pages=request.max_pages,
        )
        return synchronizer.sync_store_products(store_id, options)
    except StoreNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SyncConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{store_id}/import-shopify", response_model=ImportProgress)
def import_shopify_store(
    store_id: int,
    request: ShopifyImportRequest | None = None,
    importer: ShopifyImporter = Depends(get_shopify_importer),
):
    """Import a Shopify store's public catalog into the master catalog."""
    request = request or ShopifyImportRequest()

    try:
        return importer.import_store(
            store_id,
            start_page=request.start_page,
            end_page=request.end_page,
            duplicate_strategy=request.duplicate_strategy,
        )
    except StoreNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SyncConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PlatformError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/{store_id}/products", response_model=StoreProductsPage)
def list_store_products(
    store_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    is_active: bool | None = None,
    resolver: PriceResolver = Depends(get_price_resolver),
):
    """Products carried by a store, priced as the store shows them."""
    if not resolver.repos.stores.get(store_id):
        raise HTTPException(status_code=404, detail=f"Store not found: {store_id}")

    return resolver.get_store_products(store_id, page=page, page_size=page_size, is_active=is_active)


@router.put("/{store_id}/products/{product_id}/price", response_model=ProductWithPrice)
def update_store_price(
    store_id: int,
    product_id: int,
    update: StorePriceUpdate,
    resolver: PriceResolver = Depends(get_price_resolver),
):
    """Set a custom price or an adjustment rule for a product in a store, or clear both."""
    try:
        if update.type == "custom":
            if update.price is None:
                raise HTTPException(status_code=422, detail="price is required for a custom price")
            if update.price < 0 or (update.compare_at_price is not None and update.compare_at_price < 0):
                raise HTTPException(status_code=422, detail="Prices must not be negative")
            resolver.set_store_price(
                product_id, store_id, update.price, update.compare_at_price, update.currency
            )

        elif update.type == "adjustment":
            if update.adjustment_type is None or update.value is None:
                raise HTTPException(status_code=422, detail="adjustmentType and value are required")
            if update.value < 0:
                raise HTTPException(status_code=422, detail="Adjustment value must not be negative")
            rule = PriceAdjustmentRule(
                type=update.adjustment_type,
                value=update.value,
                unit=update.unit or AdjustmentUnit.PERCENT,
            )
            resolver.set_store_price_adjustment(product_id, store_id, rule)

        else:
            resolver.set_store_override(product_id, store_id, NoOverride())

    except StoreMappingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return resolver.get_product_with_price(product_id, store_id)
