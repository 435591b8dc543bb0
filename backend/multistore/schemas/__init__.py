from multistore.schemas.store import Store
from multistore.schemas.product import Product, ProductVariant, StoreProductMap
from multistore.schemas.price import (
    PriceSource, PriceAdjustmentRule, PriceOverride, NoOverride, CustomPrice, AdjustmentOverride,
    ProductWithPrice, PriceComparison, StorePriceEntry, StoreProductsPage,
)
from multistore.schemas.duplicate import DuplicateMethod, DuplicateCheckInput, DuplicateCheckResult, DuplicateGroup
from multistore.schemas.sync import SyncAction, SyncSource, SyncOptions, SyncResult, SyncError, SyncAllResult
from multistore.schemas.push import PushOptions, PushResult
from multistore.schemas.platform import ExternalProduct, ExternalVariation, ProductPage, ExternalProductRef
from multistore.schemas.shopify import DuplicateStrategy, ShopifyProduct, ImportProgress, ShopifyImportRequest

__all__ = [
    "Store",
    "Product", "ProductVariant", "StoreProductMap",
    "PriceSource", "PriceAdjustmentRule", "PriceOverride", "NoOverride", "CustomPrice", "AdjustmentOverride",
    "ProductWithPrice", "PriceComparison", "StorePriceEntry", "StoreProductsPage",
    "DuplicateMethod", "DuplicateCheckInput", "DuplicateCheckResult", "DuplicateGroup",
    "SyncAction", "SyncSource", "SyncOptions", "SyncResult", "SyncError", "SyncAllResult",
    "PushOptions", "PushResult",
    "ExternalProduct", "ExternalVariation", "ProductPage", "ExternalProductRef",
    "DuplicateStrategy", "ShopifyProduct", "ImportProgress", "ShopifyImportRequest",
]
