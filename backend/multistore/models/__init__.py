from multistore.models.store import Store, StorePlatform
from multistore.models.product import Product, ProductVariant
from multistore.models.store_product_map import StoreProductMap

__all__ = [
    "Store",
    "StorePlatform",
    "Product",
    "ProductVariant",
    "StoreProductMap",
]
