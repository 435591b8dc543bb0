from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal


class ProductBase(BaseModel):
    title: str
    handle: str | None = None
    description: str | None = None
    vendor: str | None = None
    brand_id: int | None = None
    categories: list[str] = []
    images: list[str] = []
    is_shared: bool = False


class Product(ProductBase):
    id: int
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class ProductVariantBase(BaseModel):
    sku: str | None = None
    price: Decimal | None = None
    compare_at_price: Decimal | None = None
    currency: str | None = None
    featured_image: str | None = None


class ProductVariant(ProductVariantBase):
    id: int
    product_id: int

    class Config:
        from_attributes = True


class StoreProductMap(BaseModel):
    store_id: int
    product_id: int
    external_id: str | None = None
    is_active: bool = True
    custom_title: str | None = None
    custom_description: str | None = None
    custom_price: Decimal | None = None
    custom_compare_at_price: Decimal | None = None
    custom_currency: str | None = None
    price_adjustment: dict | None = None
    last_synced_at: datetime | None = None
    sync_source: str | None = None

    class Config:
        from_attributes = True
