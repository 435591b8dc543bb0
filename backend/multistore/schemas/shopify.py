"""
Shopify storefront import records.

The public ``/products.json`` listing is read without credentials. Fields the
catalog does not use are kept as extras so the raw snapshot stays complete.
"""
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from multistore.schemas.sync import SyncError


class DuplicateStrategy(str, Enum):
    OVERWRITE = "overwrite"  # replace the matched product and its variants
    KEEPBOTH = "keepboth"  # add a copy under a new handle
    SKIP = "skip"


class ShopifyImage(BaseModel):
    id: int | None = None
    src: str
    position: int | None = None

    class Config:
        extra = "allow"


class ShopifyVariant(BaseModel):
    id: int
    title: str = ""
    sku: str | None = None
    price: str | None = None
    compare_at_price: str | None = None
    featured_image: ShopifyImage | str | None = None

    class Config:
        extra = "allow"

    @property
    def image_src(self) -> str | None:
        if isinstance(self.featured_image, ShopifyImage):
            return self.featured_image.src
        return self.featured_image or None


class ShopifyProduct(BaseModel):
    id: int
    title: str
    handle: str = ""
    body_html: str | None = None
    vendor: str | None = None
    product_type: str | None = None
    tags: list[str] = []
    variants: list[ShopifyVariant] = []
    images: list[ShopifyImage] = []
    options: list[dict] | None = None

    class Config:
        extra = "allow"

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, value):
        # the admin API sends tags as one comma-separated string
        if isinstance(value, str):
            return [tag.strip() for tag in value.split(",") if tag.strip()]
        return value

    @property
    def categories(self) -> list[str]:
        return [c for c in [*self.tags, self.product_type] if c]


class ImportProgress(BaseModel):
    total: int = 0
    current: int = 0
    success: int = 0
    failed: int = 0
    skipped: int = 0
    current_product: str | None = None
    errors: list[SyncError] = []
    logs: list[str] = []


class ShopifyImportRequest(BaseModel):
    """Body of a Shopify import trigger."""
    start_page: int = Field(default=1, gt=0, alias="startPage")
    end_page: int | None = Field(default=None, gt=0, alias="endPage")  # None = until an empty page
    duplicate_strategy: DuplicateStrategy = Field(default=DuplicateStrategy.SKIP, alias="duplicateStrategy")

    class Config:
        populate_by_name = True
