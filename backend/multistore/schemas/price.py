from enum import Enum
from decimal import Decimal
from typing import Annotated, Literal, Union
from pydantic import BaseModel, Field

from multistore.schemas.product import ProductVariant, StoreProductMap


class PriceSource(str, Enum):
    MASTER = "MASTER"
    STORE_OVERRIDE = "STORE_OVERRIDE"
    AUTO_ADJUSTED = "AUTO_ADJUSTED"


class AdjustmentType(str, Enum):
    MARKUP = "markup"
    DISCOUNT = "discount"
    FIXED = "fixed"


class AdjustmentUnit(str, Enum):
    PERCENT = "percent"
    AMOUNT = "amount"


class PriceAdjustmentRule(BaseModel):
    """Store-level formula applied to the master price."""
    type: AdjustmentType
    value: Decimal
    unit: AdjustmentUnit = AdjustmentUnit.PERCENT


# ============== Store price overrides ==============
# A mapping carries exactly one of these.

class NoOverride(BaseModel):
    kind: Literal["none"] = "none"


class CustomPrice(BaseModel):
    kind: Literal["custom"] = "custom"
    price: Decimal
    compare_at_price: Decimal | None = None
    currency: str | None = None


class AdjustmentOverride(BaseModel):
    kind: Literal["adjustment"] = "adjustment"
    rule: PriceAdjustmentRule


PriceOverride = Annotated[
    Union[NoOverride, CustomPrice, AdjustmentOverride],
    Field(discriminator="kind"),
]


class ResolvedPrice(BaseModel):
    price: Decimal
    compare_at_price: Decimal | None = None
    currency: str
    source: PriceSource


class ProductWithPrice(BaseModel):
    """Product as displayed in a given context, with its resolved price."""
    id: int
    title: str
    description: str | None = None
    handle: str | None = None
    vendor: str | None = None
    brand_id: int | None = None
    is_shared: bool = False
    categories: list[str] = []
    images: list[str] = []

    display_price: Decimal
    display_compare_at_price: Decimal | None = None
    display_currency: str
    price_source: PriceSource

    variants: list[ProductVariant] = []
    mapping: StoreProductMap | None = None


class StoreProductsPage(BaseModel):
    products: list[ProductWithPrice]
    total: int
    page: int
    page_size: int


class StorePriceEntry(BaseModel):
    store_id: int
    store_name: str
    price: Decimal
    compare_at_price: Decimal | None = None
    currency: str
    price_source: PriceSource
    adjustment: PriceAdjustmentRule | None = None


class PriceComparison(BaseModel):
    """Resolved price of one product in every store that carries it."""
    product_id: int
    product_title: str
    master_price: Decimal
    stores: list[StorePriceEntry]


class StorePriceUpdate(BaseModel):
    """Body of a store price edit: custom price, adjustment rule, or clear."""
    type: Literal["custom", "adjustment", "clear"]
    price: Decimal | None = None
    compare_at_price: Decimal | None = Field(default=None, alias="compareAtPrice")
    currency: str | None = None
    adjustment_type: AdjustmentType | None = Field(default=None, alias="adjustmentType")
    value: Decimal | None = None
    unit: AdjustmentUnit | None = None

    class Config:
        populate_by_name = True
