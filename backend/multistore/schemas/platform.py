"""
External commerce platform records.

Only the fields the catalog consumes are typed; everything else the platform sends is
kept as extra attributes so ``model_dump()`` reproduces the upstream payload.
"""
from pydantic import BaseModel


class ExternalCategory(BaseModel):
    id: int | None = None
    name: str

    class Config:
        extra = "allow"


class ExternalImage(BaseModel):
    id: int | None = None
    src: str

    class Config:
        extra = "allow"


class ExternalProduct(BaseModel):
    id: int
    name: str = ""
    slug: str = ""
    type: str = "simple"  # 'simple', 'variable', 'grouped', 'external'
    status: str = "publish"
    sku: str = ""
    price: str = ""
    regular_price: str = ""
    sale_price: str = ""
    on_sale: bool = False
    description: str = ""
    short_description: str = ""
    permalink: str | None = None
    categories: list[ExternalCategory] = []
    images: list[ExternalImage] = []
    attributes: list[dict] = []
    variations: list[int] = []

    class Config:
        extra = "allow"


class ExternalVariation(BaseModel):
    id: int
    sku: str = ""
    price: str = ""
    regular_price: str = ""
    sale_price: str = ""
    on_sale: bool = False
    image: ExternalImage | None = None
    attributes: list[dict] = []
    stock_quantity: int | None = None
    stock_status: str | None = None

    class Config:
        extra = "allow"


class ProductPage(BaseModel):
    """One page of raw product records; each is validated on its own when processed."""
    items: list[dict]
    total_pages: int = 1


class ExternalProductRef(BaseModel):
    """What the platform returns after a create or update."""
    external_id: str
    permalink: str | None = None
