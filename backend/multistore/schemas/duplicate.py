from enum import Enum
from pydantic import BaseModel

from multistore.schemas.product import Product


class DuplicateMethod(str, Enum):
    SKU = "SKU"
    HANDLE = "HANDLE"
    TITLE = "TITLE"


class DuplicateCheckInput(BaseModel):
    title: str = ""
    sku: str | None = None
    handle: str | None = None
    exclude_id: int | None = None  # product being edited; never matches itself


class DuplicateCheckResult(BaseModel):
    found: bool
    match: Product | None = None
    method: DuplicateMethod | None = None
    confidence: float = 0.0
    similarity_score: float | None = None  # title matches only


class DuplicateGroup(BaseModel):
    """Already-persisted products sharing a SKU or handle."""
    type: DuplicateMethod
    value: str
    products: list[Product]
