from enum import Enum
from datetime import datetime
from pydantic import BaseModel, Field


class SyncAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class SyncSource(str, Enum):
    WOO = "WOO"
    WEB_PUSH = "WEB_PUSH"
    SHOPIFY_IMPORT = "SHOPIFY_IMPORT"


class SyncOptions(BaseModel):
    modified_after: datetime | None = None
    page_size: int = Field(default=100, gt=0)
    max_pages: int | None = Field(default=None, gt=0)  # None = until the platform runs out


class SyncError(BaseModel):
    product_id: str
    title: str
    error: str


class SyncResult(BaseModel):
    total: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[SyncError] = []
    duration_ms: int = 0


class StoreSyncOutcome(BaseModel):
    store_id: int
    store_name: str
    success: bool
    result: SyncResult | None = None
    error: str | None = None


class SyncAllSummary(BaseModel):
    total_stores: int = 0
    successful_stores: int = 0
    failed_stores: int = 0
    total_products: int = 0


class SyncAllResult(BaseModel):
    stores: list[StoreSyncOutcome] = []
    summary: SyncAllSummary = SyncAllSummary()


class SyncRequest(BaseModel):
    """Body of a manual sync trigger."""
    page_size: int | None = Field(default=None, gt=0, alias="pageSize")
    max_pages: int | None = Field(default=None, gt=0, alias="maxPages")
    modified_only: bool = Field(default=False, alias="modifiedOnly")

    class Config:
        populate_by_name = True
