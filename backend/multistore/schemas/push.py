from typing import Literal
from pydantic import BaseModel, Field

from multistore.schemas.sync import SyncAction


class PushOptions(BaseModel):
    force_update: bool = Field(default=False, alias="forceUpdate")
    skip_images: bool = Field(default=False, alias="skipImages")
    status: Literal["publish", "draft", "pending"] = "publish"

    class Config:
        populate_by_name = True


class PushResult(BaseModel):
    success: bool
    action: SyncAction
    external_id: str | None = None
    url: str | None = None
    error: str | None = None
