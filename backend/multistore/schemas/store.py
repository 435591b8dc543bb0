from pydantic import BaseModel
from datetime import datetime


class StoreBase(BaseModel):
    name: str
    platform: str
    domain: str
    is_active: bool = True
    currency: str = "USD"


class Store(StoreBase):
    id: int
    created_at: datetime | None = None

    class Config:
        from_attributes = True
