"""
Platform adapter interface.

The catalog services only talk to an external commerce platform through this
interface. Implementations raise PlatformError on failure and never retry.
Product listings come back as raw records so one malformed product cannot
spoil the rest of its page.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from multistore.schemas.platform import ExternalProductRef, ExternalVariation, ProductPage


class PlatformAdapter(ABC):
    # Prefix for SKUs generated from platform ids
    sku_prefix: str = "EXT"

    @abstractmethod
    def list_products(
        self,
        page: int,
        page_size: int,
        order_by: str = "modified",
        order: str = "desc",
        modified_after: Optional[datetime] = None,
    ) -> ProductPage:
        ...

    @abstractmethod
    def get_variation(self, product_id: int, variation_id: int) -> ExternalVariation:
        ...

    @abstractmethod
    def create_product(self, payload: dict) -> ExternalProductRef:
        ...

    @abstractmethod
    def update_product(self, external_id: str, payload: dict) -> ExternalProductRef:
        ...

    @abstractmethod
    def delete_product(self, external_id: str, force: bool = True) -> None:
        ...

    @abstractmethod
    def find_by_sku(self, sku: str) -> list[dict]:
        ...

    def close(self) -> None:
        pass
