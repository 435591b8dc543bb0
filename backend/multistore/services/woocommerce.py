"""
WooCommerce REST API adapter.

Talks to /wp-json/wc/v3 with the store's consumer key/secret passed as query
parameters. Page counts come from the X-WP-TotalPages response header.
"""
import httpx
import logging
from datetime import datetime
from typing import Optional

from multistore.config import get_settings
from multistore.exceptions import PlatformError
from multistore.models import Store
from multistore.schemas.platform import ExternalProductRef, ExternalVariation, ProductPage
from multistore.services.credentials import get_store_credentials
from multistore.services.platform_adapter import PlatformAdapter

logger = logging.getLogger(__name__)


class WooCommerceAdapter(PlatformAdapter):
    """WooCommerce implementation of the platform adapter."""

    sku_prefix = "WOO"

    def __init__(
        self,
        domain: str,
        consumer_key: str,
        consumer_secret: str,
        api_version: str = "wc/v3",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.client = httpx.Client(
            base_url=f"{domain.rstrip('/')}/wp-json/{api_version}/",
            params={"consumer_key": consumer_key, "consumer_secret": consumer_secret},
            timeout=timeout,
            follow_redirects=True,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_store(cls, store: Store) -> "WooCommerceAdapter":
        settings = get_settings()
        consumer_key, consumer_secret = get_store_credentials(store)
        return cls(
            domain=store.domain,
            consumer_key=consumer_key,
            consumer_secret=consumer_secret,
            api_version=settings.woo_api_version,
            timeout=settings.woo_request_timeout,
        )

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise PlatformError(f"WooCommerce {method} {path} failed: {e}") from e

        if response.status_code >= 400:
            try:
                message = response.json().get("message") or response.text
            except ValueError:
                message = response.text
            raise PlatformError(
                f"WooCommerce {method} {path} returned {response.status_code}: {message}",
                status_code=response.status_code,
            )
        return response

    def list_products(
        self,
        page: int,
        page_size: int,
        order_by: str = "modified",
        order: str = "desc",
        modified_after: Optional[datetime] = None,
    ) -> ProductPage:
        params = {
            "page": page,
            "per_page": page_size,
            "orderby": order_by,
            "order": order,
        }
        if modified_after:
            params["modified_after"] = modified_after.isoformat()

        response = self._request("GET", "products", params=params)
        total_pages = int(response.headers.get("x-wp-totalpages") or 1)
        return ProductPage(items=response.json(), total_pages=total_pages)

    def get_variation(self, product_id: int, variation_id: int) -> ExternalVariation:
        response = self._request("GET", f"products/{product_id}/variations/{variation_id}")
        return ExternalVariation.model_validate(response.json())

    def create_product(self, payload: dict) -> ExternalProductRef:
        data = self._request("POST", "products", json=payload).json()
        return ExternalProductRef(external_id=str(data["id"]), permalink=data.get("permalink"))

    def update_product(self, external_id: str, payload: dict) -> ExternalProductRef:
        data = self._request("PUT", f"products/{external_id}", json=payload).json()
        return ExternalProductRef(external_id=str(data["id"]), permalink=data.get("permalink"))

    def delete_product(self, external_id: str, force: bool = True) -> None:
        self._request("DELETE", f"products/{external_id}", params={"force": "true" if force else "false"})

    def find_by_sku(self, sku: str) -> list[dict]:
        return self._request("GET", "products", params={"sku": sku, "per_page": 1}).json()

    def close(self) -> None:
        self.client.close()
