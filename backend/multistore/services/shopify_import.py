"""
Shopify Import Service

Imports a Shopify storefront's public catalog (``/products.json``) into the master
catalog. No credentials are needed.

1. Check the URL really serves a Shopify product listing.
2. Collect every product from the requested pages.
3. Import products in paced batches, asking the duplicate detector about each one
   and applying the chosen DuplicateStrategy.

Each product is committed on its own; a bad record is rolled back, counted as
failed and reported in the progress.
"""
import httpx
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from multistore.config import get_settings
from multistore.exceptions import PlatformError, StoreInactiveError, StoreNotFoundError, UnsupportedPlatformError
from multistore.models import Product, Store, StorePlatform
from multistore.schemas.duplicate import DuplicateCheckInput
from multistore.schemas.shopify import DuplicateStrategy, ImportProgress, ShopifyProduct
from multistore.schemas.sync import SyncAction, SyncError, SyncSource
from multistore.services.catalog_repository import CatalogRepositories
from multistore.services.catalog_sync import parse_price
from multistore.services.duplicate_detection import DuplicateDetector

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ImportProgress], None]


class ShopifyImporter:
    """Pulls a Shopify storefront's products into the master catalog."""

    platform = StorePlatform.SHOPIFY
    sync_source = SyncSource.SHOPIFY_IMPORT

    def __init__(
        self,
        repos: CatalogRepositories,
        detector: DuplicateDetector,
        transport: Optional[httpx.BaseTransport] = None,
        page_delay: Optional[float] = None,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        settings = get_settings()
        self.repos = repos
        self.db = repos.db
        self.detector = detector
        self.transport = transport
        self.page_size = settings.shopify_page_size
        self.timeout = settings.shopify_request_timeout
        self.page_delay = settings.shopify_page_delay_seconds if page_delay is None else page_delay
        self.batch_size = batch_size or settings.shopify_batch_size
        self.batch_delay = settings.shopify_batch_delay_seconds if batch_delay is None else batch_delay
        self.sleep = sleep

    def _client(self, store_url: str) -> httpx.Client:
        return httpx.Client(
            base_url=store_url.rstrip("/"),
            timeout=self.timeout,
            follow_redirects=True,
            headers={"Accept": "application/json"},
            transport=self.transport,
        )

    def is_shopify_store(self, client: httpx.Client) -> bool:
        """True when the site answers /products.json with a product list."""
        try:
            response = client.get("/products.json", params={"limit": 1})
            if response.status_code != 200:
                return False
            return isinstance(response.json().get("products"), list)
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.warning(f"Shopify check failed for {client.base_url}: {e}")
            return False

    def fetch_products(self, client: httpx.Client, page: int) -> list[dict]:
        """One page of raw product records."""
        try:
            response = client.get("/products.json", params={"limit": self.page_size, "page": page})
        except httpx.HTTPError as e:
            raise PlatformError(f"Shopify GET products.json page {page} failed: {e}") from e

        if response.status_code >= 400:
            raise PlatformError(
                f"Shopify GET products.json page {page} returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            products = response.json().get("products")
        except (ValueError, AttributeError):
            products = None
        if not isinstance(products, list):
            raise PlatformError("Invalid response format from Shopify")
        return products

    def import_store(
        self,
        store_id: int,
        start_page: int = 1,
        end_page: Optional[int] = None,
        duplicate_strategy: DuplicateStrategy = DuplicateStrategy.SKIP,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ImportProgress:
        """Import a configured Shopify store and map the imported products to it."""
        store = self._get_importable_store(store_id)
        return self.import_products(
            store.domain,
            start_page=start_page,
            end_page=end_page,
            duplicate_strategy=duplicate_strategy,
            on_progress=on_progress,
            store_id=store.id,
            currency=store.currency,
        )

    def import_products(
        self,
        store_url: str,
        start_page: int = 1,
        end_page: Optional[int] = None,
        duplicate_strategy: DuplicateStrategy = DuplicateStrategy.SKIP,
        on_progress: Optional[ProgressCallback] = None,
        store_id: Optional[int] = None,
        currency: Optional[str] = None,
    ) -> ImportProgress:
        """
        Import pages ``start_page``..``end_page`` (until an empty page when no end).

        Raises PlatformError when the URL is not a Shopify store. A failing page
        fetch ends collection; products already collected are still imported.
        """
        progress = ImportProgress()
        currency = currency or get_settings().default_currency

        def report(message: str):
            logger.info(message)
            progress.logs.append(message)
            if on_progress:
                on_progress(progress)

        with self._client(store_url) as client:
            report(f"Verifying Shopify store: {store_url}")
            if not self.is_shopify_store(client):
                report(f"Not a valid Shopify store: {store_url}")
                raise PlatformError(f"Not a valid Shopify store: {store_url}")

            raw_products = []
            page = start_page
            while end_page is None or page <= end_page:
                if page > start_page and self.page_delay:
                    self.sleep(self.page_delay)
                try:
                    products = self.fetch_products(client, page)
                except PlatformError as e:
                    logger.error(f"Error fetching page {page} of {store_url}: {e}")
                    report(f"Error fetching page {page}: {e}")
                    break

                if not products:
                    report(f"Page {page} is empty, stopping")
                    break

                raw_products.extend(products)
                report(f"Fetched {len(products)} products from page {page}")
                page += 1

        progress.total = len(raw_products)
        report(f"Total products to import: {progress.total}")

        for start in range(0, len(raw_products), self.batch_size):
            batch = raw_products[start:start + self.batch_size]
            report(f"Batch {start // self.batch_size + 1} (products {start + 1}-{start + len(batch)})")

            for raw in batch:
                self._import_one(raw, duplicate_strategy, store_id, currency, progress, report)

            if start + self.batch_size < len(raw_products) and self.batch_delay:
                report(f"Waiting {self.batch_delay:g} seconds before next batch")
                self.sleep(self.batch_delay)

        report(
            f"Import complete: {progress.success} imported, {progress.skipped} skipped, "
            f"{progress.failed} failed of {progress.total}"
        )
        return progress

    def _get_importable_store(self, store_id: int) -> Store:
        store = self.repos.stores.get(store_id)
        if not store:
            raise StoreNotFoundError(store_id)
        if not store.is_active:
            raise StoreInactiveError(store.name)
        if store.platform != self.platform:
            actual = store.platform.value if isinstance(store.platform, StorePlatform) else store.platform
            raise UnsupportedPlatformError(self.platform.value, actual)
        return store

    def _import_one(
        self,
        raw: dict,
        strategy: DuplicateStrategy,
        store_id: Optional[int],
        currency: str,
        progress: ImportProgress,
        report: Callable[[str], None],
    ):
        progress.current += 1
        progress.current_product = raw.get("title")
        try:
            product = ShopifyProduct.model_validate(raw)
            action = self._import_product(product, strategy, store_id, currency)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            progress.failed += 1
            progress.errors.append(SyncError(
                product_id=str(raw.get("id")), title=str(raw.get("title") or ""), error=str(e)
            ))
            report(f"[{progress.current}/{progress.total}] Failed: {raw.get('title')} - {e}")
            return

        if action == SyncAction.SKIPPED:
            progress.skipped += 1
            report(f"[{progress.current}/{progress.total}] Skipped existing product: {product.title}")
        else:
            progress.success += 1
            report(f"[{progress.current}/{progress.total}] {action.value.capitalize()}: {product.title}")

    def _import_product(
        self,
        shopify_product: ShopifyProduct,
        strategy: DuplicateStrategy,
        store_id: Optional[int],
        currency: str,
    ) -> SyncAction:
        first_sku = next((v.sku for v in shopify_product.variants if v.sku), None)
        check = self.detector.find_duplicates(DuplicateCheckInput(
            sku=first_sku,
            handle=shopify_product.handle or None,
            title=shopify_product.title,
        ))

        fields = {
            "title": shopify_product.title,
            "description": shopify_product.body_html or None,
            "vendor": shopify_product.vendor or None,
            "options": shopify_product.options or None,
            "categories": shopify_product.categories,
            "images": [img.src for img in shopify_product.images],
            "raw_payload": shopify_product.model_dump(mode="json"),
        }

        if check.found and strategy == DuplicateStrategy.SKIP:
            return SyncAction.SKIPPED

        if check.found and strategy == DuplicateStrategy.OVERWRITE:
            logger.info(f"Overwriting product {check.match.id} ({check.method.value} match): {shopify_product.title}")
            product = self.repos.products.get(check.match.id)
            self.repos.variants.delete_for_product(product)
            self.repos.products.update(product, fields)
            self._create_variants(product, shopify_product, currency)
            action = SyncAction.UPDATED

        elif check.found:
            # keep both: the copy gets its own handle and SKUs
            suffix = str(int(time.time() * 1000))
            product = self.repos.products.create({
                **fields,
                "title": f"{shopify_product.title} (Copy {suffix})",
                "handle": f"{shopify_product.handle}-{suffix}" if shopify_product.handle else None,
                "brand_id": None,
                "is_shared": True,
            })
            self._create_variants(product, shopify_product, currency, sku_suffix=f"-{suffix}")
            action = SyncAction.CREATED

        else:
            product = self.repos.products.create({
                **fields,
                "handle": shopify_product.handle or None,
                "brand_id": None,
                "is_shared": True,
            })
            self._create_variants(product, shopify_product, currency)
            action = SyncAction.CREATED

        if store_id is not None:
            self._upsert_mapping(store_id, product.id, shopify_product)
        return action

    def _create_variants(self, product: Product, shopify_product: ShopifyProduct, currency: str, sku_suffix: str = ""):
        for variant in shopify_product.variants:
            data = {
                "price": parse_price(variant.price),
                "compare_at_price": parse_price(variant.compare_at_price),
                "currency": currency,
                "featured_image": variant.image_src,
                "raw_payload": variant.model_dump(mode="json"),
            }
            if variant.sku:
                self.repos.variants.upsert_by_sku(f"{variant.sku}{sku_suffix}", product.id, data)
            else:
                self.repos.variants.create(product.id, {**data, "sku": None})

    def _upsert_mapping(self, store_id: int, product_id: int, shopify_product: ShopifyProduct):
        fields = {
            "external_id": str(shopify_product.id),
            "is_active": True,
            "last_synced_at": datetime.now(timezone.utc),
            "sync_source": self.sync_source.value,
        }

        if self.repos.mappings.get(store_id, product_id):
            self.repos.mappings.update(store_id, product_id, fields)
        else:
            self.repos.mappings.create(store_id, product_id, fields)
