"""
Catalog Sync Service

Pulls products from a store's commerce platform into the master catalog.

For every external product:
1. Ask the duplicate detector whether it is already in the catalog.
2. Update the matched master product, or create a new one.
3. Upsert its variant(s) by SKU.
4. Upsert the store-product mapping with the external id and sync timestamp.

One bad record never aborts the run: it is rolled back, counted as failed and
reported in the result. A failing page fetch ends pagination but keeps the work
done so far.
"""
import logging
import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from multistore.config import get_settings
from multistore.exceptions import (
    StoreInactiveError,
    StoreNotFoundError,
    UnsupportedPlatformError,
)
from multistore.models import Product, Store, StorePlatform
from multistore.schemas.duplicate import DuplicateCheckInput
from multistore.schemas.platform import ExternalProduct, ExternalVariation
from multistore.schemas.sync import (
    StoreSyncOutcome,
    SyncAction,
    SyncAllResult,
    SyncError,
    SyncOptions,
    SyncResult,
    SyncSource,
)
from multistore.services.catalog_repository import CatalogRepositories
from multistore.services.credentials import get_store_credentials
from multistore.services.duplicate_detection import DuplicateDetector
from multistore.services.platform_adapter import PlatformAdapter
from multistore.services.woocommerce import WooCommerceAdapter

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[Store], PlatformAdapter]


def parse_price(value) -> Optional[Decimal]:
    """Platform price string to Decimal; blank means no price."""
    if value is None or str(value).strip() == "":
        return None
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid price: {value!r}")


def resolve_variant_prices(price: str, regular_price: str, sale_price: str) -> tuple[Decimal, Optional[Decimal]]:
    """
    Active price and compare-at price of an external record.

    On sale, the sale price is charged and the regular price becomes the
    compare-at reference. Otherwise the active price (or regular price) is used.
    """
    sale = parse_price(sale_price)
    regular = parse_price(regular_price)
    if sale is not None:
        return sale, regular

    active = parse_price(price)
    if active is None:
        active = regular
    return (active if active is not None else Decimal("0")), None


def get_syncable_store(repos: CatalogRepositories, store_id: int, platform: StorePlatform) -> Store:
    """Load a store and check it can talk to its platform, or raise a configuration error."""
    store = repos.stores.get(store_id)
    if not store:
        raise StoreNotFoundError(store_id)
    if not store.is_active:
        raise StoreInactiveError(store.name)
    if store.platform != platform:
        actual = store.platform.value if isinstance(store.platform, StorePlatform) else store.platform
        raise UnsupportedPlatformError(platform.value, actual)
    get_store_credentials(store)  # missing or undecryptable secret
    return store


class CatalogSynchronizer:
    """Reconciles a WooCommerce store's products with the master catalog."""

    platform = StorePlatform.WOO
    sync_source = SyncSource.WOO

    def __init__(
        self,
        repos: CatalogRepositories,
        detector: DuplicateDetector,
        adapter_factory: AdapterFactory = WooCommerceAdapter.from_store,
    ):
        self.repos = repos
        self.db = repos.db
        self.detector = detector
        self.adapter_factory = adapter_factory

    def sync_store_products(self, store_id: int, options: Optional[SyncOptions] = None) -> SyncResult:
        """
        Sync every product of a store, newest modification first.

        Raises a SyncConfigurationError before any platform call when the store
        is missing, inactive, on another platform, or has no credentials.
        """
        started = time.monotonic()
        settings = get_settings()
        if options is None:
            options = SyncOptions(page_size=settings.sync_page_size)

        store = get_syncable_store(self.repos, store_id, self.platform)
        store_name = store.name
        currency = store.currency or settings.default_currency

        adapter = self.adapter_factory(store)
        result = SyncResult()

        try:
            page = 1
            has_more_pages = True

            while has_more_pages and (options.max_pages is None or page <= options.max_pages):
                logger.info(f"Fetching page {page} for store {store_name}...")
                try:
                    product_page = adapter.list_products(
                        page=page,
                        page_size=options.page_size,
                        order_by="modified",
                        order="desc",
                        modified_after=options.modified_after,
                    )
                except Exception as e:
                    logger.error(f"Error fetching page {page} for store {store_name}: {e}")
                    break

                if not product_page.items:
                    break

                logger.info(f"Processing {len(product_page.items)} products from page {page}...")
                for raw in product_page.items:
                    self._sync_one(store_id, raw, adapter, currency, result)

                has_more_pages = page < product_page.total_pages
                page += 1
        finally:
            adapter.close()

        result.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"Sync of {store_name} completed: {result.created} created, {result.updated} updated, "
            f"{result.skipped} skipped, {result.failed} failed"
        )
        return result

    def get_last_sync_time(self, store_id: int) -> Optional[datetime]:
        """Most recent successful sync of any product in the store."""
        return self.repos.mappings.last_synced_at(store_id)

    def sync_modified_products(self, store_id: int) -> SyncResult:
        """Sync only products modified since the last sync; everything if never synced."""
        last_sync = self.get_last_sync_time(store_id)
        page_size = get_settings().sync_page_size

        if last_sync:
            logger.info(f"Syncing products modified after {last_sync.isoformat()}")
            return self.sync_store_products(store_id, SyncOptions(modified_after=last_sync, page_size=page_size))

        logger.info("No previous sync found, syncing all products")
        return self.sync_store_products(store_id, SyncOptions(page_size=page_size))

    def sync_all_stores(self, modified_only: bool = False, options: Optional[SyncOptions] = None) -> SyncAllResult:
        """Sync every active store on this platform; one store failing does not stop the others."""
        stores = [(s.id, s.name) for s in self.repos.stores.list(platform=self.platform, is_active=True)]
        outcome = SyncAllResult()
        outcome.summary.total_stores = len(stores)

        for store_id, store_name in stores:
            try:
                logger.info(f"Syncing store: {store_name}")
                if modified_only:
                    result = self.sync_modified_products(store_id)
                else:
                    result = self.sync_store_products(store_id, options)
            except Exception as e:
                logger.error(f"Failed to sync store {store_name}: {e}")
                self.db.rollback()
                outcome.stores.append(StoreSyncOutcome(
                    store_id=store_id, store_name=store_name, success=False, error=str(e)
                ))
                outcome.summary.failed_stores += 1
                continue

            outcome.stores.append(StoreSyncOutcome(
                store_id=store_id, store_name=store_name, success=True, result=result
            ))
            outcome.summary.successful_stores += 1
            outcome.summary.total_products += result.total

        return outcome

    def _sync_one(
        self,
        store_id: int,
        raw: dict,
        adapter: PlatformAdapter,
        currency: str,
        result: SyncResult,
    ):
        """Validate and process one raw product record in its own transaction, then tally the outcome."""
        result.total += 1
        try:
            external = ExternalProduct.model_validate(raw)
            action = self._process_product(store_id, external, adapter, currency)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            product_id = raw.get("id")
            result.failed += 1
            result.errors.append(SyncError(product_id=str(product_id), title=str(raw.get("name") or ""), error=str(e)))
            logger.error(f"Error processing product {product_id}: {e}")
            return

        if action == SyncAction.CREATED:
            result.created += 1
        elif action == SyncAction.UPDATED:
            result.updated += 1
        else:
            result.skipped += 1

    def _process_product(
        self,
        store_id: int,
        external: ExternalProduct,
        adapter: PlatformAdapter,
        currency: str,
    ) -> SyncAction:
        if not (external.name or external.sku or external.slug):
            logger.warning(f"Skipping product {external.id}: no name, SKU or slug")
            return SyncAction.SKIPPED

        check = self.detector.find_duplicates(DuplicateCheckInput(
            sku=external.sku or None,
            handle=external.slug or None,
            title=external.name,
        ))

        fields = {
            "title": external.name,
            "description": external.description or external.short_description or None,
            "handle": external.slug or None,
            "categories": [c.name for c in external.categories],
            "images": [img.src for img in external.images],
            "raw_payload": external.model_dump(mode="json"),
        }

        if check.found:
            logger.info(f"Duplicate found ({check.method.value}): {external.name}")
            product = self.repos.products.get(check.match.id)
            self.repos.products.update(product, fields)
            action = SyncAction.UPDATED
        else:
            logger.info(f"Creating new product: {external.name}")
            product = self.repos.products.create({
                **fields,
                "brand_id": None,
                "vendor": None,
                "is_shared": False,
                "options": external.attributes or None,
            })
            action = SyncAction.CREATED

        self._sync_variants(product, external, adapter, currency)
        self._upsert_mapping(store_id, product.id, external)
        return action

    def _sync_variants(self, product: Product, external: ExternalProduct, adapter: PlatformAdapter, currency: str):
        if external.type == "variable":
            self._sync_variations(product, external, adapter, currency)
        elif external.type == "simple":
            self._sync_simple_variant(product, external, currency)
        else:
            logger.debug(f"No variant sync for {external.type} product {external.id}")

    def _sync_simple_variant(self, product: Product, external: ExternalProduct, currency: str):
        price, compare_at_price = resolve_variant_prices(
            external.price, external.regular_price, external.sale_price
        )
        data = {
            "price": price,
            "compare_at_price": compare_at_price,
            "currency": currency,
            "featured_image": external.images[0].src if external.images else None,
            "raw_payload": {
                "id": external.id,
                "regular_price": external.regular_price,
                "sale_price": external.sale_price,
                "on_sale": external.on_sale,
            },
        }

        if external.sku:
            self.repos.variants.upsert_by_sku(external.sku, product.id, data)
            logger.debug(f"Simple product variant synced: SKU={external.sku}, Price={price}")
            return

        existing = self.repos.variants.list_for_product(product.id)
        if existing:
            self.repos.variants.update(existing[0], data)
            logger.debug(f"Simple product variant updated (no SKU) for product {product.id}")
        else:
            self.repos.variants.create(product.id, {**data, "sku": None})
            logger.debug(f"Simple product variant created (no SKU) for product {product.id}")

    def _sync_variations(self, product: Product, external: ExternalProduct, adapter: PlatformAdapter, currency: str):
        if not external.variations:
            return

        logger.info(f"Variable product {external.id} with {len(external.variations)} variations")
        for variation_id in external.variations:
            try:
                variation = adapter.get_variation(external.id, variation_id)
                # a failed variation rolls back only its own savepoint
                with self.db.begin_nested():
                    self._upsert_variation(product, external, variation, adapter, currency)
            except Exception as e:
                logger.error(f"Error syncing variation {variation_id} of product {external.id}: {e}")

    def _upsert_variation(
        self,
        product: Product,
        external: ExternalProduct,
        variation: ExternalVariation,
        adapter: PlatformAdapter,
        currency: str,
    ):
        price, compare_at_price = resolve_variant_prices(
            variation.price, variation.regular_price, variation.sale_price
        )
        sku = variation.sku or f"{adapter.sku_prefix}-{external.id}-VAR-{variation.id}"

        self.repos.variants.upsert_by_sku(sku, product.id, {
            "price": price,
            "compare_at_price": compare_at_price,
            "currency": currency,
            "featured_image": variation.image.src if variation.image else None,
            "raw_payload": {
                "id": variation.id,
                "regular_price": variation.regular_price,
                "sale_price": variation.sale_price,
                "on_sale": variation.on_sale,
                "attributes": variation.attributes,
                "stock_quantity": variation.stock_quantity,
                "stock_status": variation.stock_status,
            },
        })
        logger.debug(f"Variation synced: SKU={sku}, Price={price}")

    def _upsert_mapping(self, store_id: int, product_id: int, external: ExternalProduct):
        """Create or refresh the single (store, product) mapping row."""
        fields = {
            "external_id": str(external.id),
            "is_active": external.status == "publish",
            "last_synced_at": datetime.now(timezone.utc),
            "sync_source": self.sync_source.value,
        }

        if self.repos.mappings.get(store_id, product_id):
            self.repos.mappings.update(store_id, product_id, fields)
        else:
            self.repos.mappings.create(store_id, product_id, fields)
