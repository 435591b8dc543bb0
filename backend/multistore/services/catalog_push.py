"""
Catalog Push Service

Publishes master products to a store's commerce platform.

Before creating a product remotely it checks the store mapping and the platform
itself (by SKU) so the same product is not created twice. Push problems are
reported in the PushResult instead of being raised.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from multistore.config import get_settings
from multistore.exceptions import SyncConfigurationError
from multistore.models import Product, ProductVariant, StorePlatform
from multistore.schemas.price import NoOverride
from multistore.schemas.push import PushOptions, PushResult
from multistore.schemas.sync import SyncAction, SyncSource
from multistore.services.catalog_repository import CatalogRepositories
from multistore.services.catalog_sync import AdapterFactory, get_syncable_store
from multistore.services.platform_adapter import PlatformAdapter
from multistore.services.price_resolver import master_price_of, resolve_price
from multistore.services.woocommerce import WooCommerceAdapter

logger = logging.getLogger(__name__)

SHORT_DESCRIPTION_LENGTH = 200


def build_product_payload(
    product: Product,
    variants: list[ProductVariant],
    title: str,
    description: Optional[str],
    price: Optional[Decimal],
    compare_at_price: Optional[Decimal],
    status: str = "publish",
    skip_images: bool = False,
) -> dict:
    """WooCommerce product body for a master product, published as a simple product."""
    payload = {
        "name": title,
        "type": "simple",
        "status": status,
        "description": description or "",
        "short_description": (description or "")[:SHORT_DESCRIPTION_LENGTH],
        "categories": [{"name": name} for name in product.categories or []],
        "images": [] if skip_images else [
            {"src": src, "position": index} for index, src in enumerate(product.images or [])
        ],
    }
    if product.handle:
        payload["slug"] = product.handle

    if variants:
        if variants[0].sku:
            payload["sku"] = variants[0].sku
        if price is not None:
            payload["regular_price"] = str(price)
        if compare_at_price:
            # WooCommerce models a discount as regular price + sale price
            payload["regular_price"] = str(compare_at_price)
            payload["sale_price"] = str(price) if price is not None else ""
        payload["stock_status"] = "instock"

    return payload


class CatalogPublisher:
    """Pushes master products to WooCommerce stores."""

    platform = StorePlatform.WOO
    sync_source = SyncSource.WEB_PUSH

    def __init__(self, repos: CatalogRepositories, adapter_factory: AdapterFactory = WooCommerceAdapter.from_store):
        self.repos = repos
        self.db = repos.db
        self.adapter_factory = adapter_factory

    def push_product_to_store(self, product_id: int, store_id: int, options: Optional[PushOptions] = None) -> PushResult:
        options = options or PushOptions()

        product = self.repos.products.get(product_id)
        if not product:
            return PushResult(success=False, action=SyncAction.SKIPPED, error=f"Product not found: {product_id}")

        try:
            store = get_syncable_store(self.repos, store_id, self.platform)
        except SyncConfigurationError as e:
            return PushResult(success=False, action=SyncAction.SKIPPED, error=str(e))

        mapping = self.repos.mappings.get(store_id, product_id)
        if mapping and mapping.external_id and not options.force_update:
            return PushResult(
                success=True,
                action=SyncAction.SKIPPED,
                external_id=mapping.external_id,
                error="Product already exists on store (use force_update to update)",
            )

        store_name = store.name
        adapter = self.adapter_factory(store)
        try:
            variants = self.repos.variants.list_for_product(product_id)
            sku = variants[0].sku if variants else None

            if sku and not options.force_update and self._exists_on_platform(adapter, sku):
                return PushResult(
                    success=True,
                    action=SyncAction.SKIPPED,
                    error=f"Product with SKU {sku} already exists on store",
                )

            master_price, master_compare_at_price, master_currency = master_price_of(
                product, get_settings().default_currency
            )
            resolved = resolve_price(
                master_price,
                master_compare_at_price,
                master_currency,
                mapping.price_override if mapping else NoOverride(),
            )

            payload = build_product_payload(
                product,
                variants,
                title=(mapping.custom_title if mapping else None) or product.title,
                description=(mapping.custom_description if mapping else None) or product.description,
                price=resolved.price if variants else None,
                compare_at_price=resolved.compare_at_price if variants else None,
                status=options.status,
                skip_images=options.skip_images,
            )

            if mapping and mapping.external_id and options.force_update:
                logger.info(f"Updating product {mapping.external_id} on {store_name}...")
                ref = adapter.update_product(mapping.external_id, payload)
                action = SyncAction.UPDATED
            else:
                logger.info(f"Creating product {product_id} on {store_name}...")
                ref = adapter.create_product(payload)
                action = SyncAction.CREATED

            fields = {
                "external_id": ref.external_id,
                "last_synced_at": datetime.now(timezone.utc),
                "sync_source": self.sync_source.value,
            }
            if mapping:
                self.repos.mappings.update(store_id, product_id, fields)
            else:
                self.repos.mappings.create(store_id, product_id, {**fields, "is_active": True})
            self.db.commit()

        except Exception as e:
            self.db.rollback()
            logger.error(f"Error pushing product {product_id} to {store_name}: {e}")
            return PushResult(success=False, action=SyncAction.SKIPPED, error=str(e))
        finally:
            adapter.close()

        return PushResult(success=True, action=action, external_id=ref.external_id, url=ref.permalink)

    def push_product_to_all_stores(self, product_id: int, options: Optional[PushOptions] = None) -> dict[int, PushResult]:
        """Push to every active store on this platform, one result per store id."""
        store_ids = [s.id for s in self.repos.stores.list(platform=self.platform, is_active=True)]
        logger.info(f"Pushing product {product_id} to {len(store_ids)} stores...")

        return {
            store_id: self.push_product_to_store(product_id, store_id, options)
            for store_id in store_ids
        }

    def update_product_on_store(self, product_id: int, store_id: int) -> PushResult:
        return self.push_product_to_store(product_id, store_id, PushOptions(force_update=True))

    def delete_product_from_store(self, product_id: int, store_id: int) -> bool:
        """Delete the remote product and its mapping. False when there was nothing to delete."""
        mapping = self.repos.mappings.get(store_id, product_id)
        if not mapping or not mapping.external_id:
            logger.info(f"No mapping for product {product_id} in store {store_id}, nothing to delete")
            return False

        external_id = mapping.external_id
        try:
            store = get_syncable_store(self.repos, store_id, self.platform)
            adapter = self.adapter_factory(store)
            try:
                adapter.delete_product(external_id, force=True)
            finally:
                adapter.close()

            self.repos.mappings.delete(store_id, product_id)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting product {product_id} from store {store_id}: {e}")
            return False

        logger.info(f"Deleted product {external_id} from store {store_id}")
        return True

    @staticmethod
    def _exists_on_platform(adapter: PlatformAdapter, sku: str) -> bool:
        try:
            return len(adapter.find_by_sku(sku)) > 0
        except Exception as e:
            logger.warning(f"Could not check SKU {sku} on platform: {e}")
            return False
