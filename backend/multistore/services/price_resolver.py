"""
Price Resolution Service

Works out which price a store shows for a product. First matching tier wins:

    STORE_OVERRIDE  custom price set on the store mapping
    AUTO_ADJUSTED   markup/discount/fixed rule applied to the master price
    MASTER          price of the product's first variant

A store mapping holds either a custom price or an adjustment rule. All writes go
through set_store_override, which stores one and clears the other.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from multistore.exceptions import StoreMappingNotFoundError
from multistore.models import Product, StoreProductMap
from multistore.schemas.price import (
    AdjustmentOverride,
    AdjustmentType,
    AdjustmentUnit,
    CustomPrice,
    NoOverride,
    PriceAdjustmentRule,
    PriceComparison,
    PriceOverride,
    PriceSource,
    ProductWithPrice,
    ResolvedPrice,
    StorePriceEntry,
    StoreProductsPage,
)
from multistore.schemas.product import ProductVariant as ProductVariantSchema
from multistore.schemas.product import StoreProductMap as StoreProductMapSchema
from multistore.services.catalog_repository import CatalogRepositories

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def apply_price_adjustment(base_price: Decimal, rule: PriceAdjustmentRule) -> Decimal:
    """
    Apply an adjustment rule to a base price.

    Results are not clamped: a discount larger than the base price yields a
    negative price. Callers that want to forbid that must validate the rule.

    Examples:
        markup 20 percent on 100.00 -> 120.00
        discount 10 amount on 100.00 -> 90.00
        fixed 49.99 on anything -> 49.99
    """
    if rule.type == AdjustmentType.FIXED:
        return to_money(rule.value)

    if rule.unit == AdjustmentUnit.PERCENT:
        if rule.type == AdjustmentType.MARKUP:
            multiplier = 1 + rule.value / 100
        else:
            multiplier = 1 - rule.value / 100
        return to_money(base_price * multiplier)

    if rule.type == AdjustmentType.MARKUP:
        return to_money(base_price + rule.value)
    return to_money(base_price - rule.value)


def master_price_of(product: Product, default_currency: str) -> tuple[Decimal, Optional[Decimal], str]:
    """Price, compare-at price and currency of the product's first variant."""
    variant = product.master_variant
    if variant is None:
        return Decimal("0.00"), None, default_currency

    price = to_money(variant.price) if variant.price is not None else Decimal("0.00")
    return price, to_money(variant.compare_at_price), variant.currency or default_currency


def resolve_price(
    master_price: Decimal,
    master_compare_at_price: Optional[Decimal],
    master_currency: str,
    override: PriceOverride,
) -> ResolvedPrice:
    if isinstance(override, CustomPrice):
        return ResolvedPrice(
            price=to_money(override.price),
            compare_at_price=to_money(override.compare_at_price),
            currency=override.currency or master_currency,
            source=PriceSource.STORE_OVERRIDE,
        )

    if isinstance(override, AdjustmentOverride):
        compare_at_price = None
        if master_compare_at_price is not None:
            compare_at_price = apply_price_adjustment(master_compare_at_price, override.rule)
        return ResolvedPrice(
            price=apply_price_adjustment(master_price, override.rule),
            compare_at_price=compare_at_price,
            currency=master_currency,
            source=PriceSource.AUTO_ADJUSTED,
        )

    return ResolvedPrice(
        price=master_price,
        compare_at_price=master_compare_at_price,
        currency=master_currency,
        source=PriceSource.MASTER,
    )


class PriceResolver:
    """Resolves and edits per-store product prices."""

    def __init__(self, repos: CatalogRepositories, default_currency: str = "USD"):
        self.repos = repos
        self.db = repos.db
        self.default_currency = default_currency

    def get_product_with_price(self, product_id: int, store_id: Optional[int] = None) -> Optional[ProductWithPrice]:
        """
        Product with the price it shows in a store, or its master price without a store.

        Returns None only when the product does not exist; a product the store does
        not carry falls back to the master price.
        """
        product = self.repos.products.get(product_id)
        if not product:
            return None

        mapping = None
        if store_id is not None:
            mapping = self.repos.mappings.get(store_id, product_id)

        return self._with_price(product, mapping)

    def get_store_products(
        self,
        store_id: int,
        page: int = 1,
        page_size: int = 20,
        is_active: Optional[bool] = None,
    ) -> StoreProductsPage:
        mappings, total = self.repos.mappings.list_for_store(
            store_id, page=page, page_size=page_size, is_active=is_active
        )
        return StoreProductsPage(
            products=[self._with_price(m.product, m) for m in mappings],
            total=total,
            page=page,
            page_size=page_size,
        )

    def compare_product_prices(self, product_id: int) -> Optional[PriceComparison]:
        """Resolved price of a product in every store it is mapped to."""
        product = self.repos.products.get(product_id)
        if not product:
            return None

        master_price, master_compare_at_price, master_currency = master_price_of(product, self.default_currency)

        stores = []
        for mapping in self.repos.mappings.list_for_product(product_id):
            override = mapping.price_override
            resolved = resolve_price(master_price, master_compare_at_price, master_currency, override)
            stores.append(StorePriceEntry(
                store_id=mapping.store_id,
                store_name=mapping.store.name,
                price=resolved.price,
                compare_at_price=resolved.compare_at_price,
                currency=resolved.currency,
                price_source=resolved.source,
                adjustment=override.rule if isinstance(override, AdjustmentOverride) else None,
            ))

        return PriceComparison(
            product_id=product.id,
            product_title=product.title,
            master_price=master_price,
            stores=stores,
        )

    def set_store_override(self, product_id: int, store_id: int, override: PriceOverride) -> StoreProductMap:
        """Replace the store's price override; the custom price and rule columns never coexist."""
        if isinstance(override, CustomPrice):
            fields = {
                "custom_price": override.price,
                "custom_compare_at_price": override.compare_at_price,
                "custom_currency": override.currency,
                "price_adjustment": None,
            }
        elif isinstance(override, AdjustmentOverride):
            fields = {
                "custom_price": None,
                "custom_compare_at_price": None,
                "custom_currency": None,
                "price_adjustment": override.rule.model_dump(mode="json"),
            }
        else:
            fields = {
                "custom_price": None,
                "custom_compare_at_price": None,
                "custom_currency": None,
                "price_adjustment": None,
            }

        mapping = self.repos.mappings.update(store_id, product_id, fields)
        if mapping is None:
            raise StoreMappingNotFoundError(store_id, product_id)

        self.db.commit()
        logger.info(f"Store {store_id} price for product {product_id} set to {override.kind}")
        return mapping

    def set_store_price(
        self,
        product_id: int,
        store_id: int,
        custom_price: Optional[Decimal],
        custom_compare_at_price: Optional[Decimal] = None,
        currency: Optional[str] = None,
    ) -> StoreProductMap:
        """Set a custom store price, clearing any adjustment rule. None removes the custom price."""
        if custom_price is None:
            return self.set_store_override(product_id, store_id, self._without(store_id, product_id, CustomPrice))

        return self.set_store_override(product_id, store_id, CustomPrice(
            price=custom_price,
            compare_at_price=custom_compare_at_price,
            currency=currency,
        ))

    def set_store_price_adjustment(
        self,
        product_id: int,
        store_id: int,
        rule: Optional[PriceAdjustmentRule],
    ) -> StoreProductMap:
        """Set an adjustment rule, clearing any custom price. None removes the rule."""
        if rule is None:
            return self.set_store_override(product_id, store_id, self._without(store_id, product_id, AdjustmentOverride))

        return self.set_store_override(product_id, store_id, AdjustmentOverride(rule=rule))

    def _without(self, store_id: int, product_id: int, kind) -> PriceOverride:
        """Current override with the given kind removed."""
        mapping = self.repos.mappings.get(store_id, product_id)
        if mapping is None:
            raise StoreMappingNotFoundError(store_id, product_id)

        current = mapping.price_override
        return NoOverride() if isinstance(current, kind) else current

    def _with_price(self, product: Product, mapping: Optional[StoreProductMap]) -> ProductWithPrice:
        master_price, master_compare_at_price, master_currency = master_price_of(product, self.default_currency)
        override = mapping.price_override if mapping else NoOverride()
        resolved = resolve_price(master_price, master_compare_at_price, master_currency, override)

        title = product.title
        description = product.description
        if mapping:
            title = mapping.custom_title or title
            description = mapping.custom_description or description

        return ProductWithPrice(
            id=product.id,
            title=title,
            description=description,
            handle=product.handle,
            vendor=product.vendor,
            brand_id=product.brand_id,
            is_shared=product.is_shared,
            categories=product.categories or [],
            images=product.images or [],
            display_price=resolved.price,
            display_compare_at_price=resolved.compare_at_price,
            display_currency=resolved.currency,
            price_source=resolved.source,
            variants=[ProductVariantSchema.model_validate(v) for v in product.variants],
            mapping=StoreProductMapSchema.model_validate(mapping) if mapping else None,
        )
