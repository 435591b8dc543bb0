from decimal import Decimal

import pytest

from multistore.exceptions import StoreMappingNotFoundError
from multistore.schemas.price import (
    AdjustmentOverride,
    AdjustmentType,
    AdjustmentUnit,
    CustomPrice,
    NoOverride,
    PriceAdjustmentRule,
    PriceSource,
)
from multistore.services.price_resolver import PriceResolver, apply_price_adjustment, resolve_price


@pytest.fixture
def resolver(repos):
    return PriceResolver(repos, default_currency="USD")


def rule(type, value, unit=AdjustmentUnit.PERCENT):
    return PriceAdjustmentRule(type=type, value=Decimal(value), unit=unit)


@pytest.mark.parametrize("adjustment, expected", [
    (rule(AdjustmentType.MARKUP, "20"), Decimal("120.00")),
    (rule(AdjustmentType.DISCOUNT, "10", AdjustmentUnit.AMOUNT), Decimal("90.00")),
    (rule(AdjustmentType.FIXED, "49.99"), Decimal("49.99")),
    (rule(AdjustmentType.FIXED, "49.99", AdjustmentUnit.AMOUNT), Decimal("49.99")),
    (rule(AdjustmentType.DISCOUNT, "15"), Decimal("85.00")),
    (rule(AdjustmentType.MARKUP, "5", AdjustmentUnit.AMOUNT), Decimal("105.00")),
])
def test_apply_price_adjustment(adjustment, expected):
    assert apply_price_adjustment(Decimal("100.00"), adjustment) == expected


def test_adjustment_rounds_to_cents():
    assert apply_price_adjustment(Decimal("19.99"), rule(AdjustmentType.MARKUP, "15")) == Decimal("22.99")


def test_oversized_discount_goes_negative():
    # not clamped
    result = apply_price_adjustment(Decimal("100.00"), rule(AdjustmentType.DISCOUNT, "150", AdjustmentUnit.AMOUNT))
    assert result == Decimal("-50.00")


def test_resolve_price_tiers():
    master = (Decimal("100.00"), Decimal("120.00"), "USD")

    assert resolve_price(*master, NoOverride()).source == PriceSource.MASTER

    custom = resolve_price(*master, CustomPrice(price=Decimal("79.99")))
    assert custom.source == PriceSource.STORE_OVERRIDE
    assert custom.price == Decimal("79.99")
    assert custom.compare_at_price is None
    assert custom.currency == "USD"

    adjusted = resolve_price(*master, AdjustmentOverride(rule=rule(AdjustmentType.DISCOUNT, "10")))
    assert adjusted.source == PriceSource.AUTO_ADJUSTED
    assert adjusted.price == Decimal("90.00")
    assert adjusted.compare_at_price == Decimal("108.00")


def test_master_price_without_store(make_product, resolver):
    product = make_product("Desk Lamp", price="100.00", compare_at_price="150.00")

    result = resolver.get_product_with_price(product.id)

    assert result.display_price == Decimal("100.00")
    assert result.display_compare_at_price == Decimal("150.00")
    assert result.display_currency == "USD"
    assert result.price_source == PriceSource.MASTER
    assert result.mapping is None


def test_product_without_variants_defaults_to_zero(make_product, resolver):
    product = make_product("Gift Card", price=None)

    result = resolver.get_product_with_price(product.id)

    assert result.display_price == Decimal("0.00")
    assert result.display_currency == "USD"


def test_missing_product_returns_none(resolver):
    assert resolver.get_product_with_price(9999) is None


def test_unmapped_store_falls_back_to_master(make_store, make_product, resolver):
    store = make_store()
    product = make_product("Desk Lamp", price="100.00")

    result = resolver.get_product_with_price(product.id, store.id)

    assert result.price_source == PriceSource.MASTER
    assert result.display_price == Decimal("100.00")


def test_percent_discount_rule_on_store(make_store, make_product, make_mapping, resolver):
    store = make_store()
    product = make_product("Desk Lamp", price="100.00")
    make_mapping(store, product, price_adjustment={"type": "discount", "value": "15", "unit": "percent"})

    result = resolver.get_product_with_price(product.id, store.id)

    assert result.display_price == Decimal("85.00")
    assert result.price_source == PriceSource.AUTO_ADJUSTED


def test_custom_price_wins_over_rule_on_the_same_mapping(make_store, make_product, make_mapping, resolver):
    store = make_store()
    product = make_product("Desk Lamp", price="100.00")
    make_mapping(
        store, product,
        custom_price=Decimal("70.00"),
        custom_currency="EUR",
        price_adjustment={"type": "markup", "value": "50", "unit": "percent"},
    )

    result = resolver.get_product_with_price(product.id, store.id)

    assert result.price_source == PriceSource.STORE_OVERRIDE
    assert result.display_price == Decimal("70.00")
    assert result.display_currency == "EUR"


def test_custom_title_and_description_replace_master_text(make_store, make_product, make_mapping, resolver):
    store = make_store()
    product = make_product("Desk Lamp")
    make_mapping(store, product, custom_title="Reading Lamp", custom_description="Warm light")

    result = resolver.get_product_with_price(product.id, store.id)

    assert result.title == "Reading Lamp"
    assert result.description == "Warm light"


def test_setting_custom_price_clears_rule_and_back(db, make_store, make_product, make_mapping, resolver):
    store = make_store()
    product = make_product("Desk Lamp", price="100.00")
    make_mapping(store, product, price_adjustment={"type": "markup", "value": "10", "unit": "percent"})

    mapping = resolver.set_store_price(product.id, store.id, Decimal("80.00"), Decimal("95.00"))
    assert mapping.custom_price == Decimal("80.00")
    assert mapping.custom_compare_at_price == Decimal("95.00")
    assert mapping.price_adjustment is None

    mapping = resolver.set_store_price_adjustment(product.id, store.id, rule(AdjustmentType.DISCOUNT, "5"))
    assert mapping.custom_price is None
    assert mapping.custom_compare_at_price is None
    assert mapping.price_adjustment == {"type": "discount", "value": "5", "unit": "percent"}

    resolved = resolver.get_product_with_price(product.id, store.id)
    assert resolved.display_price == Decimal("95.00")
    assert resolved.price_source == PriceSource.AUTO_ADJUSTED


def test_clearing_one_override_keeps_the_other(make_store, make_product, make_mapping, resolver):
    store = make_store()
    product = make_product("Desk Lamp", price="100.00")
    make_mapping(store, product, price_adjustment={"type": "markup", "value": "10", "unit": "percent"})

    # no custom price to remove, so the rule stays
    mapping = resolver.set_store_price(product.id, store.id, None)
    assert mapping.price_adjustment is not None

    mapping = resolver.set_store_price_adjustment(product.id, store.id, None)
    assert mapping.price_adjustment is None
    assert resolver.get_product_with_price(product.id, store.id).price_source == PriceSource.MASTER


def test_write_helpers_pass_values_through(make_store, make_product, make_mapping, resolver):
    store = make_store()
    product = make_product("Desk Lamp", price="100.00")
    make_mapping(store, product)

    mapping = resolver.set_store_price(product.id, store.id, Decimal("-5.00"))

    assert mapping.custom_price == Decimal("-5.00")


def test_writing_price_for_unmapped_product_raises(make_store, make_product, resolver):
    store = make_store()
    product = make_product("Desk Lamp")

    with pytest.raises(StoreMappingNotFoundError):
        resolver.set_store_price(product.id, store.id, Decimal("10.00"))
    with pytest.raises(StoreMappingNotFoundError):
        resolver.set_store_price_adjustment(product.id, store.id, None)


def test_compare_product_prices_across_stores(make_store, make_product, make_mapping, resolver):
    plain = make_store(name="Plain Store")
    custom = make_store(name="Custom Store")
    adjusted = make_store(name="Markup Store")
    product = make_product("Desk Lamp", price="100.00")
    make_mapping(plain, product)
    make_mapping(custom, product, custom_price=Decimal("89.00"))
    make_mapping(adjusted, product, price_adjustment={"type": "markup", "value": "20", "unit": "percent"})

    comparison = resolver.compare_product_prices(product.id)

    assert comparison.master_price == Decimal("100.00")
    entries = {e.store_name: e for e in comparison.stores}
    assert entries["Plain Store"].price == Decimal("100.00")
    assert entries["Plain Store"].price_source == PriceSource.MASTER
    assert entries["Custom Store"].price == Decimal("89.00")
    assert entries["Custom Store"].price_source == PriceSource.STORE_OVERRIDE
    assert entries["Markup Store"].price == Decimal("120.00")
    assert entries["Markup Store"].adjustment.type == AdjustmentType.MARKUP


def test_store_products_are_paginated_and_resolved(make_store, make_product, make_mapping, resolver):
    store = make_store()
    for index in range(3):
        product = make_product(f"Lamp {index}", price="10.00")
        make_mapping(store, product, display_order=index, custom_price=Decimal("9.00") if index == 1 else None)

    first_page = resolver.get_store_products(store.id, page=1, page_size=2)
    second_page = resolver.get_store_products(store.id, page=2, page_size=2)

    assert first_page.total == 3
    assert [p.title for p in first_page.products] == ["Lamp 0", "Lamp 1"]
    assert first_page.products[1].display_price == Decimal("9.00")
    assert first_page.products[1].price_source == PriceSource.STORE_OVERRIDE
    assert [p.title for p in second_page.products] == ["Lamp 2"]


def test_store_products_filtered_by_active_flag(make_store, make_product, make_mapping, resolver):
    store = make_store()
    make_mapping(store, make_product("Shown"), is_active=True)
    make_mapping(store, make_product("Hidden"), is_active=False)

    page = resolver.get_store_products(store.id, is_active=False)

    assert page.total == 1
    assert page.products[0].title == "Hidden"


def test_zero_master_compare_at_price_is_still_adjusted():
    adjusted = resolve_price(
        Decimal("10.00"), Decimal("0.00"), "USD",
        AdjustmentOverride(rule=rule(AdjustmentType.MARKUP, "5", AdjustmentUnit.AMOUNT)),
    )

    assert adjusted.compare_at_price == Decimal("5.00")

    no_compare = resolve_price(
        Decimal("10.00"), None, "USD", AdjustmentOverride(rule=rule(AdjustmentType.MARKUP, "20"))
    )
    assert no_compare.compare_at_price is None
