from sqlalchemy import Column, Integer, String, ForeignKey, Text, Boolean, DateTime, Numeric, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from multistore.database import Base
from multistore.schemas.price import NoOverride, CustomPrice, AdjustmentOverride, PriceAdjustmentRule


class StoreProductMap(Base):
    """How one master product appears in one store: external id, text and price overrides, sync state."""
    __tablename__ = "store_product_map"

    id = Column(Integer, primary_key=True, index=True)
    store_id = Column(Integer, ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)

    external_id = Column(String(100))  # product id on the store's platform
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    display_order = Column(Integer)

    # Per-store display text
    custom_title = Column(String(500))
    custom_description = Column(Text)

    # Per-store pricing: either a custom price or an adjustment rule, never both
    custom_price = Column(Numeric(10, 2))
    custom_compare_at_price = Column(Numeric(10, 2))
    custom_currency = Column(String(3))
    price_adjustment = Column(JSON)  # {"type": ..., "value": ..., "unit": ...}

    last_synced_at = Column(DateTime(timezone=True), index=True)
    sync_source = Column(String(20))  # 'WOO', 'WEB_PUSH', 'SHOPIFY_IMPORT'

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # One row per store + product
    __table_args__ = (
        UniqueConstraint("store_id", "product_id", name="uq_store_product_map"),
    )

    # Relationships
    store = relationship("Store", back_populates="product_mappings")
    product = relationship("Product", back_populates="store_mappings")

    @property
    def price_override(self):
        """Pricing columns as a single override value; a custom price wins over a rule."""
        if self.custom_price is not None:
            return CustomPrice(
                price=self.custom_price,
                compare_at_price=self.custom_compare_at_price,
                currency=self.custom_currency,
            )
        if self.price_adjustment:
            return AdjustmentOverride(rule=PriceAdjustmentRule.model_validate(self.price_adjustment))
        return NoOverride()
