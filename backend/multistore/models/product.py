"""
Master catalog models.

A Product is stored once regardless of how many storefronts carry it. Prices live on
its variants; the first variant carries the master price used for store price
resolution.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Boolean, Numeric, JSON, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from multistore.database import Base


class Product(Base):
    """Master catalog entry shared by all stores."""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(500), nullable=False, index=True)
    handle = Column(String(255), index=True)  # URL slug, expected unique but not enforced
    description = Column(Text)
    vendor = Column(String(255))
    brand_id = Column(Integer)

    categories = Column(JSON, nullable=False, default=list)  # category names, unordered
    images = Column(JSON, nullable=False, default=list)  # image URLs, ordered
    options = Column(JSON)  # product attributes as reported upstream

    # Visible in the shared cross-store catalog
    is_shared = Column(Boolean, default=False, nullable=False)

    # Last external payload seen for this product (audit/debug only)
    raw_payload = Column(JSON)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariant.id",
    )
    store_mappings = relationship("StoreProductMap", back_populates="product", cascade="all, delete-orphan")

    @property
    def master_variant(self):
        """The variant whose price is the master price, if any."""
        return self.variants[0] if self.variants else None

    def __repr__(self):
        return f"<Product(id={self.id}, title='{self.title}')>"


class ProductVariant(Base):
    """Priced, SKU-addressable variant of a master product."""
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)

    # Natural key used for duplicate detection and upserts
    sku = Column(String(255), unique=True, index=True)

    price = Column(Numeric(10, 2))
    compare_at_price = Column(Numeric(10, 2))  # pre-discount reference price
    currency = Column(String(3))
    featured_image = Column(String(1000))
    raw_payload = Column(JSON)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="variants")

    __table_args__ = (
        Index("ix_product_variants_product_sku", "product_id", "sku"),
    )

    def __repr__(self):
        return f"<ProductVariant(id={self.id}, sku='{self.sku}')>"
