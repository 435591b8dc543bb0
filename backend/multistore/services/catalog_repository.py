"""
Repository layer for the master catalog, stores, and store-product mappings.

Each repository wraps one SQLAlchemy session. Writes only flush; the service driving the
unit of work decides when to commit or roll back.
"""
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from multistore.models import Product, ProductVariant, Store, StorePlatform, StoreProductMap
from multistore.services.credentials import encrypt_secret


def escape_like(value: str) -> str:
    """Make LIKE wildcards in user text match literally (escape character is backslash)."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ProductRepository:
    """Repository for master Product operations"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: int) -> Optional[Product]:
        return self.db.get(Product, product_id)

    def create(self, data: dict) -> Product:
        product = Product(**data)
        self.db.add(product)
        self.db.flush()
        return product

    def update(self, product: Product, data: dict) -> Product:
        for field, value in data.items():
            setattr(product, field, value)
        self.db.flush()
        return product

    def find_by_handle(self, handle: str, exclude_id: Optional[int] = None) -> Optional[Product]:
        query = self.db.query(Product).filter(Product.handle == handle)
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        return query.order_by(Product.id).first()

    def search_by_keywords(
        self,
        keywords: List[str],
        exclude_id: Optional[int] = None,
        limit: int = 50
    ) -> List[Product]:
        """Products whose title contains any keyword (case-insensitive)."""
        if not keywords:
            return []

        query = self.db.query(Product).filter(
            or_(*[Product.title.ilike(f"%{escape_like(keyword)}%", escape="\\") for keyword in keywords])
        )
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        return query.order_by(Product.id).limit(limit).all()

    def find_handle_duplicates(self) -> List[Tuple[str, List[Product]]]:
        """Handles shared by more than one product, with the products sharing them."""
        handles = self.db.query(Product.handle).filter(
            Product.handle.isnot(None)
        ).group_by(Product.handle).having(func.count(Product.id) > 1).all()

        groups = []
        for (handle,) in handles:
            products = self.db.query(Product).filter(Product.handle == handle).order_by(Product.id).all()
            groups.append((handle, products))
        return groups


class VariantRepository:
    """Repository for ProductVariant operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_sku(self, sku: str) -> Optional[ProductVariant]:
        return self.db.query(ProductVariant).filter(ProductVariant.sku == sku).first()

    def find_by_sku(self, sku: str, exclude_product_id: Optional[int] = None) -> Optional[ProductVariant]:
        """Variant with this SKU, ignoring variants of the excluded product."""
        query = self.db.query(ProductVariant).options(
            joinedload(ProductVariant.product)
        ).filter(ProductVariant.sku == sku)
        if exclude_product_id is not None:
            query = query.filter(ProductVariant.product_id != exclude_product_id)
        return query.order_by(ProductVariant.id).first()

    def list_for_product(self, product_id: int) -> List[ProductVariant]:
        return self.db.query(ProductVariant).filter(
            ProductVariant.product_id == product_id
        ).order_by(ProductVariant.id).all()

    def create(self, product_id: int, data: dict) -> ProductVariant:
        variant = ProductVariant(product_id=product_id, **data)
        self.db.add(variant)
        self.db.flush()
        return variant

    def update(self, variant: ProductVariant, data: dict) -> ProductVariant:
        for field, value in data.items():
            setattr(variant, field, value)
        self.db.flush()
        return variant

    def delete_for_product(self, product: Product) -> int:
        """Remove every variant of a product; returns how many were removed."""
        count = len(product.variants)
        product.variants.clear()
        self.db.flush()
        return count

    def upsert_by_sku(self, sku: str, product_id: int, data: dict) -> ProductVariant:
        """Update the variant carrying this SKU, or create it on the given product."""
        existing = self.get_by_sku(sku)
        if existing:
            return self.update(existing, {**data, "sku": sku})
        return self.create(product_id, {**data, "sku": sku})

    def find_sku_duplicates(self) -> List[Tuple[str, List[Product]]]:
        """SKUs carried by more than one variant, with the owning products."""
        skus = self.db.query(ProductVariant.sku).filter(
            ProductVariant.sku.isnot(None)
        ).group_by(ProductVariant.sku).having(func.count(ProductVariant.id) > 1).all()

        groups = []
        for (sku,) in skus:
            variants = self.db.query(ProductVariant).options(
                joinedload(ProductVariant.product)
            ).filter(ProductVariant.sku == sku).order_by(ProductVariant.id).all()
            groups.append((sku, [v.product for v in variants]))
        return groups


class StoreRepository:
    """Repository for Store operations"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, store_id: int) -> Optional[Store]:
        return self.db.get(Store, store_id)

    def create(self, data: dict) -> Store:
        """Add a store, encrypting its consumer secret."""
        data = {**data, "consumer_secret": encrypt_secret(data.get("consumer_secret"))}
        store = Store(**data)
        self.db.add(store)
        self.db.flush()
        return store

    def list(
        self,
        platform: Optional[StorePlatform] = None,
        is_active: Optional[bool] = None
    ) -> List[Store]:
        query = self.db.query(Store)
        if platform is not None:
            query = query.filter(Store.platform == platform)
        if is_active is not None:
            query = query.filter(Store.is_active == is_active)
        return query.order_by(Store.id).all()


class StoreProductMapRepository:
    """Repository for store-product mappings, keyed by (store_id, product_id)"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, store_id: int, product_id: int) -> Optional[StoreProductMap]:
        return self.db.query(StoreProductMap).filter(
            StoreProductMap.store_id == store_id,
            StoreProductMap.product_id == product_id
        ).first()

    def create(self, store_id: int, product_id: int, data: dict) -> StoreProductMap:
        """Insert a mapping; a second row for the same pair fails with IntegrityError."""
        mapping = StoreProductMap(store_id=store_id, product_id=product_id, **data)
        self.db.add(mapping)
        self.db.flush()
        return mapping

    def update(self, store_id: int, product_id: int, data: dict) -> Optional[StoreProductMap]:
        mapping = self.get(store_id, product_id)
        if not mapping:
            return None

        for field, value in data.items():
            setattr(mapping, field, value)
        self.db.flush()
        return mapping

    def delete(self, store_id: int, product_id: int) -> bool:
        mapping = self.get(store_id, product_id)
        if not mapping:
            return False

        self.db.delete(mapping)
        self.db.flush()
        return True

    def list_for_store(
        self,
        store_id: int,
        page: int = 1,
        page_size: int = 20,
        is_active: Optional[bool] = None
    ) -> Tuple[List[StoreProductMap], int]:
        """Paginated mappings of a store with their products and variants loaded."""
        query = self.db.query(StoreProductMap).filter(StoreProductMap.store_id == store_id)
        if is_active is not None:
            query = query.filter(StoreProductMap.is_active == is_active)

        total = query.count()

        mappings = query.options(
            joinedload(StoreProductMap.product).joinedload(Product.variants)
        ).order_by(
            StoreProductMap.display_order,
            StoreProductMap.created_at.desc(),
            StoreProductMap.id
        ).offset((page - 1) * page_size).limit(page_size).all()

        return mappings, total

    def list_for_product(self, product_id: int) -> List[StoreProductMap]:
        """All mappings of a product, with their stores loaded."""
        return self.db.query(StoreProductMap).options(
            joinedload(StoreProductMap.store)
        ).filter(
            StoreProductMap.product_id == product_id
        ).order_by(StoreProductMap.store_id).all()

    def last_synced_at(self, store_id: int) -> Optional[datetime]:
        return self.db.query(func.max(StoreProductMap.last_synced_at)).filter(
            StoreProductMap.store_id == store_id
        ).scalar()


class CatalogRepositories:
    """The four repositories bound to one session, handed to the catalog services."""

    def __init__(self, db: Session):
        self.db = db
        self.products = ProductRepository(db)
        self.variants = VariantRepository(db)
        self.stores = StoreRepository(db)
        self.mappings = StoreProductMapRepository(db)
