"""FastAPI providers wiring the catalog services onto a request-scoped session."""
from fastapi import Depends
from sqlalchemy.orm import Session

from multistore.config import get_settings
from multistore.database import get_db
from multistore.services.catalog_push import CatalogPublisher
from multistore.services.catalog_repository import CatalogRepositories
from multistore.services.catalog_sync import CatalogSynchronizer
from multistore.services.duplicate_detection import DuplicateDetector
from multistore.services.price_resolver import PriceResolver
from multistore.services.shopify_import import ShopifyImporter


def get_repositories(db: Session = Depends(get_db)) -> CatalogRepositories:
    return CatalogRepositories(db)


def get_detector(repos: CatalogRepositories = Depends(get_repositories)) -> DuplicateDetector:
    return DuplicateDetector(repos.products, repos.variants)


def get_synchronizer(
    repos: CatalogRepositories = Depends(get_repositories),
    detector: DuplicateDetector = Depends(get_detector),
) -> CatalogSynchronizer:
    return CatalogSynchronizer(repos, detector)


def get_price_resolver(repos: CatalogRepositories = Depends(get_repositories)) -> PriceResolver:
    return PriceResolver(repos, default_currency=get_settings().default_currency)


def get_publisher(repos: CatalogRepositories = Depends(get_repositories)) -> CatalogPublisher:
    return CatalogPublisher(repos)


def get_shopify_importer(
    repos: CatalogRepositories = Depends(get_repositories),
    detector: DuplicateDetector = Depends(get_detector),
) -> ShopifyImporter:
    return ShopifyImporter(repos, detector)
