import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from decimal import Decimal

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from multistore.database import Base
from multistore.models import Product, ProductVariant, StorePlatform, StoreProductMap
from multistore.services.catalog_repository import CatalogRepositories
from multistore.services.duplicate_detection import DuplicateDetector

from fakes import FakeAdapter


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN
    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def repos(db):
    return CatalogRepositories(db)


@pytest.fixture
def detector(repos):
    return DuplicateDetector(repos.products, repos.variants)


@pytest.fixture
def make_store(db, repos):
    def _make_store(**kwargs):
        data = {
            "name": "Main Street Shop",
            "platform": StorePlatform.WOO,
            "domain": "https://shop.example.com",
            "is_active": True,
            "consumer_key": "ck_test",
            "consumer_secret": "cs_test",
            "currency": "USD",
        }
        data.update(kwargs)
        store = repos.stores.create(data)
        db.commit()
        return store
    return _make_store


@pytest.fixture
def make_product(db):
    def _make_product(title, handle=None, sku=None, price="100.00", compare_at_price=None, **kwargs):
        product = Product(title=title, handle=handle, categories=[], images=[], **kwargs)
        db.add(product)
        db.flush()
        if price is not None or sku is not None:
            db.add(ProductVariant(
                product_id=product.id,
                sku=sku,
                price=Decimal(price) if price is not None else None,
                compare_at_price=Decimal(compare_at_price) if compare_at_price is not None else None,
                currency="USD",
            ))
        db.commit()
        return product
    return _make_product


@pytest.fixture
def make_mapping(db):
    def _make_mapping(store, product, **kwargs):
        mapping = StoreProductMap(store_id=store.id, product_id=product.id, **kwargs)
        db.add(mapping)
        db.commit()
        return mapping
    return _make_mapping


@pytest.fixture
def fake_adapter():
    return FakeAdapter()
