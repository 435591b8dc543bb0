import enum

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, JSON, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from multistore.database import Base


class StorePlatform(str, enum.Enum):
    WOO = "WOO"
    SHOPIFY = "SHOPIFY"


class Store(Base):
    __tablename__ = "stores"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    platform = Column(Enum(StorePlatform, name="store_platform"), nullable=False)
    domain = Column(String(255), nullable=False)  # 'https://shop.example.com'
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Platform credentials; the secret is Fernet-encrypted (see services/credentials.py)
    consumer_key = Column(String(255))
    consumer_secret = Column(String(512))

    description = Column(Text)
    country = Column(String(2))
    currency = Column(String(3), default="USD", nullable=False)
    settings = Column(JSON)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    product_mappings = relationship("StoreProductMap", back_populates="store", cascade="all, delete-orphan")

    @property
    def has_credentials(self) -> bool:
        return bool(self.consumer_key and self.consumer_secret)

    def __repr__(self):
        return f"<Store(id={self.id}, name='{self.name}', platform='{self.platform}')>"
