"""
Product & Inventory Models
"""
from sqlalchemy import Column, String, Numeric, Integer, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from profitnav.core import Base
from .base import UUIDMixin, TimestampMixin, OwnedMixin


class Product(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """Product Master (cost tracking)"""
    __tablename__ = "product"

    external_item_id = Column(String(100), index=True)  # listing this product was created from
    sku = Column(String(100), nullable=False)
    name = Column(String(300), nullable=False)
    category = Column(String(100))
    cost_unit = Column(Numeric(12, 2), default=0)

    # Relationships
    inventory = relationship("Inventory", back_populates="product", uselist=False, cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("user_id", "external_item_id", name="uq_product_user_item"),
    )


class Inventory(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """Stock position per product"""
    __tablename__ = "inventory"

    product_id = Column(Uuid(as_uuid=True), ForeignKey("product.id"), nullable=False, unique=True)
    available = Column(Integer, default=0, nullable=False)
    reserved = Column(Integer, default=0, nullable=False)
    min_stock = Column(Integer, default=10, nullable=False)  # Low stock alert threshold

    # Relationships
    product = relationship("Product", back_populates="inventory")
