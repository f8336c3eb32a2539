"""
Order Models - local mirror of marketplace orders
"""
import enum
from sqlalchemy import Column, String, Numeric, Integer, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from profitnav.core import Base
from .base import UUIDMixin, TimestampMixin, OwnedMixin


class OrderStatus(str, enum.Enum):
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    RETURNED = "returned"
    CANCELLED = "cancelled"


# Orders in these states never count towards financial totals
EXCLUDED_STATUSES = (OrderStatus.CANCELLED.value, OrderStatus.RETURNED.value)


class Order(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """Order Header"""
    __tablename__ = "orders"

    external_order_id = Column(String(100), nullable=False)
    date = Column(DateTime(timezone=True), index=True)

    # Status
    status = Column(String(20), default=OrderStatus.PAID.value, nullable=False, index=True)
    status_raw = Column(String(50))  # Original marketplace status

    buyer_nickname = Column(String(200))

    # Marketplace-sourced amounts (refreshed by sync)
    gross_total = Column(Numeric(12, 2), default=0)  # informational only
    discounts_total = Column(Numeric(12, 2), default=0)
    fees_total = Column(Numeric(12, 2), default=0)  # gross commission

    # Seller-entered amounts (never overwritten by sync)
    shipping_total = Column(Numeric(12, 2), default=0)
    shipping_seller = Column(Numeric(12, 2), default=0)
    fee_discount_total = Column(Numeric(12, 2), default=0)
    taxes_total = Column(Numeric(12, 2), default=0)
    ads_total = Column(Numeric(12, 2), default=0)
    packaging_cost = Column(Numeric(12, 2), default=0)
    processing_cost = Column(Numeric(12, 2), default=0)

    # Relationships
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.line_no",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "external_order_id", name="uq_order_user_external"),
    )

    def __repr__(self):
        return f"<Order {self.external_order_id} {self.status}>"


class OrderItem(Base, UUIDMixin, OwnedMixin):
    """Order Item/Line"""
    __tablename__ = "order_item"

    order_id = Column(Uuid(as_uuid=True), ForeignKey("orders.id"), nullable=False, index=True)
    line_no = Column(Integer, default=1, nullable=False)

    # Natural key within the order: item id, plus variation id when present
    external_line_id = Column(String(120), nullable=False)
    external_item_id = Column(String(100))

    sku = Column(String(100))
    product_name = Column(String(300))
    quantity = Column(Integer, default=1, nullable=False)
    unit_price = Column(Numeric(12, 2), default=0)
    unit_discount = Column(Numeric(12, 2), default=0)
    unit_cost = Column(Numeric(12, 2), default=0)  # seller-supplied

    # Relationships
    order = relationship("Order", back_populates="items")

    __table_args__ = (
        UniqueConstraint("order_id", "external_line_id", name="uq_order_item_line"),
    )
