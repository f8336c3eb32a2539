"""
Listing Models - local mirror of marketplace catalog entries
"""
import enum
from sqlalchemy import Column, String, Numeric, Integer, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from profitnav.core import Base
from .base import UUIDMixin, TimestampMixin, OwnedMixin


class ListingStatus(str, enum.Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CLOSED = "closed"


class Listing(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """
    A catalog entry on the marketplace. The marketplace is authoritative;
    rows are written by sync and after successful listing actions.
    """
    __tablename__ = "listing"

    external_item_id = Column(String(100), nullable=False, index=True)
    title = Column(String(300))
    status = Column(String(20), default=ListingStatus.ACTIVE.value, nullable=False)
    substatus = Column(String(200))

    price = Column(Numeric(12, 2), default=0)
    original_price = Column(Numeric(12, 2))
    available_quantity = Column(Integer, default=0)
    sold_quantity = Column(Integer, default=0)

    # Display metadata
    listing_type = Column(String(50))
    logistic_type = Column(String(50))
    condition = Column(String(30))
    category_id = Column(String(50))
    site_id = Column(String(10))
    permalink = Column(String(500))
    thumbnail = Column(String(500))
    free_shipping = Column(Boolean, default=False)
    has_variations = Column(Boolean, default=False)

    remote_created_at = Column(DateTime(timezone=True))
    remote_updated_at = Column(DateTime(timezone=True))

    # Relationships
    variations = relationship("ListingVariation", back_populates="listing", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("user_id", "external_item_id", name="uq_listing_user_item"),
    )

    def __repr__(self):
        return f"<Listing {self.external_item_id} {self.status}>"


class ListingVariation(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """Variation (size/colour...) of a listing"""
    __tablename__ = "listing_variation"

    listing_id = Column(Uuid(as_uuid=True), ForeignKey("listing.id"), nullable=False, index=True)
    external_variation_id = Column(String(50), nullable=False)
    sku = Column(String(100))
    attributes = Column(JSON, default=list)
    price = Column(Numeric(12, 2), default=0)
    available_quantity = Column(Integer, default=0)
    sold_quantity = Column(Integer, default=0)

    # Relationships
    listing = relationship("Listing", back_populates="variations")

    __table_args__ = (
        UniqueConstraint("listing_id", "external_variation_id", name="uq_listing_variation"),
    )
