"""
Fixed monthly overhead entries
"""
from sqlalchemy import Column, String, Numeric, Boolean
from profitnav.core import Base
from .base import UUIDMixin, TimestampMixin, OwnedMixin


class FixedCost(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """Recurring monthly cost (rent, software, salaries...)"""
    __tablename__ = "fixed_cost"

    name = Column(String(200), nullable=False)
    category = Column(String(100))
    amount_monthly = Column(Numeric(12, 2), default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
