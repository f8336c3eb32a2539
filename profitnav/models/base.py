"""
Base Model Mixins
"""
from sqlalchemy import Column, DateTime, String, Uuid, func
import uuid


class UUIDMixin:
    """Mixin for UUID primary key"""
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps"""
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class OwnedMixin:
    """Rows are partitioned by the identity provider's principal id"""
    user_id = Column(String(64), nullable=False, index=True)
