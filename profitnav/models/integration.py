"""
Integration Models - marketplace credential, sync runs, OAuth state
"""
import enum
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, Boolean, Integer, DateTime, JSON
from profitnav.core import Base
from .base import UUIDMixin, TimestampMixin, OwnedMixin


def _utcnow():
    return datetime.now(timezone.utc)


class MarketplaceCredential(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """
    Delegated-access token for one seller account (one per user)
    """
    __tablename__ = "marketplace_credential"

    external_account_id = Column(String(50), nullable=False)  # marketplace seller id
    nickname = Column(String(200))
    email = Column(String(200))
    site_id = Column(String(10), default="MLB")

    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text)  # marketplace may omit it
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    last_sync_at = Column(DateTime(timezone=True))
    # Per-user sync lease; a sync may only start when this is null or in the past
    sync_lease_until = Column(DateTime(timezone=True))
    sync_lease_owner = Column(String(64))  # nonce of the run holding the lease

    def __repr__(self):
        return f"<MarketplaceCredential {self.user_id}:{self.external_account_id}>"


class SyncRunStatus(str, enum.Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class SyncRun(Base, UUIDMixin, OwnedMixin):
    """
    Audit record, one per sync invocation
    """
    __tablename__ = "sync_run"

    sync_type = Column(String(20), default="all", nullable=False)  # all, orders, listings
    full_sync = Column(Boolean, default=False, nullable=False)
    started_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    finished_at = Column(DateTime(timezone=True))
    status = Column(String(20), default=SyncRunStatus.RUNNING.value, nullable=False)
    records_synced = Column(Integer, default=0, nullable=False)

    error_message = Column(Text)
    # Stats JSON: {"orders_inserted": 10, "items_inserted": 12, ...}
    stats = Column(JSON, default=dict)

    def __repr__(self):
        return f"<SyncRun {self.id} {self.status}>"

    def mark_completed(self, records_synced: int, stats: dict, error_message: str = None):
        self.status = SyncRunStatus.COMPLETED.value
        self.finished_at = _utcnow()
        self.records_synced = records_synced
        self.stats = stats
        self.error_message = error_message

    def mark_failed(self, error_message: str, stats: dict = None):
        self.status = SyncRunStatus.FAILED.value
        self.finished_at = _utcnow()
        self.error_message = error_message[:1000]
        if stats is not None:
            self.stats = stats


class OAuthState(Base, UUIDMixin, OwnedMixin):
    """
    Pending OAuth authorization, binds the callback to the user who started it
    """
    __tablename__ = "oauth_state"

    state = Column(String(64), nullable=False, unique=True, index=True)
    redirect_uri = Column(String(500), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    consumed_at = Column(DateTime(timezone=True))
