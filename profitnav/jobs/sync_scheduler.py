"""
Sync Scheduler - periodic incremental sync for every connected seller
"""
import asyncio
from typing import Dict, Optional
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from profitnav.core import settings
from profitnav.core.database import SessionLocal
from profitnav.core.exceptions import SyncInProgressError
from profitnav.integrations import BaseMarketplaceClient
from profitnav.models import MarketplaceCredential
from profitnav.services import credential_service
from profitnav.services.sync_service import MarketplaceSyncService

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler = None

SYNC_JOB_ID = "sync_all_sellers"


async def sync_all_now(
    session_factory=SessionLocal,
    client: Optional[BaseMarketplaceClient] = None,
) -> Dict[str, Dict]:
    """
    Incremental sync for every active credential, one user after another.
    A failing user is logged and does not stop the others.
    """
    client = client or credential_service.get_client()

    db = session_factory()
    try:
        user_ids = [
            row.user_id
            for row in db.query(MarketplaceCredential.user_id)
            .filter(MarketplaceCredential.is_active.is_(True))
            .all()
        ]
    finally:
        db.close()

    results = {}
    for user_id in user_ids:
        db = session_factory()
        try:
            stats = await MarketplaceSyncService(db, user_id, client).sync(full_sync=False)
            results[user_id] = {
                "status": "success",
                "records_synced": stats.records_synced,
                "partial_failures": stats.partial_failures,
            }
        except SyncInProgressError:
            logger.info(f"[ML Sync] Skipping user {user_id}: sync already running")
            results[user_id] = {"status": "skipped"}
        except Exception as e:
            logger.error(f"[ML Sync] Scheduled sync failed for user {user_id}: {e}")
            results[user_id] = {"status": "error", "error": str(e)}
        finally:
            db.close()

    logger.info(f"[ML Sync] Scheduled sync finished for {len(user_ids)} sellers")
    return results


class SyncScheduler:
    """
    Manages the periodic sync job
    """

    def __init__(self, interval_minutes: Optional[int] = None):
        self.scheduler = AsyncIOScheduler()
        self.interval_minutes = interval_minutes or settings.SYNC_INTERVAL_MINUTES
        self.is_running = False

    def start(self):
        """Start the scheduler"""
        if self.is_running:
            return

        self.scheduler.add_job(
            func=sync_all_now,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=SYNC_JOB_ID,
            name="Incremental sync for all sellers",
            replace_existing=True,
            max_instances=1,  # Prevent overlapping syncs
        )
        self.scheduler.start()
        self.is_running = True
        logger.info(f"Sync scheduler started, every {self.interval_minutes} minutes")

    def stop(self):
        """Stop the scheduler"""
        if self.is_running:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Sync scheduler stopped")


# ========== Global Functions ==========

def get_scheduler() -> SyncScheduler:
    """Get or create the global scheduler instance"""
    global _scheduler
    if _scheduler is None:
        _scheduler = SyncScheduler()
    return _scheduler


def start_scheduler():
    get_scheduler().start()


def stop_scheduler():
    global _scheduler
    if _scheduler:
        _scheduler.stop()
        _scheduler = None


# ========== CLI Commands ==========

if __name__ == "__main__":
    """
    Run standalone:
    python -m profitnav.jobs.sync_scheduler        # scheduler
    python -m profitnav.jobs.sync_scheduler sync   # one-time sync
    """
    import sys
    from profitnav.core.logging import configure_logging

    configure_logging()

    if len(sys.argv) > 1 and sys.argv[1] == "sync":
        asyncio.run(sync_all_now())
    else:
        print("Starting sync scheduler...")
        print("Press Ctrl+C to stop")

        async def _serve():
            start_scheduler()
            await asyncio.Event().wait()

        try:
            asyncio.run(_serve())
        except KeyboardInterrupt:
            stop_scheduler()
            print("Scheduler stopped")
