# Jobs Package - Scheduled background tasks
from .sync_scheduler import SyncScheduler, start_scheduler, stop_scheduler, sync_all_now

__all__ = ["SyncScheduler", "start_scheduler", "stop_scheduler", "sync_all_now"]
