"""Device synchronization domain."""

from .engine import SyncPlan, SyncReport, plan_sync, synchronize
from .exceptions import SyncCollision
from .integrity import check_integrity

__all__ = [
    "SyncPlan",
    "SyncReport",
    "plan_sync",
    "synchronize",
    "SyncCollision",
    "check_integrity",
]
