from .cache import ReleaseCache
from .scheduler import RefreshScheduler, SchedulerState

__all__ = ["ReleaseCache", "RefreshScheduler", "SchedulerState"]
