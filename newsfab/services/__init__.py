"""Services that run cycles and schedule them."""

from newsfab.services.cycle import CycleRunner, CycleStats
from newsfab.services.scheduler import ControlEvent, FeedScheduler, SchedulerState

__all__ = ["ControlEvent", "CycleRunner", "CycleStats", "FeedScheduler", "SchedulerState"]
