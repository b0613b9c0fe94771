"""
Scheduler component - runs one publishing pass per trigger.
"""

from .component import SchedulerService, new_execution_id
from .models import SchedulerResult
from .ports import PerformanceCheckPort, PublisherPort

__all__ = [
    "SchedulerService",
    "new_execution_id",
    "SchedulerResult",
    "PerformanceCheckPort",
    "PublisherPort",
]
