# post-scheduler - Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from post_scheduler.core.ports.repo import (
    MetricsRepoPort,
    PostRepoPort,
    PreferencesRepoPort,
)
from post_scheduler.core.ports.time import ClockPort

__all__ = [
    "ClockPort",
    "MetricsRepoPort",
    "PostRepoPort",
    "PreferencesRepoPort",
]
