"""
Timezone component - user wall-clock time <-> UTC conversion.
"""

from post_scheduler.components.timezone.component import (
    FALLBACK_TIMEZONE,
    TimezoneService,
)

__all__ = [
    "FALLBACK_TIMEZONE",
    "TimezoneService",
]
