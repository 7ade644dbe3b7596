# salon_scheduler/services/slots/config.py
"""
Scheduling configuration for slot generation, availability and caching.
"""

from dataclasses import dataclass
from functools import lru_cache

from .timeutils import to_minutes


@dataclass(frozen=True)
class SchedulingConfig:
    """
    Configuration for the scheduling engine.

    Attributes:
        slot_step_minutes: Grid step for generated slots and listings
        default_durations: Service durations used when a merchant has none
        working_hours_start: Business hours start when merchant settings are absent
        working_hours_end: Business hours end when merchant settings are absent
        availability_ttl_seconds: TTL of worker availability checks
        slot_check_ttl_seconds: TTL of check_slot_availability results
        slot_listing_ttl_seconds: TTL of whole-day slot listings
        schedule_ttl_seconds: TTL of worker schedule views
    """
    slot_step_minutes: int = 10
    default_durations: tuple[int, ...] = (30, 60)
    working_hours_start: str = "09:00"
    working_hours_end: str = "17:00"
    availability_ttl_seconds: float = 5
    slot_check_ttl_seconds: float = 30
    slot_listing_ttl_seconds: float = 30
    schedule_ttl_seconds: float = 30

    def __post_init__(self):
        """Validate configuration."""
        if self.slot_step_minutes <= 0 or 60 % self.slot_step_minutes:
            raise ValueError(
                f"slot_step_minutes must divide an hour, got {self.slot_step_minutes}"
            )
        if not self.default_durations or min(self.default_durations) <= 0:
            raise ValueError("default_durations must be positive minutes")
        if to_minutes(self.working_hours_start) >= to_minutes(self.working_hours_end):
            raise ValueError("working_hours_start must be before working_hours_end")
        for name in (
            "availability_ttl_seconds",
            "slot_check_ttl_seconds",
            "slot_listing_ttl_seconds",
            "schedule_ttl_seconds",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")


@lru_cache
def get_scheduling_config() -> SchedulingConfig:
    """Get scheduling configuration (singleton)."""
    return SchedulingConfig()
