# salon_scheduler/services/slots/errors.py
"""
Errors raised by the scheduling engine.

Raised in the services layer and mapped to HTTP statuses in main.py:
  ValidationError → 400, NotFound → 404, Conflict → 409, StoreError → 503
"""


class SchedulingError(Exception):
    """Base exception for all scheduling errors."""


# ── Validation ───────────────────────────────────────────────────────────


class ValidationError(SchedulingError):
    """Malformed id / time / date input."""


class FormatError(ValidationError):
    """Time string is not "HH:MM"."""


class CrossesMidnight(ValidationError):
    """Computed end time falls on or after 24:00."""


class InvalidDate(ValidationError):
    """Date string is not "YYYY-MM-DD"."""


class InvalidSlotId(ValidationError):
    """Slot id is empty or not UUID-shaped."""


class InvalidExtension(ValidationError):
    """New end time is not after the slot start."""


# ── Not found ────────────────────────────────────────────────────────────


class NotFound(SchedulingError):
    """Requested row does not exist."""


class SlotNotFound(NotFound):
    pass


class BookingNotFound(NotFound):
    pass


class WorkerNotFound(NotFound):
    pass


# ── Conflict ─────────────────────────────────────────────────────────────


class Conflict(SchedulingError):
    """Request clashes with the current state of the schedule."""


class AlreadyBooked(Conflict):
    pass


class ExtensionConflict(Conflict):
    pass


class SlotExists(Conflict):
    pass


class SlotBooked(Conflict):
    """Operation is not allowed on a booked slot."""


class WorkerUnavailable(Conflict):
    pass


# ── Store ────────────────────────────────────────────────────────────────


class StoreError(SchedulingError):
    """Underlying data-access failure."""
