"""
Recurring Appointments Domain

Expands recurrence rules into candidate appointments, detects conflicts with a
provider's existing bookings, and creates whole series atomically once every
conflicted instance has been skipped or rescheduled.

Layout:
- types.py      # RecurrenceSpec, AppointmentInstance, ConflictInfo, PreviewResult
- expander.py   # Fixed-day recurrence expansion
- conflicts.py  # Buffered half-open overlap detection
- preview.py    # Request validation and the preview engine
- repository.py # Series and calendar queries
- service.py    # Creation with overrides and the commit-time conflict check
- router.py     # /recurring-appointments endpoints
"""

from .router import router

__all__ = ["router"]
