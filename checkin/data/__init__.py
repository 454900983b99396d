"""Guest record model and helpers.

Public API:

    from checkin.data import (
        GuestRecord,
        new_guest,
        parse_companions,
        format_entry_time,
    )
"""

from checkin.data.models import GuestRecord, format_entry_time, new_guest, parse_companions

__all__ = [
    "GuestRecord",
    "format_entry_time",
    "new_guest",
    "parse_companions",
]
