"""
Slot value types passed between the slot generator, the booking facade, the
waitlist engine and the API layer.
"""

from dataclasses import dataclass
from datetime import date, time
from typing import Optional

from utils.datetime_utils import format_time


@dataclass(frozen=True, order=True)
class SlotData:
    """
    Represents a bookable time slot.

    Ordering follows (date, start_time, end_time), which is the order the
    slot generator emits.
    """
    date: date
    start_time: time
    end_time: time

    def to_dict(self) -> dict[str, str]:
        """Convert to the wire format: ISO date and zero-padded HH:MM."""
        return {
            "slotDate": self.date.isoformat(),
            "startTime": format_time(self.start_time),
            "endTime": format_time(self.end_time),
        }


@dataclass(frozen=True)
class FreedSlot:
    """
    An interval released back to a professional's calendar.

    Produced by appointment cancellation/deletion/reschedule and by a waitlist
    release or expiry; consumed by the waitlist cascade.
    """
    professional_id: int
    date: date
    start_time: time
    end_time: time
    service_id: Optional[int] = None
