"""
Booking domain services, called by the routes and the scheduler jobs.
"""

from .catalog_service import CatalogService
from .schedule_service import ScheduleService
from .availability_service import AvailabilityService
from .conflict_service import ConflictService
from .patient_service import PatientService
from .notification_service import NotificationService
from .waitlist_service import WaitlistService
from .appointment_service import AppointmentService

__all__ = [
    "CatalogService",
    "ScheduleService",
    "AvailabilityService",
    "ConflictService",
    "PatientService",
    "NotificationService",
    "WaitlistService",
    "AppointmentService",
]
