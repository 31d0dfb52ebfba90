# Package initialization
# Import all models to ensure relationships are properly established
from .professional import Professional
from .professional_service import ProfessionalService
from .schedule_window import ScheduleWindow
from .break_interval import BreakInterval
from .patient import Patient
from .appointment import Appointment
from .appointment_time_claim import AppointmentTimeClaim
from .waitlist_entry import WaitlistEntry
from .notification_task import NotificationTask

__all__ = [
    "Professional",
    "ProfessionalService",
    "ScheduleWindow",
    "BreakInterval",
    "Patient",
    "Appointment",
    "AppointmentTimeClaim",
    "WaitlistEntry",
    "NotificationTask",
]
