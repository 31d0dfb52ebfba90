"""
Plan-limit policies consulted by the booking facade.

The facade only knows the ``PlanLimitPolicy`` interface; which policy applies
is decided by the ``get_plan_limit_policy`` dependency, so tests and other
deployments can swap it without touching booking logic.
"""

import logging
from datetime import date
from typing import Protocol

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.config import FREE_PLAN_MONTHLY_APPOINTMENT_LIMIT
from core.constants import ACTIVE_APPOINTMENT_STATUSES, PLAN_FREE
from models import Appointment, Professional
from utils.datetime_utils import add_days

logger = logging.getLogger(__name__)


class PlanLimitPolicy(Protocol):
    """Predicate deciding whether a professional may take one more booking."""

    def is_limit_reached(self, db: Session, professional: Professional, on_date: date) -> bool:
        ...


class UnlimitedPolicy:
    """Never limits bookings."""

    def is_limit_reached(self, db: Session, professional: Professional, on_date: date) -> bool:
        return False


class MonthlyAppointmentLimitPolicy:
    """
    Caps the number of active appointments per calendar month on the free plan.

    Appointments are counted by their civil date, so the cap applies to the
    month being booked, not the month the booking is made in.
    """

    def __init__(self, monthly_limit: int = FREE_PLAN_MONTHLY_APPOINTMENT_LIMIT):
        self.monthly_limit = monthly_limit

    def is_limit_reached(self, db: Session, professional: Professional, on_date: date) -> bool:
        if professional.plan_type != PLAN_FREE:
            return False

        month_start = on_date.replace(day=1)
        next_month_start = add_days(month_start, 32).replace(day=1)

        count = db.query(func.count(Appointment.id)).filter(
            Appointment.professional_id == professional.id,
            Appointment.date >= month_start,
            Appointment.date < next_month_start,
            Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES)
        ).scalar() or 0

        if count >= self.monthly_limit:
            logger.info(
                f"Professional {professional.id} reached the free plan limit "
                f"({count}/{self.monthly_limit}) for {month_start:%Y-%m}"
            )
            return True
        return False


def get_plan_limit_policy() -> PlanLimitPolicy:
    """FastAPI dependency returning the active plan-limit policy."""
    return MonthlyAppointmentLimitPolicy()
