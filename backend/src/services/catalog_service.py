"""
Catalog service for looking up professionals and the services they offer.

Centralizes the "unknown professional/service" checks and the resolution of
a booking's duration and buffer (service values override the professional's
defaults).
"""

import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from core.exceptions import NotFoundError
from models import Professional, ProfessionalService

logger = logging.getLogger(__name__)


class CatalogService:
    """Service class for professional and service lookups."""

    @staticmethod
    def get_professional(db: Session, professional_id: int) -> Professional:
        """
        Get an active professional by ID.

        Raises:
            NotFoundError: If the professional does not exist or is inactive
        """
        professional = db.query(Professional).filter(
            Professional.id == professional_id,
            Professional.is_active == True  # noqa: E712
        ).first()

        if not professional:
            raise NotFoundError("Professional not found")

        return professional

    @staticmethod
    def get_service(
        db: Session,
        professional_id: int,
        service_id: Optional[int]
    ) -> Optional[ProfessionalService]:
        """
        Get a service offered by a professional.

        Returns None when ``service_id`` is None (the professional's defaults apply).

        Raises:
            NotFoundError: If the service does not exist or belongs to another professional
        """
        if service_id is None:
            return None

        service = db.query(ProfessionalService).filter(
            ProfessionalService.id == service_id,
            ProfessionalService.professional_id == professional_id
        ).first()

        if not service:
            raise NotFoundError("Service not found")

        return service

    @staticmethod
    def resolve_duration_and_buffer(
        professional: Professional,
        service: Optional[ProfessionalService]
    ) -> Tuple[int, int]:
        """Return (duration, buffer) in minutes for a booking."""
        if service is not None:
            return service.duration, service.buffer_time
        return professional.appointment_duration, professional.buffer_time
