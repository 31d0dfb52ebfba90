"""
Notification task model (outbox for e-mail/SMS delivery).

Tasks are inserted in the same transaction as the state change they
describe and delivered afterwards by the dispatcher, so a committed booking
or waitlist transition always has its notification recorded, and a failed
delivery never rolls the transition back.
"""

from datetime import datetime
from typing import Optional, Dict, Any

from sqlalchemy import String, Text, Integer, JSON, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.constants import NOTIFICATION_MAX_RETRIES
from core.database import Base
from models.types import UTCDateTime


class NotificationTask(Base):
    """Pending or processed outbound notification."""

    __tablename__ = "notification_tasks"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    channel: Mapped[str] = mapped_column(String(20), nullable=False)
    """Delivery channel: 'email' or 'sms'."""

    recipient: Mapped[str] = mapped_column(String(255), nullable=False)
    """E-mail address or phone number."""

    message_type: Mapped[str] = mapped_column(String(50), nullable=False)
    """Message type: 'appointment_confirmation', 'waitlist_slot_available', etc."""

    context: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    """Context data used to render the message."""

    status: Mapped[str] = mapped_column(String(20), default='pending')
    """Status: 'pending', 'sent', 'skipped', or 'failed'."""

    retry_count: Mapped[int] = mapped_column(Integer, default=0)
    max_retries: Mapped[int] = mapped_column(Integer, default=NOTIFICATION_MAX_RETRIES)

    scheduled_send_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    """Earliest time the dispatcher may attempt delivery."""

    actual_send_time: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        CheckConstraint("channel IN ('email', 'sms')", name='check_notification_channel'),
        CheckConstraint("status IN ('pending', 'sent', 'skipped', 'failed')", name='check_notification_status'),
        CheckConstraint('retry_count >= 0', name='check_notification_retry_count_non_negative'),
        Index('idx_notification_tasks_status_scheduled', 'status', 'scheduled_send_time'),
    )
