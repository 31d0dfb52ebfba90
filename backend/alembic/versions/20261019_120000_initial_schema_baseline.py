"""initial_schema_baseline

Revision ID: 20261019120000
Revises:
Create Date: 2026-10-19 12:00:00.000000

Creates the scheduling schema: professionals and their services, weekly
schedules and breaks, patients, appointments with their per-minute time
claims, the waitlist and the notification outbox.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019120000'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'professionals',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('clinic_id', sa.Integer(), nullable=True),
        sa.Column('first_name', sa.String(length=255), nullable=False),
        sa.Column('last_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('appointment_duration', sa.Integer(), nullable=False),
        sa.Column('buffer_time', sa.Integer(), nullable=False),
        sa.Column('min_advance_minutes', sa.Integer(), nullable=False),
        sa.Column('plan_type', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_professionals_id', 'professionals', ['id'])
    op.create_index('idx_professionals_clinic', 'professionals', ['clinic_id'])

    op.create_table(
        'professional_services',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('professional_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('buffer_time', sa.Integer(), nullable=False),
        sa.Column('is_visible', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('duration > 0', name='check_service_duration_positive'),
        sa.CheckConstraint('buffer_time >= 0', name='check_service_buffer_non_negative'),
        sa.ForeignKeyConstraint(['professional_id'], ['professionals.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_professional_services_id', 'professional_services', ['id'])
    op.create_index('idx_professional_services_professional', 'professional_services', ['professional_id'])

    op.create_table(
        'professional_schedules',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('professional_id', sa.Integer(), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('day_of_week >= 0 AND day_of_week <= 6', name='check_schedule_day_of_week'),
        sa.CheckConstraint('start_time < end_time', name='check_schedule_time_range'),
        sa.ForeignKeyConstraint(['professional_id'], ['professionals.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('professional_id', 'day_of_week', name='uq_professional_schedule_day'),
    )
    op.create_index('ix_professional_schedules_id', 'professional_schedules', ['id'])
    op.create_index(
        'idx_professional_schedules_professional_day', 'professional_schedules',
        ['professional_id', 'day_of_week']
    )

    op.create_table(
        'professional_breaks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('professional_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('start_time < end_time', name='check_break_time_range'),
        sa.ForeignKeyConstraint(['professional_id'], ['professionals.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_professional_breaks_id', 'professional_breaks', ['id'])
    op.create_index('idx_professional_breaks_professional_date', 'professional_breaks', ['professional_id', 'date'])

    op.create_table(
        'patients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('professional_id', sa.Integer(), nullable=True),
        sa.Column('clinic_id', sa.Integer(), nullable=True),
        sa.Column('first_name', sa.String(length=255), nullable=False),
        sa.Column('last_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['professional_id'], ['professionals.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_patients_id', 'patients', ['id'])
    op.create_index('idx_patients_professional_email', 'patients', ['professional_id', 'email'])
    op.create_index('idx_patients_clinic_email', 'patients', ['clinic_id', 'email'])

    op.create_table(
        'appointments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('professional_id', sa.Integer(), nullable=False),
        sa.Column('patient_id', sa.Integer(), nullable=False),
        sa.Column('service_id', sa.Integer(), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('cancellation_token', sa.String(length=128), nullable=False),
        sa.Column('rescheduled_from_id', sa.Integer(), nullable=True),
        sa.Column('rescheduled_by', sa.String(length=50), nullable=True),
        sa.Column('rescheduled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_by', sa.String(length=50), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.String(length=1000), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('draft', 'confirmed', 'cancelled', 'rescheduled')",
            name='check_appointment_status'
        ),
        sa.CheckConstraint('start_time < end_time', name='check_appointment_time_range'),
        sa.ForeignKeyConstraint(['professional_id'], ['professionals.id']),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id']),
        sa.ForeignKeyConstraint(['service_id'], ['professional_services.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['rescheduled_from_id'], ['appointments.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cancellation_token'),
    )
    op.create_index('ix_appointments_id', 'appointments', ['id'])
    op.create_index('idx_appointments_professional_date', 'appointments', ['professional_id', 'date'])
    op.create_index(
        'idx_appointments_professional_date_status', 'appointments',
        ['professional_id', 'date', 'status']
    )
    op.create_index('idx_appointments_patient', 'appointments', ['patient_id'])

    # One row per occupied minute; the primary key rejects overlapping bookings
    op.create_table(
        'appointment_time_claims',
        sa.Column('professional_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('minute_of_day', sa.Integer(), nullable=False),
        sa.Column('appointment_id', sa.Integer(), nullable=False),
        sa.CheckConstraint('minute_of_day >= 0 AND minute_of_day < 1440', name='check_claim_minute_range'),
        sa.ForeignKeyConstraint(['professional_id'], ['professionals.id']),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('professional_id', 'date', 'minute_of_day'),
    )
    op.create_index('idx_appointment_time_claims_appointment', 'appointment_time_claims', ['appointment_id'])

    op.create_table(
        'waitlist_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('professional_id', sa.Integer(), nullable=False),
        sa.Column('service_id', sa.Integer(), nullable=True),
        sa.Column('first_name', sa.String(length=255), nullable=False),
        sa.Column('last_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=False),
        sa.Column('preferred_date', sa.Date(), nullable=False),
        sa.Column('preferred_time_start', sa.Time(), nullable=True),
        sa.Column('preferred_time_end', sa.Time(), nullable=True),
        sa.Column('token', sa.String(length=128), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('notified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('available_date', sa.Date(), nullable=True),
        sa.Column('available_start_time', sa.Time(), nullable=True),
        sa.Column('available_end_time', sa.Time(), nullable=True),
        sa.Column('available_service_id', sa.Integer(), nullable=True),
        sa.Column('fulfilled_appointment_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.String(length=1000), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'notified', 'fulfilled', 'expired', 'cancelled')",
            name='check_waitlist_status'
        ),
        sa.ForeignKeyConstraint(['professional_id'], ['professionals.id']),
        sa.ForeignKeyConstraint(['service_id'], ['professional_services.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['available_service_id'], ['professional_services.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['fulfilled_appointment_id'], ['appointments.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token'),
    )
    op.create_index('ix_waitlist_entries_id', 'waitlist_entries', ['id'])
    op.create_index(
        'idx_waitlist_professional_status_created', 'waitlist_entries',
        ['professional_id', 'status', 'created_at']
    )
    op.create_index('idx_waitlist_status_expires', 'waitlist_entries', ['status', 'expires_at'])

    op.create_table(
        'notification_tasks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('channel', sa.String(length=20), nullable=False),
        sa.Column('recipient', sa.String(length=255), nullable=False),
        sa.Column('message_type', sa.String(length=50), nullable=False),
        sa.Column('context', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('retry_count', sa.Integer(), nullable=False),
        sa.Column('max_retries', sa.Integer(), nullable=False),
        sa.Column('scheduled_send_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('actual_send_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("channel IN ('email', 'sms')", name='check_notification_channel'),
        sa.CheckConstraint(
            "status IN ('pending', 'sent', 'skipped', 'failed')",
            name='check_notification_status'
        ),
        sa.CheckConstraint('retry_count >= 0', name='check_notification_retry_count_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notification_tasks_id', 'notification_tasks', ['id'])
    op.create_index(
        'idx_notification_tasks_status_scheduled', 'notification_tasks',
        ['status', 'scheduled_send_time']
    )


def downgrade() -> None:
    op.drop_table('notification_tasks')
    op.drop_table('waitlist_entries')
    op.drop_table('appointment_time_claims')
    op.drop_table('appointments')
    op.drop_table('patients')
    op.drop_table('professional_breaks')
    op.drop_table('professional_schedules')
    op.drop_table('professional_services')
    op.drop_table('professionals')
