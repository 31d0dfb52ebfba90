"""Application constants and configuration values."""

from core.config import FRONTEND_URL

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# CORS origins for development and production
_CORS_ORIGINS_RAW = [
    "http://localhost:5173",      # React dev server (Vite)
    FRONTEND_URL,
]

# Filter out None values and empty strings to avoid CORS errors
CORS_ORIGINS = [origin for origin in _CORS_ORIGINS_RAW if origin and origin.strip()]

# Appointment statuses
APPOINTMENT_STATUS_DRAFT = "draft"
APPOINTMENT_STATUS_CONFIRMED = "confirmed"
APPOINTMENT_STATUS_CANCELLED = "cancelled"
APPOINTMENT_STATUS_RESCHEDULED = "rescheduled"
# Statuses that occupy the professional's calendar
ACTIVE_APPOINTMENT_STATUSES = (APPOINTMENT_STATUS_DRAFT, APPOINTMENT_STATUS_CONFIRMED)

# Waitlist entry statuses
WAITLIST_STATUS_PENDING = "pending"
WAITLIST_STATUS_NOTIFIED = "notified"
WAITLIST_STATUS_FULFILLED = "fulfilled"
WAITLIST_STATUS_EXPIRED = "expired"
WAITLIST_STATUS_CANCELLED = "cancelled"
WAITLIST_STATUSES = (
    WAITLIST_STATUS_PENDING,
    WAITLIST_STATUS_NOTIFIED,
    WAITLIST_STATUS_FULFILLED,
    WAITLIST_STATUS_EXPIRED,
    WAITLIST_STATUS_CANCELLED,
)

# Professional defaults
DEFAULT_APPOINTMENT_DURATION_MINUTES = 30
DEFAULT_BUFFER_MINUTES = 5

# Plan types
PLAN_FREE = "free"

# Notification outbox
NOTIFICATION_MAX_RETRIES = 3
NOTIFICATION_BATCH_SIZE = 100
NOTIFICATION_SCHEDULER_MAX_INSTANCES = 1  # Prevent overlapping scheduler runs

# Waitlist expiry sweep
WAITLIST_SWEEP_INTERVAL_MINUTES = 15

# Token sizes (bytes of entropy passed to secrets.token_urlsafe)
CANCELLATION_TOKEN_BYTES = 32
WAITLIST_TOKEN_BYTES = 32
