"""
Settings for the booking service, read once from the environment.

Outside pytest a `.env` file (backend/, repository root or cwd) is loaded into
os.environ first, so local runs and deployments share the same keys.
"""

import os
import pathlib
from dotenv import load_dotenv


# Tests configure themselves; a developer .env must not leak into them
is_testing = os.getenv("PYTEST_VERSION") is not None or any("pytest" in str(frame) for frame in __import__('inspect').stack(0))

if not is_testing:
    possible_paths = [
        pathlib.Path(__file__).parent.parent.parent / ".env",  # backend/.env
        pathlib.Path(__file__).parent.parent.parent.parent / ".env",  # .env at repository root
        pathlib.Path.cwd() / ".env",
    ]

    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(env_path)
            break


def _get_bool(name: str, default: bool) -> bool:
    """Read a boolean flag ("true"/"1"/"yes") from the environment."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinic_booking.db")
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Every civil date and time-of-day in the system is interpreted in this zone
CLINIC_TIMEZONE = os.getenv("CLINIC_TIMEZONE", "America/Toronto")

# Waitlist
WAITLIST_OFFER_HOURS = int(os.getenv("WAITLIST_OFFER_HOURS", "24"))
WAITLIST_MATCH_LOOKBACK_DAYS = int(os.getenv("WAITLIST_MATCH_LOOKBACK_DAYS", "0"))
WAITLIST_MATCH_TIME_WINDOW = _get_bool("WAITLIST_MATCH_TIME_WINDOW", True)

# Plan limits
FREE_PLAN_MONTHLY_APPOINTMENT_LIMIT = int(os.getenv("FREE_PLAN_MONTHLY_APPOINTMENT_LIMIT", "50"))

# Slot generation
MAX_TIMESLOT_RANGE_DAYS = int(os.getenv("MAX_TIMESLOT_RANGE_DAYS", "62"))

# Notification channels
EMAIL_API_URL = os.getenv("EMAIL_API_URL", "")
EMAIL_API_KEY = os.getenv("EMAIL_API_KEY", "")
EMAIL_FROM = os.getenv("EMAIL_FROM", "no-reply@clinic-booking.local")
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID", "")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN", "")
TWILIO_FROM_NUMBER = os.getenv("TWILIO_FROM_NUMBER", "")
