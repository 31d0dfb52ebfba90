# pyright: reportMissingTypeStubs=false
"""
Clinic Booking Backend API

Serves the scheduling side of a multi-tenant clinic booking platform:
bookable slots, appointments with a store-level double-booking guard, and the
waitlist whose priority offers are driven by cancellations. Outbound e-mail
and SMS leave through a notification outbox drained in the background.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

import httpx
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import appointments, professionals, waitlist
from core.constants import CORS_ORIGINS
from core.exceptions import BookingError
from services.notification_scheduler import start_notification_scheduler, stop_notification_scheduler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)

_ERROR_DESCRIPTIONS = {
    400: "Invalid input or operation not allowed in the current state",
    403: "Plan limit reached or entry owned by another professional",
    404: "Resource not found",
    409: "Time slot is already booked",
    410: "Waitlist offer expired",
    500: "Internal server error",
}


def _error_responses(*codes: int) -> Dict[int | str, Dict[str, Any]]:
    return {code: {"description": _ERROR_DESCRIPTIONS[code]} for code in codes}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the outbox and waitlist-expiry jobs for the lifetime of the app."""
    logger.info("🚀 Clinic Booking API starting")
    try:
        await start_notification_scheduler()
    except Exception as e:
        # The API still serves bookings; queued notifications wait for the next start
        logger.exception(f"❌ Notification scheduler failed to start: {e}")

    yield

    try:
        await stop_notification_scheduler()
    except Exception as e:
        logger.exception(f"❌ Notification scheduler failed to stop cleanly: {e}")
    logger.info("🛑 Clinic Booking API stopped")


app = FastAPI(
    title="Clinic Booking Backend",
    description="Appointment scheduling and waitlist engine for clinics",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(
    professionals.router,
    prefix="/professionals",
    tags=["professionals"],
    responses=_error_responses(400, 403, 404, 500),
)
app.include_router(
    appointments.router,
    prefix="/appointments",
    tags=["appointments"],
    responses=_error_responses(400, 403, 404, 409, 500),
)
app.include_router(
    waitlist.router,
    prefix="/waitlist",
    tags=["waitlist"],
    responses=_error_responses(400, 403, 404, 409, 410, 500),
)


@app.get("/health", summary="Health check")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    """Map domain errors to their HTTP status and JSON body."""
    logger.info(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and parameters are 400s led by the first problem found."""
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(
        status_code=400,
        content={"error": message, "details": jsonable_encoder(errors)},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(httpx.HTTPStatusError)
async def http_status_error_handler(request: Request, exc: httpx.HTTPStatusError):
    """A delivery provider answered with an error status inside a request."""
    logger.exception(f"Upstream provider error: {exc}")
    return JSONResponse(status_code=502, content={"error": "External service error"})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})
