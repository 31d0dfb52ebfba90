# pyright: reportMissingTypeStubs=false
"""
Engine, session factory and declarative base for the booking store.

Request handlers receive a session through the `get_db` dependency; the
scheduler jobs and the background outbox drain open their own with
`get_db_context`, which commits on success.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from core.config import DATABASE_URL
from core.constants import DB_POOL_RECYCLE_SECONDS
from core.exceptions import BookingError

logger = logging.getLogger(__name__)


def build_engine(url: str):
    """Create an engine for `url`; SQLite connections may cross threads."""
    connect_args: Dict[str, Any] = {}
    if url.startswith("sqlite"):
        # Sync endpoints run in FastAPI's threadpool
        connect_args["check_same_thread"] = False
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=DB_POOL_RECYCLE_SECONDS,
        future=True,
        connect_args=connect_args,
    )


engine = build_engine(DATABASE_URL)

# Services commit and then keep using the returned rows
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


def _has_column(mapper: Any, name: str) -> bool:
    return hasattr(mapper, "columns") and name in mapper.columns


@event.listens_for(Base, "before_insert", propagate=True)  # type: ignore
def receive_before_insert(mapper, connection, target):  # type: ignore
    """Fill created_at/updated_at from the clinic clock unless already set."""
    from utils.datetime_utils import clinic_now  # deferred import
    now = clinic_now()
    for name in ("created_at", "updated_at"):
        if _has_column(mapper, name) and getattr(target, name, None) is None:
            setattr(target, name, now)


@event.listens_for(Base, "before_update", propagate=True)  # type: ignore
def receive_before_update(mapper, connection, target):  # type: ignore
    from utils.datetime_utils import clinic_now
    if _has_column(mapper, "updated_at"):
        target.updated_at = clinic_now()


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped session.

    Domain errors roll back quietly and propagate to the BookingError handler;
    anything else is logged with its traceback first.
    """
    db = SessionLocal()
    try:
        yield db
    except BookingError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error during request: {e}")
        db.rollback()
        raise
    except Exception as e:
        logger.exception(f"Request failed with an open session: {e}")
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Session for work outside a request, committed when the block exits cleanly.

        with get_db_context() as db:
            NotificationService.send_pending(db)
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except BookingError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Background transaction failed: {e}")
        raise
    finally:
        db.close()
