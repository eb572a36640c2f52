"""Helpers and Flask application integration."""

from typing import Generator, Any, Optional
from datetime import datetime
from contextlib import contextmanager
import logging

from pytz import UTC
from flask import Flask
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.session import Session

from ...exceptions import Unavailable
from .models import db

logger = logging.getLogger(__name__)


def now() -> int:
    """Get the current epoch/unix time."""
    return epoch(datetime.now(tz=UTC))


def epoch(t: datetime) -> int:
    """Convert a :class:`.datetime` to UNIX time."""
    delta = t - datetime.fromtimestamp(0, tz=UTC)
    return int(round((delta).total_seconds()))


def from_epoch(t: Optional[int]) -> Optional[datetime]:
    """Get a :class:`datetime` from an UNIX timestamp."""
    if t is None:
        return None
    return datetime.fromtimestamp(t, tz=UTC)


@contextmanager
def transaction(commit: bool = True) -> Generator[Session, None, None]:
    """
    Context manager for database transaction.

    Pass ``commit=False`` when the work is part of an enclosing transaction
    that will commit on its own.
    """
    try:
        yield db.session
        if commit:
            db.session.commit()
    except OperationalError as e:
        logger.error('Database unavailable, rolling back: %s', str(e))
        db.session.rollback()
        raise Unavailable('Database is temporarily unavailable') from e
    except Exception as e:
        logger.debug('Rolling back: %s', str(e))
        db.session.rollback()
        raise


def init_app(app: Flask) -> None:
    """Set configuration defaults and attach session to the application."""
    app.config.setdefault('SQLALCHEMY_TRACK_MODIFICATIONS', False)
    db.init_app(app)


def current_session() -> Session:
    """Get/create database session for this context."""
    return db.session


def create_all() -> None:
    """Create all tables in the database."""
    db.create_all()


def drop_all() -> None:
    """Drop all tables in the database."""
    db.drop_all()


def is_available(**kwargs: Any) -> bool:
    """Check our connection to the database."""
    try:
        db.session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error('Encountered an error talking to database: %s', e)
        return False
    return True
