"""
Unit-of-work helpers shared by the incentive engines
"""
import logging
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from app import db
from app.errors import Conflict, IncentiveError, InvalidArgument, NotFound, Unexpected

logger = logging.getLogger(__name__)


@contextmanager
def atomic():
    """
    Run a block as one transaction against the store.

    Commits on success. Any failure rolls back everything written inside the
    block; store errors surface as Conflict (constraint or version clash) or
    Unexpected.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except IncentiveError:
        session.rollback()
        raise
    except StaleDataError as e:
        session.rollback()
        logger.warning('Concurrent update rejected: %s', e)
        raise Conflict('The record was modified concurrently, retry the operation') from e
    except IntegrityError as e:
        session.rollback()
        logger.warning('Integrity error: %s', e.orig)
        raise Conflict('The operation conflicts with an existing record') from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception('Store failure inside unit of work')
        raise Unexpected('Store failure') from e


def get_or_404(model, record_id, label=None):
    """Load a record by primary key or raise NotFound"""
    record = db.session.get(model, record_id) if record_id else None
    if record is None:
        raise NotFound(f'{label or model.__name__} not found')
    return record


def validate_period(year, month):
    """Coerce and validate a (year, month) pair"""
    try:
        year = int(year)
        month = int(month)
    except (TypeError, ValueError):
        raise InvalidArgument('year and month must be integers')

    if not 1 <= month <= 12:
        raise InvalidArgument('month must be between 1 and 12')
    if not 2000 <= year <= 9999:
        raise InvalidArgument('year is out of range')

    return year, month


def month_bounds(year, month):
    """Half-open [start, end) datetime range covering a calendar month"""
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return start, end


def previous_period(now):
    """(year, month) of the calendar month before `now`"""
    if now.month == 1:
        return now.year - 1, 12
    return now.year, now.month - 1
