"""Shared utility functions used across services and blueprints.

parse_date:          tolerant date parsing (returns None on bad input)
parse_date_input:    strict date parsing (raises ValueError, for 400s)
field:               read a value from a model object OR a mapping
round_half_up:       integer rounding that matches the UI's Math.round
db_commit_or_error:  single commit point for blueprints
"""
import logging
import math
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError, OperationalError

from siteledger.core.exceptions import ValidationError
from siteledger.models import db
from siteledger.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - DD.MM.YYYY
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except (ValueError, TypeError):
        return None


def parse_date_input(value):
    """Same as parse_date() but raises ValueError instead of returning None."""
    if not value:
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError("Invalid date format. Use YYYY-MM-DD or DD.MM.YYYY.")
    return parsed


def field(record, name, default=None):
    """Return ``record.name`` or ``record[name]``.

    Aggregation services accept ORM rows as well as plain dicts (tests,
    API payloads), so every read goes through here.
    """
    if record is None:
        return default
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def to_number(value) -> float:
    """Coerce to float; None / blanks / junk become 0."""
    if value is None or value == "":
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return number


def clean_text(value, key=None) -> str:
    """Stripped text for a JSON scalar; None becomes "". Arrays and objects are a 400."""
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ValidationError(
            f"{key or 'value'} must be text", details={key: "invalid"} if key else None,
        )
    return str(value).strip()


def round_half_up(value) -> int:
    """Round to the nearest integer, ties towards +infinity."""
    return int(math.floor(value + 0.5))


# ── Database commit helper ───────────────────────────────────────────────────

def db_commit_or_error():
    """Commit the current SQLAlchemy session, returning an error response on failure.

    Returns:
        None on success.
        (response, status_code) tuple on failure — ready for ``return``.

    Usage::

        err = db_commit_or_error()
        if err:
            return err

    IntegrityError → 409 (duplicate / constraint violation)
    OperationalError → 500 (connection / lock issues)
    Other → 500 (unexpected)

    Every failure rolls the whole session back, so a parent row flushed
    together with its children never survives without them.
    """
    try:
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return api_error(E.CONFLICT_DUPLICATE, "Duplicate or constraint violation")
    except OperationalError:
        db.session.rollback()
        logger.exception("Database operational error on commit")
        return api_error(E.DATABASE, "Database error")
    except Exception:
        db.session.rollback()
        logger.exception("Unexpected database error on commit")
        return api_error(E.DATABASE, "Database error")
