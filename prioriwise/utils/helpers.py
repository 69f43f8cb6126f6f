"""Request-parsing helpers shared by blueprints and services."""
import logging
from datetime import date, datetime

logger = logging.getLogger(__name__)

# Tried in order after date/datetime ISO parsing fails
_EXTRA_DATE_FORMATS = ("%d.%m.%Y", "%d/%m/%Y")


def parse_date(value):
    """Coerce a job due date to ``date``; None when empty or unparseable.

    Accepts date/datetime objects, ISO dates and datetimes, and the
    day-first formats users type into the planning UI (30.04.2026, 30/04/2026).
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    for parse in (date.fromisoformat, lambda s: datetime.fromisoformat(s).date()):
        try:
            return parse(text)
        except ValueError:
            continue
    for fmt in _EXTRA_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    logger.debug("Unparseable date value %r", value)
    return None


def parse_id_list(values):
    """Integer ids from a JSON array or repeated query params.

    None when the input is not a list or any element is not an integer
    (booleans included), so callers answer 400 instead of guessing.
    """
    if not isinstance(values, (list, tuple)):
        return None
    ids = []
    for value in values:
        if isinstance(value, bool) or isinstance(value, float):
            return None
        try:
            ids.append(int(value))
        except (ValueError, TypeError):
            return None
    return ids
