# taskgraph/core/dates.py
"""
Работа с временными метками. Внутри графа всё хранится в UTC, ISO-строками.
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Union

logger = logging.getLogger("TaskGraph.Dates")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    # naive значения считаем UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Разбирает дату из графа. Битое значение даёт None, а не исключение.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    try:
        return ensure_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
    except (TypeError, ValueError):
        logger.warning(f"Ignoring unparsable timestamp: {value!r}")
        return None


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return ensure_utc(value).isoformat()
