"""Часовые пояса.

Все даты истечения хранятся и сравниваются в UTC. Местный часовой пояс
(expiry.timezone в config.yaml) нужен только для отображения даты в
письме и времени в логах.
"""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

# Что показывать вместо отсутствующей даты
EMPTY_DATE_PLACEHOLDER = "-"


def get_timezone(timezone_name: str) -> ZoneInfo:
    """Найти часовой пояс по имени IANA ("Europe/Moscow", "UTC").

    Raises:
        ZoneInfoNotFoundError: Если пояса с таким именем нет.
    """
    return ZoneInfo(timezone_name)


def utc_now() -> datetime:
    """Текущий момент в UTC (timezone-aware)."""
    return datetime.now(UTC)


def ensure_utc_aware(dt: datetime) -> datetime:
    """Привести datetime к aware-значению в UTC.

    SQLite отдаёт expiry_date без tzinfo, хотя пишем мы туда UTC, поэтому
    naive-значение считается UTC. Aware-значение переводится в UTC.

    Example:
        >>> ensure_utc_aware(datetime(2025, 6, 15, 12, 0)).tzinfo
        datetime.timezone.utc
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_timezone(dt: datetime, timezone_name: str) -> datetime:
    """Перевести момент времени в указанный часовой пояс (naive = UTC)."""
    return ensure_utc_aware(dt).astimezone(get_timezone(timezone_name))


def format_datetime(
    dt: datetime | None,
    timezone_name: str,
    fmt: str = "%d.%m.%Y %H:%M",
) -> str:
    """Отформатировать дату для читателя письма.

    Args:
        dt: Момент времени; None превращается в EMPTY_DATE_PLACEHOLDER.
        timezone_name: Часовой пояс читателя.
        fmt: Формат strftime.

    Returns:
        Строка с датой в часовом поясе читателя.
    """
    if dt is None:
        return EMPTY_DATE_PLACEHOLDER
    return to_timezone(dt, timezone_name).strftime(fmt)
