from __future__ import annotations

from datetime import datetime, timezone


def getDurationMs(startMonotonic: float, endMonotonic: float) -> int:
    """
    Назначение:
        Считает длительность в миллисекундах по monotonic timestamps.
    """
    return int((endMonotonic - startMonotonic) * 1000)


def parseIsoDateTime(value: str | datetime) -> datetime:
    """
    Назначение:
        Разбирает дату из конфига (ISO 8601). Наивные значения считаются UTC.

    Ошибки:
        ValueError при неверном формате.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def formatApiDateTime(value: datetime) -> str:
    """
    Назначение:
        Форматирует дату для API платформы: UTC, миллисекунды, суффикс Z.

    Выходные данные:
        str
            Например: 1986-01-01T00:00:00.000Z
    """
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"
