"""
Работа с календарём.
Все календарные дни считаются в бизнес-часовом поясе (по умолчанию Москва).
В БД хранится наивное локальное время этого пояса.
"""

import calendar
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple

import pytz

from config.settings import settings


MONTH_NAMES = {
    1: "Январь",
    2: "Февраль",
    3: "Март",
    4: "Апрель",
    5: "Май",
    6: "Июнь",
    7: "Июль",
    8: "Август",
    9: "Сентябрь",
    10: "Октябрь",
    11: "Ноябрь",
    12: "Декабрь",
}


def get_timezone(name: Optional[str] = None):
    """Возвращает pytz-таймзону, при ошибке — Europe/Moscow."""
    try:
        return pytz.timezone(name or settings.BUSINESS_TIMEZONE)
    except pytz.UnknownTimeZoneError:
        return pytz.timezone("Europe/Moscow")


def now_local() -> datetime:
    """Текущее время в бизнес-поясе без tzinfo."""
    return datetime.now(get_timezone()).replace(tzinfo=None)


def date_key(moment: datetime) -> str:
    """Ключ даты для шаблонов уведомлений: YYYY-MM-DD."""
    return moment.strftime("%Y-%m-%d")


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Начало дня и начало следующего дня."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def iso_week(day: date) -> Tuple[int, int]:
    """(номер недели ISO, ISO-год)."""
    iso_year, week, _ = day.isocalendar()
    return week, iso_year


def iso_week_bounds(week_number: int, year: int) -> Tuple[datetime, datetime]:
    """Понедельник 00:00 недели и понедельник следующей."""
    monday = date.fromisocalendar(year, week_number, 1)
    start = datetime.combine(monday, time.min)
    return start, start + timedelta(days=7)


def month_bounds(month: int, year: int) -> Tuple[datetime, datetime]:
    """Первое число месяца 00:00 и первое число следующего."""
    start = datetime(year, month, 1)
    if month == 12:
        return start, datetime(year + 1, 1, 1)
    return start, datetime(year, month + 1, 1)


def month_iso_weeks(month: int, year: int) -> List[Tuple[int, int]]:
    """
    Все ISO-недели, которые задевает календарный месяц, по порядку.
    На стыке годов неделя может принадлежать соседнему ISO-году.
    """
    weeks: List[Tuple[int, int]] = []
    days_in_month = calendar.monthrange(year, month)[1]
    for day_number in range(1, days_in_month + 1):
        key = iso_week(date(year, month, day_number))
        if key not in weeks:
            weeks.append(key)
    return weeks


def shift_months(moment: datetime, months: int) -> datetime:
    """Сдвигает дату на N месяцев, обрезая день до конца месяца."""
    month_index = moment.year * 12 + (moment.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def previous_month(moment: datetime) -> Tuple[int, int]:
    """(месяц, год) предыдущего календарного месяца."""
    shifted = shift_months(moment.replace(day=1), -1)
    return shifted.month, shifted.year


def previous_iso_weeks(day: date, count: int) -> List[Tuple[int, int]]:
    """Завершённые ISO-недели перед неделей дня day, от ближней к дальней."""
    monday = day - timedelta(days=day.weekday())
    return [iso_week(monday - timedelta(weeks=offset)) for offset in range(1, count + 1)]
