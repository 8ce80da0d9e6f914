import calendar
import re
from datetime import date

from cashflow_sync.models import MonthWindow

ALL_MONTHS = "all"

_MONTH_KEY_RE = re.compile(r"^\d{4}-\d{2}$")


def is_all_scope(month: str | None) -> bool:
    return (month or "").lower() == ALL_MONTHS


def is_month_key(value: str) -> bool:
    if not _MONTH_KEY_RE.match(value):
        return False
    return 1 <= int(value[5:7]) <= 12


def current_month_key(today: date | None = None) -> str:
    today = today or date.today()
    return today.strftime("%Y-%m")


def month_key_of(value: date) -> str:
    return value.strftime("%Y-%m")


def month_window(month: str) -> MonthWindow:
    """Inclusive date range for a ``YYYY-MM`` key; ``all`` means unbounded."""
    if is_all_scope(month):
        return MonthWindow(month=ALL_MONTHS)
    if not is_month_key(month):
        raise ValueError(f"Invalid month key: {month!r}")
    year, month_number = int(month[:4]), int(month[5:7])
    last_day = calendar.monthrange(year, month_number)[1]
    return MonthWindow(
        month=month,
        start=date(year, month_number, 1),
        end=date(year, month_number, last_day),
    )
