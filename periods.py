import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo

from config import get_settings


_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})$")


def default_timezone() -> ZoneInfo:
    return ZoneInfo(get_settings().timezone)


def local_datetime(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Naive local wall-clock time of a timestamp in the owner's timezone.

    This is the only timezone rule in the code base. Aware datetimes are
    converted into ``tz`` and stripped of their offset; naive datetimes are
    already local wall-clock time and are returned unchanged.
    """
    if value.tzinfo is not None and value.utcoffset() is not None:
        return value.astimezone(tz or default_timezone()).replace(tzinfo=None)
    return value


def local_date(value: Union[datetime, date], tz: Optional[tzinfo] = None) -> date:
    if isinstance(value, datetime):
        return local_datetime(value, tz).date()
    return value


@dataclass(frozen=True, order=True)
class MonthKey:
    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Invalid month number: {self.month}")

    @classmethod
    def parse(cls, value: str) -> "MonthKey":
        match = _MONTH_RE.match((value or "").strip())
        if not match:
            raise ValueError("Month must look like YYYY-MM")
        return cls(int(match.group(1)), int(match.group(2)))

    @classmethod
    def of(cls, value: Union[datetime, date], tz: Optional[tzinfo] = None) -> "MonthKey":
        d = local_date(value, tz)
        return cls(d.year, d.month)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def previous(self) -> "MonthKey":
        if self.month == 1:
            return MonthKey(self.year - 1, 12)
        return MonthKey(self.year, self.month - 1)

    def next(self) -> "MonthKey":
        if self.month == 12:
            return MonthKey(self.year + 1, 1)
        return MonthKey(self.year, self.month + 1)

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    @property
    def start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        return date(self.year, self.month, self.days_in_month)

    def contains(self, value: Union[datetime, date], tz: Optional[tzinfo] = None) -> bool:
        d = local_date(value, tz)
        return d.year == self.year and d.month == self.month


def today_local(tz: Optional[tzinfo] = None) -> date:
    return datetime.now(tz or default_timezone()).date()


def current_month(
    today: Optional[date] = None, tz: Optional[tzinfo] = None
) -> MonthKey:
    today = today or today_local(tz)
    return MonthKey(today.year, today.month)


def resolve_month(
    value: Optional[str],
    *,
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> MonthKey:
    if not value:
        return current_month(today, tz)
    return MonthKey.parse(value)
