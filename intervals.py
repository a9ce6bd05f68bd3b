"""Half-open time intervals and the overlap rule shared by every query.

All stored timestamps are naive UTC. Inputs that carry an offset are
converted to UTC; naive inputs are read as wall-clock time in the
reference zone passed by the caller.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterator

from sqlalchemy import and_
from sqlalchemy.sql.elements import ColumnElement

SLOT_MINUTES = 15


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc(value: datetime, tz: tzinfo) -> datetime:
    """Normalize ``value`` to naive UTC, reading naive values in ``tz``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz)
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def as_aware_utc(value: datetime) -> datetime:
    """Attach UTC to a stored naive timestamp for output."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Interval:
    """A ``[start, end)`` range. Touching endpoints do not overlap."""

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_valid(self) -> bool:
        return self.start < self.end

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end

    def slots(self, minutes: int = SLOT_MINUTES) -> Iterator["Interval"]:
        """Split into consecutive fixed-size slots; a short tail is dropped."""
        step = timedelta(minutes=minutes)
        current = self.start
        while current + step <= self.end:
            yield Interval(current, current + step)
            current += step


def overlap_clause(start_col, end_col, interval: Interval) -> ColumnElement:
    """SQL form of :meth:`Interval.overlaps` against a stored range."""
    return and_(start_col < interval.end, end_col > interval.start)


def day_window(day: date, tz: tzinfo) -> Interval:
    """The local calendar day ``[00:00, next 00:00)`` in ``tz``, as UTC."""
    local_start = datetime.combine(day, time.min)
    local_end = datetime.combine(day + timedelta(days=1), time.min)
    return Interval(to_utc(local_start, tz), to_utc(local_end, tz))


def slot_window(day: date, at: time, tz: tzinfo, minutes: int = SLOT_MINUTES) -> Interval:
    start = to_utc(datetime.combine(day, at), tz)
    return Interval(start, start + timedelta(minutes=minutes))


def local_range(day: date, opening: time, closing: time, tz: tzinfo) -> Interval:
    return Interval(
        to_utc(datetime.combine(day, opening), tz),
        to_utc(datetime.combine(day, closing), tz),
    )
