# grouping primitives and trend comparison shared by report builders and the dashboard
# all functions are pure and total

from collections import Counter
from datetime import datetime
from typing import Callable, Iterable, Optional, TypeVar

from clinic_metrics.models.reports import TrendMetric

T = TypeVar("T")

UNKNOWN_LABEL = "Unknown"

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def tally(records: Iterable[T], key_fn: Callable[[T], Optional[str]]) -> dict[str, int]:
    """count records per label. labels that resolve to None or "" fold into "Unknown"."""
    counts: Counter = Counter()
    for record in records:
        label = key_fn(record)
        counts[label if label else UNKNOWN_LABEL] += 1
    return dict(counts)


def tally_many(records: Iterable[T], keys_fn: Callable[[T], Iterable[str]]) -> dict[str, int]:
    """count records per label when one record carries several labels (specialties etc.)"""
    counts: Counter = Counter()
    for record in records:
        for label in keys_fn(record) or ():
            if label:
                counts[label] += 1
    return dict(counts)


def percent_of(part: float, whole: float) -> float:
    if whole == 0:
        return 0
    return (part / whole) * 100


def max_tally(counts: dict[str, int]) -> int:
    """largest count across labels, 0 for an empty tally.
    callers dividing by this must guard the all-zero case."""
    return max(counts.values(), default=0)


def compare_trend(current: float, previous: float) -> TrendMetric:
    """period-over-period change. growth from a zero baseline saturates at 100%.
    directional: compare_trend(a, b) is not the negation of compare_trend(b, a)."""
    if previous == 0:
        change = 100
    else:
        change = ((current - previous) / previous) * 100
    return TrendMetric(current=current, previous=previous, percentChange=change)


def weekday_name(instant: datetime) -> str:
    """weekday in the instant's own offset, never shifted to utc"""
    return WEEKDAY_NAMES[instant.weekday()]


def month_label(instant: datetime) -> str:
    return f"{instant.year:04d}-{instant.month:02d}"
