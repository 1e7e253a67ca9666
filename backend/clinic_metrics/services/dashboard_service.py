# dashboard summary — current calendar month vs the one before
# trends for sessions, completions, active clients and active therapists,
# plus the current month's status split and monday–saturday weekday bars

import calendar
import logging
from datetime import date
from typing import Optional

from clinic_metrics.models.dashboard import (
    DashboardSummary,
    MonthWindow,
    StatusDistribution,
    WeekdayBar,
)
from clinic_metrics.models.records import Session
from clinic_metrics.models.reports import DateRange
from clinic_metrics.services.fetch_plan import FetchPlan
from clinic_metrics.services.grouping import (
    compare_trend,
    max_tally,
    percent_of,
    tally,
    weekday_name,
)
from clinic_metrics.services.record_store import RecordStore

logger = logging.getLogger(__name__)

# sunday is left out of the weekday bars (business-hours assumption)
DASHBOARD_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def month_bounds(year: int, month: int) -> DateRange:
    last_day = calendar.monthrange(year, month)[1]
    return DateRange(start=date(year, month, 1), end=date(year, month, last_day))


def current_and_previous_month(today: date) -> tuple[DateRange, DateRange]:
    current = month_bounds(today.year, today.month)
    if today.month == 1:
        previous = month_bounds(today.year - 1, 12)
    else:
        previous = month_bounds(today.year, today.month - 1)
    return current, previous


def status_distribution(sessions: list[Session]) -> StatusDistribution:
    """percent of sessions per status. all zero when there are no sessions."""
    total = len(sessions)
    counts = tally(sessions, lambda s: s.status)
    return StatusDistribution(
        completed=percent_of(counts.get("completed", 0), total),
        scheduled=percent_of(counts.get("scheduled", 0), total),
        cancelled=percent_of(counts.get("cancelled", 0), total),
        noShow=percent_of(counts.get("no-show", 0), total),
    )


def weekday_bars(sessions: list[Session]) -> list[WeekdayBar]:
    """monday–saturday counts, each scaled against the busiest of those six days"""
    counts = tally(sessions, lambda s: weekday_name(s.start_time))
    shown = {day: counts.get(day, 0) for day in DASHBOARD_WEEKDAYS}
    peak = max_tally(shown)
    return [
        WeekdayBar(day=day, count=count, width=(count / peak) * 100 if peak else 0.0)
        for day, count in shown.items()
    ]


def _distinct(values) -> int:
    return len({v for v in values if v})


class DashboardSummaryBuilder:
    """monthly report summary over the current and previous calendar month"""

    def __init__(self, store: RecordStore):
        self.store = store

    async def build(self, today: Optional[date] = None) -> DashboardSummary:
        today = today or date.today()
        current, previous = current_and_previous_month(today)

        plan = FetchPlan(f"dashboard summary ({current.label} vs {previous.label})").stage(
            current=lambda _: self.store.get_sessions(current.start_bound, current.end_bound),
            previous=lambda _: self.store.get_sessions(previous.start_bound, previous.end_bound),
            clients=lambda _: self.store.get_all("clients"),
            therapists=lambda _: self.store.get_all("therapists"),
        )
        fetched = await plan.run()
        this_month: list[Session] = fetched["current"]
        last_month: list[Session] = fetched["previous"]

        def completed(sessions):
            return sum(1 for s in sessions if s.status == "completed")

        summary = DashboardSummary(
            currentMonth=MonthWindow(start=current.start, end=current.end),
            previousMonth=MonthWindow(start=previous.start, end=previous.end),
            sessions=compare_trend(len(this_month), len(last_month)),
            completedSessions=compare_trend(completed(this_month), completed(last_month)),
            activeClients=compare_trend(
                _distinct(s.client_id for s in this_month),
                _distinct(s.client_id for s in last_month),
            ),
            activeTherapists=compare_trend(
                _distinct(s.therapist_id for s in this_month),
                _distinct(s.therapist_id for s in last_month),
            ),
            totalClients=len(fetched["clients"]),
            totalTherapists=len(fetched["therapists"]),
            statusDistribution=status_distribution(this_month),
            sessionsByWeekday=weekday_bars(this_month),
        )
        logger.info(
            f"Dashboard summary for {current.label}: {len(this_month)} sessions "
            f"(previous month {len(last_month)})"
        )
        return summary
