# dashboard models — monthly summary view models
# mirrors the monthly report summary card: trends, status split, weekday bars

from datetime import date
from pydantic import BaseModel, Field

from clinic_metrics.models.reports import TrendMetric


class MonthWindow(BaseModel):
    """calendar month covered by one side of the comparison"""
    start: date
    end: date


class StatusDistribution(BaseModel):
    """share of the current month's sessions per status, in percent"""
    completed: float = 0.0
    scheduled: float = 0.0
    cancelled: float = 0.0
    no_show: float = Field(0.0, alias="noShow")

    model_config = {"populate_by_name": True}


class WeekdayBar(BaseModel):
    """session count for one weekday with its width relative to the busiest day"""
    day: str
    count: int
    width: float


class DashboardSummary(BaseModel):
    current_month: MonthWindow = Field(..., alias="currentMonth")
    previous_month: MonthWindow = Field(..., alias="previousMonth")
    sessions: TrendMetric
    completed_sessions: TrendMetric = Field(..., alias="completedSessions")
    active_clients: TrendMetric = Field(..., alias="activeClients")
    active_therapists: TrendMetric = Field(..., alias="activeTherapists")
    total_clients: int = Field(0, alias="totalClients")
    total_therapists: int = Field(0, alias="totalTherapists")
    status_distribution: StatusDistribution = Field(..., alias="statusDistribution")
    sessions_by_weekday: list[WeekdayBar] = Field(default_factory=list, alias="sessionsByWeekday")

    model_config = {"populate_by_name": True}
