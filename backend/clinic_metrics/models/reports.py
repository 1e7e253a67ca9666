# report models — date range, filters, trend metric and the five report variants
# ReportResult is a discriminated union on report_type; field aliases mirror the
# camelCase keys the reports frontend reads

from datetime import date, timedelta
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field, model_validator

from clinic_metrics.models.records import (
    Authorization,
    BillingEntry,
    Client,
    Session,
    SessionStatus,
    Therapist,
)

ReportType = Literal["sessions", "clients", "therapists", "authorizations", "billing"]


class DateRange(BaseModel):
    """inclusive calendar range; the end day is covered in full"""
    start: date
    end: date

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_order(self):
        if self.start > self.end:
            raise ValueError(f"start date {self.start} is after end date {self.end}")
        return self

    # query bounds are half-open [start_bound, end_bound) on local wall-clock iso strings;
    # end_bound is midnight after the end day so the whole end day is covered

    @property
    def start_bound(self) -> str:
        return f"{self.start.isoformat()}T00:00:00"

    @property
    def end_bound(self) -> str:
        return f"{(self.end + timedelta(days=1)).isoformat()}T00:00:00"

    @property
    def label(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"


class ReportFilters(BaseModel):
    """optional session filters, only the sessions report applies them"""
    therapist_id: Optional[str] = Field(None, alias="therapistId")
    client_id: Optional[str] = Field(None, alias="clientId")
    status: Optional[SessionStatus] = None

    model_config = {"populate_by_name": True, "frozen": True}


class ReportRequest(BaseModel):
    """payload for report generation. required fields are checked by the engine
    so missing ones surface as a 400 with a single message."""
    report_type: Optional[str] = Field(None, alias="reportType")
    start_date: Optional[str] = Field(None, alias="startDate")
    end_date: Optional[str] = Field(None, alias="endDate")
    therapist_id: Optional[str] = Field(None, alias="therapistId")
    client_id: Optional[str] = Field(None, alias="clientId")
    status: Optional[str] = None

    model_config = {"populate_by_name": True}


class TrendMetric(BaseModel):
    current: float
    previous: float
    percent_change: float = Field(..., alias="percentChange")

    model_config = {"populate_by_name": True, "frozen": True}


class RankedEntity(BaseModel):
    """an entity ranked by session count (top clients / top therapists)"""
    id: str
    name: str
    session_count: int = Field(..., alias="sessionCount")

    model_config = {"populate_by_name": True}


class TherapistBreakdown(BaseModel):
    therapist_id: str = Field(..., alias="therapistId")
    therapist_name: str = Field(..., alias="therapistName")
    total_sessions: int = Field(0, alias="totalSessions")
    completed_sessions: int = Field(0, alias="completedSessions")
    cancelled_sessions: int = Field(0, alias="cancelledSessions")
    no_show_sessions: int = Field(0, alias="noShowSessions")
    completion_rate: float = Field(0.0, alias="completionRate")

    model_config = {"populate_by_name": True}


class ClientMetrics(BaseModel):
    """aggregate client metrics as projected by the record store"""
    total_clients: int = Field(0, alias="totalClients")
    active_clients: int = Field(0, alias="activeClients")
    inactive_clients: int = Field(0, alias="inactiveClients")
    activity_rate: float = Field(0.0, alias="activityRate")
    total_sessions: int = Field(0, alias="totalSessions")
    completed_sessions: int = Field(0, alias="completedSessions")
    cancelled_sessions: int = Field(0, alias="cancelledSessions")
    no_show_sessions: int = Field(0, alias="noShowSessions")
    completion_rate: float = Field(0.0, alias="completionRate")

    model_config = {"populate_by_name": True}


# report variants


class SessionsReport(BaseModel):
    report_type: Literal["sessions"] = Field("sessions", alias="reportType")
    date_range: DateRange = Field(..., alias="dateRange")
    total_sessions: int = Field(0, alias="totalSessions")
    completed_sessions: int = Field(0, alias="completedSessions")
    scheduled_sessions: int = Field(0, alias="scheduledSessions")
    cancelled_sessions: int = Field(0, alias="cancelledSessions")
    no_show_sessions: int = Field(0, alias="noShowSessions")
    completion_rate: float = Field(0.0, alias="completionRate")
    sessions_by_status: dict[str, int] = Field(default_factory=dict, alias="sessionsByStatus")
    sessions_by_therapist: dict[str, int] = Field(default_factory=dict, alias="sessionsByTherapist")
    sessions_by_client: dict[str, int] = Field(default_factory=dict, alias="sessionsByClient")
    sessions_by_day_of_week: dict[str, int] = Field(default_factory=dict, alias="sessionsByDayOfWeek")
    raw_data: list[Session] = Field(default_factory=list, alias="rawData")

    model_config = {"populate_by_name": True}


class ClientsReport(BaseModel):
    report_type: Literal["clients"] = Field("clients", alias="reportType")
    date_range: DateRange = Field(..., alias="dateRange")
    metrics: ClientMetrics
    top_clients: list[RankedEntity] = Field(default_factory=list, alias="topClients")
    raw_data: list[Client] = Field(default_factory=list, alias="rawData")
    sessions: list[Session] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class TherapistsReport(BaseModel):
    report_type: Literal["therapists"] = Field("therapists", alias="reportType")
    date_range: DateRange = Field(..., alias="dateRange")
    total_therapists: int = Field(0, alias="totalTherapists")
    active_therapists: int = Field(0, alias="activeTherapists")
    utilization_rate: float = Field(0.0, alias="utilizationRate")
    total_sessions: int = Field(0, alias="totalSessions")
    therapist_breakdown: list[TherapistBreakdown] = Field(default_factory=list, alias="therapistBreakdown")
    top_therapists: list[RankedEntity] = Field(default_factory=list, alias="topTherapists")
    therapists_by_specialty: dict[str, int] = Field(default_factory=dict, alias="therapistsBySpecialty")
    therapists_by_service_type: dict[str, int] = Field(default_factory=dict, alias="therapistsByServiceType")
    raw_data: list[Therapist] = Field(default_factory=list, alias="rawData")
    sessions: list[Session] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class AuthorizationsReport(BaseModel):
    report_type: Literal["authorizations"] = Field("authorizations", alias="reportType")
    date_range: DateRange = Field(..., alias="dateRange")
    total_authorizations: int = Field(0, alias="totalAuthorizations")
    active_authorizations: int = Field(0, alias="activeAuthorizations")
    expired_authorizations: int = Field(0, alias="expiredAuthorizations")
    pending_authorizations: int = Field(0, alias="pendingAuthorizations")
    expiring_soon: int = Field(0, alias="expiringSoon")
    authorizations_by_provider: dict[str, int] = Field(default_factory=dict, alias="authorizationsByProvider")
    authorizations_by_client: dict[str, int] = Field(default_factory=dict, alias="authorizationsByClient")
    raw_data: list[Authorization] = Field(default_factory=list, alias="rawData")

    model_config = {"populate_by_name": True}


class BillingReport(BaseModel):
    report_type: Literal["billing"] = Field("billing", alias="reportType")
    date_range: DateRange = Field(..., alias="dateRange")
    billable_sessions: int = Field(0, alias="billableSessions")
    session_rate: float = Field(0.0, alias="sessionRate")
    total_revenue: float = Field(0.0, alias="totalRevenue")
    average_revenue_per_session: float = Field(0.0, alias="averageRevenuePerSession")
    sessions_by_month: dict[str, int] = Field(default_factory=dict, alias="sessionsByMonth")
    total_billed: float = Field(0.0, alias="totalBilled")
    paid_amount: float = Field(0.0, alias="paidAmount")
    collection_rate: float = Field(0.0, alias="collectionRate")
    records_by_status: dict[str, int] = Field(default_factory=dict, alias="recordsByStatus")
    raw_data: list[Session] = Field(default_factory=list, alias="rawData")
    billing_records: list[BillingEntry] = Field(default_factory=list, alias="billingRecords")

    model_config = {"populate_by_name": True}


ReportResult = Annotated[
    Union[SessionsReport, ClientsReport, TherapistsReport, AuthorizationsReport, BillingReport],
    Field(discriminator="report_type"),
]


class ReportEnvelope(BaseModel):
    """response wrapper {success, data}"""
    success: bool = True
    data: ReportResult
