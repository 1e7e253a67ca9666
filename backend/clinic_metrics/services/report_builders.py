# report builders — one per report type, each turning record store fetches into a report
#
# build pipeline (every builder):
#   1. declare a fetch plan (independent fetches share a stage and run concurrently)
#   2. run the plan; any fetch failure aborts the whole report with one FetchError
#   3. assemble totals and tallies from the fetched records only
#   4. attach the raw records so every number can be traced back
#
# builders hold no state between calls: same inputs + unchanged store = same report

import logging
from collections import defaultdict
from datetime import timedelta
from typing import Any, Optional

from pydantic import ValidationError as ModelValidationError

from clinic_metrics.config import settings
from clinic_metrics.errors import UnknownReportType, ValidationError
from clinic_metrics.models.records import Session
from clinic_metrics.models.reports import (
    AuthorizationsReport,
    BillingReport,
    ClientsReport,
    DateRange,
    RankedEntity,
    ReportFilters,
    ReportResult,
    SessionsReport,
    TherapistBreakdown,
    TherapistsReport,
)
from clinic_metrics.services.fetch_plan import FetchPlan
from clinic_metrics.services.grouping import (
    UNKNOWN_LABEL,
    month_label,
    percent_of,
    tally,
    tally_many,
    weekday_name,
)
from clinic_metrics.services.record_store import RecordStore

logger = logging.getLogger(__name__)

TOP_ENTITY_LIMIT = 10


def _status_counts(sessions: list[Session]) -> dict[str, int]:
    return tally(sessions, lambda s: s.status)


def _rank(counts: dict[str, int], names: dict[str, str]) -> list[RankedEntity]:
    """top entities by session count, ties broken by name, then id, for a stable order"""
    ranked = [
        RankedEntity(id=entity_id, name=names.get(entity_id) or UNKNOWN_LABEL, sessionCount=count)
        for entity_id, count in counts.items()
    ]
    ranked.sort(key=lambda e: (-e.session_count, e.name, e.id))
    return ranked[:TOP_ENTITY_LIMIT]


class ReportBuilder:
    """base builder: subclasses declare a fetch plan and assemble the result"""

    report_type: str = ""

    def __init__(self, store: RecordStore):
        self.store = store

    def context(self, date_range: DateRange) -> str:
        return f"{self.report_type} report ({date_range.label})"

    def plan(self, date_range: DateRange, filters: ReportFilters) -> FetchPlan:
        raise NotImplementedError

    def assemble(self, date_range: DateRange, filters: ReportFilters, fetched: dict[str, Any]):
        raise NotImplementedError

    async def build(self, date_range: DateRange, filters: Optional[ReportFilters] = None) -> ReportResult:
        filters = filters or ReportFilters()
        logger.info(f"Building {self.context(date_range)}")
        fetched = await self.plan(date_range, filters).run()
        report = self.assemble(date_range, filters, fetched)
        logger.info(f"Built {self.context(date_range)} from {len(report.raw_data)} records")
        return report


class SessionsReportBuilder(ReportBuilder):
    report_type = "sessions"

    def plan(self, date_range, filters):
        async def sessions(_):
            return await self.store.get_sessions(
                date_range.start_bound,
                date_range.end_bound,
                therapist_id=filters.therapist_id,
                client_id=filters.client_id,
                status=filters.status,
            )

        return FetchPlan(self.context(date_range)).stage(sessions=sessions)

    def assemble(self, date_range, filters, fetched):
        sessions: list[Session] = fetched["sessions"]
        by_status = _status_counts(sessions)
        total = len(sessions)
        completed = by_status.get("completed", 0)

        return SessionsReport(
            dateRange=date_range,
            totalSessions=total,
            completedSessions=completed,
            scheduledSessions=by_status.get("scheduled", 0),
            cancelledSessions=by_status.get("cancelled", 0),
            noShowSessions=by_status.get("no-show", 0),
            completionRate=percent_of(completed, total),
            sessionsByStatus=by_status,
            sessionsByTherapist=tally(sessions, lambda s: s.therapist_name),
            sessionsByClient=tally(sessions, lambda s: s.client_name),
            sessionsByDayOfWeek=tally(sessions, lambda s: weekday_name(s.start_time)),
            rawData=sessions,
        )


class ClientsReportBuilder(ReportBuilder):
    """pass-through enrichment: metrics come from the store's projection as-is"""

    report_type = "clients"

    def plan(self, date_range, filters):
        start, end = date_range.start_bound, date_range.end_bound
        return FetchPlan(self.context(date_range)).stage(
            metrics=lambda _: self.store.get_metrics("clients", start, end),
            clients=lambda _: self.store.get_all("clients"),
            sessions=lambda _: self.store.get_sessions(start, end),
        )

    def assemble(self, date_range, filters, fetched):
        clients = fetched["clients"]
        sessions: list[Session] = fetched["sessions"]

        names = {s.client_id: s.client_name for s in sessions if s.client_id and s.client_name}
        names.update({c.id: c.full_name for c in clients if c.full_name})
        per_client = tally((s for s in sessions if s.client_id), lambda s: s.client_id)

        return ClientsReport(
            dateRange=date_range,
            metrics=fetched["metrics"],
            topClients=_rank(per_client, names),
            rawData=clients,
            sessions=sessions,
        )


class TherapistsReportBuilder(ReportBuilder):
    """per-therapist breakdown is derived here, the store has no such projection"""

    report_type = "therapists"

    def plan(self, date_range, filters):
        start, end = date_range.start_bound, date_range.end_bound
        return FetchPlan(self.context(date_range)).stage(
            therapists=lambda _: self.store.get_all("therapists"),
            sessions=lambda _: self.store.get_sessions(start, end),
        )

    def assemble(self, date_range, filters, fetched):
        therapists = fetched["therapists"]
        sessions: list[Session] = fetched["sessions"]

        by_therapist: dict[str, list[Session]] = defaultdict(list)
        for session in sessions:
            if session.therapist_id:
                by_therapist[session.therapist_id].append(session)

        breakdown = []
        for therapist in therapists:
            own = by_therapist.get(therapist.id, [])
            counts = _status_counts(own)
            breakdown.append(TherapistBreakdown(
                therapistId=therapist.id,
                therapistName=therapist.full_name or UNKNOWN_LABEL,
                totalSessions=len(own),
                completedSessions=counts.get("completed", 0),
                cancelledSessions=counts.get("cancelled", 0),
                noShowSessions=counts.get("no-show", 0),
                completionRate=percent_of(counts.get("completed", 0), len(own)),
            ))
        breakdown.sort(key=lambda b: -b.total_sessions)

        active = sum(1 for t in therapists if t.id in by_therapist)
        names = {t.id: t.full_name for t in therapists if t.full_name}
        per_therapist = {tid: len(own) for tid, own in by_therapist.items()}

        return TherapistsReport(
            dateRange=date_range,
            totalTherapists=len(therapists),
            activeTherapists=active,
            utilizationRate=percent_of(active, len(therapists)),
            totalSessions=len(sessions),
            therapistBreakdown=breakdown,
            topTherapists=_rank(per_therapist, names),
            therapistsBySpecialty=tally_many(therapists, lambda t: t.specialties),
            therapistsByServiceType=tally_many(therapists, lambda t: t.service_type),
            rawData=therapists,
            sessions=sessions,
        )


class AuthorizationsReportBuilder(ReportBuilder):
    """authorizations are selected by creation date inside the range"""

    report_type = "authorizations"

    def __init__(self, store: RecordStore, expiry_window_days: int = 30):
        super().__init__(store)
        self.expiry_window_days = expiry_window_days

    def plan(self, date_range, filters):
        start, end = date_range.start_bound, date_range.end_bound
        return FetchPlan(self.context(date_range)).stage(
            authorizations=lambda _: self.store.get_authorizations(start, end),
        )

    def assemble(self, date_range, filters, fetched):
        authorizations = fetched["authorizations"]
        by_status = tally(authorizations, lambda a: a.status)
        # relative to the range end, not today, so rebuilding gives the same answer
        horizon = date_range.end + timedelta(days=self.expiry_window_days)
        # already ended by the range end means overdue, not expiring
        expiring = sum(
            1 for a in authorizations
            if a.status == "active" and date_range.end < a.end_date <= horizon
        )

        return AuthorizationsReport(
            dateRange=date_range,
            totalAuthorizations=len(authorizations),
            activeAuthorizations=by_status.get("active", 0),
            expiredAuthorizations=by_status.get("expired", 0),
            pendingAuthorizations=by_status.get("pending", 0),
            expiringSoon=expiring,
            authorizationsByProvider=tally(authorizations, lambda a: a.provider_name),
            authorizationsByClient=tally(authorizations, lambda a: a.client_name),
            rawData=authorizations,
        )


class BillingReportBuilder(ReportBuilder):
    """flat-rate revenue over completed sessions, plus billing record collection stats"""

    report_type = "billing"

    def __init__(self, store: RecordStore, session_rate: float = 150.0):
        super().__init__(store)
        if session_rate < 0:
            raise ValidationError("Session rate must not be negative")
        self.session_rate = session_rate

    def plan(self, date_range, filters):
        start, end = date_range.start_bound, date_range.end_bound
        return FetchPlan(self.context(date_range)).stage(
            sessions=lambda _: self.store.get_sessions(start, end, status="completed"),
            billing_records=lambda _: self.store.get_billing_records(start, end),
        )

    def assemble(self, date_range, filters, fetched):
        sessions: list[Session] = fetched["sessions"]
        records = fetched["billing_records"]

        count = len(sessions)
        total_revenue = count * self.session_rate
        total_billed = sum(r.amount for r in records)
        paid = sum(r.amount for r in records if r.status == "paid")

        return BillingReport(
            dateRange=date_range,
            billableSessions=count,
            sessionRate=self.session_rate,
            totalRevenue=total_revenue,
            averageRevenuePerSession=total_revenue / count if count else 0,
            sessionsByMonth=tally(sessions, lambda s: month_label(s.start_time)),
            totalBilled=total_billed,
            paidAmount=paid,
            collectionRate=percent_of(paid, total_billed),
            recordsByStatus=tally(records, lambda r: r.status),
            rawData=sessions,
            billingRecords=records,
        )


REPORT_BUILDERS: dict[str, type[ReportBuilder]] = {
    "sessions": SessionsReportBuilder,
    "clients": ClientsReportBuilder,
    "therapists": TherapistsReportBuilder,
    "authorizations": AuthorizationsReportBuilder,
    "billing": BillingReportBuilder,
}


def create_builder(
    report_type: Optional[str],
    store: RecordStore,
    session_rate: Optional[float] = None,
    expiry_window_days: Optional[int] = None,
) -> ReportBuilder:
    """instantiate the builder for a report type, wiring configured policies"""
    builder_cls = REPORT_BUILDERS.get(report_type or "")
    if builder_cls is None:
        raise UnknownReportType(report_type)
    if builder_cls is BillingReportBuilder:
        rate = settings.SESSION_RATE if session_rate is None else session_rate
        return BillingReportBuilder(store, session_rate=rate)
    if builder_cls is AuthorizationsReportBuilder:
        window = settings.AUTHORIZATION_EXPIRY_WINDOW_DAYS if expiry_window_days is None else expiry_window_days
        return AuthorizationsReportBuilder(store, expiry_window_days=window)
    return builder_cls(store)


def parse_date_range(start_date: Optional[str], end_date: Optional[str]) -> DateRange:
    try:
        return DateRange(start=start_date, end=end_date)
    except ModelValidationError as e:
        detail = "; ".join(err["msg"] for err in e.errors())
        raise ValidationError(f"Invalid date range {start_date}..{end_date}: {detail}")


def parse_filters(
    therapist_id: Optional[str] = None,
    client_id: Optional[str] = None,
    status: Optional[str] = None,
) -> ReportFilters:
    try:
        return ReportFilters(therapistId=therapist_id or None, clientId=client_id or None, status=status or None)
    except ModelValidationError:
        raise ValidationError(f"Invalid session status filter: {status}")


async def generate_report(
    store: RecordStore,
    report_type: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
    therapist_id: Optional[str] = None,
    client_id: Optional[str] = None,
    status: Optional[str] = None,
    session_rate: Optional[float] = None,
) -> ReportResult:
    """validate the request, pick the builder for report_type and build the report"""
    if not report_type or not start_date or not end_date:
        raise ValidationError("Report type, start date, and end date are required")

    builder = create_builder(report_type, store, session_rate=session_rate)
    date_range = parse_date_range(start_date, end_date)
    filters = parse_filters(therapist_id, client_id, status)
    return await builder.build(date_range, filters)
