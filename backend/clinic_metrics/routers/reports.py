# reports router — generate any of the five report types, or export one as csv
# request validation and failures are turned into {success: false, error} by the app's handlers

import logging
from fastapi import APIRouter, Depends
from fastapi.responses import Response

from clinic_metrics.config import settings
from clinic_metrics.dependencies import get_record_store
from clinic_metrics.models.reports import ReportEnvelope, ReportRequest
from clinic_metrics.services.export import export_filename, report_to_csv
from clinic_metrics.services.record_store import RecordStore
from clinic_metrics.services.report_builders import generate_report

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/reports", tags=["reports"])


async def _build(body: ReportRequest, store: RecordStore):
    return await generate_report(
        store,
        report_type=body.report_type,
        start_date=body.start_date,
        end_date=body.end_date,
        therapist_id=body.therapist_id,
        client_id=body.client_id,
        status=body.status,
    )


@router.post("/generate", response_model=ReportEnvelope)
async def generate(
    body: ReportRequest,
    store: RecordStore = Depends(get_record_store),
):
    """build a report for the requested type and date range"""
    report = await _build(body, store)
    return ReportEnvelope(success=True, data=report)


@router.post("/export")
async def export(
    body: ReportRequest,
    store: RecordStore = Depends(get_record_store),
):
    """build a report and return its raw records as a csv download"""
    report = await _build(body, store)
    csv_text = report_to_csv(report, max_rows=settings.EXPORT_MAX_ROWS)
    filename = export_filename(report)
    logger.info(f"Exporting {filename} ({len(report.raw_data)} records)")
    return Response(
        content=csv_text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
