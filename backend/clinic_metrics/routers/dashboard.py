# dashboard router — monthly summary for the dashboard overview
# always compares the current calendar month with the previous one

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from clinic_metrics.dependencies import get_record_store
from clinic_metrics.models.dashboard import DashboardSummary
from clinic_metrics.services.dashboard_service import DashboardSummaryBuilder
from clinic_metrics.services.record_store import RecordStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/summary", response_model=DashboardSummary)
async def get_dashboard_summary(
    as_of: Optional[date] = Query(None, alias="asOf", description="reference day, defaults to today"),
    store: RecordStore = Depends(get_record_store),
):
    """session, completion and activity trends for this month vs last month"""
    return await DashboardSummaryBuilder(store).build(today=as_of)
