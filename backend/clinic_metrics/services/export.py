# csv export of a report's raw records
# scalar columns only; nested objects are skipped and lists joined with ";"

import logging
from typing import Any

import pandas as pd

from clinic_metrics.models.reports import ReportResult

logger = logging.getLogger(__name__)


def _is_nested(value: Any) -> bool:
    return isinstance(value, dict)


def _flatten_value(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return ";".join(str(v) for v in value)
    return value


def records_to_frame(rows: list[dict[str, Any]]) -> pd.DataFrame:
    """build a dataframe whose columns are the scalar fields of the first record"""
    if not rows:
        return pd.DataFrame()
    columns = [key for key, value in rows[0].items() if not _is_nested(value)]
    data = [{col: _flatten_value(row.get(col)) for col in columns} for row in rows]
    return pd.DataFrame(data, columns=columns)


def report_to_csv(report: ReportResult, max_rows: int = 50000) -> str:
    """csv text for the report's raw records. empty string when there are none."""
    rows = [record.model_dump(mode="json") for record in report.raw_data[:max_rows]]
    if len(report.raw_data) > max_rows:
        logger.warning(f"CSV export truncated to {max_rows} of {len(report.raw_data)} rows")
    frame = records_to_frame(rows)
    if frame.empty:
        return ""
    return frame.to_csv(index=False)


def export_filename(report: ReportResult) -> str:
    return f"{report.report_type}_report_{report.date_range.end.isoformat()}.csv"
