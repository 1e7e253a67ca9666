# error taxonomy for the reporting engine
# every failure surfaced to callers is a ReportingError subclass

from typing import Optional


class ReportingError(Exception):
    """base class for errors the engine reports to its callers"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ReportingError):
    """missing or invalid input: date range, report type, note request fields"""

    status_code = 400


class UnknownReportType(ValidationError):
    """unrecognised report type discriminator"""

    def __init__(self, report_type: Optional[str]):
        super().__init__(f"Invalid report type: {report_type}")
        self.report_type = report_type


class FetchError(ReportingError):
    """a record store fetch failed or returned an error payload"""

    status_code = 502

    def __init__(self, message: str, context: Optional[str] = None):
        full = f"{context}: {message}" if context else message
        super().__init__(full)
        self.context = context

    def with_context(self, context: str) -> "FetchError":
        """re-wrap with report-level context (report type, date range)"""
        return FetchError(self.message, context=context)


class GenerationError(ReportingError):
    """the note generator returned no content or content that failed to parse"""

    status_code = 502
