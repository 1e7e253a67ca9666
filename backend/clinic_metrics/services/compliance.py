# compliance scorer — rule checks over a structured session note
# flat, independent deductions from 100; each rule applies at most once.
# rule order is the order issues are reported in.

from typing import Any, Mapping, Union

from clinic_metrics.models.notes import ComplianceReport, NoteDocument

COMPLIANT_THRESHOLD = 80
INSURANCE_READY_THRESHOLD = 90

# (field, alternate key, deduction, issue)
PRESENCE_RULES = (
    ("observations", "observations", 20, "Missing behavioral observations"),
    ("data_summary", "dataSummary", 20, "Missing quantified data collection"),
    ("interventions", "interventions", 15, "Missing ABA intervention documentation"),
    ("progress", "progress", 15, "Missing progress toward goals"),
)
ABC_DEDUCTION = 10
ABC_ISSUE = "Missing ABC (Antecedent-Behavior-Consequence) format"


def _entries(document: Mapping[str, Any], key: str, alt_key: str) -> list:
    """list value under key (or its camelCase spelling); anything that isn't a list counts as absent"""
    value = document.get(key)
    if value is None:
        value = document.get(alt_key)
    return value if isinstance(value, list) else []


def _has_abc(observations: list) -> bool:
    return any(
        isinstance(obs, Mapping) and obs.get("antecedent") and obs.get("consequence")
        for obs in observations
    )


def score(document: Union[NoteDocument, Mapping[str, Any], None]) -> ComplianceReport:
    """score a note document. never raises, malformed input just collects deductions."""
    if isinstance(document, NoteDocument):
        document = document.model_dump()
    if not isinstance(document, Mapping):
        document = {}

    total = 100
    issues = []
    for key, alt_key, deduction, issue in PRESENCE_RULES:
        if not _entries(document, key, alt_key):
            issues.append(issue)
            total -= deduction

    if not _has_abc(_entries(document, "observations", "observations")):
        issues.append(ABC_ISSUE)
        total -= ABC_DEDUCTION

    total = max(total, 0)
    return ComplianceReport(
        score=total,
        compliant=total >= COMPLIANT_THRESHOLD,
        insuranceReady=total >= INSURANCE_READY_THRESHOLD,
        issues=issues,
    )
