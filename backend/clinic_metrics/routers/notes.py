# notes router — session note generation and compliance scoring

import logging
from fastapi import APIRouter, Depends

from clinic_metrics.dependencies import get_note_generator
from clinic_metrics.models.notes import ComplianceReport, NoteRequest, NoteResponse, ScoreRequest
from clinic_metrics.services.compliance import score
from clinic_metrics.services.note_service import NoteGenerator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/notes", tags=["notes"])


@router.post("/generate", response_model=NoteResponse)
async def generate_note(
    body: NoteRequest,
    generator: NoteGenerator = Depends(get_note_generator),
):
    """generate a structured session note from session data and score it"""
    return await generator.generate(body)


@router.post("/score", response_model=ComplianceReport)
async def score_note(body: ScoreRequest):
    """score an existing structured note document"""
    return score(body.document)
