# note service — langchain-powered session note generation with compliance scoring
#
# generation pipeline:
#   1. validate the request (prompt required)
#   2. prompt gemini with the structured note format + session data
#   3. parse the reply as json and check it against the note document shape
#   4. score the parsed document with the compliance rules
#   5. return document, score, token usage and processing time
#
# any failure in 2–3 is a GenerationError and the scorer is never run

import json
import logging
import time
from typing import Any, Callable, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.utils.json import parse_json_markdown
from langchain_core.prompts import ChatPromptTemplate
from langchain_google_genai import ChatGoogleGenerativeAI
from pydantic import ValidationError as ModelValidationError

from clinic_metrics.config import settings
from clinic_metrics.errors import GenerationError, ValidationError
from clinic_metrics.models.notes import NoteDocument, NoteRequest, NoteResponse, TokenUsage
from clinic_metrics.services.compliance import score

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.85

NOTE_FORMAT = """
You are an expert ABA (Applied Behavior Analysis) therapist creating clinical documentation that must comply with California state requirements and insurance standards.

CRITICAL REQUIREMENTS:
1. Use only objective, observable language (no subjective interpretations)
2. Include specific quantified data (frequencies, percentages, durations)
3. Use proper ABA terminology and evidence-based practices
4. Document antecedents, behaviors, and consequences (ABC format)
5. Include progress toward measurable goals
6. Ensure insurance billing compliance

RESPONSE FORMAT (JSON):
{
  "clinical_status": "Current clinical presentation and status",
  "goals": [{"goal_id": "string", "description": "string", "target_behavior": "string",
             "measurement_type": "frequency|duration|percentage|rate", "baseline_data": number,
             "target_criteria": number, "session_performance": number,
             "progress_status": "improving|maintaining|regressing|mastered"}],
  "interventions": [{"type": "string", "aba_technique": "string", "description": "string",
                     "implementation_fidelity": number, "client_response": "string",
                     "effectiveness_rating": number}],
  "observations": [{"behavior_type": "string", "description": "string", "frequency": number,
                    "duration": number, "intensity": "low|medium|high", "antecedent": "string",
                    "consequence": "string", "function_hypothesis": "string"}],
  "responses": [{"stimulus": "string", "response": "string", "accuracy": number,
                 "independence_level": "independent|verbal_prompt|gestural_prompt|physical_prompt|full_assistance",
                 "latency": number}],
  "data_summary": [{"program_name": "string", "trials_presented": number, "correct_responses": number,
                    "incorrect_responses": number, "no_responses": number,
                    "percentage_correct": number, "trend": "increasing|stable|decreasing"}],
  "progress": [{"goal_id": "string", "current_performance": number, "previous_performance": number,
                "change_percentage": number, "clinical_significance": boolean, "next_steps": "string"}],
  "recommendations": ["string"],
  "summary": "Comprehensive session summary",
  "confidence": number
}
"""

# the format block goes in as a variable so its json braces are not read as template fields
NOTE_PROMPT = ChatPromptTemplate.from_messages([
    ("system", "You are an expert ABA therapist creating California-compliant clinical documentation. "
               "Always respond with valid JSON only."),
    ("human", "{note_format}\n\nSESSION DATA:\n{prompt}"),
])


def get_llm(model: Optional[str] = None, temperature: Optional[float] = None,
            max_tokens: Optional[int] = None) -> ChatGoogleGenerativeAI:
    """create a gemini llm instance for note generation"""
    return ChatGoogleGenerativeAI(
        model=model or settings.GEMINI_MODEL,
        google_api_key=settings.GEMINI_API_KEY,
        temperature=settings.NOTE_TEMPERATURE if temperature is None else temperature,
        max_output_tokens=max_tokens or settings.NOTE_MAX_OUTPUT_TOKENS,
    )


def _message_text(message: Any) -> str:
    """text of a chat model reply. gemini may return a list of content parts"""
    content = getattr(message, "content", message)
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        content = "".join(parts)
    return (content or "").strip() if isinstance(content, str) else ""


def parse_note(text: str) -> NoteDocument:
    """parse generator output into a NoteDocument, raising GenerationError on failure"""
    if not text:
        raise GenerationError("No response generated")
    try:
        # strict: truncated json is an error, never repaired
        parsed = parse_json_markdown(text, parser=json.loads)
    except json.JSONDecodeError as e:
        raise GenerationError(f"Invalid JSON response: {e}")
    if not isinstance(parsed, dict):
        raise GenerationError(f"Invalid note format: expected a JSON object, got {type(parsed).__name__}")
    try:
        return NoteDocument.model_validate(parsed)
    except ModelValidationError as e:
        detail = "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()[:5])
        raise GenerationError(f"Invalid note format: {detail}")


def _token_usage(message: Any) -> TokenUsage:
    usage = getattr(message, "usage_metadata", None) or {}
    return TokenUsage(
        promptTokens=usage.get("input_tokens", 0),
        completionTokens=usage.get("output_tokens", 0),
        totalTokens=usage.get("total_tokens", 0),
    )


class NoteGenerator:
    """generates a structured session note and scores it for compliance"""

    def __init__(self, llm_factory: Optional[Callable[..., BaseChatModel]] = None):
        self.llm_factory = llm_factory or get_llm

    async def generate(self, request: NoteRequest) -> NoteResponse:
        if not request.prompt or not request.prompt.strip():
            raise ValidationError("Prompt is required")

        started = time.perf_counter()
        llm = self.llm_factory(
            model=request.model,
            temperature=request.temperature,
            max_tokens=request.max_tokens,
        )
        chain = NOTE_PROMPT | llm

        try:
            message = await chain.ainvoke({"note_format": NOTE_FORMAT, "prompt": request.prompt})
        except Exception as e:
            logger.error(f"Session note generation failed: {e}")
            raise GenerationError(f"Session note generation failed: {e}") from e

        text = _message_text(message)
        document = parse_note(text)
        compliance = score(document)
        elapsed_ms = int((time.perf_counter() - started) * 1000)

        logger.info(
            f"Generated session note: score {compliance.score}, "
            f"{len(compliance.issues)} issues, {elapsed_ms}ms"
        )
        return NoteResponse(
            content=text,
            document=document,
            confidence=document.confidence if document.confidence is not None else DEFAULT_CONFIDENCE,
            compliance=compliance,
            processingTime=elapsed_ms,
            tokenUsage=_token_usage(message),
        )
