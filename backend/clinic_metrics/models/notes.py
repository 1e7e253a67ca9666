# note models — session note generation request/response and compliance result
# the structured document shape follows the json format the generator is prompted with

from typing import Annotated, Any, Optional, Union
from pydantic import BaseModel, Field, field_validator


class NoteRequest(BaseModel):
    """payload for session note generation"""
    prompt: Optional[str] = None
    model: Optional[str] = None
    max_tokens: Optional[int] = Field(None, alias="maxTokens", ge=1, le=8192)
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)
    session_data: Optional[dict[str, Any]] = Field(None, alias="sessionData")

    model_config = {"populate_by_name": True}


class Observation(BaseModel):
    """one behavioral observation. antecedent + consequence make it ABC-formatted"""
    behavior_type: Optional[str] = None
    description: Optional[str] = None
    # the generator writes counts as numbers or as text ("3 per hour")
    frequency: Optional[Union[float, str]] = None
    duration: Optional[Union[float, str]] = None
    intensity: Optional[Union[str, float]] = None
    antecedent: Optional[str] = None
    consequence: Optional[str] = None
    function_hypothesis: Optional[str] = None

    model_config = {"extra": "allow"}


# non-object entries are kept as they are; the scorer counts them as present but not ABC
ObservationEntry = Annotated[Union[Observation, Any], Field(union_mode="left_to_right")]


class NoteDocument(BaseModel):
    """structured clinical note as returned by the generator.
    section lists are lenient: null or a non-list value reads as an empty section."""
    clinical_status: Optional[str] = None
    goals: list[Any] = Field(default_factory=list)
    interventions: list[Any] = Field(default_factory=list)
    observations: list[ObservationEntry] = Field(default_factory=list)
    responses: list[Any] = Field(default_factory=list)
    data_summary: list[Any] = Field(default_factory=list)
    progress: list[Any] = Field(default_factory=list)
    recommendations: list[Any] = Field(default_factory=list)
    summary: Optional[str] = None
    confidence: Optional[float] = None

    model_config = {"extra": "allow"}

    @field_validator(
        "goals", "interventions", "observations", "responses",
        "data_summary", "progress", "recommendations", mode="before",
    )
    @classmethod
    def _absent_section(cls, v: Any) -> Any:
        return v if isinstance(v, list) else []

    @field_validator("confidence", mode="before")
    @classmethod
    def _numeric_confidence(cls, v: Any) -> Any:
        if isinstance(v, bool):
            return None
        try:
            return None if v is None else float(v)
        except (TypeError, ValueError):
            return None


class ComplianceReport(BaseModel):
    score: int
    compliant: bool
    insurance_ready: bool = Field(..., alias="insuranceReady")
    issues: list[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class TokenUsage(BaseModel):
    prompt_tokens: int = Field(0, alias="promptTokens")
    completion_tokens: int = Field(0, alias="completionTokens")
    total_tokens: int = Field(0, alias="totalTokens")

    model_config = {"populate_by_name": True}


class NoteResponse(BaseModel):
    content: str
    document: NoteDocument
    confidence: float
    compliance: ComplianceReport
    processing_time: int = Field(0, alias="processingTime")
    token_usage: TokenUsage = Field(default_factory=TokenUsage, alias="tokenUsage")

    model_config = {"populate_by_name": True}


class ScoreRequest(BaseModel):
    """score an already-structured document without generating one"""
    document: dict[str, Any] = Field(default_factory=dict)
