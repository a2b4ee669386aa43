"""Estimation Schema Definitions

Pydantic models for the estimation pipeline, organized by stage:
- Stage 1: Retrieval
- Stage 2: Structured extraction
- Stage 3: Cost breakdown
- API: Request/Response models
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_CAMEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Retrieval Models
class RetrievedDocument(BaseModel):
    """A corpus document returned by vector search, with its similarity."""

    id: int
    title: str
    content: str
    source: Optional[str] = None
    doc_type: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    similarity: float = Field(..., description="1 - cosine distance; higher is more similar")


# Extraction Models
class ExtractedProjectDetails(BaseModel):
    """Project parameters pulled from the user's question."""

    model_config = _CAMEL_CONFIG

    project_type: Optional[str] = None
    area: Optional[float] = None
    location: Optional[str] = None
    specific_requirements: list[str] = Field(default_factory=list)

    @classmethod
    def fallback(
        cls,
        project_type_hint: Optional[str] = None,
        default_project_type: str = "epoxy flooring",
        default_area: float = 600.0,
    ) -> "ExtractedProjectDetails":
        """Details used whenever the model output cannot be trusted."""
        return cls(
            project_type=project_type_hint or default_project_type,
            area=default_area,
            location="",
            specific_requirements=[],
        )


# Cost Breakdown Models
class BreakdownLine(BaseModel):
    """One priced line of an estimate. Numeric fields are rounded to cents."""

    model_config = _CAMEL_CONFIG

    item: str
    quantity: float
    unit_cost: float
    total_cost: float
    unit: str


class CostBreakdown(BaseModel):
    """Breakdown lines plus the sum of their rounded totals."""

    lines: list[BreakdownLine] = Field(default_factory=list)
    total_cost: float = 0.0


class EstimationResult(BaseModel):
    """Everything the pipeline produced for one request."""

    total_cost: float
    breakdown: list[BreakdownLine]
    region: str
    project_type: str
    explanation: str
    confidence: float = Field(..., ge=0.0, le=0.95)
    area: float
    extracted_details: ExtractedProjectDetails
    retrieved_documents: list[RetrievedDocument] = Field(default_factory=list)


# API Models
class EstimateRequest(BaseModel):
    """Body of POST /api/estimate."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "query": "epoxy floor for a 600 sq ft garage in 21093",
                "location": "21093",
                "projectType": "epoxy flooring",
            }
        },
    )

    query: str = Field(default="", description="Natural-language cost question")
    location: Optional[str] = Field(default=None, description="Zip code or region name")
    project_type: Optional[str] = Field(default=None, description="Project type override")


class EstimateBody(BaseModel):
    model_config = _CAMEL_CONFIG

    total_cost: float
    breakdown: list[BreakdownLine]
    region: str
    project_type: str


class EstimateResponse(BaseModel):
    """Successful estimation payload."""

    estimate: EstimateBody
    explanation: str
    confidence: float

    @classmethod
    def from_result(cls, result: EstimationResult) -> "EstimateResponse":
        return cls(
            estimate=EstimateBody(
                total_cost=result.total_cost,
                breakdown=result.breakdown,
                region=result.region,
                project_type=result.project_type,
            ),
            explanation=result.explanation,
            confidence=result.confidence,
        )


class ErrorResponse(BaseModel):
    """Structured error payload. Never carries stack traces."""

    error: str
    details: Optional[str] = None
