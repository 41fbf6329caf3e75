"""
Pydantic schemas for request/response validation.

Wire format is camelCase (``rollNumber``, ``fileContent`` ...); Python code
uses the snake_case attribute names. Both spellings are accepted on input.
"""
from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from typing import Dict, Optional, List, Literal
from datetime import datetime


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Student Schemas
class StudentData(_CamelModel):
    """Student and project details. Immutable once validated."""

    name: str = Field(..., min_length=1, max_length=255)
    roll_number: str = Field(..., min_length=1, max_length=64)
    enrollment_number: str = Field(..., min_length=1, max_length=64)
    college: str = Field(..., min_length=1, max_length=255)
    topic: str = Field(..., min_length=1, max_length=500)
    branch: Optional[str] = None
    semester: Optional[str] = None
    category: Optional[str] = None
    complexity: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
    )

    @field_validator("semester", mode="before")
    @classmethod
    def _semester_to_str(cls, value):
        # Forms send the semester either as "5" or 5
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("branch", "semester", "category", "complexity")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value


# Generation Schemas
class GenerateProjectRequest(_CamelModel):
    """Body of POST /api/generate-project."""

    file_content: str = Field(..., min_length=1, description="Base64 payload or data URL")
    file_name: str = Field(..., min_length=1)
    file_type: str = Field(..., min_length=1, description="Declared MIME type")
    student_data: StudentData
    template: Literal["msbte", "generic"] = "msbte"


class QualityMetricsResponse(_CamelModel):
    """Heuristic quality scores, each 0-100."""

    technical_depth: int = Field(..., ge=0, le=100)
    academic_quality: int = Field(..., ge=0, le=100)
    completeness: int = Field(..., ge=0, le=100)
    relevance: int = Field(..., ge=0, le=100)
    overall_score: int = Field(..., ge=0, le=100)


class ComplianceInfoResponse(_CamelModel):
    """Outcome of the compliance-audit stage."""

    is_compliant: bool
    compliance_score: int = Field(..., ge=0, le=100)
    issues: List[str] = []
    recommendations: List[str] = []
    quality_score: int = Field(..., ge=0, le=100)
    # Deterministic MSBTE template check; omitted for the generic template
    section_scores: Optional[Dict[str, int]] = None
    template_compliance: Optional[int] = Field(None, ge=0, le=100)
    template_issues: Optional[List[str]] = None


class GenerateProjectResponse(_CamelModel):
    """Successful generation: base64 DOCX plus the scores used to produce it."""

    success: bool = True
    content: str
    file_name: str
    quality_metrics: Optional[QualityMetricsResponse] = None
    suggestions: Optional[List[str]] = None
    compliance_info: Optional[ComplianceInfoResponse] = None


class ErrorResponse(BaseModel):
    """Body of every non-200 response from the generation endpoint."""

    success: bool = False
    error: str


# Health Schemas
class HealthCheckResponse(BaseModel):
    """Schema for health check endpoint."""

    status: str
    llm: str
    model: str
    timestamp: datetime
    version: str = "1.0.0"
