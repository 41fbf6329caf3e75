"""Wire schemas for the MSBTE report generator."""
from app.models.schemas import (
    StudentData,
    GenerateProjectRequest,
    GenerateProjectResponse,
    QualityMetricsResponse,
    ComplianceInfoResponse,
    ErrorResponse,
    HealthCheckResponse,
)

__all__ = [
    "StudentData",
    "GenerateProjectRequest",
    "GenerateProjectResponse",
    "QualityMetricsResponse",
    "ComplianceInfoResponse",
    "ErrorResponse",
    "HealthCheckResponse",
]
