"""
Report generation endpoint.

POST    /generate-project  — extract the reference file, run the generation
                             pipeline and return the .docx as base64.
OPTIONS /generate-project  — CORS pre-flight.
"""
from __future__ import annotations

import base64
import logging

from fastapi import APIRouter, Depends, Response
from fastapi.concurrency import run_in_threadpool

from app.dependencies.pipeline import PipelineFactory, get_pipeline_factory
from app.models.schemas import (
    ComplianceInfoResponse,
    ErrorResponse,
    GenerateProjectRequest,
    GenerateProjectResponse,
    QualityMetricsResponse,
)
from app.services.file_extractor import FileTextExtractor, check_file_type

logger = logging.getLogger(__name__)

router = APIRouter()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

_ERROR_RESPONSES = {
    code: {"model": ErrorResponse}
    for code in (400, 402, 413, 415, 429, 500, 502)
}


@router.options("/generate-project", include_in_schema=False)
async def generate_project_preflight() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post(
    "/generate-project",
    response_model=GenerateProjectResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    responses=_ERROR_RESPONSES,
)
async def generate_project(
    body: GenerateProjectRequest,
    response: Response,
    pipeline_factory: PipelineFactory = Depends(get_pipeline_factory),
) -> GenerateProjectResponse:
    """
    Generate an MSBTE micro-project report from a reference document.

    Order of checks: file type → base64 / size → extraction → LLM credential →
    generation. Everything before the credential check happens without any
    network call.
    """
    for name, value in CORS_HEADERS.items():
        response.headers[name] = value

    check_file_type(body.file_type)
    student = body.student_data
    logger.info(
        "generate_project: %s (%s) for %r, template=%s",
        body.file_name,
        body.file_type,
        student.topic,
        body.template,
    )

    extracted = await run_in_threadpool(
        FileTextExtractor().extract, body.file_content, body.file_type
    )

    pipeline = pipeline_factory()
    result = await pipeline.run(student, extracted, template=body.template)
    data, file_name = await run_in_threadpool(
        pipeline.build_document, result, student, extracted
    )

    metrics = result.quality_metrics
    compliance = result.compliance
    validation = result.validation
    return GenerateProjectResponse(
        success=True,
        content=base64.b64encode(data).decode("ascii"),
        file_name=file_name,
        quality_metrics=QualityMetricsResponse(
            technical_depth=metrics.technical_depth,
            academic_quality=metrics.academic_quality,
            completeness=metrics.completeness,
            relevance=metrics.relevance,
            overall_score=metrics.overall_score,
        ),
        suggestions=result.suggestions,
        compliance_info=ComplianceInfoResponse(
            is_compliant=compliance.is_compliant,
            compliance_score=compliance.compliance_score,
            issues=compliance.issues,
            recommendations=compliance.recommendations,
            quality_score=compliance.quality_score,
            section_scores=validation.section_scores if validation else None,
            template_compliance=validation.overall_compliance if validation else None,
            template_issues=[issue.message for issue in validation.issues] if validation else None,
        ),
    )
