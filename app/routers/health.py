"""
Health check endpoint.
"""
from fastapi import APIRouter
from datetime import datetime, timezone
import logging

from app.config import settings
from app.models.schemas import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=HealthCheckResponse)
async def health_check():
    """
    Health check endpoint to verify system status.

    No outbound call is made; the gateway is only contacted during generation.

    Returns:
        HealthCheckResponse with the LLM configuration status
    """
    llm_status = "configured" if settings.llm_configured else "missing_api_key"
    if not settings.llm_configured:
        logger.warning("Health check: LLM_API_KEY is not set")

    return HealthCheckResponse(
        status="healthy" if settings.llm_configured else "degraded",
        llm=llm_status,
        model=settings.LLM_MODEL,
        timestamp=datetime.now(timezone.utc),
    )
