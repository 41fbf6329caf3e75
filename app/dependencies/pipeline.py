"""
Pipeline dependency for the generation endpoint.

The route receives a factory rather than a ready pipeline so the LLM
credential is only checked after the request has been validated and the
upload extracted. Tests override ``get_pipeline_factory`` to plug in a
stubbed transport.
"""
from typing import Callable

from app.config import settings
from app.services.generation_client import GenerationClient
from app.services.pipeline import ReportPipeline

PipelineFactory = Callable[[], ReportPipeline]


def _build_pipeline() -> ReportPipeline:
    # Raises MissingCredential when LLM_API_KEY is empty
    return ReportPipeline(GenerationClient.from_settings(settings))


def get_pipeline_factory() -> PipelineFactory:
    """FastAPI dependency returning a callable that builds a fresh pipeline."""
    return _build_pipeline
