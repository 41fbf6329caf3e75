"""
Error taxonomy for report generation.

Every error carries the HTTP status the API responds with and a message
that is safe to show to the student.
"""
from fastapi import status


class ReportGenerationError(Exception):
    """Base class for all errors surfaced by the generation endpoint."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Failed to generate project"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ReportGenerationError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Missing required information. Please fill all required fields."


class UnsupportedFileType(ReportGenerationError):
    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    default_message = "Unsupported file type. Please upload PDF, DOCX, or PPTX files only."


class FileTooLarge(ReportGenerationError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_message = "File size exceeds 10MB limit. Please compress or choose a smaller file."


class MissingCredential(ReportGenerationError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "LLM_API_KEY is not configured"


class GenerationError(ReportGenerationError):
    """Base for failures reported by the text-generation service."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "AI gateway error"


class RateLimited(GenerationError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Rate limits exceeded. Please try again later."


class QuotaExceeded(GenerationError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_message = "AI usage limit reached. Please add credits."


class UpstreamError(GenerationError):
    def __init__(self, message: str = "", upstream_status: int = 0):
        self.upstream_status = upstream_status
        super().__init__(message)


class ParseDegraded(ReportGenerationError):
    """Model output did not match the expected grammar; defaults were used.

    Never surfaced to the caller. Raised and caught inside the pipeline so
    the fallback is logged.
    """

    default_message = "Generated output did not match the expected format"


class GenerationInProgress(ReportGenerationError):
    """Raised by the client when a generation is already running."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "A project generation is already in progress"
