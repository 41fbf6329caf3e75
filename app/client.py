"""
Python client for the report generation API, plus the ``msbte-report`` CLI.

ProjectGenerationClient mirrors the browser workflow: validate the form
locally, read the reference file into a data URL, post it to
``/api/generate-project`` and track a coarse stage/progress state.
"""
from __future__ import annotations

import argparse
import asyncio
import base64
import dataclasses
import enum
import logging
import math
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import aiofiles
import httpx

from app.config import settings
from app.core.exceptions import (
    FileTooLarge,
    GenerationInProgress,
    ReportGenerationError,
    UnsupportedFileType,
    ValidationError,
)

logger = logging.getLogger(__name__)

EXTENSION_MIME_TYPES: Dict[str, str] = {
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
}

REQUIRED_FIELDS = ("name", "rollNumber", "enrollmentNumber", "college", "topic")
MISSING_INFO_MESSAGE = "Missing required information. Please fill all required fields."
INVALID_TYPE_MESSAGE = "Invalid file type. Please upload PDF, DOCX, or PPTX files only."
TOO_LARGE_MESSAGE = "File size exceeds 10MB limit. Please compress or choose a smaller file."

# Rough estimate used by estimated_seconds_remaining
SECONDS_PER_PERCENT = 0.5


class GenerationStage(str, enum.Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    ENHANCING = "enhancing"
    VALIDATING = "validating"   # reserved; the server runs validation inside one request
    COMPLETED = "completed"


STAGE_MESSAGES = {
    GenerationStage.ANALYZING: "Analyzing your document and requirements...",
    GenerationStage.GENERATING: "Generating MSBTE-compliant content...",
    GenerationStage.ENHANCING: "Enhancing content with AI improvements...",
    GenerationStage.VALIDATING: "Validating MSBTE compliance...",
    GenerationStage.COMPLETED: "Project generation completed successfully!",
}


@dataclasses.dataclass
class GenerationState:
    is_loading: bool = False
    error: Optional[str] = None
    generated_content: Optional[str] = None   # base64 .docx
    file_name: Optional[str] = None
    quality_metrics: Optional[Dict[str, Any]] = None
    compliance_info: Optional[Dict[str, Any]] = None
    suggestions: List[str] = dataclasses.field(default_factory=list)
    current_stage: GenerationStage = GenerationStage.IDLE
    progress: int = 0


@dataclasses.dataclass(frozen=True)
class _LastGeneration:
    path: Path
    project_data: Dict[str, Any]
    template: str


class ProjectGenerationClient:
    """
    Drives one generation at a time against a running API server.

    Errors never escape ``generate_project``; they land in ``state.error``
    and reset the stage to idle. Starting a second generation while one is
    running raises GenerationInProgress.
    """

    def __init__(
        self,
        base_url: str = f"http://127.0.0.1:{settings.PORT}",
        max_file_size: int = settings.MAX_FILE_SIZE,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.max_file_size = max_file_size
        self.timeout = timeout or httpx.Timeout(600.0, connect=10.0)
        self._transport = transport
        self.state = GenerationState()
        self._last: Optional[_LastGeneration] = None

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    def _update(self, **changes: Any) -> None:
        self.state = dataclasses.replace(self.state, **changes)

    def _set_stage(self, stage: GenerationStage) -> None:
        self._update(current_stage=stage)
        logger.info("generation stage: %s", stage.value)

    def _set_progress(self, progress: int) -> None:
        self._update(progress=max(0, min(100, progress)))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate_project(
        self,
        path: Union[str, Path],
        project_data: Dict[str, Any],
        template: str = "msbte",
    ) -> GenerationState:
        """
        Generate a report from the file at *path*.

        *project_data* uses the wire (camelCase) keys: name, rollNumber,
        enrollmentNumber, college, topic and optional branch, semester,
        category, complexity.
        """
        if self.state.is_loading:
            raise GenerationInProgress()

        path = Path(path)
        self._update(
            is_loading=True,
            error=None,
            generated_content=None,
            file_name=None,
            quality_metrics=None,
            compliance_info=None,
            suggestions=[],
            current_stage=GenerationStage.ANALYZING,
            progress=0,
        )
        self._last = _LastGeneration(path=path, project_data=dict(project_data), template=template)

        try:
            self._set_stage(GenerationStage.ANALYZING)
            self._set_progress(10)
            mime_type = self._validate(path, project_data)
            self._set_progress(20)

            self._set_stage(GenerationStage.GENERATING)
            self._set_progress(30)
            data_url = await self._read_data_url(path, mime_type)
            self._set_progress(50)

            body = {
                "fileContent": data_url,
                "fileName": path.name,
                "fileType": mime_type,
                "studentData": {k: v for k, v in project_data.items() if v not in (None, "")},
                "template": template,
            }
            self._set_progress(60)

            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post("/api/generate-project", json=body)
            self._set_progress(80)

            if resp.status_code < 200 or resp.status_code >= 300:
                raise ReportGenerationError(self._error_message(resp))

            self._set_stage(GenerationStage.ENHANCING)
            data = resp.json()
            self._set_progress(90)

            if not data.get("success"):
                raise ReportGenerationError(data.get("error") or "Generation failed")

            self._update(
                generated_content=data["content"],
                file_name=data.get("fileName"),
                quality_metrics=data.get("qualityMetrics"),
                compliance_info=data.get("complianceInfo"),
                suggestions=list(data.get("suggestions") or []),
                current_stage=GenerationStage.COMPLETED,
                progress=100,
                is_loading=False,
            )
            logger.info("Project generated: %s", self.state.file_name)
        except (ReportGenerationError, httpx.HTTPError, OSError, ValueError, KeyError) as exc:
            message = exc.message if isinstance(exc, ReportGenerationError) else str(exc)
            message = message or "Failed to generate project"
            logger.error("Project generation failed: %s", message)
            self._update(
                error=message,
                is_loading=False,
                current_stage=GenerationStage.IDLE,
                progress=0,
            )
        return self.state

    async def retry_generation(self) -> GenerationState:
        """Replay the last generation with the same inputs."""
        if self._last is None:
            self._update(error="No previous generation to retry")
            return self.state
        last = self._last
        return await self.generate_project(last.path, last.project_data, last.template)

    def reset_generation(self) -> None:
        self.state = GenerationState()
        self._last = None

    def save_document(self, directory: Union[str, Path] = ".") -> Path:
        """Write the generated .docx into *directory* and return its path."""
        if not self.state.generated_content or not self.state.file_name:
            raise ValidationError("No generated document to save")
        # only the base name of the server-supplied file name is used
        name = Path(self.state.file_name).name
        if name in ("", ".."):
            raise ValidationError("Server returned an invalid file name")
        target = Path(directory) / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(base64.b64decode(self.state.generated_content))
        return target

    def stage_message(self) -> str:
        return STAGE_MESSAGES.get(self.state.current_stage, "Preparing...")

    def can_retry(self) -> bool:
        return not self.state.is_loading and bool(self.state.error) and self._last is not None

    def estimated_seconds_remaining(self) -> int:
        return int(math.ceil((100 - self.state.progress) * SECONDS_PER_PERCENT))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _validate(self, path: Path, project_data: Dict[str, Any]) -> str:
        """Local checks before any upload; returns the file's MIME type."""
        if not path.is_file() or any(
            not str(project_data.get(key) or "").strip() for key in REQUIRED_FIELDS
        ):
            raise ValidationError(MISSING_INFO_MESSAGE)

        mime_type = EXTENSION_MIME_TYPES.get(path.suffix.lower())
        if mime_type is None:
            raise UnsupportedFileType(INVALID_TYPE_MESSAGE)
        if path.stat().st_size > self.max_file_size:
            raise FileTooLarge(TOO_LARGE_MESSAGE)
        return mime_type

    @staticmethod
    async def _read_data_url(path: Path, mime_type: str) -> str:
        async with aiofiles.open(path, "rb") as f:
            raw = await f.read()
        return f"data:{mime_type};base64,{base64.b64encode(raw).decode('ascii')}"

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        try:
            return resp.json().get("error") or "Failed to generate project"
        except ValueError:
            return resp.text or "Failed to generate project"


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="msbte-report",
        description="Generate an MSBTE micro-project report from a reference document",
    )
    parser.add_argument("file", help="Reference document (.pdf, .docx or .pptx)")
    parser.add_argument("--name", required=True, help="Student name")
    parser.add_argument("--roll-number", required=True)
    parser.add_argument("--enrollment-number", required=True)
    parser.add_argument("--college", required=True)
    parser.add_argument("--topic", required=True, help="Micro-project topic")
    parser.add_argument("--branch")
    parser.add_argument("--semester")
    parser.add_argument("--category")
    parser.add_argument("--complexity")
    parser.add_argument(
        "--template",
        choices=("msbte", "generic"),
        default="msbte",
        help="Report layout (default msbte)",
    )
    parser.add_argument(
        "--server",
        default=f"http://127.0.0.1:{settings.PORT}",
        help="API base URL (default http://127.0.0.1:%d)" % settings.PORT,
    )
    parser.add_argument("--output-dir", default=".", help="Where to write the .docx")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    client = ProjectGenerationClient(base_url=args.server)
    project_data = {
        "name": args.name,
        "rollNumber": args.roll_number,
        "enrollmentNumber": args.enrollment_number,
        "college": args.college,
        "topic": args.topic,
        "branch": args.branch,
        "semester": args.semester,
        "category": args.category,
        "complexity": args.complexity,
    }
    state = await client.generate_project(args.file, project_data, template=args.template)
    if state.error:
        print(f"Generation failed: {state.error}", file=sys.stderr)
        return 1

    target = client.save_document(args.output_dir)
    print(f"Saved {target}")
    if state.quality_metrics:
        compliance = (state.compliance_info or {}).get("complianceScore", 0)
        print(
            f"Quality Score: {state.quality_metrics.get('overallScore', 0)}/100, "
            f"MSBTE Compliance: {compliance}/100"
        )
    for suggestion in state.suggestions:
        print(f"  - {suggestion}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s - %(message)s")
    return asyncio.run(_run(parse_args(argv)))


if __name__ == "__main__":
    raise SystemExit(main())
