"""
Four-stage report generation pipeline.

Public API
----------
ReportPipeline.run(student, extracted, template="msbte")
    → PipelineResult
    generate → enhance → validate compliance → final formatting.

ReportPipeline.build_document(result, student, extracted)
    → (docx bytes, file name)
    Parses the final text and assembles the Word document.

Stage 1 failures propagate. Stages 2 and 3 degrade to the previous stage's
text and log a distinguishable message; stage 4 makes no network call.
"""
from __future__ import annotations

import dataclasses
import logging
import re
import time
from typing import List, Optional, Tuple

from app.config import settings
from app.core.exceptions import GenerationError, ParseDegraded
from app.models.schemas import StudentData
from app.services.document_assembler import DocumentAssembler, report_filename
from app.services.file_extractor import ExtractedDocument
from app.services.generation_client import GenerationClient, GenerationOptions
from app.services.prompt_composer import TEMPLATE_GENERIC, TEMPLATE_MSBTE, PromptComposer
from app.services.quality import (
    DocumentValidation,
    QualityMetrics,
    build_suggestions,
    compute_quality_metrics,
    count_generic_sections,
    validate_document,
    validate_student_data,
)
from app.services.section_parser import MSBTE_SECTION_MARKERS, SectionParser, present_markers
from app.utils.helpers import normalize_whitespace

logger = logging.getLogger(__name__)

DEFAULT_COMPLIANCE_SCORE = 70
DEFAULT_QUALITY_SCORE = 75
DEFAULT_ISSUE = "Automated compliance review was inconclusive; verify the report against the MSBTE template."
DEFAULT_RECOMMENDATION = "Review every Annexure I and Annexure II section before submission."


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class ComplianceResult:
    """Outcome of the compliance-audit stage."""

    is_compliant: bool
    compliance_score: int
    issues: List[str]
    recommendations: List[str]
    quality_score: int
    missing_fields: List[str] = dataclasses.field(default_factory=list)
    degraded: bool = False   # True when the audit call itself failed


@dataclasses.dataclass
class PipelineResult:
    """Everything the endpoint needs to build the response."""

    content: str
    initial_content: str
    quality_metrics: QualityMetrics
    initial_metrics: QualityMetrics
    suggestions: List[str]
    compliance: ComplianceResult
    template: str = TEMPLATE_MSBTE
    degraded_stages: List[str] = dataclasses.field(default_factory=list)
    processing_time_seconds: float = 0.0
    validation: Optional[DocumentValidation] = None   # MSBTE template only


def default_compliance(degraded: bool = False, missing: Optional[List[str]] = None) -> ComplianceResult:
    return ComplianceResult(
        is_compliant=DEFAULT_COMPLIANCE_SCORE >= settings.COMPLIANCE_THRESHOLD,
        compliance_score=DEFAULT_COMPLIANCE_SCORE,
        issues=[DEFAULT_ISSUE],
        recommendations=[DEFAULT_RECOMMENDATION],
        quality_score=DEFAULT_QUALITY_SCORE,
        missing_fields=list(missing or []),
        degraded=degraded,
    )


# ---------------------------------------------------------------------------
# Compliance report parsing
# ---------------------------------------------------------------------------

_SCORE = re.compile(r"^\s*\**COMPLIANCE_SCORE\**\s*:\s*(\d+)", re.IGNORECASE | re.MULTILINE)
_IS_COMPLIANT = re.compile(
    r"^\s*\**IS_COMPLIANT\**\s*:\s*(true|false|yes|no)\b", re.IGNORECASE | re.MULTILINE
)
_ISSUES = re.compile(
    r"^\s*\**ISSUES\**\s*:(.*?)(?=^\s*\**RECOMMENDATIONS\**\s*:|\Z)",
    re.IGNORECASE | re.MULTILINE | re.DOTALL,
)
_RECOMMENDATIONS = re.compile(
    r"^\s*\**RECOMMENDATIONS\**\s*:(.*?)(?=^\s*\**QUALITY_SCORE\**\s*:|\Z)",
    re.IGNORECASE | re.MULTILINE | re.DOTALL,
)
_QUALITY = re.compile(r"^\s*\**QUALITY_SCORE\**\s*:\s*(\d+)", re.IGNORECASE | re.MULTILINE)
_LIST_ITEM = re.compile(r"^\s*(?:[-•*]|\d+[.)])\s*")


def _list_block(block: str) -> List[str]:
    items = [_LIST_ITEM.sub("", line).strip() for line in block.splitlines()]
    return [item for item in items if item and item.lower() not in ("none", "n/a")]


def parse_compliance_report(text: str) -> ComplianceResult:
    """
    Read the fixed-format audit block.

    Fields that cannot be found fall back to defaults and are listed in
    ``missing_fields``; never raises.
    """
    text = text or ""
    missing: List[str] = []

    score_match = _SCORE.search(text)
    if score_match:
        compliance_score = max(0, min(100, int(score_match.group(1))))
    else:
        compliance_score = DEFAULT_COMPLIANCE_SCORE
        missing.append("COMPLIANCE_SCORE")

    quality_match = _QUALITY.search(text)
    if quality_match:
        quality_score = max(0, min(100, int(quality_match.group(1))))
    else:
        quality_score = DEFAULT_QUALITY_SCORE
        missing.append("QUALITY_SCORE")

    compliant_match = _IS_COMPLIANT.search(text)
    if compliant_match:
        is_compliant = compliant_match.group(1).lower() in ("true", "yes")
    else:
        is_compliant = compliance_score >= settings.COMPLIANCE_THRESHOLD
        missing.append("IS_COMPLIANT")

    issues_match = _ISSUES.search(text)
    issues = _list_block(issues_match.group(1)) if issues_match else []
    if issues_match is None:
        missing.append("ISSUES")

    recs_match = _RECOMMENDATIONS.search(text)
    recommendations = _list_block(recs_match.group(1)) if recs_match else []
    if recs_match is None:
        missing.append("RECOMMENDATIONS")

    if score_match is None and not issues:
        issues = [DEFAULT_ISSUE]

    return ComplianceResult(
        is_compliant=is_compliant,
        compliance_score=compliance_score,
        issues=issues,
        recommendations=recommendations,
        quality_score=quality_score,
        missing_fields=missing,
    )


# ---------------------------------------------------------------------------
# Final formatting
# ---------------------------------------------------------------------------

_MARKER_LINE = re.compile(
    r"^[ \t]*#{1,6}[ \t]*\**[ \t]*(ANNEXURE_I{1,2}_[A-Z_]+?)[ \t]*\**[ \t]*:?[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)
_HEDGES = re.compile(
    r"\b(?:basically|actually|quite|somewhat|perhaps|kind of|sort of|pretty much)\b[ \t]*",
    re.IGNORECASE,
)
ACADEMIC_SUBSTITUTIONS = (
    ("a lot of", "numerous"),
    ("good", "effective"),
    ("nice", "appropriate"),
    ("bad", "inadequate"),
    ("very", "highly"),
    ("really", "significantly"),
    ("stuff", "components"),
    ("things", "elements"),
)


def normalize_structure(text: str) -> str:
    """Collapse stray whitespace and rewrite marker headings as ``## NAME``."""
    text = _MARKER_LINE.sub(lambda m: f"## {m.group(1).upper()}", text)
    return normalize_whitespace(text)


def _match_case(replacement: str, original: str) -> str:
    if original.isupper() and len(original) > 1:
        return replacement.upper()
    if original[:1].isupper():
        return replacement[:1].upper() + replacement[1:]
    return replacement


def strengthen_language(text: str) -> str:
    """Drop hedging adverbs and swap weak words for academic ones; marker lines are untouched."""
    out: List[str] = []
    for line in text.split("\n"):
        if line.lstrip().startswith("#"):
            out.append(line)
            continue
        line = _HEDGES.sub("", line)
        for weak, strong in ACADEMIC_SUBSTITUTIONS:
            line = re.sub(
                rf"\b{re.escape(weak)}\b",
                lambda m, s=strong: _match_case(s, m.group(0)),
                line,
                flags=re.IGNORECASE,
            )
        out.append(re.sub(r"[ \t]{2,}", " ", line))
    return "\n".join(out)


# ---------------------------------------------------------------------------
# ReportPipeline
# ---------------------------------------------------------------------------

class ReportPipeline:
    """
    Orchestrates the generation stages for one request.

    Cheap to construct; build one per request with an injected
    GenerationClient so no state is shared between requests.
    """

    def __init__(
        self,
        client: GenerationClient,
        composer: Optional[PromptComposer] = None,
        parser: Optional[SectionParser] = None,
        assembler: Optional[DocumentAssembler] = None,
        compliance_threshold: int = settings.COMPLIANCE_THRESHOLD,
        quality_threshold: int = settings.QUALITY_THRESHOLD,
    ) -> None:
        self._client = client
        self._composer = composer or PromptComposer()
        self._parser = parser or SectionParser()
        self._assembler = assembler or DocumentAssembler()
        self.compliance_threshold = compliance_threshold
        self.quality_threshold = quality_threshold

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    async def run(
        self,
        student: StudentData,
        extracted: ExtractedDocument,
        template: str = TEMPLATE_MSBTE,
    ) -> PipelineResult:
        """
        Run all four stages.

        Raises:
            GenerationError: stage 1 failed (rate limit, quota, upstream).
        """
        t0 = time.monotonic()
        degraded: List[str] = []
        logger.info("Pipeline.run: topic=%r template=%s", student.topic, template)

        # Step 1 — generate (fatal on failure)
        logger.info("Pipeline: [1/4] generating initial content …")
        initial, metrics, suggestions = await self.generate(student, extracted, template)

        # Step 2 — enhance
        logger.info("Pipeline: [2/4] enhancing (overall score %d) …", metrics.overall_score)
        enhanced = await self._try_enhance(initial, student, metrics, suggestions, template)
        if enhanced is None:
            degraded.append("enhance")
            enhanced = initial

        # Step 3 — validate compliance
        logger.info("Pipeline: [3/4] validating compliance …")
        compliance = await self.validate_compliance(enhanced, student, template)
        if compliance.degraded:
            degraded.append("compliance")

        # Step 4 — final formatting
        if degraded:
            logger.info("Pipeline: [4/4] skipped (degraded stages: %s)", ", ".join(degraded))
            final = enhanced
        else:
            logger.info("Pipeline: [4/4] final formatting …")
            final = self.finalize(enhanced, compliance)

        markers = MSBTE_SECTION_MARKERS if template == TEMPLATE_MSBTE else ()
        final_metrics = compute_quality_metrics(
            final,
            student.topic,
            markers=markers,
            expected_sections=self._expected_sections(extracted),
        )
        validation = None
        all_suggestions = list(suggestions)
        if template == TEMPLATE_MSBTE:
            validation = validate_document(final, student)
            logger.info(
                "Pipeline: template check %d%% (%d issue(s))",
                validation.overall_compliance,
                len(validation.issues),
            )
            all_suggestions += [s for s in validation.suggestions() if s not in all_suggestions]
        all_suggestions += validate_student_data(student)

        elapsed = round(time.monotonic() - t0, 2)
        logger.info(
            "Pipeline.run: done in %ss (overall %d → %d, compliance %d, degraded=%s)",
            elapsed,
            metrics.overall_score,
            final_metrics.overall_score,
            compliance.compliance_score,
            degraded or "none",
        )
        return PipelineResult(
            content=final,
            initial_content=initial,
            quality_metrics=final_metrics,
            initial_metrics=metrics,
            suggestions=all_suggestions,
            compliance=compliance,
            template=template,
            degraded_stages=degraded,
            processing_time_seconds=elapsed,
            validation=validation,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def generate(
        self,
        student: StudentData,
        extracted: ExtractedDocument,
        template: str = TEMPLATE_MSBTE,
    ) -> Tuple[str, QualityMetrics, List[str]]:
        """Stage 1: initial content plus its quality metrics and suggestions."""
        if template == TEMPLATE_GENERIC:
            prompt = self._composer.compose_generic(student, extracted.text, extracted.structure)
            markers: Tuple[str, ...] = ()
        else:
            prompt = self._composer.compose(student, extracted.text, extracted.structure)
            markers = MSBTE_SECTION_MARKERS

        content = await self._client.complete(prompt, system_prompt=self._composer.SYSTEM_PROMPT)

        metrics = compute_quality_metrics(
            content,
            student.topic,
            markers=markers,
            expected_sections=self._expected_sections(extracted),
        )
        suggestions = build_suggestions(content, markers=markers)
        logger.info(
            "Pipeline: [1/4] %d words, overall score %d, %d suggestion(s)",
            len(content.split()),
            metrics.overall_score,
            len(suggestions),
        )
        return content, metrics, suggestions

    async def enhance(
        self,
        content: str,
        student: StudentData,
        metrics: QualityMetrics,
        suggestions: List[str],
        template: str = TEMPLATE_MSBTE,
    ) -> str:
        """
        Stage 2: ask for an improved version keeping the marker grammar.

        Returns *content* unchanged when the call fails, the reply is empty,
        or the reply has fewer section markers than the input.
        """
        enhanced = await self._try_enhance(content, student, metrics, suggestions, template)
        return content if enhanced is None else enhanced

    async def _try_enhance(
        self,
        content: str,
        student: StudentData,
        metrics: QualityMetrics,
        suggestions: List[str],
        template: str,
    ) -> Optional[str]:
        prompt = self._composer.compose_enhancement(content, student, metrics, suggestions, template)
        try:
            reply = await self._client.complete(
                prompt,
                GenerationOptions(temperature=settings.ENHANCE_TEMPERATURE),
                system_prompt=self._composer.enhance_system_prompt(template),
            )
            if not reply.strip():
                raise ParseDegraded("empty enhancement reply")
            before = self._marker_count(content, template)
            after = self._marker_count(reply, template)
            if after < before:
                raise ParseDegraded(f"enhanced text kept {after}/{before} section markers")
        except (GenerationError, ParseDegraded) as exc:
            logger.warning("enhance stage degraded: %s — keeping initial content", exc.message)
            return None
        return reply.strip()

    async def validate_compliance(
        self,
        content: str,
        student: StudentData,
        template: str = TEMPLATE_MSBTE,
    ) -> ComplianceResult:
        """Stage 3: audit *content*; the text itself is never changed here."""
        prompt = self._composer.compose_compliance(content, student, template)
        try:
            reply = await self._client.complete(
                prompt,
                GenerationOptions(
                    temperature=settings.COMPLIANCE_TEMPERATURE,
                    max_tokens=settings.COMPLIANCE_MAX_TOKENS,
                ),
                system_prompt=self._composer.compliance_system_prompt(template),
            )
        except GenerationError as exc:
            logger.warning("compliance stage degraded: %s — using default scores", exc.message)
            return default_compliance(degraded=True)

        result = parse_compliance_report(reply)
        if result.missing_fields:
            logger.warning(
                "compliance report parse degraded: missing %s",
                ", ".join(result.missing_fields),
            )
        return result

    def finalize(self, content: str, compliance: ComplianceResult) -> str:
        """Stage 4: deterministic clean-up driven by the audit scores."""
        final = content
        if compliance.compliance_score < self.compliance_threshold:
            final = normalize_structure(final)
        if compliance.quality_score < self.quality_threshold:
            final = strengthen_language(final)
        return final

    # ------------------------------------------------------------------
    # Document
    # ------------------------------------------------------------------

    def build_document(
        self,
        result: PipelineResult,
        student: StudentData,
        extracted: Optional[ExtractedDocument] = None,
    ) -> Tuple[bytes, str]:
        """Parse the final text and assemble the .docx; returns (bytes, file name)."""
        if result.template == TEMPLATE_GENERIC:
            sections = self._parser.parse_generic(result.content)
            data = self._assembler.assemble_generic(
                sections,
                student,
                structure=extracted.structure if extracted else None,
                compliance=result.compliance,
            )
        else:
            parsed = self._parser.parse(result.content)
            data = self._assembler.assemble(parsed, student, result.compliance)
        return data, report_filename(student.topic)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _marker_count(text: str, template: str) -> int:
        if template == TEMPLATE_GENERIC:
            return count_generic_sections(text)
        return len(present_markers(text))

    @staticmethod
    def _expected_sections(extracted: ExtractedDocument) -> Optional[int]:
        count = len(extracted.structure.sections[: PromptComposer.MAX_OUTLINE_ENTRIES])
        return count or None
