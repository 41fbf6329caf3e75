"""
Heuristic quality scoring for generated report text.

The scores are rough signals used to steer the enhancement stage, not a
calibrated measure. Every function here is pure; the current year is only
read when the caller does not pass ``reference_year``.
"""
from __future__ import annotations

import dataclasses
import re
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from app.config import settings
from app.models.schemas import StudentData
from app.services.section_parser import MSBTE_SECTION_MARKERS, SectionParser, present_markers
from app.utils.helpers import count_words, is_bullet_line, safe_divide, split_paragraphs

TECHNICAL_TERMS = (
    "implementation", "methodology", "analysis", "design", "development",
    "algorithm", "system", "process", "technique", "framework",
    "architecture", "protocol", "module", "sensor", "interface",
    "database", "network", "simulation", "optimization", "testing",
)

# Words ignored when measuring topic coverage
_STOPWORDS = frozenset({
    "a", "an", "and", "the", "of", "for", "in", "on", "to", "with", "by",
    "using", "based", "system", "project", "study", "via", "its", "at",
})

_WORD = re.compile(r"[a-z0-9]+")
_YEAR = re.compile(r"\b(19\d{2}|20\d{2})\b")
_GENERIC_SECTION = re.compile(r"^#{1,6}\s*SECTION\s*:", re.IGNORECASE | re.MULTILINE)

MIN_BULLET_LINES = 10
RECENT_YEARS = 3
DEFAULT_GENERIC_SECTIONS = 9


@dataclasses.dataclass(frozen=True)
class QualityMetrics:
    """Five 0-100 scores; ``overall_score`` is the mean of the other four."""

    technical_depth: int
    academic_quality: int
    completeness: int
    relevance: int
    overall_score: int


def _clamp(value: float) -> int:
    return max(0, min(100, int(round(value))))


def count_technical_terms(text: str, terms: Iterable[str] = TECHNICAL_TERMS) -> int:
    """Occurrences of technical vocabulary (plural and derived forms count)."""
    lowered = text.lower()
    return sum(len(re.findall(rf"\b{re.escape(term)}", lowered)) for term in terms)


def count_generic_sections(text: str) -> int:
    return len(_GENERIC_SECTION.findall(text))


def topic_keywords(topic: str) -> List[str]:
    seen: List[str] = []
    for word in _WORD.findall(topic.lower()):
        if len(word) > 2 and word not in _STOPWORDS and word not in seen:
            seen.append(word)
    return seen


def compute_quality_metrics(
    text: str,
    topic: str,
    markers: Iterable[str] = MSBTE_SECTION_MARKERS,
    target_words: int = settings.TARGET_WORD_COUNT,
    expected_sections: Optional[int] = None,
) -> QualityMetrics:
    """
    Score *text* on technical depth, length, marker coverage and topic relevance.

    technical_depth  = term occurrences per 1000 words, capped at 100
    completeness     = markers found / markers expected
    academic_quality = words / target_words
    relevance        = share of significant topic words present in the text

    With an empty *markers* (generic template) completeness counts
    ``## SECTION:`` lines against *expected_sections*.
    """
    markers = tuple(markers)
    words = count_words(text)

    if markers:
        found, expected = len(present_markers(text, markers)), len(markers)
    else:
        found = count_generic_sections(text)
        expected = expected_sections or DEFAULT_GENERIC_SECTIONS

    technical_depth = _clamp(safe_divide(count_technical_terms(text), words) * 1000)
    completeness = _clamp(safe_divide(found, expected) * 100)
    academic_quality = _clamp(safe_divide(words, target_words) * 100)

    keywords = topic_keywords(topic)
    text_words = set(_WORD.findall(text.lower()))
    relevance = _clamp(
        safe_divide(sum(1 for kw in keywords if kw in text_words), len(keywords), 1.0) * 100
    )

    overall = _clamp((technical_depth + academic_quality + completeness + relevance) / 4)
    return QualityMetrics(
        technical_depth=technical_depth,
        academic_quality=academic_quality,
        completeness=completeness,
        relevance=relevance,
        overall_score=overall,
    )


def build_suggestions(
    text: str,
    markers: Iterable[str] = MSBTE_SECTION_MARKERS,
    target_words: int = settings.TARGET_WORD_COUNT,
    reference_year: Optional[int] = None,
) -> List[str]:
    """Improvement hints passed to the enhancement stage and returned to the caller."""
    markers = tuple(markers)
    suggestions: List[str] = []
    words = count_words(text)

    if words < target_words:
        suggestions.append(
            f"Content is too short ({words} words); expand towards {target_words} words "
            "with more detailed explanations."
        )

    if count_technical_terms(text) < 3:
        suggestions.append(
            "Add more technical terminology and implementation details."
        )

    year = reference_year if reference_year is not None else datetime.now().year
    years = {int(y) for y in _YEAR.findall(text)}
    if not any(year - RECENT_YEARS <= y <= year for y in years):
        suggestions.append(
            f"Include recent references or developments (from {year - RECENT_YEARS} onwards)."
        )

    found = set(present_markers(text, markers))
    missing = [marker for marker in markers if marker not in found]
    if markers and missing:
        suggestions.append("Add the missing sections: " + ", ".join(missing) + ".")

    bullets = sum(1 for line in text.splitlines() if is_bullet_line(line))
    if bullets < MIN_BULLET_LINES:
        suggestions.append(
            "Use more bullet points for aims, outcomes, skills and applications."
        )

    return suggestions


def validate_student_data(student: StudentData) -> List[str]:
    """Form-level checks on student details; reported, never enforced."""
    issues: List[str] = []
    if len(student.name) < 3:
        issues.append("Valid student name is required: enter full name as per academic records.")
    if len(student.roll_number) < 4:
        issues.append("Valid roll number is required: enter correct roll number.")
    if len(student.enrollment_number) < 8:
        issues.append("Valid enrollment number is required: enter correct enrollment number.")
    if len(student.college) < 5:
        issues.append("Valid college name is required: enter complete college name.")
    if len(student.topic) < 10:
        issues.append("Valid project topic is required: enter detailed project topic.")
    return issues


# ---------------------------------------------------------------------------
# Template validation
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class SectionRequirement:
    """Minimum content for one MSBTE section; *items* counts paragraphs or list lines."""

    marker: str
    title: str
    description: str
    min_words: int
    min_items: int
    weight: int
    items: str = "bullets"


SECTION_REQUIREMENTS = (
    SectionRequirement(
        "ANNEXURE_I_AIMS", "Aims and Benefits (Annexure I)",
        "Describe the project aims and expected benefits in 2-3 paragraphs.",
        50, 2, 10, items="paragraphs",
    ),
    SectionRequirement(
        "ANNEXURE_I_COURSE_OUTCOME", "Course Outcomes Addressed (Annexure I)",
        "List 2-3 course outcomes as a), b), c).",
        100, 2, 10,
    ),
    SectionRequirement(
        "ANNEXURE_I_METHODOLOGY", "Proposed Methodology (Annexure I)",
        "Explain the proposed methodology in 1-2 paragraphs.",
        80, 1, 10, items="paragraphs",
    ),
    SectionRequirement(
        "ANNEXURE_II_RATIONALE", "Rationale (Annexure II)",
        "Explain why the project matters in one paragraph.",
        40, 1, 8, items="paragraphs",
    ),
    SectionRequirement(
        "ANNEXURE_II_AIMS", "Aims and Benefits (Annexure II)",
        "Give 3-4 bullet points with detailed aims and benefits.",
        120, 3, 8,
    ),
    SectionRequirement(
        "ANNEXURE_II_COURSE_OUTCOME", "Course Outcomes Achieved (Annexure II)",
        "List 2-3 course outcomes achieved as a), b), c).",
        100, 2, 8,
    ),
    SectionRequirement(
        "ANNEXURE_II_LITERATURE", "Literature Review (Annexure II)",
        "Write an introductory paragraph followed by 4-6 bullet points of key concepts.",
        200, 4, 12,
    ),
    SectionRequirement(
        "ANNEXURE_II_METHODOLOGY", "Actual Methodology Followed (Annexure II)",
        "Describe the implementation in 2-3 paragraphs.",
        120, 2, 12, items="paragraphs",
    ),
    SectionRequirement(
        "ANNEXURE_II_SKILLS", "Skills Developed (Annexure II)",
        "List 4-5 skills developed as bullet points.",
        100, 4, 8,
    ),
    SectionRequirement(
        "ANNEXURE_II_APPLICATIONS", "Applications of Project (Annexure II)",
        "List 4-5 real-world applications as bullet points.",
        100, 4, 8,
    ),
)

INFORMAL_WORDS = (
    "gonna", "wanna", "kinda", "sorta", "yeah", "cool", "awesome",
    "you know", "i mean", "stuff", "things", "good", "bad",
)

# a) b) c) / • - * / 1. 2. 3.
_BULLET_STYLES = (
    ("lettered", re.compile(r"^\s*[a-z]\)", re.MULTILINE)),
    ("symbol", re.compile(r"^\s*[•\-\*–·]\s+", re.MULTILINE)),
    ("numbered", re.compile(r"^\s*\d+\.\s+", re.MULTILINE)),
)

LOW_SECTION_SCORE = 70


@dataclasses.dataclass(frozen=True)
class ValidationIssue:
    code: str
    kind: str        # error | warning
    section: str
    message: str
    suggestion: str
    severity: str    # high | medium | low


@dataclasses.dataclass
class DocumentValidation:
    """Deterministic template check of the final report text."""

    is_valid: bool
    overall_compliance: int
    section_scores: Dict[str, int]
    issues: List[ValidationIssue]
    recommendations: List[str]

    def suggestions(self, severities: Iterable[str] = ("high", "medium")) -> List[str]:
        """Issue suggestions at the given severities, de-duplicated, in issue order."""
        wanted = set(severities)
        out: List[str] = []
        for issue in self.issues:
            if issue.severity in wanted and issue.suggestion not in out:
                out.append(issue.suggestion)
        return out


def _count_items(body: str, items: str) -> int:
    if items == "paragraphs":
        return len(split_paragraphs(body))
    return sum(1 for line in body.splitlines() if is_bullet_line(line))


def score_section(body: Optional[str], requirement: SectionRequirement) -> int:
    """
    0-100 credit for one section: half for length, half for item count.

    A missing section scores 0; a section meeting both minimums scores 100.
    """
    if body is None:
        return 0
    word_ratio = min(1.0, safe_divide(count_words(body), requirement.min_words, 1.0))
    item_ratio = min(1.0, safe_divide(_count_items(body, requirement.items), requirement.min_items, 1.0))
    return _clamp(50 * word_ratio + 50 * item_ratio)


def mixed_bullet_sections(text: str, markers: Iterable[str] = MSBTE_SECTION_MARKERS) -> List[str]:
    """Sections whose list lines mix more than one bullet style."""
    mixed = []
    for marker in markers:
        body = SectionParser.extract_section(text, marker)
        if not body:
            continue
        styles = [name for name, pattern in _BULLET_STYLES if pattern.search(body)]
        if len(styles) > 1:
            mixed.append(marker)
    return mixed


def find_informal_words(text: str) -> List[str]:
    lowered = text.lower()
    return [
        word for word in INFORMAL_WORDS
        if re.search(rf"\b{re.escape(word)}\b", lowered)
    ]


def validate_document(
    text: str,
    student: StudentData,
    requirements: Iterable[SectionRequirement] = SECTION_REQUIREMENTS,
) -> DocumentValidation:
    """
    Check *text* against the MSBTE section requirements.

    Returns per-section scores, a weight-averaged overall compliance, the
    issues found and recommendations derived from them. Errors are missing
    or incomplete sections; formatting, language and content problems are
    warnings. The document is valid when there are no errors.
    """
    text = text or ""
    requirements = tuple(requirements)
    issues: List[ValidationIssue] = []
    section_scores: Dict[str, int] = {}
    weighted = 0
    total_weight = 0

    for requirement in requirements:
        body = SectionParser.extract_section(text, requirement.marker)
        score = score_section(body, requirement)
        section_scores[requirement.marker] = score
        weighted += score * requirement.weight
        total_weight += requirement.weight

        label = requirement.marker.replace("_", " ")
        if body is None:
            issues.append(ValidationIssue(
                code=f"missing_section_{requirement.marker.lower()}",
                kind="error",
                section=requirement.marker,
                message=f"Missing required MSBTE section: {label}",
                suggestion=f"Add the {label} section. {requirement.description}",
                severity="high",
            ))
        elif score < 100:
            issues.append(ValidationIssue(
                code=requirement.marker.lower(),
                kind="error",
                section=requirement.marker,
                message=f"{requirement.title} is incomplete",
                suggestion=requirement.description,
                severity="high",
            ))

    mixed = mixed_bullet_sections(text, [r.marker for r in requirements])
    if mixed:
        issues.append(ValidationIssue(
            code="inconsistent_bullets",
            kind="warning",
            section="formatting",
            message="Inconsistent bullet point formatting in: " + ", ".join(mixed),
            suggestion="Use one bullet style per section.",
            severity="medium",
        ))

    informal = find_informal_words(text)
    if informal:
        issues.append(ValidationIssue(
            code="informal_language",
            kind="warning",
            section="language",
            message="Informal language detected: " + ", ".join(informal),
            suggestion="Replace informal words with academic alternatives.",
            severity="low",
        ))

    if student.name.lower() not in text.lower():
        issues.append(ValidationIssue(
            code="missing_student_name",
            kind="warning",
            section="content",
            message="Student name not mentioned in the document",
            suggestion="Include the student's details in the report.",
            severity="low",
        ))

    if count_technical_terms(text) < 3:
        issues.append(ValidationIssue(
            code="low_technical_depth",
            kind="warning",
            section="content",
            message="Technical depth appears to be insufficient",
            suggestion="Add more technical terminology and implementation details.",
            severity="medium",
        ))

    return DocumentValidation(
        is_valid=not any(issue.kind == "error" for issue in issues),
        overall_compliance=_clamp(safe_divide(weighted, total_weight)),
        section_scores=section_scores,
        issues=issues,
        recommendations=_recommendations(issues, section_scores),
    )


def _recommendations(issues: List[ValidationIssue], section_scores: Dict[str, int]) -> List[str]:
    recommendations: List[str] = []
    if any(issue.kind == "error" for issue in issues):
        recommendations.append("Address all critical MSBTE compliance issues.")
        recommendations.append("Ensure all required sections are present with adequate content.")
    if any(issue.kind == "warning" for issue in issues):
        recommendations.append("Review and improve formatting and language quality.")
    if any(score < LOW_SECTION_SCORE for score in section_scores.values()):
        recommendations.append("Enhance content in sections with low scores.")
    recommendations.append("Include more technical details and implementation specifics.")
    recommendations.append("Add real-world applications and industry examples.")
    recommendations.append("Ensure consistent academic language and tone.")
    return recommendations
