"""
Prompt construction for every stage of report generation.

All prompts are module-level constants so they can be tuned without touching
logic code; PromptComposer exposes them as class attributes.

Public API
----------
PromptComposer.compose(student, extracted_text, structure)            -> str
PromptComposer.compose_enhancement(content, student, metrics, tips, template) -> str
PromptComposer.compose_compliance(content, student, template)                 -> str
PromptComposer.compose_generic(student, extracted_text, structure)    -> str
"""
from __future__ import annotations

from typing import Iterable, List, Optional

from app.config import settings
from app.models.schemas import StudentData
from app.services.file_extractor import DocumentStructure
from app.services.quality import QualityMetrics
from app.services.section_parser import MSBTE_SECTION_MARKERS

TEMPLATE_MSBTE = "msbte"
TEMPLATE_GENERIC = "generic"


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

_SYSTEM_PROMPT = (
    "You are an expert academic project report writer for engineering diploma students."
)

_ENHANCE_SYSTEM_PROMPT = (
    "You are an MSBTE academic editor who improves micro-project reports "
    "while keeping their section markers intact."
)

_COMPLIANCE_SYSTEM_PROMPT = (
    "You are an MSBTE compliance auditor. You review micro-project reports "
    "against the board's template and answer only in the requested format."
)

_GENERATION_PROMPT = """\
You are an MSBTE diploma micro-project report generator AI.
Generate content for the topic: "{topic}".

CRITICAL - Follow this EXACT MSBTE structure:

ANNEXURE I - MICRO PROJECT PROPOSAL:
1. Aims/Benefits of the Micro-Project (2-3 paragraphs about benefits)
2. Course Outcome Addressed (2-3 bullet points starting with a), b), c))
3. Proposed Methodology (1-2 paragraphs explaining the approach)

ANNEXURE II - MICRO PROJECT REPORT:
1. Rationale (1 paragraph explaining why this project is important)
2. Aims/Benefits of the Micro-Project (3-4 bullet points with detailed benefits)
3. Course Outcomes Achieved (2-3 bullet points starting with a), b), c))
4. Literature Review (1 paragraph introducing the topic, then 4-6 bullet points with key concepts)
5. Actual Methodology Followed (detailed explanation of implementation in 2-3 paragraphs)
6. Skills Developed / Learning (4-5 bullet points of skills gained)
7. Applications of this Micro-Project (4-5 bullet points of real-world applications)

Student Information:
{student_block}

Reference document outline:
{outline}

Reference material (excerpt):
---
{reference}
---

Make the content technical, professional, relevant to {topic}, and use formal \
academic language suitable for MSBTE diploma engineering.

Format your response with clear section markers, each on its own line:
{markers}\
"""

_ENHANCE_PROMPT = """\
Improve the following MSBTE micro-project report on "{topic}".

Current quality assessment (0-100):
- Technical depth: {technical_depth}
- Academic quality: {academic_quality}
- Completeness: {completeness}
- Relevance: {relevance}
- Overall: {overall_score}

Address these points:
{suggestions}

Rules:
- Keep every section marker line exactly as written (for example "## ANNEXURE_I_AIMS").
- Keep all ten sections, in the same order.
- Keep bullet points as bullet points and lettered outcomes as a), b), c).
- Use formal academic language and add technical detail relevant to the topic.
- Return only the improved report, with no commentary.

Report:
---
{content}
---\
"""

_COMPLIANCE_PROMPT = """\
Audit this micro-project report against the MSBTE template.

Student: {name} ({roll_number}), {college}
Topic: {topic}

The template requires Annexure I (Aims/Benefits, Course Outcome Addressed, \
Proposed Methodology) and Annexure II (Rationale, Aims/Benefits, Course \
Outcomes Achieved, Literature Review, Actual Methodology Followed, Skills \
Developed, Applications).

Report:
---
{content}
---

Respond in EXACTLY this format and nothing else:
COMPLIANCE_SCORE: <0-100>
IS_COMPLIANT: <true|false>
ISSUES:
- <issue>
RECOMMENDATIONS:
- <recommendation>
QUALITY_SCORE: <0-100>\
"""

_GENERIC_PROMPT = """\
You are an academic project report writer for engineering diploma students.
Write a project report on the topic: "{topic}".

Student Information:
{student_block}

Follow the structure of the reference document. Use these sections, in order:
{outline}

Reference material (excerpt):
---
{reference}
---

Start every section with a marker line of the form "## SECTION: <Title>" \
("### SECTION: <Title>" for a subsection). Use formal academic language and \
bullet points where a list is appropriate.\
"""

_DEFAULT_GENERIC_OUTLINE = (
    "Introduction",
    "Objectives",
    "Literature Review",
    "Methodology",
    "Implementation",
    "Results and Discussion",
    "Applications",
    "Conclusion",
    "References",
)

_GENERIC_ENHANCE_SYSTEM_PROMPT = (
    "You are an academic editor who improves engineering project reports "
    "while keeping their section markers intact."
)

_GENERIC_COMPLIANCE_SYSTEM_PROMPT = (
    "You are an academic report reviewer. You review engineering project reports "
    "for structure, depth and tone and answer only in the requested format."
)

_GENERIC_ENHANCE_PROMPT = """\
Improve the following project report on "{topic}".

Current quality assessment (0-100):
- Technical depth: {technical_depth}
- Academic quality: {academic_quality}
- Completeness: {completeness}
- Relevance: {relevance}
- Overall: {overall_score}

Address these points:
{suggestions}

Rules:
- Keep every "## SECTION: <Title>" and "### SECTION: <Title>" line exactly as written.
- Keep all sections, in the same order; do not merge or drop any.
- Keep bullet points as bullet points.
- Use formal academic language and add technical detail relevant to the topic.
- Return only the improved report, with no commentary.

Report:
---
{content}
---\
"""

_GENERIC_COMPLIANCE_PROMPT = """\
Review this engineering project report.

Student: {name} ({roll_number}), {college}
Topic: {topic}

The report should open every section with a "## SECTION: <Title>" line, cover \
the topic in technical depth with a clear introduction, methodology and \
conclusion, and use formal academic language throughout.

Report:
---
{content}
---

Respond in EXACTLY this format and nothing else:
COMPLIANCE_SCORE: <0-100>
IS_COMPLIANT: <true|false>
ISSUES:
- <issue>
RECOMMENDATIONS:
- <recommendation>
QUALITY_SCORE: <0-100>\
"""


class PromptComposer:
    """
    Builds the prompts sent to the text-generation service.

    Output is a pure function of the inputs: no randomness and no clock reads,
    so the same student data and reference document always give the same prompt.
    """

    SYSTEM_PROMPT = _SYSTEM_PROMPT
    ENHANCE_SYSTEM_PROMPT = _ENHANCE_SYSTEM_PROMPT
    COMPLIANCE_SYSTEM_PROMPT = _COMPLIANCE_SYSTEM_PROMPT
    GENERATION_PROMPT = _GENERATION_PROMPT
    ENHANCE_PROMPT = _ENHANCE_PROMPT
    COMPLIANCE_PROMPT = _COMPLIANCE_PROMPT
    GENERIC_PROMPT = _GENERIC_PROMPT
    GENERIC_ENHANCE_SYSTEM_PROMPT = _GENERIC_ENHANCE_SYSTEM_PROMPT
    GENERIC_COMPLIANCE_SYSTEM_PROMPT = _GENERIC_COMPLIANCE_SYSTEM_PROMPT
    GENERIC_ENHANCE_PROMPT = _GENERIC_ENHANCE_PROMPT
    GENERIC_COMPLIANCE_PROMPT = _GENERIC_COMPLIANCE_PROMPT

    MAX_OUTLINE_ENTRIES: int = 15

    def __init__(self, reference_chars: int = settings.PROMPT_REFERENCE_CHARS) -> None:
        self.reference_chars = reference_chars

    # ------------------------------------------------------------------
    # Stage 1
    # ------------------------------------------------------------------

    def compose(
        self,
        student: StudentData,
        extracted_text: str,
        structure: Optional[DocumentStructure] = None,
    ) -> str:
        """
        Build the initial generation prompt.

        Args:
            student: Student and project details.
            extracted_text: Plain text from the reference document; only the
                first ``reference_chars`` characters are embedded.
            structure: Outline of the reference document, if any.
        """
        outline = self._outline_block(structure)
        return self.GENERATION_PROMPT.format(
            topic=student.topic,
            student_block=self._student_block(student),
            outline=outline or "- (no headings detected)",
            reference=self._reference(extracted_text),
            markers="\n".join(f"## {marker}" for marker in MSBTE_SECTION_MARKERS),
        )

    # ------------------------------------------------------------------
    # Stage 2
    # ------------------------------------------------------------------

    def compose_enhancement(
        self,
        content: str,
        student: StudentData,
        metrics: QualityMetrics,
        suggestions: Iterable[str],
        template: str = TEMPLATE_MSBTE,
    ) -> str:
        """Stage 2 prompt; the generic template keeps ``## SECTION:`` lines instead of annexure markers."""
        tips = [s for s in suggestions if s]
        prompt = self.GENERIC_ENHANCE_PROMPT if template == TEMPLATE_GENERIC else self.ENHANCE_PROMPT
        return prompt.format(
            topic=student.topic,
            technical_depth=metrics.technical_depth,
            academic_quality=metrics.academic_quality,
            completeness=metrics.completeness,
            relevance=metrics.relevance,
            overall_score=metrics.overall_score,
            suggestions="\n".join(f"- {tip}" for tip in tips)
            or "- Strengthen technical detail and academic tone.",
            content=content,
        )

    def enhance_system_prompt(self, template: str = TEMPLATE_MSBTE) -> str:
        if template == TEMPLATE_GENERIC:
            return self.GENERIC_ENHANCE_SYSTEM_PROMPT
        return self.ENHANCE_SYSTEM_PROMPT

    # ------------------------------------------------------------------
    # Stage 3
    # ------------------------------------------------------------------

    def compose_compliance(
        self,
        content: str,
        student: StudentData,
        template: str = TEMPLATE_MSBTE,
    ) -> str:
        prompt = (
            self.GENERIC_COMPLIANCE_PROMPT if template == TEMPLATE_GENERIC else self.COMPLIANCE_PROMPT
        )
        return prompt.format(
            name=student.name,
            roll_number=student.roll_number,
            college=student.college,
            topic=student.topic,
            content=content,
        )

    def compliance_system_prompt(self, template: str = TEMPLATE_MSBTE) -> str:
        if template == TEMPLATE_GENERIC:
            return self.GENERIC_COMPLIANCE_SYSTEM_PROMPT
        return self.COMPLIANCE_SYSTEM_PROMPT

    # ------------------------------------------------------------------
    # Generic template
    # ------------------------------------------------------------------

    def compose_generic(
        self,
        student: StudentData,
        extracted_text: str,
        structure: Optional[DocumentStructure] = None,
    ) -> str:
        """Prompt for the free-form template, using the reference outline as section list."""
        outline = self._outline_block(structure, numbered=True)
        if not outline:
            outline = "\n".join(
                f"{i}. {title}" for i, title in enumerate(_DEFAULT_GENERIC_OUTLINE, start=1)
            )
        return self.GENERIC_PROMPT.format(
            topic=student.topic,
            student_block=self._student_block(student),
            outline=outline,
            reference=self._reference(extracted_text),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _reference(self, extracted_text: str) -> str:
        return (extracted_text or "").strip()[: self.reference_chars]

    def _outline_block(
        self,
        structure: Optional[DocumentStructure],
        numbered: bool = False,
    ) -> str:
        if structure is None:
            return ""
        lines: List[str] = []
        for i, entry in enumerate(structure.sections[: self.MAX_OUTLINE_ENTRIES], start=1):
            indent = "  " * (max(1, entry.level) - 1)
            prefix = f"{i}." if numbered else "-"
            lines.append(f"{indent}{prefix} {entry.title}")
        return "\n".join(lines)

    @staticmethod
    def _student_block(student: StudentData) -> str:
        lines = [
            f"Name: {student.name}",
            f"Roll No: {student.roll_number}",
            f"Enrollment No: {student.enrollment_number}",
            f"College: {student.college}",
        ]
        optional = (
            ("Branch", student.branch),
            ("Semester", student.semester),
            ("Category", student.category),
            ("Complexity", student.complexity),
        )
        lines.extend(f"{label}: {value}" for label, value in optional if value)
        return "\n".join(lines)
