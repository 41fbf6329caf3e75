"""
Word document assembly for MSBTE micro-project reports.

Layout (MSBTE template):
    cover page -> index -> Annexure I (proposal) -> Annexure II (report)

The assembler only consumes ParsedSections / GenericSection values, never
raw model text, and returns the .docx package as bytes.
"""
from __future__ import annotations

import io
import logging
import re
from typing import Iterable, List, Optional, Sequence, Tuple

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt

from app.models.schemas import StudentData
from app.services.file_extractor import DEFAULT_FONT_SIZE, DocumentStructure
from app.services.section_parser import GenericSection, ParsedSections
from app.utils.helpers import split_paragraphs, strip_bullet, underscore_whitespace

logger = logging.getLogger(__name__)

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

_GLYPH_BULLET = re.compile(r"^\s*[•\-\*–·]\s*")

# (Sr. No., entry, page) rows of the hand-built index
INDEX_ROWS: Tuple[Tuple[str, str, str], ...] = (
    ("", "Annexure I – Micro Project Proposal", "1-2"),
    ("1", "1. Aims/Benefits of the Micro-Project", "1"),
    ("", "2. Course Outcome Addressed", "1"),
    ("", "3. Proposed Methodology", "1"),
    ("", "Annexure II – Micro Project Report", "3-9"),
    ("2", "1. Rationale", "3"),
    ("", "2. Aims/Benefits of the Micro-Project", "3"),
    ("", "3. Course Outcome Achieved", "3"),
    ("", "4. Literature Review", "4"),
    ("", "5. Actual Methodology Followed", "5"),
    ("", "6. Skills Developed / Learning", "6"),
    ("", "7. Applications of this Micro-Project", "7"),
)


def heading_style(level: int) -> str:
    """Map a numeric heading level to a Word style name; unknown levels give Heading 2."""
    if isinstance(level, int) and 1 <= level <= 6:
        return f"Heading {level}"
    return "Heading 2"


def report_filename(topic: str) -> str:
    """``AI_Project_<topic with whitespace runs replaced by underscores>.docx``"""
    return f"AI_Project_{underscore_whitespace(topic)}.docx"


class DocumentAssembler:
    """Builds the .docx report with python-docx."""

    SUBSECTION_LEVEL: int = 1
    REPORT_TITLE: str = "Micro-Project Report"

    # ------------------------------------------------------------------
    # MSBTE template
    # ------------------------------------------------------------------

    def assemble(
        self,
        parsed: ParsedSections,
        student: StudentData,
        compliance=None,
    ) -> bytes:
        """
        Render the MSBTE report.

        Args:
            parsed: Sections recovered from the generated text.
            student: Student details for the cover page and signature block.
            compliance: Optional ComplianceResult; stored in the document's
                core properties only, so the rendered text depends on
                *parsed* and *student* alone.

        Returns:
            The .docx package as bytes.
        """
        doc = Document()
        self._set_properties(doc, student, compliance)

        self._add_cover_page(doc, student)
        self._add_index(doc)
        self._add_annexure_one(doc, parsed, student)
        self._add_annexure_two(doc, parsed, student)

        data = self._to_bytes(doc)
        logger.info(
            "Assembled MSBTE report for '%s' (%d bytes, %d missing sections)",
            student.topic,
            len(data),
            len(parsed.missing_markers),
        )
        return data

    def _add_cover_page(self, doc, student: StudentData) -> None:
        self._centered(doc, student.college, bold=True, size=16)
        title = doc.add_heading(self.REPORT_TITLE, level=0)
        title.alignment = WD_ALIGN_PARAGRAPH.CENTER
        topic = doc.add_heading(student.topic, level=1)
        topic.alignment = WD_ALIGN_PARAGRAPH.CENTER

        doc.add_paragraph()
        self._centered(doc, "Submitted by", italic=True)
        for label, value in self._student_details(student):
            p = doc.add_paragraph()
            p.alignment = WD_ALIGN_PARAGRAPH.CENTER
            p.add_run(f"{label}: ").bold = True
            p.add_run(value)
        doc.add_page_break()

    def _add_index(self, doc) -> None:
        heading = doc.add_heading("Index", level=1)
        heading.alignment = WD_ALIGN_PARAGRAPH.CENTER
        doc.add_paragraph("Sr. No.\tContents\tPage No.")
        for serial, entry, page in INDEX_ROWS:
            doc.add_paragraph(f"{serial}\t{entry}\t{page}")
        doc.add_page_break()

    def _add_annexure_one(self, doc, parsed: ParsedSections, student: StudentData) -> None:
        annexure = parsed.annexure1
        self._annexure_title(doc, "Annexure I", "Micro Project Proposal", student.topic)

        self._subsection_heading(doc, "1. Aims/Benefits of the Micro-Project:")
        self._add_text_block(doc, annexure.aims)
        self._subsection_heading(doc, "2. Course Outcome Addressed:")
        self._add_items(doc, annexure.course_outcomes)
        self._subsection_heading(doc, "3. Proposed Methodology:")
        self._add_text_block(doc, annexure.methodology)

        doc.add_paragraph()
        for label, value in self._student_details(student)[:3]:
            p = doc.add_paragraph()
            p.add_run(f"{label}: ").bold = True
            p.add_run(value)
        doc.add_page_break()

    def _add_annexure_two(self, doc, parsed: ParsedSections, student: StudentData) -> None:
        annexure = parsed.annexure2
        self._annexure_title(doc, "Annexure – II", "Micro-Project Report", student.topic)

        self._subsection_heading(doc, "1. Rationale:")
        self._add_text_block(doc, annexure.rationale)
        self._subsection_heading(doc, "2. Aims/Benefits of the Micro-Project:")
        self._add_items(doc, annexure.aims)
        self._subsection_heading(doc, "3. Course Outcomes Achieved:")
        self._add_items(doc, annexure.course_outcomes)
        self._subsection_heading(doc, "4. Literature Review:")
        self._add_text_block(doc, annexure.literature_intro)
        self._add_items(doc, annexure.literature_points)
        self._subsection_heading(doc, "5. Actual Methodology Followed:")
        self._add_text_block(doc, annexure.methodology)
        self._subsection_heading(doc, "6. Skills Developed / Learning out of this Micro-Project:")
        self._add_items(doc, annexure.skills)
        self._subsection_heading(doc, "7. Applications of this Micro-Project:")
        self._add_items(doc, annexure.applications)

    # ------------------------------------------------------------------
    # Generic template
    # ------------------------------------------------------------------

    def assemble_generic(
        self,
        sections: Sequence[GenericSection],
        student: StudentData,
        structure: Optional[DocumentStructure] = None,
        compliance=None,
    ) -> bytes:
        """Render free-form sections using the reference document's body font size."""
        doc = Document()
        font_size = structure.default_font_size if structure else DEFAULT_FONT_SIZE
        doc.styles["Normal"].font.size = Pt(font_size / 2)
        self._set_properties(doc, student, compliance)

        self._add_cover_page(doc, student)
        for section in sections:
            doc.add_paragraph(section.title, style=heading_style(section.level))
            self._add_items(doc, section.content)

        data = self._to_bytes(doc)
        logger.info(
            "Assembled generic report for '%s' (%d sections, %d bytes)",
            student.topic,
            len(sections),
            len(data),
        )
        return data

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _student_details(student: StudentData) -> List[Tuple[str, str]]:
        details = [
            ("Name", student.name),
            ("Roll Number", student.roll_number),
            ("Enrollment Number", student.enrollment_number),
        ]
        if student.branch:
            details.append(("Branch", student.branch))
        if student.semester:
            details.append(("Semester", student.semester))
        return details

    @staticmethod
    def _centered(doc, text: str, bold: bool = False, italic: bool = False, size: Optional[int] = None):
        p = doc.add_paragraph()
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER
        run = p.add_run(text)
        run.bold = bold
        run.italic = italic
        if size:
            run.font.size = Pt(size)
        return p

    def _annexure_title(self, doc, label: str, title: str, topic: str) -> None:
        self._centered(doc, label)
        for text in (title, topic):
            heading = doc.add_paragraph(text, style=heading_style(1))
            heading.alignment = WD_ALIGN_PARAGRAPH.CENTER

    def _subsection_heading(self, doc, text: str) -> None:
        doc.add_paragraph(text, style=heading_style(self.SUBSECTION_LEVEL))

    @staticmethod
    def _add_text_block(doc, text: str) -> None:
        for paragraph in split_paragraphs(text or ""):
            doc.add_paragraph(paragraph)

    @staticmethod
    def _add_items(doc, items: Iterable[str]) -> None:
        """Glyph bullets become List Bullet paragraphs; ``a)`` / ``1.`` items stay plain."""
        for item in items:
            if _GLYPH_BULLET.match(item):
                doc.add_paragraph(strip_bullet(item), style="List Bullet")
            else:
                doc.add_paragraph(item.strip())

    @staticmethod
    def _set_properties(doc, student: StudentData, compliance) -> None:
        props = doc.core_properties
        props.title = student.topic
        props.author = student.name
        props.subject = "MSBTE Micro-Project Report"
        if compliance is not None:
            props.comments = (
                f"Compliance score: {compliance.compliance_score}/100; "
                f"quality score: {compliance.quality_score}/100; "
                f"compliant: {'yes' if compliance.is_compliant else 'no'}"
            )
            props.keywords = f"compliance={compliance.compliance_score}, quality={compliance.quality_score}"

    @staticmethod
    def _to_bytes(doc) -> bytes:
        buffer = io.BytesIO()
        doc.save(buffer)
        return buffer.getvalue()
