"""Tests for DocumentAssembler."""
import io

import pytest
from docx import Document

from app.services.document_assembler import DocumentAssembler, heading_style, report_filename
from app.services.file_extractor import DocumentStructure
from app.services.pipeline import ComplianceResult
from app.services.section_parser import GenericSection, SectionParser
from tests.conftest import SAMPLE_REPORT


def _paragraphs(data: bytes):
    return Document(io.BytesIO(data)).paragraphs


def _texts(data: bytes):
    return [p.text for p in _paragraphs(data)]


@pytest.fixture
def parsed():
    return SectionParser().parse(SAMPLE_REPORT)


@pytest.mark.parametrize(
    "level, style",
    [(1, "Heading 1"), (3, "Heading 3"), (6, "Heading 6"), (0, "Heading 2"), (7, "Heading 2"), (None, "Heading 2")],
)
def test_heading_style_mapping(level, style):
    assert heading_style(level) == style


def test_report_filename():
    assert report_filename("IoT-based Smart Irrigation System") == (
        "AI_Project_IoT-based_Smart_Irrigation_System.docx"
    )
    assert report_filename("  Line   Follower\tRobot ") == "AI_Project_Line_Follower_Robot.docx"


def test_layout_order(parsed, student):
    texts = _texts(DocumentAssembler().assemble(parsed, student))

    order = [
        texts.index("Government Polytechnic, Pune"),
        texts.index("Index"),
        texts.index("Annexure I"),
        texts.index("1. Aims/Benefits of the Micro-Project:"),
        texts.index("Annexure – II"),
        texts.index("7. Applications of this Micro-Project:"),
    ]
    assert order == sorted(order)
    assert "Micro-Project Report" in texts
    assert "IoT-based Smart Irrigation System" in texts


def test_index_lines_are_tab_separated(parsed, student):
    texts = _texts(DocumentAssembler().assemble(parsed, student))
    assert "Sr. No.\tContents\tPage No." in texts
    assert "1\t1. Aims/Benefits of the Micro-Project\t1" in texts
    assert "\t7. Applications of this Micro-Project\t7" in texts


def test_student_details_in_annexure_one(parsed, student):
    texts = _texts(DocumentAssembler().assemble(parsed, student))
    assert texts.count("Name: Asha Rao") == 2   # cover page and Annexure I
    assert "Roll Number: CO21-45" in texts
    assert "Enrollment Number: 2021170045" in texts


def test_bullets_and_lettered_items(parsed, student):
    paragraphs = _paragraphs(DocumentAssembler().assemble(parsed, student))
    by_text = {p.text: p for p in paragraphs}

    bullet = by_text["Reduce water consumption through sensor-driven control."]
    assert bullet.style.name == "List Bullet"

    lettered = by_text["a) Apply sensor interfacing techniques to a microcontroller."]
    assert lettered.style.name == "Normal"

    heading = by_text["4. Literature Review:"]
    assert heading.style.name == "Heading 1"


def test_text_blocks_split_on_blank_lines(parsed, student):
    texts = _texts(DocumentAssembler().assemble(parsed, student))
    assert "It reduces water wastage and manual effort for farmers." in texts


def test_assembly_is_deterministic(parsed, student):
    assembler = DocumentAssembler()
    compliance = ComplianceResult(
        is_compliant=True, compliance_score=90, issues=[], recommendations=[], quality_score=88
    )
    first = _texts(assembler.assemble(parsed, student, compliance))
    second = _texts(assembler.assemble(parsed, student))
    assert first == second


def test_compliance_goes_to_core_properties(parsed, student):
    compliance = ComplianceResult(
        is_compliant=False, compliance_score=64, issues=["x"], recommendations=[], quality_score=70
    )
    doc = Document(io.BytesIO(DocumentAssembler().assemble(parsed, student, compliance)))
    assert doc.core_properties.title == "IoT-based Smart Irrigation System"
    assert doc.core_properties.author == "Asha Rao"
    assert "64/100" in doc.core_properties.comments
    assert all("64/100" not in p.text for p in doc.paragraphs)


def test_empty_sections_still_assemble(student):
    parsed = SectionParser().parse("")
    texts = _texts(DocumentAssembler().assemble(parsed, student))
    assert "3. Proposed Methodology:" in texts
    assert "Asha Rao" in " ".join(texts)


def test_assemble_generic_uses_levels_and_font_size(student):
    sections = [
        GenericSection(title="Introduction", level=1, content=["Intro text.", "• a point"]),
        GenericSection(title="Background", level=2, content=["More."]),
        GenericSection(title="Odd", level=9, content=[]),
    ]
    data = DocumentAssembler().assemble_generic(
        sections, student, structure=DocumentStructure(default_font_size=22)
    )
    doc = Document(io.BytesIO(data))
    styles = {p.text: p.style.name for p in doc.paragraphs}

    assert styles["Introduction"] == "Heading 1"
    assert styles["Background"] == "Heading 2"
    assert styles["Odd"] == "Heading 2"
    assert styles["a point"] == "List Bullet"
    assert doc.styles["Normal"].font.size.pt == 11
