"""Tests for PromptComposer."""
from app.services.file_extractor import DocumentStructure, OutlineEntry
from app.services.prompt_composer import PromptComposer
from app.services.quality import QualityMetrics
from app.services.section_parser import MSBTE_SECTION_MARKERS
from app.models.schemas import StudentData
from tests.conftest import STUDENT_DATA


def _structure() -> DocumentStructure:
    return DocumentStructure(
        sections=(
            OutlineEntry(title="Introduction", level=1, font_size=32),
            OutlineEntry(title="Soil Sensors", level=2, font_size=28),
        ),
    )


def test_compose_embeds_markers_and_student(student):
    prompt = PromptComposer().compose(student, "reference text", _structure())

    for marker in MSBTE_SECTION_MARKERS:
        assert f"\n## {marker}" in prompt
    assert "Name: Asha Rao" in prompt
    assert "Roll No: CO21-45" in prompt
    assert "Enrollment No: 2021170045" in prompt
    assert 'topic: "IoT-based Smart Irrigation System"' in prompt
    assert "- Introduction" in prompt
    assert "  - Soil Sensors" in prompt


def test_compose_is_deterministic(student):
    composer = PromptComposer()
    first = composer.compose(student, "same text", _structure())
    second = composer.compose(student, "same text", _structure())
    assert first == second


def test_reference_text_is_truncated(student):
    composer = PromptComposer(reference_chars=100)
    prompt = composer.compose(student, "A" * 100 + "B" * 50, None)
    assert "A" * 100 in prompt
    assert "B" not in prompt.split("Reference material (excerpt):")[1].split("---")[1]


def test_optional_fields_only_when_present():
    composer = PromptComposer()
    plain = composer.compose(StudentData(**STUDENT_DATA), "", None)
    assert "Branch:" not in plain

    with_branch = StudentData(**STUDENT_DATA, branch="Computer Engineering", semester=5)
    prompt = composer.compose(with_branch, "", None)
    assert "Branch: Computer Engineering" in prompt
    assert "Semester: 5" in prompt


def test_enhancement_prompt_carries_metrics_and_content(student):
    metrics = QualityMetrics(
        technical_depth=40, academic_quality=50, completeness=100, relevance=80, overall_score=68
    )
    prompt = PromptComposer().compose_enhancement(
        "## ANNEXURE_I_AIMS\nBody", student, metrics, ["Add more detail."]
    )
    assert "Technical depth: 40" in prompt
    assert "- Add more detail." in prompt
    assert "## ANNEXURE_I_AIMS\nBody" in prompt


def test_compliance_prompt_requests_fixed_format(student):
    prompt = PromptComposer().compose_compliance("report body", student)
    for field in ("COMPLIANCE_SCORE:", "IS_COMPLIANT:", "ISSUES:", "RECOMMENDATIONS:", "QUALITY_SCORE:"):
        assert field in prompt
    assert "report body" in prompt


def test_generic_prompt_uses_outline(student):
    prompt = PromptComposer().compose_generic(student, "text", _structure())
    assert "1. Introduction" in prompt
    assert "  2. Soil Sensors" in prompt
    assert "## SECTION:" in prompt


def test_generic_prompt_default_outline(student):
    prompt = PromptComposer().compose_generic(student, "text", DocumentStructure())
    assert "1. Introduction" in prompt
    assert "9. References" in prompt


def test_generic_enhancement_prompt_keeps_section_lines(student):
    metrics = QualityMetrics(
        technical_depth=40, academic_quality=50, completeness=100, relevance=80, overall_score=68
    )
    composer = PromptComposer()
    prompt = composer.compose_enhancement(
        "## SECTION: Introduction\nBody", student, metrics, [], template="generic"
    )
    assert '"## SECTION: <Title>"' in prompt
    assert "ANNEXURE_I_AIMS" not in prompt
    assert "MSBTE" not in prompt
    assert "ten sections" not in prompt
    assert "## SECTION: Introduction\nBody" in prompt
    assert composer.enhance_system_prompt("generic") == composer.GENERIC_ENHANCE_SYSTEM_PROMPT
    assert composer.enhance_system_prompt("msbte") == composer.ENHANCE_SYSTEM_PROMPT


def test_generic_compliance_prompt_has_no_annexures(student):
    composer = PromptComposer()
    prompt = composer.compose_compliance("report body", student, template="generic")
    assert "Annexure" not in prompt
    assert "MSBTE" not in prompt
    for field in ("COMPLIANCE_SCORE:", "IS_COMPLIANT:", "ISSUES:", "RECOMMENDATIONS:", "QUALITY_SCORE:"):
        assert field in prompt
    assert "report body" in prompt
    assert "Annexure" in composer.compose_compliance("report body", student)
    assert "MSBTE" not in composer.compliance_system_prompt("generic")
    assert "MSBTE" in composer.compliance_system_prompt()
