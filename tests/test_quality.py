"""Tests for the heuristic quality scoring."""
from app.models.schemas import StudentData
from app.services.quality import (
    SECTION_REQUIREMENTS,
    build_suggestions,
    compute_quality_metrics,
    count_technical_terms,
    find_informal_words,
    mixed_bullet_sections,
    score_section,
    topic_keywords,
    validate_document,
    validate_student_data,
)
from app.services.section_parser import MSBTE_SECTION_MARKERS
from tests.conftest import SAMPLE_REPORT, STUDENT_DATA


def test_complete_report_has_full_completeness():
    metrics = compute_quality_metrics(SAMPLE_REPORT, "IoT-based Smart Irrigation System")
    assert metrics.completeness == 100
    assert 0 <= metrics.overall_score <= 100
    assert metrics.overall_score == round(
        (metrics.technical_depth + metrics.academic_quality + metrics.completeness + metrics.relevance) / 4
    )


def test_completeness_counts_markers():
    text = "## ANNEXURE_I_AIMS\nx\n## ANNEXURE_II_AIMS\ny"
    assert compute_quality_metrics(text, "topic").completeness == 20


def test_technical_depth_formula():
    # 2 term occurrences in 10 words -> 200 per thousand, capped at 100
    text = "the system design is simple and easy to build today"
    assert count_technical_terms(text) == 2
    assert compute_quality_metrics(text, "x").technical_depth == 100

    long_text = "word " * 995 + "analysis design algorithm framework process"
    assert compute_quality_metrics(long_text, "x").technical_depth == 5


def test_academic_quality_against_target():
    text = "word " * 750
    assert compute_quality_metrics(text, "x", target_words=1500).academic_quality == 50


def test_relevance_is_topic_word_coverage():
    assert topic_keywords("IoT-based Smart Irrigation System") == ["iot", "smart", "irrigation"]
    metrics = compute_quality_metrics("smart irrigation for farms", "IoT-based Smart Irrigation System")
    assert metrics.relevance == 67


def test_empty_text_scores_zero_without_error():
    metrics = compute_quality_metrics("", "Smart Irrigation")
    assert metrics.technical_depth == 0
    assert metrics.academic_quality == 0
    assert metrics.completeness == 0


def test_generic_completeness_counts_section_lines():
    text = "## SECTION: Intro\na\n## SECTION: Design\nb"
    metrics = compute_quality_metrics(text, "x", markers=(), expected_sections=4)
    assert metrics.completeness == 50


def test_suggestions_for_weak_text():
    suggestions = build_suggestions("## ANNEXURE_I_AIMS\nshort text", reference_year=2025)
    joined = " ".join(suggestions)
    assert "too short" in joined
    assert "technical terminology" in joined
    assert "recent references" in joined
    assert "ANNEXURE_II_APPLICATIONS" in joined
    assert "bullet points" in joined


def test_recent_year_suggestion_respects_reference_year():
    text = SAMPLE_REPORT
    assert not any("recent" in s for s in build_suggestions(text, reference_year=2025))
    assert any("recent" in s for s in build_suggestions(text, reference_year=2030))


def test_no_marker_suggestion_when_all_present():
    assert not any("missing sections" in s for s in build_suggestions(SAMPLE_REPORT, reference_year=2025))


def test_validate_student_data_minimum_lengths():
    good = StudentData(**STUDENT_DATA)
    assert validate_student_data(good) == []

    weak = StudentData(
        name="Al", rollNumber="12", enrollmentNumber="123", college="GP", topic="IoT"
    )
    issues = validate_student_data(weak)
    assert len(issues) == 5
    assert issues[0].startswith("Valid student name is required")


def test_completeness_accepts_deeper_marker_headings():
    text = SAMPLE_REPORT.replace("## ANNEXURE", "### ANNEXURE")
    assert compute_quality_metrics(text, "IoT-based Smart Irrigation System").completeness == 100
    assert not any("missing sections" in s for s in build_suggestions(text, reference_year=2025))


def test_completeness_with_crlf_endings():
    text = SAMPLE_REPORT.replace("\n", "\r\n")
    assert compute_quality_metrics(text, "x").completeness == 100


# ---------------------------------------------------------------------------
# validate_document
# ---------------------------------------------------------------------------

_FILLER = " ".join(["the sensor design improves system analysis"] * 7)


def _full_report() -> str:
    paragraphs = "\n\n".join([_FILLER] * 3)
    bullets = "\n".join(f"• {_FILLER}" for _ in range(5))
    lettered = "\n".join(f"{letter}) {_FILLER}" for letter in "abc")
    bodies = {
        "ANNEXURE_I_AIMS": paragraphs,
        "ANNEXURE_I_COURSE_OUTCOME": lettered,
        "ANNEXURE_I_METHODOLOGY": paragraphs,
        "ANNEXURE_II_RATIONALE": "Prepared by Asha Rao. " + _FILLER,
        "ANNEXURE_II_AIMS": bullets,
        "ANNEXURE_II_COURSE_OUTCOME": lettered,
        "ANNEXURE_II_LITERATURE": _FILLER + "\n" + bullets,
        "ANNEXURE_II_METHODOLOGY": paragraphs,
        "ANNEXURE_II_SKILLS": bullets,
        "ANNEXURE_II_APPLICATIONS": bullets,
    }
    return "\n\n".join(f"## {marker}\n{body}" for marker, body in bodies.items())


def test_validate_document_passes_complete_report(student):
    result = validate_document(_full_report(), student)

    assert result.is_valid
    assert result.issues == []
    assert result.overall_compliance == 100
    assert set(result.section_scores) == set(MSBTE_SECTION_MARKERS)
    assert all(score == 100 for score in result.section_scores.values())
    assert "Enhance content in sections with low scores." not in result.recommendations


def test_validate_document_reports_section_and_style_issues(student):
    text = "## ANNEXURE_I_AIMS\nIt is a good idea.\n## ANNEXURE_II_SKILLS\na) Soldering\n• Coding\n"
    result = validate_document(text, student)

    assert not result.is_valid
    assert result.section_scores["ANNEXURE_I_AIMS"] == 30
    assert result.section_scores["ANNEXURE_II_SKILLS"] == 27
    assert result.section_scores["ANNEXURE_II_LITERATURE"] == 0
    assert result.overall_compliance == 5

    codes = [issue.code for issue in result.issues]
    assert codes.count("missing_section_annexure_ii_literature") == 1
    assert "annexure_i_aims" in codes
    assert "inconsistent_bullets" in codes
    assert "informal_language" in codes
    assert "missing_student_name" in codes
    assert "low_technical_depth" in codes

    suggestions = result.suggestions()
    assert "Use one bullet style per section." in suggestions
    assert "Replace informal words with academic alternatives." not in suggestions
    assert "Address all critical MSBTE compliance issues." in result.recommendations
    assert "Enhance content in sections with low scores." in result.recommendations


def test_validate_document_missing_section_is_reported_once(student):
    result = validate_document("", student)
    errors = [issue for issue in result.issues if issue.kind == "error"]
    assert len(errors) == len(MSBTE_SECTION_MARKERS)
    assert result.overall_compliance == 0


def test_score_section_partial_credit():
    requirement = SECTION_REQUIREMENTS[0]   # 50 words, 2 paragraphs
    assert score_section(None, requirement) == 0
    assert score_section(" ".join(["word"] * 25), requirement) == 50
    assert score_section("\n\n".join([" ".join(["word"] * 25)] * 2), requirement) == 100


def test_mixed_bullet_styles_are_per_section():
    # lettered outcomes next to glyph bullets in another section is consistent
    assert mixed_bullet_sections(SAMPLE_REPORT) == []
    text = "## ANNEXURE_II_AIMS\n• one\n1. two\n"
    assert mixed_bullet_sections(text) == ["ANNEXURE_II_AIMS"]


def test_informal_words_match_whole_words():
    assert find_informal_words("Goods transport in a cool store") == ["cool"]
    assert find_informal_words("The system is robust.") == []
