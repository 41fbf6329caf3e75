"""Tests for SectionParser."""
import logging

from app.services.section_parser import MSBTE_SECTION_MARKERS, SectionParser, present_markers
from tests.conftest import SAMPLE_REPORT


def test_parse_recovers_all_sections():
    parsed = SectionParser().parse(SAMPLE_REPORT)

    assert parsed.missing_markers == []
    assert parsed.annexure1.aims == (
        "The project aims to design an irrigation system that waters crops only when "
        "soil moisture drops.\n\nIt reduces water wastage and manual effort for farmers."
    )
    assert parsed.annexure1.course_outcomes == [
        "a) Apply sensor interfacing techniques to a microcontroller.",
        "b) Develop embedded software for automated control.",
    ]
    assert parsed.annexure1.methodology.startswith("Soil moisture sensors are connected")
    assert parsed.annexure2.rationale.startswith("Agriculture consumes")
    assert parsed.annexure2.aims == [
        "• Reduce water consumption through sensor-driven control.",
        "• Provide remote monitoring over Wi-Fi.",
        "• Lower the cost of automated irrigation for small farms.",
    ]
    assert len(parsed.annexure2.course_outcomes) == 2
    assert parsed.annexure2.literature_intro.startswith("Several studies")
    assert parsed.annexure2.literature_points == [
        "• Capacitive sensors: more durable than resistive types.",
        "• MQTT protocol: lightweight messaging for IoT devices.",
        "Drip irrigation: delivers water directly to the root zone.",
    ]
    assert parsed.annexure2.methodology.endswith("different soil samples.")
    assert parsed.annexure2.skills[1] == "• Embedded C programming."
    assert parsed.annexure2.applications[-1] == "• Public parks maintenance."


def test_inserted_content_round_trips():
    bodies = {marker: f"• content for {marker.lower()}" for marker in MSBTE_SECTION_MARKERS}
    text = "\n\n".join(f"## {marker}\n{body}" for marker, body in bodies.items())
    parser = SectionParser()

    for marker, body in bodies.items():
        assert parser.extract_section(text, marker) == body


def test_missing_markers_give_empty_fields(caplog):
    text = "## ANNEXURE_I_AIMS\nOnly the aims were generated."
    with caplog.at_level(logging.WARNING):
        parsed = SectionParser().parse(text)

    assert parsed.annexure1.aims == "Only the aims were generated."
    assert parsed.annexure1.course_outcomes == []
    assert parsed.annexure2.literature_intro == ""
    assert parsed.annexure2.applications == []
    assert len(parsed.missing_markers) == 9
    assert not parsed.is_complete
    assert "section parse degraded" in caplog.text


def test_empty_text_never_raises():
    parsed = SectionParser().parse("")
    assert parsed.missing_markers == list(MSBTE_SECTION_MARKERS)


def test_marker_matching_is_case_insensitive_and_tolerates_colon():
    text = "## annexure_ii_rationale:\nWhy it matters.\n## ANNEXURE_II_AIMS\n- one"
    parsed = SectionParser().parse(text)
    assert parsed.annexure2.rationale == "Why it matters."
    assert parsed.annexure2.aims == ["- one"]


def test_annexure_one_marker_does_not_capture_annexure_two():
    text = "## ANNEXURE_II_AIMS\n• report aim"
    parsed = SectionParser().parse(text)
    assert parsed.annexure1.aims == ""
    assert "ANNEXURE_I_AIMS" in parsed.missing_markers


def test_list_without_bullets_keeps_all_lines():
    text = "## ANNEXURE_II_SKILLS\nSoldering\nProgramming"
    parsed = SectionParser().parse(text)
    assert parsed.annexure2.skills == ["Soldering", "Programming"]


def test_parse_generic_with_section_markers():
    text = (
        "Preface line\n"
        "## SECTION: Introduction\nIntro text.\n"
        "### SECTION: Background\n- point one\n"
        "## SECTION: Conclusion\nDone."
    )
    sections = SectionParser().parse_generic(text)

    assert [(s.title, s.level) for s in sections] == [
        ("Introduction", 1),
        ("Introduction", 1),
        ("Background", 2),
        ("Conclusion", 1),
    ]
    assert sections[0].content == ["Preface line"]
    assert sections[2].content == ["- point one"]


def test_parse_generic_heading_heuristic():
    text = "INTRODUCTION\nSome text.\n2.1 Sensor Selection\nMore text.\n• bullet"
    sections = SectionParser().parse_generic(text)

    assert [(s.title, s.level) for s in sections] == [
        ("INTRODUCTION", 2),
        ("2.1 Sensor Selection", 2),
    ]
    assert sections[1].content == ["More text.", "• bullet"]


def test_crlf_line_endings_are_parsed():
    parsed = SectionParser().parse(SAMPLE_REPORT.replace("\n", "\r\n"))

    assert parsed.missing_markers == []
    assert parsed.annexure1.aims == (
        "The project aims to design an irrigation system that waters crops only when "
        "soil moisture drops.\n\nIt reduces water wastage and manual effort for farmers."
    )
    assert parsed.annexure2.applications[0] == "• Home gardens and greenhouses."
    assert present_markers(SAMPLE_REPORT.replace("\n", "\r\n")) == list(MSBTE_SECTION_MARKERS)


def test_deeper_headings_are_markers_too():
    text = SAMPLE_REPORT.replace("## ANNEXURE", "### ANNEXURE")
    parsed = SectionParser().parse(text)

    assert parsed.missing_markers == []
    assert present_markers(text) == list(MSBTE_SECTION_MARKERS)


def test_marker_count_agrees_with_parser():
    text = "## ANNEXURE_I_AIMS extra words\nbody\n#### ANNEXURE_II_SKILLS:\n• Soldering"
    parsed = SectionParser().parse(text)

    found = present_markers(text)
    assert found == ["ANNEXURE_II_SKILLS"]
    assert sorted(set(MSBTE_SECTION_MARKERS) - set(parsed.missing_markers)) == found


def test_parse_fills_every_field():
    text = "\n".join([
        "## ANNEXURE_I_AIMS",
        "First aim paragraph.",
        "",
        "Second aim paragraph.",
        "## ANNEXURE_I_COURSE_OUTCOME",
        "a) Outcome one.",
        "b) Outcome two.",
        "## ANNEXURE_I_METHODOLOGY",
        "Planned approach.",
        "## ANNEXURE_II_RATIONALE",
        "Why the project matters.",
        "## ANNEXURE_II_AIMS",
        "Aims introduction line.",
        "• Aim one.",
        "• Aim two.",
        "## ANNEXURE_II_COURSE_OUTCOME",
        "a) Achieved one.",
        "## ANNEXURE_II_LITERATURE",
        "Literature introduction.",
        "• Concept one: detail.",
        "Plain sentence without a list marker",
        "Concept two: more detail.",
        "## ANNEXURE_II_METHODOLOGY",
        "What was actually done.",
        "## ANNEXURE_II_SKILLS",
        "- Skill one.",
        "- Skill two.",
        "## ANNEXURE_II_APPLICATIONS",
        "* Application one.",
    ])
    parsed = SectionParser().parse(text)

    assert parsed.is_complete
    assert parsed.annexure1.aims == "First aim paragraph.\n\nSecond aim paragraph."
    assert parsed.annexure1.course_outcomes == ["a) Outcome one.", "b) Outcome two."]
    assert parsed.annexure1.methodology == "Planned approach."
    assert parsed.annexure2.rationale == "Why the project matters."
    assert parsed.annexure2.aims == ["• Aim one.", "• Aim two."]
    assert parsed.annexure2.course_outcomes == ["a) Achieved one."]
    assert parsed.annexure2.literature_intro == "Literature introduction."
    assert parsed.annexure2.literature_points == [
        "• Concept one: detail.",
        "Concept two: more detail.",
    ]
    assert parsed.annexure2.methodology == "What was actually done."
    assert parsed.annexure2.skills == ["- Skill one.", "- Skill two."]
    assert parsed.annexure2.applications == ["* Application one."]
