"""
Splits generated report text into named sections.

MSBTE template
--------------
The model is asked to open every section with a ``## MARKER`` line using the
ten names in MSBTE_SECTION_MARKERS. ``SectionParser.parse`` pulls the text
between each marker and the next ``##`` line (or end of text). Missing markers
give empty fields; the parser never raises.

Generic template
----------------
``SectionParser.parse_generic`` splits on ``## SECTION: Title`` lines. When the
text has none, headings are guessed from short ALL-CAPS or numbered lines.
"""
from __future__ import annotations

import dataclasses
import functools
import logging
import re
from typing import Dict, Iterable, List, Optional, Tuple

from app.utils.helpers import heading_level_for_line, is_bullet_line

logger = logging.getLogger(__name__)

MSBTE_SECTION_MARKERS: Tuple[str, ...] = (
    "ANNEXURE_I_AIMS",
    "ANNEXURE_I_COURSE_OUTCOME",
    "ANNEXURE_I_METHODOLOGY",
    "ANNEXURE_II_RATIONALE",
    "ANNEXURE_II_AIMS",
    "ANNEXURE_II_COURSE_OUTCOME",
    "ANNEXURE_II_LITERATURE",
    "ANNEXURE_II_METHODOLOGY",
    "ANNEXURE_II_SKILLS",
    "ANNEXURE_II_APPLICATIONS",
)

_NEXT_HEADING = re.compile(r"^##", re.MULTILINE)
_GENERIC_MARKER = re.compile(r"^(#{1,6})\s*SECTION\s*:\s*(.+?)\s*#*\s*$", re.IGNORECASE | re.MULTILINE)


@functools.lru_cache(maxsize=None)
def _marker_heading(marker: str) -> re.Pattern:
    """``## MARKER`` (2-6 hashes, optional colon) alone on its line; CRLF endings accepted."""
    return re.compile(
        rf"^#{{2,6}}[ \t]*{re.escape(marker)}[ \t]*:?[ \t]*\r?(?:\n|\Z)",
        re.IGNORECASE | re.MULTILINE,
    )


def normalize_newlines(text: str) -> str:
    return (text or "").replace("\r\n", "\n").replace("\r", "\n")


def present_markers(text: str, markers: Iterable[str] = MSBTE_SECTION_MARKERS) -> List[str]:
    """Markers whose heading line appears in *text*, in *markers* order."""
    return [marker for marker in markers if _marker_heading(marker).search(text or "")]


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class AnnexureI:
    """Micro-project proposal."""

    aims: str = ""
    course_outcomes: List[str] = dataclasses.field(default_factory=list)
    methodology: str = ""


@dataclasses.dataclass
class AnnexureII:
    """Micro-project report."""

    rationale: str = ""
    aims: List[str] = dataclasses.field(default_factory=list)
    course_outcomes: List[str] = dataclasses.field(default_factory=list)
    literature_intro: str = ""
    literature_points: List[str] = dataclasses.field(default_factory=list)
    methodology: str = ""
    skills: List[str] = dataclasses.field(default_factory=list)
    applications: List[str] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class ParsedSections:
    annexure1: AnnexureI = dataclasses.field(default_factory=AnnexureI)
    annexure2: AnnexureII = dataclasses.field(default_factory=AnnexureII)
    missing_markers: List[str] = dataclasses.field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.missing_markers


@dataclasses.dataclass
class GenericSection:
    """One section of a free-form (non-MSBTE) report."""

    title: str
    level: int = 1
    content: List[str] = dataclasses.field(default_factory=list)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class SectionParser:
    """Marker-grammar parser. Stateless; one instance can be shared."""

    MARKERS = MSBTE_SECTION_MARKERS

    def parse(self, text: str) -> ParsedSections:
        """
        Split *text* into the two annexures.

        List fields (aims, skills, applications) keep bullet-like lines; when
        no line looks like a bullet, every non-empty line is kept. Course
        outcomes always keep every non-empty line. In the literature section
        the first line is the introduction and later lines are kept when they
        are bullet-like or contain a colon.
        """
        text = normalize_newlines(text)
        raw: Dict[str, Optional[str]] = {
            marker: self.extract_section(text, marker) for marker in self.MARKERS
        }
        missing = [marker for marker, body in raw.items() if body is None]
        body = {marker: value or "" for marker, value in raw.items()}

        literature_lines = _non_empty_lines(body["ANNEXURE_II_LITERATURE"])

        parsed = ParsedSections(
            annexure1=AnnexureI(
                aims=body["ANNEXURE_I_AIMS"],
                course_outcomes=_non_empty_lines(body["ANNEXURE_I_COURSE_OUTCOME"]),
                methodology=body["ANNEXURE_I_METHODOLOGY"],
            ),
            annexure2=AnnexureII(
                rationale=body["ANNEXURE_II_RATIONALE"],
                aims=_bullet_lines(body["ANNEXURE_II_AIMS"]),
                course_outcomes=_non_empty_lines(body["ANNEXURE_II_COURSE_OUTCOME"]),
                literature_intro=literature_lines[0] if literature_lines else "",
                literature_points=[
                    line for line in literature_lines[1:]
                    if is_bullet_line(line) or ":" in line
                ],
                methodology=body["ANNEXURE_II_METHODOLOGY"],
                skills=_bullet_lines(body["ANNEXURE_II_SKILLS"]),
                applications=_bullet_lines(body["ANNEXURE_II_APPLICATIONS"]),
            ),
            missing_markers=missing,
        )

        if missing:
            logger.warning(
                "section parse degraded: %d/%d markers missing (%s)",
                len(missing),
                len(self.MARKERS),
                ", ".join(missing),
            )
        return parsed

    @staticmethod
    def extract_section(text: str, marker: str) -> Optional[str]:
        """
        Return the trimmed body under ``## marker``, or None when the marker is absent.

        The body runs to the next line starting with ``##`` or to end of text.
        """
        text = normalize_newlines(text)
        heading = _marker_heading(marker).search(text)
        if heading is None:
            return None
        body = text[heading.end():]
        next_heading = _NEXT_HEADING.search(body)
        if next_heading is not None:
            body = body[: next_heading.start()]
        return body.strip()

    # ------------------------------------------------------------------
    # Generic template
    # ------------------------------------------------------------------

    def parse_generic(self, text: str) -> List[GenericSection]:
        """
        Split free-form text into sections.

        ``## SECTION: Title`` is level 1, ``### SECTION: Title`` level 2, and
        so on. Without any such marker, falls back to heading-like lines.
        """
        text = normalize_newlines(text)
        matches = list(_GENERIC_MARKER.finditer(text))
        if not matches:
            logger.info("parse_generic: no SECTION markers, using heading heuristic")
            return self._parse_by_headings(text)

        sections: List[GenericSection] = []
        preamble = _non_empty_lines(text[: matches[0].start()])
        if preamble:
            sections.append(GenericSection(title="Introduction", level=1, content=preamble))

        for i, match in enumerate(matches):
            end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
            sections.append(
                GenericSection(
                    title=match.group(2).strip(),
                    level=max(1, len(match.group(1)) - 1),
                    content=_non_empty_lines(text[match.end():end]),
                )
            )
        return sections

    @staticmethod
    def _parse_by_headings(text: str) -> List[GenericSection]:
        sections: List[GenericSection] = []
        current: Optional[GenericSection] = None

        for line in text.splitlines():
            stripped = line.strip()
            if not stripped:
                continue
            if is_bullet_line(stripped) and not stripped[0].isdigit():
                level = None
            else:
                level = heading_level_for_line(stripped)
            if level is not None:
                current = GenericSection(title=stripped, level=level)
                sections.append(current)
                continue
            if current is None:
                current = GenericSection(title="Introduction", level=1)
                sections.append(current)
            current.content.append(stripped)

        if not sections:
            logger.warning("section parse degraded: no headings found in generic output")
        return sections


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _non_empty_lines(block: str) -> List[str]:
    return [line.strip() for line in block.splitlines() if line.strip()]


def _bullet_lines(block: str) -> List[str]:
    lines = _non_empty_lines(block)
    bullets = [line for line in lines if is_bullet_line(line)]
    return bullets or lines
