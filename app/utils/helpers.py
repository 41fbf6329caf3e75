"""
Common utility functions and helpers.
"""
from typing import List, Optional
import re


_NUMBERED_HEADING = re.compile(r"^(\d+(?:\.\d+)*)\.?\s+[A-Z]")
_BULLET_PREFIX = re.compile(r"^\s*(?:[•\-\*–·]|[a-z]\)|\d+[.)])\s*")


def normalize_whitespace(text: str) -> str:
    """
    Normalize whitespace in generated text.

    Strips trailing spaces on every line, collapses runs of three or more
    newlines into a single blank line and trims the result.

    Args:
        text: Raw text string

    Returns:
        Normalized text
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())


def heading_level_for_line(line: str) -> Optional[int]:
    """
    Guess whether a line of plain text is a heading.

    Short ALL-CAPS lines are level-2 headings; numbered lines such as
    ``1 Introduction`` or ``2.3. Results`` are headings whose level is the
    numbering depth.

    Args:
        line: A single line of text

    Returns:
        Heading level (1-6) or None when the line looks like body text
    """
    stripped = line.strip()
    if not stripped or len(stripped) >= 100:
        return None

    numbered = _NUMBERED_HEADING.match(stripped)
    if numbered:
        return min(6, numbered.group(1).count(".") + 1)

    if stripped.isupper() and sum(ch.isalpha() for ch in stripped) >= 3:
        return 2

    return None


def is_bullet_line(line: str) -> bool:
    """Return True if a line starts with a bullet glyph, ``a)`` or ``1.``."""
    return bool(_BULLET_PREFIX.match(line)) and bool(line.strip())


def strip_bullet(line: str) -> str:
    """Remove a leading bullet glyph (``•``, ``-``, ``*``) from a line."""
    return re.sub(r"^\s*[•\-\*–·]\s*", "", line).strip()


def split_paragraphs(text: str) -> List[str]:
    """Split a text block into paragraphs on blank lines."""
    return [p.strip() for p in re.split(r"\n\s*\n", text) if p.strip()]


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default if denominator is zero.

    Args:
        numerator: Numerator
        denominator: Denominator
        default: Default value if division fails

    Returns:
        Result of division or default
    """
    return numerator / denominator if denominator != 0 else default


def underscore_whitespace(text: str) -> str:
    """Replace every run of whitespace with a single underscore."""
    return re.sub(r"\s+", "_", text.strip())
