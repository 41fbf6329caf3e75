"""
Reference-document text extraction for PDF, DOCX and PPTX uploads.

Decodes a base64 (or data-URL) payload, extracts best-effort plain text and a
lightweight structural outline (heading titles, nesting level, approximate
font size, table-of-contents detection). Returns an ExtractedDocument.

Each format is read with its document library first. When the library cannot
open the bytes, a regex pass over the raw payload is used instead, so callers
always receive a string and a structure object.
"""
from __future__ import annotations

import base64
import binascii
import io
import logging
import re
import zipfile
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import fitz  # PyMuPDF
from docx import Document as DocxDocument
from docx.oxml.ns import qn
from pptx import Presentation
from pptx.enum.shapes import MSO_SHAPE_TYPE

from app.config import settings
from app.core.exceptions import FileTooLarge, UnsupportedFileType, ValidationError
from app.utils.helpers import count_words, heading_level_for_line

logger = logging.getLogger(__name__)


MIME_PDF = "application/pdf"
MIME_DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
MIME_PPTX = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

FILE_TYPES: Dict[str, str] = {
    MIME_PDF: "pdf",
    MIME_DOCX: "docx",
    MIME_PPTX: "pptx",
}

PLACEHOLDER_TEXT = "No text extracted"
PDF_PLACEHOLDER_TEXT = "No text extracted from PDF"

# Font sizes are kept in half-points, the unit of OOXML <w:sz>; 24 = 12 pt
DEFAULT_FONT_SIZE = 24


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OutlineEntry:
    """One heading discovered in the reference document."""

    title: str
    level: int          # 1 = top-level heading
    font_size: int      # approximate size in half-points


@dataclass(frozen=True)
class DocumentStructure:
    """Lightweight outline of the reference document."""

    sections: Tuple[OutlineEntry, ...] = ()
    default_font_size: int = DEFAULT_FONT_SIZE
    has_table_of_contents: bool = False

    def titles(self, limit: int = 15) -> List[str]:
        return [entry.title for entry in self.sections[:limit]]


@dataclass(frozen=True)
class ExtractedDocument:
    """
    Output of the FileTextExtractor.

    Attributes:
        text:      Plain text, truncated to MAX_EXTRACTED_CHARS. Never empty;
                   a placeholder is used when nothing could be extracted.
        structure: Heading outline, default font size and TOC flag.
        metadata:  Dict with keys: file_type, word_count, page_count,
                   used_fallback.
    """

    text: str
    structure: DocumentStructure = field(default_factory=DocumentStructure)
    metadata: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Raw-payload patterns (fallback path)
# ---------------------------------------------------------------------------

_PRINTABLE_RUN = re.compile(rb"[A-Za-z0-9\s.,;:!?()\-]{4,}")
_DOCX_TEXT = re.compile(r"<w:t[^>]*>([^<]+)</w:t>")
_DOCX_HEADING = re.compile(
    r'<w:pStyle w:val="Heading([1-6])"[^>]*/?>(?:(?!</w:p>).)*?<w:t[^>]*>([^<]+)</w:t>',
    re.DOTALL,
)
_DOCX_FONT_SIZE = re.compile(r'<w:sz w:val="(\d+)"\s*/>')
_PPTX_TEXT = re.compile(r"<a:t[^>]*>([^<]+)</a:t>")
_PPTX_TITLE = re.compile(
    r'<p:ph type="(?:title|ctrTitle)"[^>]*/?>(?:(?!</p:sp>).)*?<a:t[^>]*>([^<]+)</a:t>',
    re.DOTALL,
)
_CONTENTS_MENTION = re.compile(r"\b(?:table of contents|contents)\b", re.IGNORECASE)
_DOCX_HEADING_STYLE = re.compile(r"^heading\s*([1-6])$", re.IGNORECASE)


def decode_payload(content: str) -> bytes:
    """
    Decode a base64 payload, optionally prefixed with a data-URL header.

    Raises:
        ValidationError: the payload is not valid base64.
    """
    payload = content.strip()
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    payload = re.sub(r"\s+", "", payload)
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(f"fileContent is not valid base64: {exc}") from exc


def normalize_mime_type(mime_type: str) -> str:
    return (mime_type or "").split(";", 1)[0].strip().lower()


def check_file_type(mime_type: str) -> str:
    """Return the short file type for *mime_type* or raise UnsupportedFileType."""
    file_type = FILE_TYPES.get(normalize_mime_type(mime_type))
    if file_type is None:
        raise UnsupportedFileType(
            f"Unsupported file type {mime_type!r}. "
            "Please upload PDF, DOCX, or PPTX files only."
        )
    return file_type


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------

class FileTextExtractor:
    """Extracts text and a heading outline from base64-encoded office files."""

    def __init__(
        self,
        max_file_size: int = settings.MAX_FILE_SIZE,
        max_chars: int = settings.MAX_EXTRACTED_CHARS,
    ) -> None:
        self.max_file_size = max_file_size
        self.max_chars = max_chars

    def extract(self, base64_content: str, mime_type: str) -> ExtractedDocument:
        """
        Extract text and structure from an uploaded file.

        Args:
            base64_content: Base64 payload or data URL.
            mime_type: Declared MIME type of the upload.

        Returns:
            ExtractedDocument; text is a placeholder when nothing matched.

        Raises:
            UnsupportedFileType: MIME type is not PDF, DOCX or PPTX.
            ValidationError:     payload is not valid base64.
            FileTooLarge:        decoded payload exceeds max_file_size.
        """
        file_type = check_file_type(mime_type)
        raw = decode_payload(base64_content)
        if len(raw) > self.max_file_size:
            raise FileTooLarge(
                f"File exceeds the {self.max_file_size // (1024 * 1024)} MB size limit."
            )

        if file_type == "pdf":
            text, structure, meta = self._extract_pdf(raw)
            placeholder = PDF_PLACEHOLDER_TEXT
        elif file_type == "docx":
            text, structure, meta = self._extract_docx(raw)
            placeholder = PLACEHOLDER_TEXT
        else:
            text, structure, meta = self._extract_pptx(raw)
            placeholder = PLACEHOLDER_TEXT

        text = text.strip()[: self.max_chars]
        if not text:
            text = placeholder

        metadata: Dict[str, Any] = {
            "file_type": file_type,
            "word_count": 0 if text == placeholder else count_words(text),
            "page_count": meta.get("page_count"),
            "used_fallback": meta.get("used_fallback", False),
        }
        logger.info(
            "Extracted %d chars, %d outline entries from %s (fallback=%s)",
            len(text),
            len(structure.sections),
            file_type,
            metadata["used_fallback"],
        )
        return ExtractedDocument(text=text, structure=structure, metadata=metadata)

    # ------------------------------------------------------------------
    # PDF
    # ------------------------------------------------------------------

    def _extract_pdf(self, raw: bytes) -> Tuple[str, DocumentStructure, Dict[str, Any]]:
        """Read a PDF with PyMuPDF; headings are spans noticeably larger than body text."""
        try:
            doc = fitz.open(stream=raw, filetype="pdf")
        except Exception as exc:
            logger.warning("PDF could not be opened (%s) — using printable-text fallback", exc)
            return self._pdf_fallback(raw)

        try:
            if doc.needs_pass:
                raise ValidationError(
                    "PDF is password-protected. Please provide an unlocked copy."
                )

            font_sizes: List[float] = []
            lines: List[Tuple[str, float]] = []
            for page in doc:
                for block in page.get_text("dict")["blocks"]:
                    if block.get("type") != 0:
                        continue
                    for line in block.get("lines", []):
                        max_sz = 0.0
                        span_parts: List[str] = []
                        for span in line.get("spans", []):
                            raw_txt = span.get("text", "")
                            if not raw_txt.strip():
                                continue
                            sz = span.get("size", 0.0)
                            if sz > 0:
                                font_sizes.append(sz)
                            max_sz = max(max_sz, sz)
                            span_parts.append(raw_txt)

                        line_text = " ".join(span_parts).strip()
                        # Skip empty lines and isolated page numbers
                        if not line_text or re.match(r"^\d{1,4}$", line_text):
                            continue
                        lines.append((line_text, max_sz))

            page_count = doc.page_count
            bookmarks = doc.get_toc()
        finally:
            doc.close()

        body_font_size = _modal_font_size(font_sizes) if font_sizes else 12.0
        heading_threshold = body_font_size * 1.15

        sections = [
            OutlineEntry(
                title=line_text,
                level=_estimate_heading_level(size, body_font_size),
                font_size=_to_half_points(size),
            )
            for line_text, size in lines
            if size >= heading_threshold and len(line_text) < 100
        ]
        if not sections and bookmarks:
            # Fall back to the PDF outline (bookmarks) when no span stands out
            sections = [
                OutlineEntry(
                    title=title.strip(),
                    level=max(1, min(6, int(level))),
                    font_size=_to_half_points(body_font_size * 1.3),
                )
                for level, title, *_rest in bookmarks
                if title.strip()
            ]

        text = "\n".join(line_text for line_text, _ in lines)
        structure = DocumentStructure(
            sections=tuple(sections),
            default_font_size=_to_half_points(body_font_size),
            has_table_of_contents=bool(_CONTENTS_MENTION.search(text)),
        )
        return text, structure, {"page_count": page_count}

    def _pdf_fallback(self, raw: bytes) -> Tuple[str, DocumentStructure, Dict[str, Any]]:
        """Approximate text with a printable-character regex over the raw bytes."""
        runs = [m.decode("ascii", errors="ignore") for m in _PRINTABLE_RUN.findall(raw)]
        text = " ".join(runs)[: self.max_chars]

        sections: List[OutlineEntry] = []
        for line in text.split("\n"):
            level = heading_level_for_line(line)
            if level is None:
                continue
            sections.append(
                OutlineEntry(
                    title=line.strip(),
                    level=1 if level == 1 or line.strip()[0].isdigit() else 2,
                    font_size=28,
                )
            )

        structure = DocumentStructure(
            sections=tuple(sections),
            default_font_size=DEFAULT_FONT_SIZE,
            has_table_of_contents=bool(_CONTENTS_MENTION.search(text)),
        )
        return text, structure, {"page_count": None, "used_fallback": True}

    # ------------------------------------------------------------------
    # DOCX
    # ------------------------------------------------------------------

    def _extract_docx(self, raw: bytes) -> Tuple[str, DocumentStructure, Dict[str, Any]]:
        """Read a DOCX with python-docx, keeping Heading 1-6 paragraphs as the outline."""
        try:
            doc = DocxDocument(io.BytesIO(raw))
        except Exception as exc:
            logger.warning("DOCX could not be opened (%s) — using XML fallback", exc)
            return self._docx_fallback(raw)

        sections: List[OutlineEntry] = []
        sizes: List[float] = []
        text_parts: List[str] = []
        has_toc = False

        normal_size = _style_font_size(doc, "Normal")
        if normal_size:
            sizes.append(normal_size)

        for para in doc.paragraphs:
            run_sizes = [run.font.size.pt for run in para.runs if run.font.size is not None]
            sizes.extend(run_sizes)

            text = para.text.strip()
            if not text:
                continue

            style_name = para.style.name if para.style is not None and para.style.name else ""
            if style_name.lower().startswith("toc"):
                has_toc = True

            level = _docx_heading_level(style_name)
            if level:
                if run_sizes:
                    size_pt = max(run_sizes)
                elif para.style.font.size is not None:
                    size_pt = para.style.font.size.pt
                else:
                    size_pt = (32 - level * 4) / 2
                sections.append(
                    OutlineEntry(title=text, level=level, font_size=_to_half_points(size_pt))
                )
            text_parts.append(text)

        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                non_empty = [c for c in cells if c]
                if non_empty:
                    text_parts.append(" | ".join(non_empty))

        # A Word-generated TOC is a field whose instruction starts with "TOC"
        for instr in doc.element.body.iter(qn("w:instrText")):
            if instr.text and instr.text.strip().upper().startswith("TOC"):
                has_toc = True
                break

        text = "\n".join(text_parts)
        structure = DocumentStructure(
            sections=tuple(sections),
            default_font_size=(
                _to_half_points(sum(sizes) / len(sizes)) if sizes else DEFAULT_FONT_SIZE
            ),
            has_table_of_contents=has_toc or "table of contents" in text.lower(),
        )
        return text, structure, {"page_count": None}

    def _docx_fallback(self, raw: bytes) -> Tuple[str, DocumentStructure, Dict[str, Any]]:
        """Scan the WordprocessingML for <w:t> runs and HeadingN paragraph styles."""
        xml = _archive_xml(raw, ("word/document.xml",))
        text = " ".join(_DOCX_TEXT.findall(xml))

        sections = [
            OutlineEntry(title=title.strip(), level=int(level), font_size=32 - int(level) * 4)
            for level, title in _DOCX_HEADING.findall(xml)
            if title.strip()
        ]
        sizes = [int(v) for v in _DOCX_FONT_SIZE.findall(xml)]
        structure = DocumentStructure(
            sections=tuple(sections),
            default_font_size=round(sum(sizes) / len(sizes)) if sizes else DEFAULT_FONT_SIZE,
            has_table_of_contents="TOC" in xml or "table of contents" in text.lower(),
        )
        return text, structure, {"page_count": None, "used_fallback": True}

    # ------------------------------------------------------------------
    # PPTX
    # ------------------------------------------------------------------

    def _extract_pptx(self, raw: bytes) -> Tuple[str, DocumentStructure, Dict[str, Any]]:
        """Read a PPTX with python-pptx; slide titles become level-1 headings."""
        try:
            prs = Presentation(io.BytesIO(raw))
        except Exception as exc:
            logger.warning("PPTX could not be opened (%s) — using XML fallback", exc)
            return self._pptx_fallback(raw)

        sections: List[OutlineEntry] = []
        sizes: List[float] = []
        text_parts: List[str] = []
        slide_count = 0

        for slide in prs.slides:
            slide_count += 1
            title_shape = slide.shapes.title
            if title_shape is not None and title_shape.has_text_frame:
                title = title_shape.text_frame.text.strip()
                if title:
                    sections.append(OutlineEntry(title=title, level=1, font_size=32))

            for shape in slide.shapes:
                text_parts.extend(_shape_text(shape, sizes))

        text = "\n".join(part for part in text_parts if part)
        structure = DocumentStructure(
            sections=tuple(sections),
            default_font_size=(
                _to_half_points(sum(sizes) / len(sizes)) if sizes else DEFAULT_FONT_SIZE
            ),
            has_table_of_contents=any(
                entry.title.lower() in ("contents", "table of contents", "agenda", "index")
                for entry in sections
            ),
        )
        return text, structure, {"page_count": slide_count}

    def _pptx_fallback(self, raw: bytes) -> Tuple[str, DocumentStructure, Dict[str, Any]]:
        """Scan the PresentationML for <a:t> runs and title placeholders."""
        xml = _archive_xml(raw, ("ppt/slides/",))
        text = " ".join(_PPTX_TEXT.findall(xml))
        sections = [
            OutlineEntry(title=title.strip(), level=1, font_size=32)
            for title in _PPTX_TITLE.findall(xml)
            if title.strip()
        ]
        structure = DocumentStructure(
            sections=tuple(sections),
            default_font_size=DEFAULT_FONT_SIZE,
            has_table_of_contents=False,
        )
        return text, structure, {"page_count": None, "used_fallback": True}


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------

def _modal_font_size(sizes: List[float]) -> float:
    """Return the most frequently occurring font size (proxy for body text)."""
    rounded = [round(s, 1) for s in sizes]
    freq: Dict[float, int] = {}
    for s in rounded:
        freq[s] = freq.get(s, 0) + 1
    return max(freq, key=lambda k: freq[k])


def _estimate_heading_level(span_size: float, body_size: float) -> int:
    """Map a span's font-size ratio to an H1/H2/H3 level."""
    ratio = span_size / body_size if body_size > 0 else 1.0
    if ratio >= 1.5:
        return 1
    if ratio >= 1.25:
        return 2
    return 3


def _to_half_points(size_pt: float) -> int:
    return int(round(size_pt * 2))


def _docx_heading_level(style_name: str) -> int:
    """Return 1-6 for ``Heading N`` / ``Title`` styles, 0 otherwise."""
    match = _DOCX_HEADING_STYLE.match(style_name.strip())
    if match:
        return int(match.group(1))
    if style_name.strip().lower() == "title":
        return 1
    return 0


def _style_font_size(doc, style_name: str) -> Optional[float]:
    try:
        size = doc.styles[style_name].font.size
    except KeyError:
        return None
    return size.pt if size is not None else None


def _shape_text(shape, sizes: List[float]) -> List[str]:
    """Collect text from a slide shape, recursing into groups and tables."""
    parts: List[str] = []
    if shape.shape_type == MSO_SHAPE_TYPE.GROUP:
        for sub_shape in shape.shapes:
            parts.extend(_shape_text(sub_shape, sizes))
        return parts

    if shape.has_text_frame:
        for paragraph in shape.text_frame.paragraphs:
            for run in paragraph.runs:
                if run.font.size is not None:
                    sizes.append(run.font.size.pt)
            text = "".join(run.text for run in paragraph.runs).strip()
            if text:
                parts.append(text)

    if shape.has_table:
        for row in shape.table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            non_empty = [c for c in cells if c]
            if non_empty:
                parts.append(" | ".join(non_empty))
    return parts


def _archive_xml(raw: bytes, prefixes: Tuple[str, ...]) -> str:
    """
    Return the XML parts of an Open XML package whose names start with one of
    *prefixes*, concatenated in slide/document order. Non-zip payloads are
    decoded as-is.
    """
    buffer = io.BytesIO(raw)
    if zipfile.is_zipfile(buffer):
        try:
            with zipfile.ZipFile(buffer) as archive:
                names = [
                    name for name in archive.namelist()
                    if name.endswith(".xml") and name.startswith(prefixes)
                ]
                names.sort(key=_natural_key)
                return "".join(
                    archive.read(name).decode("utf-8", errors="ignore") for name in names
                )
        except (zipfile.BadZipFile, KeyError) as exc:
            logger.warning("Archive could not be read (%s) — scanning raw bytes", exc)
    return raw.decode("utf-8", errors="ignore")


def _natural_key(name: str) -> Tuple[Any, ...]:
    return tuple(int(part) if part.isdigit() else part for part in re.split(r"(\d+)", name))
