"""Normalise heterogeneous document bytes into plain text.

Dispatch is by MIME type first and file extension second, because drives
often report ``application/octet-stream`` for uploads:

    PDF   → PyMuPDF (``fitz``), page text joined by blank lines
    DOCX  → python-docx, paragraph text joined by blank lines
    text  → UTF-8 decode, bad bytes replaced (``text/*``, JSON, .txt/.md/.csv/.json)
    other → best-effort UTF-8 decode with replacement characters

Google-native documents never reach this module; the ingestion service
exports them through the drive provider first.
"""

from __future__ import annotations

from io import BytesIO
from pathlib import PurePath

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog
from docx import Document

from driverag.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

_PDF_MIME = "application/pdf"
_DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
_TEXT_MIMES = frozenset({"application/json", "application/xml", "application/csv"})
_TEXT_EXTENSIONS = frozenset({".txt", ".md", ".csv", ".json", ".tsv", ".log", ".xml", ".html"})


class TextExtractor:
    """Converts raw file bytes to text based on a MIME / extension hint."""

    def extract(self, content: bytes, mime_type: str, file_name: str) -> str:
        """Return the plain text of *content*.

        Raises
        ------
        ExtractionError
            If the bytes cannot be parsed as the declared format.  The
            message names the file so per-file failures are traceable.
        """
        extension = PurePath(file_name).suffix.lower()

        try:
            if mime_type == _PDF_MIME or extension == ".pdf":
                text = self._extract_pdf(content)
                kind = "pdf"
            elif mime_type == _DOCX_MIME or extension == ".docx":
                text = self._extract_docx(content)
                kind = "docx"
            else:
                text = content.decode("utf-8", errors="replace")
                textual = mime_type.startswith("text/") or mime_type in _TEXT_MIMES or extension in _TEXT_EXTENSIONS
                kind = "text" if textual else "fallback"
        except Exception as exc:
            raise ExtractionError(
                message=f"Failed to extract text from {file_name}: {exc}",
            ) from exc

        logger.debug(
            "text_extracted",
            file_name=file_name,
            kind=kind,
            bytes=len(content),
            characters=len(text),
        )
        return text

    @staticmethod
    def _extract_pdf(content: bytes) -> str:
        doc = fitz.open(stream=content, filetype="pdf")
        try:
            pages = [page.get_text("text").strip() for page in doc]
        finally:
            doc.close()
        return "\n\n".join(page for page in pages if page)

    @staticmethod
    def _extract_docx(content: bytes) -> str:
        """Paragraph text only; formatting and tables are dropped."""
        doc = Document(BytesIO(content))
        return "\n\n".join(para.text for para in doc.paragraphs if para.text.strip())
