"""Text chunking with overlapping windows and paragraph boundary preservation.

Splits extracted document text into :class:`~driverag.models.documents.TextChunk`
objects of at most ~``max_chunk_size`` characters.

1. **Paragraph-preserving** -- chunk boundaries fall on blank lines so no
   chunk starts or ends mid-thought, except where a single paragraph is
   itself longer than the budget.

2. **Overlapping windows** -- when a chunk is sealed, the next one starts
   with the last ``overlap_size`` characters of the sealed chunk, so a
   sentence straddling the boundary is retrievable from either side.

Paragraphs longer than ``max_chunk_size`` are cut at sentence boundaries
(abbreviation-aware), then at whitespace, then hard-cut, before packing.
"""

from __future__ import annotations

import re

import structlog

from driverag.models.documents import TextChunk

logger = structlog.get_logger(logger_name=__name__)

# Common abbreviations that should NOT trigger a sentence split.
_ABBREVIATIONS = frozenset(
    {
        "Dr",
        "Mr",
        "Mrs",
        "Ms",
        "Prof",
        "Jr",
        "Sr",
        "St",
        "No",
        "vs",
        "etc",
        "approx",
        "dept",
        "inc",
        "ltd",
        "co",
        "e.g",
        "i.e",
    }
)

# Whole-word match so "taco." or "disco." are not read as "co.".
_ABBREVIATION_PERIOD = re.compile(
    r"\b(" + "|".join(re.escape(a) for a in sorted(_ABBREVIATIONS, key=len, reverse=True)) + r")\."
)
_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_PARAGRAPH_BREAK = re.compile(r"\n\n+")


def estimate_token_count(text: str) -> int:
    """Rough token estimate (~4 characters per token)."""
    return (len(text) + 3) // 4


class TextChunker:
    """Splits text into overlapping chunks preserving paragraph boundaries.

    Parameters
    ----------
    max_chunk_size:
        Soft ceiling on characters per chunk (default 1000).  A chunk can
        exceed it by at most ``overlap_size + 2`` characters of seeded
        overlap.
    overlap_size:
        Characters carried from the end of one chunk into the next
        (default 200).
    """

    def __init__(self, max_chunk_size: int = 1000, overlap_size: int = 200) -> None:
        if max_chunk_size <= 0:
            raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")
        if not 0 <= overlap_size < max_chunk_size:
            raise ValueError(
                f"overlap_size must be in [0, {max_chunk_size}), got {overlap_size}"
            )
        self._max_chunk_size = max_chunk_size
        self._overlap_size = overlap_size

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str, file_id: str, file_name: str) -> list[TextChunk]:
        """Split *text* into overlapping :class:`TextChunk` objects.

        Parameters
        ----------
        text:
            The full extracted text of one file.
        file_id, file_name:
            Copied into every chunk; ``file_id`` also prefixes chunk ids.

        Returns
        -------
        list[TextChunk]
            Chunks in document order.  Blank input returns an empty list.
        """
        paragraphs: list[str] = []
        for para in self._split_paragraphs(self.clean(text)):
            if len(para) > self._max_chunk_size:
                paragraphs.extend(self._split_oversized(para))
            else:
                paragraphs.append(para)

        chunks: list[TextChunk] = []
        buffer = ""
        start_char = 0

        for para in paragraphs:
            if buffer and len(buffer) + len(para) > self._max_chunk_size:
                chunks.append(self._seal(buffer, file_id, file_name, len(chunks), start_char))
                start_char += max(0, len(buffer) - self._overlap_size)
                seed = buffer[-self._overlap_size :] if self._overlap_size else ""
                buffer = f"{seed}\n\n{para}" if seed else para
            else:
                buffer = f"{buffer}\n\n{para}" if buffer else para

        if buffer:
            chunks.append(self._seal(buffer, file_id, file_name, len(chunks), start_char))

        logger.debug(
            "chunking_complete",
            file_id=file_id,
            num_chunks=len(chunks),
            avg_tokens=(
                sum(estimate_token_count(c.content) for c in chunks) // len(chunks) if chunks else 0
            ),
        )
        return chunks

    @staticmethod
    def clean(text: str) -> str:
        """Normalise line endings and collapse 3+ newlines to a paragraph break."""
        return _EXCESS_NEWLINES.sub("\n\n", text.replace("\r\n", "\n")).strip()

    # ------------------------------------------------------------------
    # Paragraph / sentence splitting
    # ------------------------------------------------------------------

    @staticmethod
    def _split_paragraphs(text: str) -> list[str]:
        parts = _PARAGRAPH_BREAK.split(text)
        return [p.strip() for p in parts if p.strip()]

    @staticmethod
    def _split_sentences(text: str) -> list[str]:
        """Split *text* at ``.``/``!``/``?`` + whitespace, skipping abbreviations.

        Periods after known abbreviations are masked with ``\\x00`` (same
        length) so match offsets still index into the original text.
        """
        masked = _ABBREVIATION_PERIOD.sub(lambda m: m.group(1) + "\x00", text)

        sentences: list[str] = []
        last = 0
        for match in re.finditer(r"[.!?](?:\s|$)", masked):
            end = match.end()
            sentence = text[last:end].strip()
            if sentence:
                sentences.append(sentence)
            last = end

        remainder = text[last:].strip()
        if remainder:
            sentences.append(remainder)

        return sentences if sentences else [text]

    def _split_oversized(self, paragraph: str) -> list[str]:
        """Cut a paragraph longer than the budget into pieces that fit."""
        limit = self._max_chunk_size
        units: list[str] = []
        for sentence in self._split_sentences(paragraph):
            if len(sentence) <= limit:
                units.append(sentence)
                continue
            for word in sentence.split():
                if len(word) <= limit:
                    units.append(word)
                else:
                    units.extend(word[i : i + limit] for i in range(0, len(word), limit))

        pieces: list[str] = []
        current = ""
        for unit in units:
            if current and len(current) + 1 + len(unit) > limit:
                pieces.append(current)
                current = unit
            else:
                current = f"{current} {unit}" if current else unit
        if current:
            pieces.append(current)
        return pieces

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _seal(buffer: str, file_id: str, file_name: str, index: int, start_char: int) -> TextChunk:
        return TextChunk(
            id=f"{file_id}-chunk-{index}",
            file_id=file_id,
            file_name=file_name,
            content=buffer.strip(),
            index=index,
            start_char=start_char,
            end_char=start_char + len(buffer),
        )
