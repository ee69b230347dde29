"""Document ingestion pipeline for the driveRAG knowledge base.

Orchestrates the full pipeline: **fetch -> extract -> chunk -> embed -> store**.

1. **Fetch** (via IDriveProvider) -- Lists the files in a drive folder and
   downloads or exports each one.

2. **Extract** (text_extractor.py / TextExtractor) -- Turns PDF, DOCX and
   text bytes into plain text.

3. **Chunk** (chunker.py / TextChunker) -- Splits text into ~1000-character
   overlapping windows on paragraph boundaries.

4. **Embed** (via EmbeddingService) -- One vector per chunk, with cache and
   model fallback.

5. **Store** (via IVectorStoreProvider) -- One upsert of every collected
   vector at the end of the run.
"""

from driverag.services.ingestion.chunker import TextChunker
from driverag.services.ingestion.ingestion_service import IngestionService
from driverag.services.ingestion.text_extractor import TextExtractor

__all__ = [
    "IngestionService",
    "TextChunker",
    "TextExtractor",
]
