"""
Document Processor — Turns an uploaded PDF into retrievable chunks.

WHAT THIS DOES:
1. Extracts plain text from the PDF bytes (pypdf)
2. Splits the text into overlapping chunks (LangChain's recursive splitter)

WHY OVERLAP:
Arguments often span a chunk boundary. A 200-char overlap keeps a
claim and its supporting sentence together in at least one chunk.

USAGE:
    processed = parse_and_chunk_pdf(pdf_bytes)
    processed.chunks  # ["...", "...", ...]
"""

import io
import logging
from dataclasses import dataclass

from langchain_text_splitters import RecursiveCharacterTextSplitter
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from arena.services.debate.errors import DocumentProcessingError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200


@dataclass
class ProcessedDocument:
    """Extracted text plus its chunks."""

    raw_text: str
    chunks: list[str]


def parse_pdf_to_text(data: bytes) -> str:
    """
    Extract the text of every page.

    Raises:
        DocumentProcessingError: empty input, unreadable PDF, or no text
    """
    if not data:
        raise DocumentProcessingError("No PDF data was provided.")

    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError, OSError) as e:
        raise DocumentProcessingError(f"Failed to parse PDF into text: {e}") from e

    raw_text = "\n".join(pages).strip()
    if not raw_text:
        raise DocumentProcessingError("PDF was parsed but no readable text was found.")

    logger.info(f"Extracted {len(raw_text)} chars from {len(pages)} pages")
    return raw_text


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[str]:
    """
    Split text into overlapping chunks.

    Raises:
        DocumentProcessingError: empty text or invalid chunk settings
    """
    if not isinstance(text, str) or not text.strip():
        raise DocumentProcessingError("Cannot chunk empty text.")

    if chunk_size <= 0 or chunk_overlap < 0 or chunk_overlap >= chunk_size:
        raise DocumentProcessingError(
            "Invalid chunk settings. Ensure chunk_size > 0 and 0 <= chunk_overlap < chunk_size."
        )

    splitter = RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
    )
    chunks = [chunk for chunk in splitter.split_text(text) if chunk.strip()]

    if not chunks:
        raise DocumentProcessingError("Text splitting produced no chunks.")

    logger.info(f"Created {len(chunks)} chunks (chunk_size={chunk_size}, overlap={chunk_overlap})")
    return chunks


def parse_and_chunk_pdf(
    data: bytes,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> ProcessedDocument:
    """Convenience function: parse then chunk."""
    raw_text = parse_pdf_to_text(data)
    return ProcessedDocument(
        raw_text=raw_text,
        chunks=chunk_text(raw_text, chunk_size, chunk_overlap),
    )
