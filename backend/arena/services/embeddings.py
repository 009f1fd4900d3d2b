"""
OpenAI Embedding Service.

WHAT THIS DOES:
Converts document chunks and retrieval queries into vector embeddings
using OpenAI's text-embedding-3-small model. It implements LangChain's
Embeddings interface, so the in-memory vector store in retriever.py
calls it directly for both indexing and search.

WHEN EMBEDDINGS ARE GENERATED:
═══════════════════════════════════════════════════════════════════════════════
UPLOAD TIME (once per debate):
    POST /api/debate (PDF + topic)
        → Parse and chunk the PDF
        → Embed every chunk, a few at a time  ← aembed_documents
        → Debate starts

TURN TIME (once per persona turn):
    Persona asks for evidence
        → Embed the turn instruction only (1 API call)  ← aembed_query
        → Vector store ranks chunks by cosine similarity
═══════════════════════════════════════════════════════════════════════════════

RETRIES:
The client is built with max_retries=0. The quota is per-minute, and a
silent SDK retry after a 429 would spend the next minute's budget too.
A 429 is surfaced as RateLimitedError instead.

ASYNC ONLY:
The whole debate runs on the event loop, so only the async half of the
Embeddings interface is implemented.

USAGE:
    service = EmbeddingService()
    vector = await service.aembed_query("Is X ethical?")
    vectors = await service.aembed_documents(["chunk 1", "chunk 2"])
"""

import logging
from typing import Optional

import openai
from langchain_core.embeddings import Embeddings
from openai import AsyncOpenAI

from arena.config import get_settings
from arena.services.debate.errors import RateLimitedError

logger = logging.getLogger(__name__)

# Max texts per embeddings request
BATCH_SIZE = 100

# Max tokens for embedding model (8191 for text-embedding-3-small)
# We truncate longer texts to avoid errors
MAX_TOKENS = 8000  # Leave some buffer


def _truncate(text: str) -> str:
    # Rough estimate: 1 token ≈ 4 chars
    if len(text) > MAX_TOKENS * 4:
        logger.warning(f"Truncated text to {MAX_TOKENS * 4} chars for embedding")
        return text[:MAX_TOKENS * 4]
    return text


class EmbeddingService(Embeddings):
    """
    Generate embeddings using OpenAI's API.

    This service handles:
    - Query embedding (retrieval at turn time)
    - Batch embedding (document chunks at upload time)
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        settings = get_settings()
        self.client = client or AsyncOpenAI(
            api_key=settings.openai_api_key or None,
            max_retries=0,
        )
        self.model = model or settings.embedding_model

    async def aembed_query(self, text: str) -> list[float]:
        """
        Embed a single text into a vector.

        Example:
            vector = await service.aembed_query("open with a strong critique...")
            # Returns: [0.023, -0.041, 0.078, ...]
        """
        vectors = await self.aembed_documents([text])
        return vectors[0]

    async def aembed_documents(self, texts: list[str]) -> list[list[float]]:
        """
        Embed multiple texts in a single API call.

        Args:
            texts: List of texts to embed (max BATCH_SIZE)

        Returns:
            List of vectors, same order as input texts
        """
        if not texts:
            return []

        if len(texts) > BATCH_SIZE:
            raise ValueError(f"Too many texts ({len(texts)}), max is {BATCH_SIZE}.")

        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=[_truncate(text) for text in texts],
            )
        except openai.RateLimitError as e:
            raise RateLimitedError(
                "Embedding rate limit reached while indexing the document."
            ) from e

        # Response data is in same order as input
        return [item.embedding for item in response.data]

    def embed_query(self, text: str) -> list[float]:
        raise NotImplementedError("EmbeddingService is async only; use aembed_query().")

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        raise NotImplementedError("EmbeddingService is async only; use aembed_documents().")
