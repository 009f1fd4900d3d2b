"""
Knowledge Base — In-memory evidence store for one uploaded document.

WHAT THIS DOES:
Holds the embedded chunks of the uploaded document in a LangChain
InMemoryVectorStore and returns the chunks most similar to a query.
Both personas share one knowledge base, so they argue over the same
evidence.

WHY IN MEMORY:
A debate lives for one session and transcripts are never persisted.
A few hundred vectors fit comfortably in memory.

HOW IT WORKS:
1. build(): add chunks to the store in small batches (each batch is one
   embeddings request) with a pause between batches, since the
   embedding quota is shared with the chat quota. A stop request is
   checked before every batch and on every tick of the pause.
2. retrieve(): the store embeds the query and ranks chunks by cosine
   similarity → top-K, highest first (ties keep document order)

USAGE:
    kb = await KnowledgeBase.build(chunks, EmbeddingService(), should_cancel=checker)
    snippets = await kb.retrieve("Is X ethical?", top_k=4)
"""

import logging
from typing import Callable, Optional

from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings
from langchain_core.vectorstores import InMemoryVectorStore

from arena.config import get_settings
from arena.models.schemas import EvidenceSnippet
from arena.services.debate.errors import DocumentProcessingError
from arena.services.debate.pacing import PacedClock, raise_if_cancelled
from arena.services.debate.protocols import BaseRetriever

logger = logging.getLogger(__name__)


class KnowledgeBase(BaseRetriever):
    """
    Retrieves relevant document chunks by vector similarity.

    Create one with KnowledgeBase.build(); the constructor takes an
    already-populated vector store.
    """

    def __init__(self, store: InMemoryVectorStore, size: int, top_k: Optional[int] = None):
        self.store = store
        self.size = size
        self.top_k = top_k or get_settings().retriever_top_k

    @classmethod
    async def build(
        cls,
        chunks: list[str],
        embedder: Embeddings,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
        top_k: Optional[int] = None,
        clock: Optional[PacedClock] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> "KnowledgeBase":
        """
        Embed chunks and return a ready knowledge base.

        Args:
            chunks: Text chunks from document_processor
            embedder: LangChain Embeddings (EmbeddingService in production)
            batch_size: Chunks per embeddings request
            batch_delay: Seconds to wait between requests
            top_k: Default number of snippets per retrieve()
            clock: Cancellable delay used for the pause between batches
            should_cancel: Polled before every batch and during every pause

        Raises:
            DocumentProcessingError: no usable chunks
            DebateCancelledError: a stop was requested while indexing
        """
        settings = get_settings()
        batch_size = batch_size or settings.embedding_batch_size
        if batch_delay is None:
            batch_delay = settings.embedding_batch_delay_seconds
        clock = clock or PacedClock(poll_interval=settings.cancel_poll_interval_seconds)

        sanitized = [c.strip() for c in chunks if isinstance(c, str) and c.strip()]
        if not sanitized:
            raise DocumentProcessingError("Knowledge base requires at least one non-empty chunk.")

        logger.info(f"Embedding {len(sanitized)} chunks in batches of {batch_size}")

        store = InMemoryVectorStore(embedding=embedder)
        for start in range(0, len(sanitized), batch_size):
            raise_if_cancelled(should_cancel)

            batch = sanitized[start:start + batch_size]
            documents = [
                Document(page_content=text, metadata={"chunk_index": start + offset})
                for offset, text in enumerate(batch)
            ]
            await store.aadd_documents(
                documents,
                ids=[str(doc.metadata["chunk_index"]) for doc in documents],
            )

            # Force a gap between batches to avoid embedding burst traffic
            if start + batch_size < len(sanitized):
                await clock.wait(batch_delay, should_cancel)

        logger.info(f"Knowledge base ready: {len(sanitized)} vectors")
        return cls(store, len(sanitized), top_k=top_k)

    async def retrieve(self, query: str, top_k: Optional[int] = None) -> list[EvidenceSnippet]:
        """
        Find the chunks most similar to the query.

        Returns:
            List of EvidenceSnippet, ordered by relevance
        """
        k = top_k or self.top_k
        results = await self.store.asimilarity_search_with_score(query, k=k)

        snippets = [
            EvidenceSnippet(
                chunk_index=doc.metadata["chunk_index"],
                text=doc.page_content,
                relevance_score=float(score),
            )
            for doc, score in results
        ]
        # Highest score first; equal scores keep document order
        snippets.sort(key=lambda s: (-s.relevance_score, s.chunk_index))

        logger.debug(f"Retrieved {len(snippets)} snippets for query ({len(query)} chars)")
        return snippets

    def __len__(self) -> int:
        return self.size
