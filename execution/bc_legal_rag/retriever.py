"""
Retrieval Orchestrator

Owns the lifecycle of the knowledge base and answers retrieval queries:

    UNINITIALIZED -> INITIALIZING -> READY | DEGRADED

initialize() fetches BC statutes, chunks them, embeds every chunk in one
gateway call and builds the vector index. Any failure on that path hands the
knowledge base to the Fallback Supervisor, which leaves it DEGRADED but
searchable. Both end states are terminal for the process.

retrieve() lazily initializes, embeds the query with the embedder that built
the index, and returns fragments ordered by similarity (1 - squared
distance). A gateway failure at query time returns an empty list.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional

from .chunker import Chunk, TextChunker
from .embeddings import get_embedding_service
from .exceptions import DimensionMismatch, GatewayFailure
from .fallback import FallbackSupervisor
from .fetcher import DocumentFetcher
from .knowledge_base import Document, IndexStatus, KnowledgeBase, index_documents
from .metrics import get_metrics_collector

logger = logging.getLogger(__name__)


@dataclass
class RetrievalConfig:
    """Configuration for retrieval."""
    k: int = 5
    # Fetched documents at or below this length are discarded
    min_document_chars: int = 100


@dataclass
class RetrievedFragment:
    """A chunk returned for a query, with its source document."""
    chunk: Chunk
    document: Optional[Document]
    similarity: float

    @property
    def title(self) -> str:
        return self.document.title if self.document else "Unknown source"

    @property
    def url(self) -> Optional[str]:
        return self.document.url if self.document else None

    @property
    def section(self) -> Optional[str]:
        if not self.document:
            return None
        return self.document.metadata.get("section")

    def to_dict(self) -> dict:
        return {
            "text": self.chunk.text,
            "source": self.title,
            "url": self.url,
            "section": self.section,
            "similarity": self.similarity,
        }


class RetrievalOrchestrator:
    """
    Builds the knowledge base once and serves retrieval queries.

    Usage:
        orchestrator = RetrievalOrchestrator()
        fragments = orchestrator.retrieve("Can my landlord enter without notice?")
        context = orchestrator.build_context(fragments)
    """

    def __init__(
        self,
        knowledge_base: Optional[KnowledgeBase] = None,
        fetcher: Optional[DocumentFetcher] = None,
        embedder: Any = None,
        chunker: Optional[TextChunker] = None,
        fallback: Optional[FallbackSupervisor] = None,
        config: Optional[RetrievalConfig] = None,
    ):
        self.kb = knowledge_base or KnowledgeBase()
        self.fetcher = fetcher or DocumentFetcher()
        self.embedder = embedder or get_embedding_service()
        self.chunker = chunker or TextChunker()
        self.fallback = fallback or FallbackSupervisor(self.embedder, self.chunker)
        self.config = config or RetrievalConfig()
        self._lock = threading.Lock()
        self._metrics = get_metrics_collector()

    @property
    def status(self) -> IndexStatus:
        return self.kb.status

    def _load_documents(self) -> list[Document]:
        fetched = self.fetcher.fetch_all()
        documents = []
        for item in fetched:
            if len(item.content) > self.config.min_document_chars:
                documents.append(Document.from_fetched(item))
            else:
                logger.warning(f"Discarding {item.url}: only {len(item.content)} chars")
        return documents

    def _build(self) -> None:
        documents = self._load_documents()
        if not documents:
            logger.warning("No documents fetched, using fallback data")
            self.fallback.degrade(self.kb, reason="no documents fetched")
            return

        try:
            chunks, index = index_documents(documents, self.chunker, self.embedder)
        except (GatewayFailure, DimensionMismatch, ValueError) as e:
            logger.error(f"Failed to build index: {e}")
            self.fallback.degrade(self.kb, reason=f"index build failed: {e}")
            return

        self.kb.populate(
            documents=documents,
            chunks=chunks,
            index=index,
            embedder=self.embedder,
            status=IndexStatus.READY,
        )
        logger.info(f"RAG system initialized with {len(documents)} documents")

    def initialize(self) -> IndexStatus:
        """
        Build the knowledge base. Safe to call repeatedly and from several
        threads: only the first call does any work.

        Returns:
            READY or DEGRADED
        """
        with self._lock:
            if self.kb.status is not IndexStatus.UNINITIALIZED:
                return self.kb.status

            logger.info("Initializing BC Legal RAG system...")
            self.kb.status = IndexStatus.INITIALIZING
            try:
                self._build()
            except Exception as e:
                # Initialization never fails the caller; unexpected errors degrade too
                logger.exception(f"Initialization failed: {e}")
                self.fallback.degrade(self.kb, reason=f"initialization failed: {e}")

            degraded = self.kb.status is IndexStatus.DEGRADED
            self._metrics.record_initialization(
                documents=len(self.kb.documents),
                chunks=len(self.kb.chunks),
                degraded=degraded,
            )
            if degraded:
                logger.warning(f"Knowledge base degraded: {self.kb.degraded_reason}")
            return self.kb.status

    def _embed_query(self, query: str) -> list[float]:
        embedder = self.kb.embedder or self.embedder
        vectors = embedder.embed([query])
        if not vectors:
            raise GatewayFailure("Embedding gateway returned no vector for query", service="embeddings")
        return vectors[0]

    def retrieve(self, query: str, k: Optional[int] = None) -> list[RetrievedFragment]:
        """
        Find the chunks most similar to a query.

        Args:
            query: User question
            k: Number of fragments (default from config)

        Returns:
            Fragments sorted by similarity descending, or [] if the
            embedding gateway fails
        """
        if not self.kb.is_initialized:
            self.initialize()

        k = self.config.k if k is None else k
        degraded = self.kb.status is IndexStatus.DEGRADED

        with self._metrics.track("retrieve", query) as tracker:
            if k <= 0 or self.kb.index is None:
                tracker.set_results(0, degraded=degraded)
                return []

            try:
                query_vector = self._embed_query(query)
                distances, labels = self.kb.index.search(query_vector, k)
            except (GatewayFailure, DimensionMismatch) as e:
                logger.error(f"Error querying RAG system: {e}")
                self._metrics.record_error(type(e).__name__)
                tracker.set_error(str(e))
                tracker.set_results(0, degraded=degraded)
                return []

            fragments = []
            for distance, label in zip(distances, labels):
                chunk = self.kb.chunks[label]
                fragments.append(RetrievedFragment(
                    chunk=chunk,
                    document=self.kb.document_for(chunk),
                    similarity=1.0 - distance,
                ))

            tracker.set_results(len(fragments), degraded=degraded)

        logger.info(f"Retrieved {len(fragments)} fragments for query")
        return fragments

    def build_context(self, fragments: list[RetrievedFragment]) -> str:
        """Render fragments as prompt context blocks."""
        return "\n\n".join(
            f"Source: {f.title}\nContent: {f.chunk.text}" for f in fragments
        )

    def sources(self, fragments: list[RetrievedFragment]) -> list[dict]:
        return [
            {"title": f.title, "url": f.url, "similarity": f.similarity}
            for f in fragments
        ]


# CLI for testing
if __name__ == "__main__":
    import sys
    from dotenv import load_dotenv

    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    orchestrator = RetrievalOrchestrator()
    query = " ".join(sys.argv[1:]) or "What is the minimum wage in BC?"

    fragments = orchestrator.retrieve(query)
    print(f"Status: {orchestrator.status.value}")
    print(f"Query: {query}\n")
    for i, fragment in enumerate(fragments, 1):
        print(f"{i}. [{fragment.similarity:.3f}] {fragment.title}")
        print(f"   {fragment.chunk.text[:200]}...")
