"""
Retrieval state holder.

The KnowledgeBase owns the documents, their chunks and the vector index built
over them, plus an explicit lifecycle status. It is created once per process
and passed by reference to the orchestrator and the fallback supervisor.
Structures are only written while initializing and are read-only afterwards.
"""

import uuid
import logging
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from .chunker import Chunk, TextChunker
from .fetcher import FetchedDocument
from .vector_index import VectorIndex

logger = logging.getLogger(__name__)


class IndexStatus(str, Enum):
    """Lifecycle of the retrieval state."""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class Document:
    """A source document. Immutable once created."""
    id: str
    title: str
    raw_text: str
    fetched_at: str
    url: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    @classmethod
    def from_fetched(cls, fetched: FetchedDocument) -> "Document":
        return cls(
            id=str(uuid.uuid4()),
            title=fetched.title,
            raw_text=fetched.content,
            fetched_at=fetched.timestamp,
            url=fetched.url,
            metadata={"title": fetched.title, "url": fetched.url, "timestamp": fetched.timestamp},
        )

    @classmethod
    def curated(cls, doc_id: str, title: str, text: str, section: str) -> "Document":
        return cls(
            id=doc_id,
            title=title,
            raw_text=text,
            fetched_at=datetime.now(timezone.utc).isoformat(),
            metadata={"title": title, "section": section},
        )


@dataclass
class KnowledgeBase:
    """Documents, chunks and index, with the status they were built under."""
    status: IndexStatus = IndexStatus.UNINITIALIZED
    documents: list[Document] = field(default_factory=list)
    chunks: list[Chunk] = field(default_factory=list)
    index: Optional[VectorIndex] = None
    # Embedder that produced the index vectors; queries must use the same one
    embedder: Any = None
    degraded_reason: Optional[str] = None

    @property
    def is_initialized(self) -> bool:
        return self.status in (IndexStatus.READY, IndexStatus.DEGRADED)

    def document_for(self, chunk: Chunk) -> Optional[Document]:
        for doc in self.documents:
            if doc.id == chunk.document_ref:
                return doc
        return None

    def populate(
        self,
        documents: list[Document],
        chunks: list[Chunk],
        index: VectorIndex,
        embedder: Any,
        status: IndexStatus,
        degraded_reason: Optional[str] = None,
    ) -> None:
        """Install fully built structures in one step."""
        self.documents = list(documents)
        self.chunks = list(chunks)
        self.index = index
        self.embedder = embedder
        self.status = status
        self.degraded_reason = degraded_reason


def index_documents(
    documents: list[Document],
    chunker: TextChunker,
    embedder: Any,
) -> tuple[list[Chunk], VectorIndex]:
    """
    Chunk documents, embed every chunk in one batched call, build the index.

    The index dimensionality is taken from the returned embeddings.

    Raises:
        GatewayFailure: If the embedding call fails
        DimensionMismatch: If the gateway returns inconsistent vectors
        ValueError: If the documents produce no chunks
    """
    chunks = []
    for doc in documents:
        chunks.extend(chunker.chunk(doc.raw_text, document_ref=doc.id))

    if not chunks:
        raise ValueError("No chunks produced from documents")

    logger.info(f"Created {len(chunks)} text chunks")

    embeddings = embedder.embed([c.text for c in chunks])
    if len(embeddings) != len(chunks):
        raise ValueError(f"Expected {len(chunks)} embeddings, got {len(embeddings)}")

    index = VectorIndex(len(embeddings[0]))
    index.add(embeddings)
    logger.info(f"Vector index built with {index.size} vectors (dimension {index.dimension})")

    return chunks, index
