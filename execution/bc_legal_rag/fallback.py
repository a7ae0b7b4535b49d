"""
Fallback Supervisor

When document fetching, embedding or index construction fails, the retriever
still has to answer. The supervisor installs a small curated set of BC
statute excerpts into the knowledge base and marks it DEGRADED.

The curated excerpts are embedded through the configured gateway first. If
the gateway itself is down, the local hashing embedder is used instead and
recorded on the knowledge base, so query vectors come from the same embedder
as the index vectors.

The same idea applies to recommendation candidates: if the lawyer and
resource datasets cannot be loaded, a curated set of province-wide services
is installed, embedded with the keyword-hash embedder.
"""

import logging
from typing import Any, Optional

from .chunker import TextChunker
from .candidates import (
    CANDIDATE_EMBEDDING_DIMENSIONS,
    CandidatePool,
    Contact,
    Lawyer,
    Resource,
)
from .embeddings import HashingEmbeddingService
from .knowledge_base import Document, IndexStatus, KnowledgeBase, index_documents
from .query_embedding import keyword_query_embedding

logger = logging.getLogger(__name__)


CURATED_STATUTES = (
    {
        "id": "fallback-esa-minimum-wage",
        "title": "Employment Standards Act",
        "section": "Minimum Wage",
        "text": (
            "The Employment Standards Act sets minimum standards for wages, hours of work, "
            "and working conditions in British Columbia. Employers must pay at least the "
            "minimum wage of $16.75 per hour as of 2024."
        ),
    },
    {
        "id": "fallback-hrc-prohibited-grounds",
        "title": "Human Rights Code",
        "section": "Prohibited Grounds",
        "text": (
            "The BC Human Rights Code prohibits discrimination based on race, colour, "
            "ancestry, place of origin, religion, marital status, family status, physical "
            "or mental disability, sex, sexual orientation, gender identity or expression, "
            "and age."
        ),
    },
    {
        "id": "fallback-rta-landlord-entry",
        "title": "Residential Tenancy Act",
        "section": "Landlord Entry Rights",
        "text": (
            "Under the Residential Tenancy Act, landlords must provide 24 hours written "
            "notice before entering a rental unit, except in cases of emergency. Tenants "
            "have the right to quiet enjoyment of their rental unit."
        ),
    },
)

CURATED_LAWYERS = (
    {
        "id": "fallback-legal-aid-bc",
        "name": "Legal Aid BC",
        "specialty": "Family Law, Criminal Law, Immigration Law",
        "location": "British Columbia",
        "fee_structure": "Free for eligible low income clients",
        "website": "https://legalaid.bc.ca",
    },
    {
        "id": "fallback-access-pro-bono",
        "name": "Access Pro Bono Society of BC",
        "specialty": "Civil Law, Employment Law, Human Rights",
        "location": "Vancouver, B.C.",
        "fee_structure": "Pro bono",
        "website": "https://accessprobono.ca",
    },
    {
        "id": "fallback-lslap",
        "name": "Law Students' Legal Advice Program",
        "specialty": "Employment Law, Tenancy, Small Claims",
        "location": "Vancouver",
        "fee_structure": "Free",
        "website": "https://www.lslap.bc.ca",
    },
)

CURATED_RESOURCES = tuple(
    {"id": statute["id"], "source": statute["title"], "text": statute["text"]}
    for statute in CURATED_STATUTES
)


class FallbackSupervisor:
    """
    Installs curated data when the live path fails.

    Usage:
        supervisor = FallbackSupervisor(embedder, chunker)
        supervisor.degrade(knowledge_base, reason="no documents fetched")
    """

    def __init__(
        self,
        embedder: Any = None,
        chunker: Optional[TextChunker] = None,
        local_embedder: Any = None,
    ):
        self.embedder = embedder
        self.chunker = chunker or TextChunker()
        self.local_embedder = local_embedder or HashingEmbeddingService()

    def curated_documents(self) -> list[Document]:
        return [
            Document.curated(s["id"], s["title"], s["text"], s["section"])
            for s in CURATED_STATUTES
        ]

    def degrade(self, kb: KnowledgeBase, reason: Optional[str] = None) -> KnowledgeBase:
        """
        Populate the knowledge base from the curated statutes.

        Always leaves the knowledge base DEGRADED with a non-empty index.
        """
        logger.info("Loading fallback BC legal data...")
        documents = self.curated_documents()

        embedder = self.embedder
        built = None
        if embedder is not None:
            try:
                built = index_documents(documents, self.chunker, embedder)
            except Exception as e:
                # Any gateway failure here falls through to the local embedder
                logger.warning(f"Gateway unavailable for fallback data, using local embedder: {e}")

        if built is None:
            embedder = self.local_embedder
            built = index_documents(documents, self.chunker, embedder)

        chunks, index = built
        kb.populate(
            documents=documents,
            chunks=chunks,
            index=index,
            embedder=embedder,
            status=IndexStatus.DEGRADED,
            degraded_reason=reason or "fallback data in use",
        )
        logger.info(f"Fallback knowledge base ready with {index.size} vectors")
        return kb

    def curated_candidates(
        self, dimensions: int = CANDIDATE_EMBEDDING_DIMENSIONS
    ) -> tuple[list[Lawyer], list[Resource]]:
        """Curated lawyers and resources with keyword-hash embeddings."""
        lawyers = [
            Lawyer(
                id=entry["id"],
                name=entry["name"],
                specialty=entry["specialty"],
                location=entry["location"],
                fee_structure=entry["fee_structure"],
                languages=["English"],
                contact=Contact(website=entry["website"]),
                embedding=keyword_query_embedding(
                    f"{entry['specialty']} {entry['fee_structure']}", dimension=dimensions
                ),
            )
            for entry in CURATED_LAWYERS
        ]
        resources = [
            Resource(
                id=entry["id"],
                source=entry["source"],
                text=entry["text"],
                embedding=keyword_query_embedding(entry["text"], dimension=dimensions),
            )
            for entry in CURATED_RESOURCES
        ]
        return lawyers, resources

    def degrade_candidates(
        self,
        pool: CandidatePool,
        reason: Optional[str] = None,
        dimensions: int = CANDIDATE_EMBEDDING_DIMENSIONS,
    ) -> CandidatePool:
        """Replace the pool's contents with the curated candidates."""
        lawyers, resources = self.curated_candidates(dimensions)
        pool.replace(
            lawyers,
            resources,
            degraded=True,
            degraded_reason=reason or "fallback candidates in use",
        )
        logger.info(
            f"Fallback candidates loaded: {len(lawyers)} lawyers, {len(resources)} resources"
        )
        return pool
