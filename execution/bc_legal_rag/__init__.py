"""
BC Legal RAG - retrieval and ranking core for the BC Legal Assistant

This module provides:
- Overlapping, offset-tracked chunking of BC statutes
- Exact nearest-neighbour search over chunk embeddings
- Lazy knowledge base initialization with a curated fallback dataset
- Lawyer and resource ranking from vector similarity plus heuristic matches
"""

from .chunker import TextChunker
from .embeddings import get_embedding_service
from .vector_index import VectorIndex
from .retriever import RetrievalOrchestrator
from .scoring import CandidateScorer
from .recommendations import RecommendationService

__all__ = [
    "TextChunker",
    "get_embedding_service",
    "VectorIndex",
    "RetrievalOrchestrator",
    "CandidateScorer",
    "RecommendationService",
]

__version__ = "0.1.0"
