"""
Embedding Gateway for the BC Legal RAG core

Converts text to fixed-dimension dense vectors. The core only depends on the
gateway contract:

    embed(texts) -> list[vector]   # same order, one vector per text,
                                   # one dimensionality per call,
                                   # whole batch fails as GatewayFailure

Architecture:
    BaseEmbeddingService      -- shared caching, batching, embed, embed_query
        OpenAIEmbeddingService    -- hosted OpenAI embeddings (text-embedding-ada-002)
    HashingEmbeddingService   -- deterministic local embedder, no network
    LocalEmbeddingService     -- local sentence-transformers model
"""

import os
import json
import math
import hashlib
import logging
from typing import Optional, Union
from dataclasses import dataclass
from pathlib import Path

from openai import OpenAI

from .exceptions import GatewayFailure

logger = logging.getLogger(__name__)


@dataclass
class EmbeddingConfig:
    """Configuration for the embedding gateway."""
    provider: str = "openai"  # "openai", "hashing" or "local"
    model: str = "text-embedding-ada-002"
    dimensions: int = 1536
    batch_size: int = 256
    max_tokens_per_batch: int = 8000 * 16
    chars_per_token: float = 4.0
    timeout_seconds: float = 30.0
    cache_dir: Optional[str] = None
    use_cache: bool = True


class BaseEmbeddingService:
    """
    Base class for API-based embedding services.

    Provides shared functionality:
    - Batched embedding with progress logging
    - Memory and file-based caching
    - Whole-batch failure semantics (no partial results)

    Subclasses implement:
    - _init_client(): Initialize the provider-specific API client
    - _request_embeddings(texts): One provider round-trip for a batch
    """

    _provider_name: str = "Base"
    _env_var_name: str = ""

    def __init__(self, config: Optional[EmbeddingConfig] = None):
        """
        Initialize embedding service.

        Args:
            config: Optional configuration. Uses defaults if not provided.
        """
        self.config = config or EmbeddingConfig()
        self._client = None
        self._cache = {}

        if self.config.cache_dir:
            self._cache_path = Path(self.config.cache_dir)
            self._cache_path.mkdir(parents=True, exist_ok=True)
        else:
            self._cache_path = None

        self._init_client()

    def _init_client(self):
        """Initialize the provider-specific API client. Must be overridden by subclasses."""
        raise NotImplementedError("Subclasses must implement _init_client()")

    def _request_embeddings(self, texts: list[str]) -> list[list[float]]:
        """Call the provider for one batch. Must be overridden by subclasses."""
        raise NotImplementedError("Subclasses must implement _request_embeddings()")

    def _create_batches(self, texts: list[str]) -> list[list[str]]:
        """Split texts into batches respecting both item count and token limits."""
        batches = []
        current_batch = []
        current_tokens = 0
        cpt = self.config.chars_per_token

        for text in texts:
            est_tokens = len(text) / cpt
            if current_batch and (
                len(current_batch) >= self.config.batch_size
                or current_tokens + est_tokens > self.config.max_tokens_per_batch
            ):
                batches.append(current_batch)
                current_batch = []
                current_tokens = 0
            current_batch.append(text)
            current_tokens += est_tokens

        if current_batch:
            batches.append(current_batch)

        return batches

    def embed(self, texts: list[str]) -> list[list[float]]:
        """
        Embed texts, preserving input order.

        Args:
            texts: List of text strings to embed

        Returns:
            One embedding vector per text, all of the same length

        Raises:
            GatewayFailure: If the client is missing or any batch fails
        """
        if not texts:
            return []

        if not self._client:
            raise GatewayFailure(
                f"{self._provider_name} client not initialized. Check {self._env_var_name}.",
                service=self._provider_name,
            )

        results: list[Optional[list[float]]] = [None] * len(texts)
        uncached_texts = []
        uncached_indices = []

        for i, text in enumerate(texts):
            cached = self._get_cached(self._get_cache_key(text))
            if cached is not None:
                results[i] = cached
            else:
                uncached_texts.append(text)
                uncached_indices.append(i)

        if uncached_texts:
            batches = self._create_batches(uncached_texts)
            logger.info(
                f"Embedding {len(uncached_texts)} texts in {len(batches)} batches"
                f" with {self._provider_name}"
            )

            fresh = []
            for batch_idx, batch in enumerate(batches):
                try:
                    batch_embeddings = self._request_embeddings(batch)
                except GatewayFailure:
                    raise
                except Exception as e:
                    logger.error(f"{self._provider_name} embedding failed: {e}")
                    raise GatewayFailure(
                        f"{self._provider_name} embedding failed: {e}",
                        service=self._provider_name,
                    ) from e

                if len(batch_embeddings) != len(batch):
                    raise GatewayFailure(
                        f"{self._provider_name} returned {len(batch_embeddings)} embeddings "
                        f"for {len(batch)} texts",
                        service=self._provider_name,
                    )
                fresh.extend(batch_embeddings)

                if (batch_idx + 1) % 10 == 0:
                    logger.info(f"Processed batch {batch_idx + 1}/{len(batches)}")

            for idx, embedding in zip(uncached_indices, fresh):
                self._set_cached(self._get_cache_key(texts[idx]), embedding)
                results[idx] = embedding

        dims = {len(e) for e in results}
        if len(dims) > 1:
            raise GatewayFailure(
                f"{self._provider_name} returned mixed dimensionalities: {sorted(dims)}",
                service=self._provider_name,
            )

        return results

    def embed_query(self, query: str) -> list[float]:
        """Embed a single query string."""
        return self.embed([query])[0]

    def _get_cache_key(self, text: str) -> str:
        """Generate cache key for text."""
        content = f"{self.config.model}:{text}"
        return hashlib.sha256(content.encode()).hexdigest()[:32]

    def _get_cached(self, key: str) -> Optional[list[float]]:
        """Get cached embedding."""
        if not self.config.use_cache:
            return None

        if key in self._cache:
            return self._cache[key]

        if self._cache_path:
            cache_file = self._cache_path / f"{key}.json"
            if cache_file.exists():
                try:
                    with open(cache_file) as f:
                        embedding = json.load(f)
                        self._cache[key] = embedding
                        return embedding
                except (OSError, ValueError) as e:
                    logger.debug(f"Failed to read embedding cache file {cache_file}: {e}")

        return None

    def _set_cached(self, key: str, embedding: list[float]) -> None:
        """Cache an embedding."""
        if not self.config.use_cache:
            return

        self._cache[key] = embedding

        if self._cache_path:
            cache_file = self._cache_path / f"{key}.json"
            try:
                with open(cache_file, 'w') as f:
                    json.dump(embedding, f)
            except OSError as e:
                logger.warning(f"Failed to cache embedding: {e}")

    @property
    def dimensions(self) -> int:
        """Return embedding dimensions."""
        return self.config.dimensions


class OpenAIEmbeddingService(BaseEmbeddingService):
    """
    Embedding service backed by OpenAI's hosted embeddings endpoint.

    text-embedding-ada-002 returns 1536-dimensional vectors. The index is
    sized from whatever the first call returns, so other models work too.
    """

    _provider_name = "OpenAI"
    _env_var_name = "OPENAI_API_KEY"

    def _init_client(self):
        """Initialize the OpenAI client."""
        api_key = os.getenv("OPENAI_API_KEY")

        if not api_key:
            logger.warning(
                "OPENAI_API_KEY not found. Embeddings will fail and the "
                "retriever will fall back to the curated dataset."
            )
            return

        self._client = OpenAI(api_key=api_key, timeout=self.config.timeout_seconds)
        logger.info(f"OpenAI embedding client initialized with model {self.config.model}")

    def _request_embeddings(self, texts: list[str]) -> list[list[float]]:
        response = self._client.embeddings.create(
            model=self.config.model,
            input=texts,
        )
        # The API returns items with an index field; keep input order
        items = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in items]


class HashingEmbeddingService:
    """
    Deterministic local embedder that never touches the network.

    Averages per-word vectors derived from an MD5 digest and L2-normalizes
    the result. Used when the hosted gateway is unavailable and in tests.
    """

    def __init__(self, dimensions: int = 256):
        self._dimensions = dimensions

    def _word_vector(self, word: str) -> list[float]:
        digest = hashlib.md5(word.encode("utf-8")).digest()
        return [digest[i % len(digest)] / 255.0 - 0.5 for i in range(self._dimensions)]

    def _embed_one(self, text: str) -> list[float]:
        words = [w.lower() for w in text.split() if w.strip()]
        vector = [0.0] * self._dimensions
        if not words:
            return vector

        for word in words:
            for idx, value in enumerate(self._word_vector(word)):
                vector[idx] += value / len(words)

        norm = math.sqrt(sum(v * v for v in vector)) or 1.0
        return [v / norm for v in vector]

    def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed texts locally, preserving order."""
        return [self._embed_one(t) for t in texts]

    def embed_query(self, query: str) -> list[float]:
        return self._embed_one(query)

    @property
    def dimensions(self) -> int:
        return self._dimensions


class LocalEmbeddingService:
    """
    Embedding service using a local sentence-transformers model.

    all-MiniLM-L6-v2 produces 384-dimensional vectors, the same scheme the
    candidate datasets were embedded with.
    """

    def __init__(self, model_name: str = "sentence-transformers/all-MiniLM-L6-v2"):
        """Initialize with a local model."""
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError:
            raise ImportError(
                "sentence-transformers not installed. "
                "Run: pip install 'bc-legal-rag[local]'"
            )
        self._model = SentenceTransformer(model_name)
        self._dimensions = self._model.get_sentence_embedding_dimension()
        logger.info(f"Local embedding model loaded: {model_name}")

    def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed texts using the local model."""
        if not texts:
            return []
        try:
            embeddings = self._model.encode(texts, show_progress_bar=False)
        except Exception as e:
            raise GatewayFailure(f"Local embedding failed: {e}", service="local") from e
        return embeddings.tolist()

    def embed_query(self, query: str) -> list[float]:
        return self.embed([query])[0]

    @property
    def dimensions(self) -> int:
        return self._dimensions


def get_embedding_service(
    provider: Optional[str] = None,
) -> Union[OpenAIEmbeddingService, HashingEmbeddingService, LocalEmbeddingService]:
    """
    Factory function to get the configured embedding service.

    Args:
        provider: "openai" (default), "hashing" or "local". Falls back to the
            EMBEDDING_PROVIDER environment variable.

    Returns:
        Configured embedding service
    """
    provider = (provider or os.getenv("EMBEDDING_PROVIDER", "openai")).lower()

    if provider == "hashing":
        return HashingEmbeddingService()
    if provider == "local":
        return LocalEmbeddingService()

    config = EmbeddingConfig(
        provider="openai",
        model=os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-ada-002"),
        cache_dir=os.getenv("EMBEDDING_CACHE_DIR") or None,
    )
    return OpenAIEmbeddingService(config)


# CLI for testing
if __name__ == "__main__":
    import sys
    from dotenv import load_dotenv

    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    service = get_embedding_service()
    query = " ".join(sys.argv[1:]) or "What notice must a landlord give before entering?"

    print(f"Query: {query}")
    embedding = service.embed_query(query)
    print(f"Embedding dimensions: {len(embedding)}")
    print(f"First 10 values: {embedding[:10]}")
