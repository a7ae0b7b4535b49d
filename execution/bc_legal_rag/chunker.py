"""
Boundary-Aware Text Chunker

Splits a document's text into overlapping, offset-tracked chunks suitable
for independent retrieval. Each window prefers to end on a sentence
terminator or paragraph break when one lies in the back half of the window,
otherwise it is cut at the raw window size.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

SENTENCE_TERMINATOR = "."
PARAGRAPH_BREAK = "\n\n"


@dataclass(frozen=True)
class Chunk:
    """A bounded substring of exactly one document."""
    document_ref: str
    text: str
    start_offset: int
    end_offset: int

    def to_dict(self) -> dict:
        return {
            "document_ref": self.document_ref,
            "text": self.text,
            "start_offset": self.start_offset,
            "end_offset": self.end_offset,
        }


@dataclass
class ChunkConfig:
    """Configuration for chunking parameters (in characters)."""
    size: int = 500
    overlap: int = 100
    # Break point must lie past this fraction of the window to be used
    boundary_ratio: float = 0.5


def validate_chunk_params(size: int, overlap: int) -> None:
    """Reject parameter combinations that could never make progress."""
    if size <= 0:
        raise ConfigurationError(f"Chunk size must be positive, got {size}")
    if overlap < 0:
        raise ConfigurationError(f"Chunk overlap must be non-negative, got {overlap}")
    if size <= overlap:
        raise ConfigurationError(
            f"Chunk size ({size}) must be greater than overlap ({overlap})"
        )


def _find_break_point(text: str, start: int, end: int) -> int:
    """Absolute offset of the last terminator or paragraph break in [start, end), or -1."""
    last_sentence = text.rfind(SENTENCE_TERMINATOR, start, end)
    last_paragraph = text.rfind(PARAGRAPH_BREAK, start, end)
    return max(last_sentence, last_paragraph)


def chunk_text(
    text: str,
    size: int = 500,
    overlap: int = 100,
    document_ref: str = "",
    boundary_ratio: float = 0.5,
) -> list[Chunk]:
    """
    Split text into overlapping chunks.

    Args:
        text: Source text
        size: Maximum window length in characters
        overlap: Characters shared between adjacent windows
        document_ref: ID of the owning document
        boundary_ratio: A break point must lie past start + size * ratio

    Returns:
        Ordered list of Chunk objects

    Raises:
        ConfigurationError: If size <= overlap or either is out of range
    """
    validate_chunk_params(size, overlap)

    chunks = []
    length = len(text)
    start = 0

    while start < length:
        end = min(start + size, length)
        break_point = _find_break_point(text, start, end)

        if break_point >= 0 and break_point > start + size * boundary_ratio:
            cut = break_point + 1
            next_start = cut - overlap
        else:
            cut = end
            next_start = end - overlap

        piece = text[start:cut].strip()
        if piece:
            chunks.append(Chunk(
                document_ref=document_ref,
                text=piece,
                start_offset=start,
                end_offset=cut,
            ))

        if cut >= length:
            break

        # A sentence cut close to the midpoint with a large overlap could move
        # the window backwards
        start = max(next_start, start + 1)

    return chunks


class TextChunker:
    """
    Chunks documents with a fixed configuration.

    Validates the configuration once at construction so a bad size/overlap
    pair fails before any document is processed.
    """

    def __init__(self, config: Optional[ChunkConfig] = None):
        self.config = config or ChunkConfig()
        validate_chunk_params(self.config.size, self.config.overlap)

    def chunk(self, text: str, document_ref: str = "") -> list[Chunk]:
        """Chunk a single text using the configured window."""
        chunks = chunk_text(
            text,
            size=self.config.size,
            overlap=self.config.overlap,
            document_ref=document_ref,
            boundary_ratio=self.config.boundary_ratio,
        )
        logger.debug(f"Created {len(chunks)} chunks for document {document_ref or '<anonymous>'}")
        return chunks


# CLI for testing
if __name__ == "__main__":
    import sys

    logging.basicConfig(level=logging.INFO)

    if len(sys.argv) < 2:
        print("Usage: python -m execution.bc_legal_rag.chunker <text_file> [size] [overlap]")
        sys.exit(1)

    with open(sys.argv[1], encoding="utf-8") as f:
        source = f.read()

    size = int(sys.argv[2]) if len(sys.argv) > 2 else 500
    overlap = int(sys.argv[3]) if len(sys.argv) > 3 else 100

    result = TextChunker(ChunkConfig(size=size, overlap=overlap)).chunk(source, document_ref="cli")
    print(f"\nCreated {len(result)} chunks:")
    for c in result[:5]:
        print(f"\n--- [{c.start_offset}:{c.end_offset}] ---")
        print(f"{c.text[:200]}...")
