"""
BC Laws Document Fetcher

Fetches source statutes over HTTP and returns plain records
{title, content, url, timestamp}. Each URL is fetched independently: one
failure is logged and skipped without aborting the others.

Pages are expected to be served as text. Markup extraction is not done here;
content is only whitespace-normalized and truncated.
"""

import os
import re
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from concurrent.futures import ThreadPoolExecutor

import requests

from .exceptions import GatewayFailure

logger = logging.getLogger(__name__)

USER_AGENT = "BC Legal Assistant Bot 1.0"
TRUNCATION_MARKER = "... [Content truncated for memory efficiency]"


@dataclass(frozen=True)
class DocumentSource:
    """A URL to fetch and the title to file it under."""
    url: str
    title: str = "BC Legal Document"


# The BC Laws page is served as HTML and its markup is indexed as-is.
# Set BC_LAWS_URLS to plain-text renderings for a markup-free index.
DEFAULT_SOURCES = (
    DocumentSource(
        url="https://www.bclaws.gov.bc.ca/civix/document/id/complete/statreg/96165_01",
        title="Employment Standards Act",
    ),
)


@dataclass
class FetchedDocument:
    """Raw record produced by the fetcher."""
    title: str
    content: str
    url: str
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "content": self.content,
            "url": self.url,
            "timestamp": self.timestamp,
        }


@dataclass
class FetcherConfig:
    """Configuration for the document fetcher."""
    timeout_seconds: float = 10.0
    max_content_chars: int = 50000
    max_sources: int = 10
    # 1 keeps fetches sequential; >1 fans out with a bounded thread pool
    fetch_workers: int = 1
    # BC_LAWS_URLS overrides the default source list
    sources: tuple = field(default_factory=lambda: sources_from_env() or DEFAULT_SOURCES)


def sources_from_env() -> Optional[tuple]:
    """Parse BC_LAWS_URLS ("title|url,title|url" or bare URLs) into sources."""
    raw = os.getenv("BC_LAWS_URLS", "").strip()
    if not raw:
        return None

    sources = []
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        if "|" in entry:
            title, url = entry.split("|", 1)
            sources.append(DocumentSource(url=url.strip(), title=title.strip()))
        else:
            sources.append(DocumentSource(url=entry))
    return tuple(sources)


def normalize_content(text: str, max_chars: int = 50000) -> str:
    """Collapse whitespace and truncate oversized content with a marker."""
    content = re.sub(r"\s+", " ", text).strip()
    if len(content) > max_chars:
        content = content[:max_chars] + TRUNCATION_MARKER
    return content


class DocumentFetcher:
    """
    Fetches a bounded list of source documents.

    Usage:
        fetcher = DocumentFetcher()
        documents = fetcher.fetch_all()
    """

    def __init__(
        self,
        config: Optional[FetcherConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or FetcherConfig()
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})

    def fetch(self, source: DocumentSource) -> FetchedDocument:
        """
        Fetch a single source.

        Raises:
            GatewayFailure: On any network or HTTP error
        """
        logger.info(f"Fetching: {source.url}")
        try:
            resp = self._session.get(source.url, timeout=self.config.timeout_seconds)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise GatewayFailure(
                f"Error fetching {source.url}: {e}", service="fetcher", target=source.url
            ) from e

        content = normalize_content(resp.text, self.config.max_content_chars)
        return FetchedDocument(
            title=source.title,
            content=content,
            url=source.url,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    def _fetch_or_none(self, source: DocumentSource) -> Optional[FetchedDocument]:
        try:
            document = self.fetch(source)
        except GatewayFailure as e:
            logger.error(str(e))
            return None
        logger.info(f"Fetched: {document.title} ({len(document.content)} chars)")
        return document

    def fetch_all(self, sources: Optional[list[DocumentSource]] = None) -> list[FetchedDocument]:
        """
        Fetch every source, skipping failures, preserving input order.

        Args:
            sources: Sources to fetch. Defaults to the configured list.

        Returns:
            Successfully fetched documents
        """
        selected = list(sources if sources is not None else self.config.sources)
        selected = selected[: self.config.max_sources]
        if not selected:
            return []

        logger.info(f"Fetching {len(selected)} BC Laws pages...")

        if self.config.fetch_workers <= 1:
            results = [self._fetch_or_none(s) for s in selected]
        else:
            with ThreadPoolExecutor(max_workers=self.config.fetch_workers) as executor:
                results = list(executor.map(self._fetch_or_none, selected))

        return [doc for doc in results if doc is not None]
