"""
Shared fixtures and test utilities for BC Legal RAG tests.

Provides mock services, sample statutes and candidate datasets so that all
tests run without API keys or network access.
"""

import sys
import json
import hashlib
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Path setup - ensure the execution package is importable
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

load_dotenv(PROJECT_ROOT / ".env")

# ---------------------------------------------------------------------------
# Sample statute text
# ---------------------------------------------------------------------------
SAMPLE_STATUTE = """Employment Standards Act

Part 4 - Hours of Work and Overtime. An employer must pay an employee who works over 8 hours a day 1.5 times the employee's regular wage for the time over 8 hours. An employer must pay an employee 2 times the regular wage for any time over 12 hours in a day.

Part 5 - Statutory Holidays. An employer must give an employee who has been employed for at least 30 calendar days before a statutory holiday a day off with pay. The employer must pay an average day's pay for that day.

Part 8 - Termination of Employment. After 3 consecutive months of employment, the employer becomes liable to pay an employee compensation for length of service. The liability is discharged if the employee is given written notice of termination or is dismissed for just cause.
"""

TENANCY_TEXT = (
    "Residential Tenancy Act. A landlord must not enter a rental unit unless the tenant "
    "gives permission or the landlord gives written notice at least 24 hours and not more "
    "than 30 days before the entry. The notice must state the purpose for entering, which "
    "must be reasonable, and the date and time of the entry."
)


@pytest.fixture
def sample_statute_text():
    """Return a multi-paragraph statute excerpt."""
    return SAMPLE_STATUTE


@pytest.fixture
def tenancy_text():
    return TENANCY_TEXT


# ---------------------------------------------------------------------------
# Mock embedding service
# ---------------------------------------------------------------------------

class MockEmbeddingService:
    """Deterministic mock embedding gateway -- never calls external APIs."""

    def __init__(self, dimensions=16):
        self._dimensions = dimensions
        self._call_count = 0
        self.calls = []

    def embed(self, texts):
        self._call_count += 1
        self.calls.append(list(texts))
        return [self._deterministic_embedding(t) for t in texts]

    def embed_query(self, query):
        return self.embed([query])[0]

    def _deterministic_embedding(self, text):
        digest = hashlib.sha256(text.encode()).digest()
        return [digest[i % len(digest)] / 255.0 for i in range(self._dimensions)]

    @property
    def dimensions(self):
        return self._dimensions


class FailingEmbeddingService(MockEmbeddingService):
    """Embedding gateway that is always down."""

    def embed(self, texts):
        from execution.bc_legal_rag.exceptions import GatewayFailure
        self._call_count += 1
        raise GatewayFailure("embedding service unavailable", service="mock")


@pytest.fixture
def mock_embedding_service():
    return MockEmbeddingService(dimensions=16)


@pytest.fixture
def failing_embedding_service():
    return FailingEmbeddingService(dimensions=16)


@pytest.fixture
def small_embedding_service():
    """Working gateway whose vectors do not match a 16-dimension index."""
    return MockEmbeddingService(dimensions=8)


# ---------------------------------------------------------------------------
# Mock fetcher
# ---------------------------------------------------------------------------

def make_fetched(title, content, url="https://www.bclaws.gov.bc.ca/test"):
    from execution.bc_legal_rag.fetcher import FetchedDocument
    return FetchedDocument(
        title=title,
        content=content,
        url=url,
        timestamp="2024-01-01T00:00:00+00:00",
    )


@pytest.fixture
def fetched_documents():
    """Two fetched statutes, both long enough to index."""
    return [
        make_fetched("Employment Standards Act", " ".join(SAMPLE_STATUTE.split()),
                     "https://www.bclaws.gov.bc.ca/esa"),
        make_fetched("Residential Tenancy Act", TENANCY_TEXT,
                     "https://www.bclaws.gov.bc.ca/rta"),
    ]


@pytest.fixture
def mock_fetcher(fetched_documents):
    """DocumentFetcher stand-in returning the fetched_documents fixture."""
    fetcher = MagicMock()
    fetcher.fetch_all.return_value = fetched_documents
    return fetcher


@pytest.fixture
def empty_fetcher():
    fetcher = MagicMock()
    fetcher.fetch_all.return_value = []
    return fetcher


# ---------------------------------------------------------------------------
# Candidates
# ---------------------------------------------------------------------------

LAWYER_RECORDS = [
    {
        "Name": "Jane Family",
        "Email": "jane@example.com",
        "Phone": "604-555-0101",
        "Location": "Vancouver",
        "Specialty": "Family Law",
        "FeeStructure": "Sliding scale",
        "Languages": "English, French",
        "Website": "https://family.example.com",
    },
    {
        "Name": "Sam Employment",
        "Email": "sam@example.com",
        "Phone": "604-555-0102",
        "Location": "Victoria",
        "Specialty": "Employment Law",
        "FeeStructure": "Hourly",
        "Languages": "English",
        "Website": "https://work.example.com",
    },
    {
        "Name": "Ravi Rights",
        "Email": "ravi@example.com",
        "Phone": "604-555-0103",
        "Location": "British Columbia",
        "Specialty": "Human Rights, Aboriginal Law",
        "FeeStructure": "Pro bono",
        "Languages": "English, Punjabi",
        "Website": "https://rights.example.com",
    },
]

RESOURCE_RECORDS = [
    {
        "source": "Employment Guide",
        "text": "Your rights at work: employment standards, termination pay and workplace harassment.",
    },
    {
        "source": "Family Law Handbook",
        "text": "Divorce, custody and child support in British Columbia, with free legal aid contacts.",
    },
]


def embed_records(records, field_names):
    from execution.bc_legal_rag.query_embedding import keyword_query_embedding
    result = []
    for record in records:
        text = " ".join(str(record.get(f, "")) for f in field_names)
        result.append({**record, "embedding": keyword_query_embedding(text)})
    return result


@pytest.fixture
def lawyer_records():
    return embed_records(LAWYER_RECORDS, ("Specialty", "FeeStructure"))


@pytest.fixture
def resource_records():
    return embed_records(RESOURCE_RECORDS, ("text",))


@pytest.fixture
def sample_lawyers(lawyer_records):
    from execution.bc_legal_rag.candidates import lawyer_from_record
    return [lawyer_from_record(str(i), r) for i, r in enumerate(lawyer_records)]


@pytest.fixture
def sample_resources(resource_records):
    from execution.bc_legal_rag.candidates import resource_from_record
    return [resource_from_record(str(i), r) for i, r in enumerate(resource_records)]


@pytest.fixture
def data_dir(tmp_path, lawyer_records, resource_records):
    """Directory holding both candidate datasets in their original layout."""
    (tmp_path / "lawyers_embeddings.json").write_text(json.dumps(lawyer_records))
    (tmp_path / "all_pdfs_embeddings.json").write_text(
        json.dumps({f"res-{i}": r for i, r in enumerate(resource_records)})
    )
    return tmp_path


@pytest.fixture
def employment_profile():
    from execution.bc_legal_rag.candidates import UserProfile
    return UserProfile(
        query="I was fired after reporting workplace harassment",
        legal_type="Employment",
        location="Victoria",
    )


# ---------------------------------------------------------------------------
# Singleton resets between tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def reset_metrics_singleton():
    """Reset the MetricsCollector singleton between tests."""
    import execution.bc_legal_rag.metrics as metrics_mod
    metrics_mod.MetricsCollector._instance = None
    metrics_mod._collector = None
    yield
    metrics_mod.MetricsCollector._instance = None
    metrics_mod._collector = None
