"""
Pydantic models for the BC Legal RAG FastAPI backend.
"""

from typing import Optional
from pydantic import BaseModel, Field

from .candidates import Demographic, UserProfile


class RetrieveRequest(BaseModel):
    """Request body for the retrieval endpoint."""
    query: str = Field(..., min_length=1, max_length=2000)
    k: int = Field(default=5, ge=1, le=50)


class FragmentInfo(BaseModel):
    """One retrieved statute fragment."""
    text: str
    source: str
    url: Optional[str] = None
    section: Optional[str] = None
    similarity: float


class RetrieveResponse(BaseModel):
    """Response body for the retrieval endpoint."""
    fragments: list[FragmentInfo]
    context: str
    status: str
    latency_ms: float


class RecommendationRequest(BaseModel):
    """Intake form fields used to rank lawyers and resources."""
    query: str = Field(..., min_length=1, max_length=5000)
    legal_type: Optional[str] = None
    location: Optional[str] = None
    first_nation: bool = False
    lgbtq: bool = False
    disability: bool = False
    senior: bool = False
    low_income: bool = False
    visible_minority: bool = False

    def to_profile(self) -> UserProfile:
        flags = {d for d in Demographic if getattr(self, d.value)}
        return UserProfile(
            query=self.query,
            legal_type=self.legal_type,
            location=self.location,
            demographics=frozenset(flags),
        )


class LawyerInfo(BaseModel):
    """A recommended lawyer."""
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    specialty: Optional[str] = None
    fee_structure: Optional[str] = None
    languages: list[str] = []
    website: Optional[str] = None
    score: float
    match_reasons: list[str] = []


class ResourceInfo(BaseModel):
    """A recommended resource."""
    source: str
    text: str
    score: float
    relevance: str


class RecommendationResponse(BaseModel):
    """Response body for the recommendations endpoint."""
    lawyers: list[LawyerInfo]
    resources: list[ResourceInfo]
    summary: str
    error: Optional[str] = None


class HealthResponse(BaseModel):
    """Response body for health check."""
    status: str
    version: str
    knowledge_base: str
