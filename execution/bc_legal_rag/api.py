"""
FastAPI Backend for the BC Legal RAG core

Exposes retrieval and recommendations over HTTP for the form front end and
the prompt builder. There is no authentication layer.

Run with: uvicorn execution.bc_legal_rag.api:app --host 0.0.0.0 --port 8000
"""

import os
import time
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from . import __version__
from .api_models import (
    RetrieveRequest, RetrieveResponse, FragmentInfo,
    RecommendationRequest, RecommendationResponse, LawyerInfo, ResourceInfo,
    HealthResponse,
)
from .metrics import get_metrics_collector

# Load environment variables
load_dotenv()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="BC Legal RAG API",
    description="Statute retrieval and lawyer/resource recommendations for BC legal questions",
    version=__version__,
)

# Configure CORS: use CORS_ORIGINS env var (comma-separated) or default to localhost
_cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in _cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Service Container - builds the orchestrator and recommender on first use
# =============================================================================

class ServiceContainer:
    """Holds the process-wide retrieval and recommendation services."""

    def __init__(self):
        self._orchestrator = None
        self._recommender = None

    def get_orchestrator(self):
        if self._orchestrator is None:
            from .retriever import RetrievalOrchestrator
            self._orchestrator = RetrievalOrchestrator()
        return self._orchestrator

    def get_recommender(self):
        if self._recommender is None:
            from .recommendations import RecommendationService
            self._recommender = RecommendationService()
        return self._recommender


_container = ServiceContainer()


# =============================================================================
# Endpoints
# =============================================================================

@app.get("/api/v1/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint. Does not trigger initialization."""
    orchestrator = _container._orchestrator
    kb_status = orchestrator.status.value if orchestrator is not None else "uninitialized"
    return HealthResponse(status="ok", version=__version__, knowledge_base=kb_status)


@app.post("/api/v1/retrieve", response_model=RetrieveResponse)
def retrieve(request: RetrieveRequest):
    """Retrieve statute fragments relevant to a question."""
    start = time.time()
    orchestrator = _container.get_orchestrator()

    fragments = orchestrator.retrieve(request.query, k=request.k)
    latency_ms = (time.time() - start) * 1000
    logger.info(f"Retrieve returned {len(fragments)} fragments in {latency_ms:.0f}ms")

    return RetrieveResponse(
        fragments=[FragmentInfo(**f.to_dict()) for f in fragments],
        context=orchestrator.build_context(fragments),
        status=orchestrator.status.value,
        latency_ms=latency_ms,
    )


@app.post("/api/v1/recommendations", response_model=RecommendationResponse)
def recommendations(request: RecommendationRequest):
    """Rank lawyers and resources for the user's matter."""
    recommender = _container.get_recommender()
    result = recommender.get_recommendations(request.query, request.to_profile())
    data = result.to_dict()

    return RecommendationResponse(
        lawyers=[LawyerInfo(**lawyer) for lawyer in data["lawyers"]],
        resources=[ResourceInfo(**resource) for resource in data["resources"]],
        summary=data["summary"],
        error=data.get("error"),
    )


@app.get("/api/v1/metrics")
async def metrics():
    """In-process counters for retrieval, initialization and recommendations."""
    return get_metrics_collector().get_metrics_dict()
