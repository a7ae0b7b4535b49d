"""
Recommendation Service

Loads the lawyer and resource datasets, ranks both with the Candidate Scorer
and returns {lawyers, resources, summary}. If the datasets cannot be read,
the curated fallback candidates are used instead. If ranking fails
unexpectedly, the caller gets empty lists, an apology summary and the error
message rather than an exception.
"""

import os
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .candidates import CandidatePool, UserProfile, Demographic, load_lawyers, load_resources
from .fallback import FallbackSupervisor
from .metrics import get_metrics_collector
from .scoring import CandidateScorer, RankedCandidate

logger = logging.getLogger(__name__)

LAWYERS_FILE = "lawyers_embeddings.json"
RESOURCES_FILE = "all_pdfs_embeddings.json"

FAILURE_SUMMARY = "Unable to generate recommendations at this time. Please try again later."


def _default_data_dir() -> str:
    return os.getenv("BC_LEGAL_DATA_DIR", str(Path(__file__).resolve().parents[2] / "data"))


@dataclass
class RecommendationConfig:
    """Configuration for the recommendation service."""
    data_dir: str = field(default_factory=_default_data_dir)
    lawyers_file: str = LAWYERS_FILE
    resources_file: str = RESOURCES_FILE
    lawyer_limit: int = 5
    resource_limit: int = 5

    @property
    def lawyers_path(self) -> Path:
        return Path(self.data_dir) / self.lawyers_file

    @property
    def resources_path(self) -> Path:
        return Path(self.data_dir) / self.resources_file


@dataclass
class Recommendations:
    """Ranked lawyers and resources with a plain-language summary."""
    lawyers: list[RankedCandidate] = field(default_factory=list)
    resources: list[RankedCandidate] = field(default_factory=list)
    summary: str = ""
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "lawyers": [r.to_dict() for r in self.lawyers],
            "resources": [r.to_dict() for r in self.resources],
            "summary": self.summary,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


def generate_summary(
    lawyers: list[RankedCandidate],
    resources: list[RankedCandidate],
    profile: UserProfile,
) -> str:
    """Summarize the recommendations for the user."""
    legal_type = profile.legal_type or "general"
    summary = (
        f"Based on your {legal_type} legal matter, I found {len(lawyers)} qualified "
        f"lawyers and {len(resources)} relevant resources. "
    )

    if lawyers:
        top = lawyers[0].candidate
        summary += f"The top recommendation is {top.name} in {top.location}, "
        summary += f"specializing in {top.specialty}. "

    if profile.has(Demographic.LOW_INCOME):
        summary += "Several free or low-cost options are available. "

    summary += (
        "Please review the detailed recommendations below and contact the "
        "lawyers directly for consultations."
    )
    return summary


class RecommendationService:
    """
    Personalized lawyer and resource recommendations.

    Usage:
        service = RecommendationService()
        result = service.get_recommendations(query, profile)
        print(result.summary)
    """

    def __init__(
        self,
        config: Optional[RecommendationConfig] = None,
        scorer: Optional[CandidateScorer] = None,
        fallback: Optional[FallbackSupervisor] = None,
        pool: Optional[CandidatePool] = None,
    ):
        self.config = config or RecommendationConfig()
        self.scorer = scorer or CandidateScorer()
        self.fallback = fallback or FallbackSupervisor()
        self.pool = pool or CandidatePool()
        self._initialized = False
        self._lock = threading.Lock()
        self._metrics = get_metrics_collector()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> CandidatePool:
        """Load both datasets once, falling back to curated candidates."""
        with self._lock:
            if self._initialized:
                return self.pool

            logger.info("Initializing recommendation system...")
            try:
                lawyers = load_lawyers(self.config.lawyers_path)
                resources = load_resources(self.config.resources_path)
            except (OSError, ValueError, TypeError) as e:
                logger.error(f"Error initializing recommendation system: {e}")
                self.fallback.degrade_candidates(
                    self.pool,
                    reason=f"dataset load failed: {e}",
                    dimensions=self.scorer.config.dimensions,
                )
            else:
                self.pool.replace(lawyers, resources)
                logger.info(f"Loaded {len(lawyers)} lawyers and {len(resources)} resources")

            self._initialized = True
            return self.pool

    def find_lawyers(self, query: str, profile: UserProfile, limit: Optional[int] = None) -> list[RankedCandidate]:
        limit = self.config.lawyer_limit if limit is None else limit
        return self.scorer.score(query, profile, self.pool.lawyers, limit)

    def find_resources(self, query: str, profile: UserProfile, limit: Optional[int] = None) -> list[RankedCandidate]:
        limit = self.config.resource_limit if limit is None else limit
        return self.scorer.score(query, profile, self.pool.resources, limit)

    def get_recommendations(self, query: str, profile: UserProfile) -> Recommendations:
        """
        Rank lawyers and resources for a user.

        Args:
            query: The user's description of their legal matter
            profile: Legal type, location and demographic flags

        Returns:
            Top lawyers and resources with a summary. Never raises: on an
            unexpected failure both lists are empty and `error` is set.
        """
        if not self._initialized:
            self.initialize()

        with self._metrics.track("recommend", query) as tracker:
            try:
                lawyers, skipped_lawyers = self.scorer.rank(
                    query, profile, self.pool.lawyers, self.config.lawyer_limit
                )
                resources, skipped_resources = self.scorer.rank(
                    query, profile, self.pool.resources, self.config.resource_limit
                )
            except Exception as e:
                logger.error(f"Error generating recommendations: {e}")
                self._metrics.record_error(type(e).__name__)
                tracker.set_error(str(e))
                return Recommendations(summary=FAILURE_SUMMARY, error=str(e))

            self._metrics.record_skipped_candidates(skipped_lawyers + skipped_resources)
            tracker.set_results(len(lawyers) + len(resources), degraded=self.pool.degraded)

        return Recommendations(
            lawyers=lawyers,
            resources=resources,
            summary=generate_summary(lawyers, resources, profile),
        )


# CLI for testing
if __name__ == "__main__":
    import sys
    import json
    from dotenv import load_dotenv

    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    query = " ".join(sys.argv[1:]) or "I was fired after reporting harassment at work"
    profile = UserProfile(query=query, legal_type="Employment", location="Vancouver")

    service = RecommendationService()
    result = service.get_recommendations(query, profile)
    print(json.dumps(result.to_dict(), indent=2))
