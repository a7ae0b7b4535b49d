"""
Candidate Scorer

Ranks lawyers and resources for a user by combining vector similarity with
weighted heuristic match signals:

    lawyer   = 0.4*similarity + 0.3*specialty + 0.1*location + 0.1*demographic + 0.1*fee
    resource = 0.6*similarity + 0.3*content + 0.1*demographic

Each heuristic is a pure function of (candidate field, user profile) that
returns a value in [0, 1]. Similarity is the raw cosine against the
keyword-hash query embedding and is not clamped, so a negative cosine can
pull the composite below zero.
"""

import logging
import numpy as np
from typing import Optional
from dataclasses import dataclass, field

from .candidates import (
    CANDIDATE_EMBEDDING_DIMENSIONS,
    Candidate,
    Demographic,
    Lawyer,
    Resource,
    UserProfile,
)
from .query_embedding import keyword_query_embedding

logger = logging.getLogger(__name__)


LAWYER_WEIGHTS = {
    "similarity": 0.4,
    "specialty": 0.3,
    "location": 0.1,
    "demographic": 0.1,
    "fee": 0.1,
}

RESOURCE_WEIGHTS = {
    "similarity": 0.6,
    "content": 0.3,
    "demographic": 0.1,
}

CORE_PRACTICE_AREAS = ("family", "employment", "criminal", "immigration")

RELATED_TERMS = {
    "family": ("divorce", "custody", "support", "separation"),
    "employment": ("workplace", "discrimination", "harassment", "termination"),
    "criminal": ("defense", "charges", "bail", "sentencing"),
    "immigration": ("visa", "citizenship", "deportation", "refugee"),
}

# (flag, term looked for in the lawyer's specialty)
LAWYER_DEMOGRAPHIC_TERMS = (
    (Demographic.FIRST_NATION, "aboriginal"),
    (Demographic.LGBTQ, "lgbt"),
    (Demographic.DISABILITY, "disability"),
    (Demographic.SENIOR, "elder"),
)

# (flag, term looked for in the resource text)
RESOURCE_DEMOGRAPHIC_TERMS = (
    (Demographic.FIRST_NATION, "aboriginal"),
    (Demographic.LGBTQ, "lgbt"),
    (Demographic.DISABILITY, "disability"),
    (Demographic.SENIOR, "senior"),
    (Demographic.LOW_INCOME, "free"),
)

LAWYER_REASONS = (
    ("similarity", 0.7, "High relevance to your legal matter"),
    ("specialty", 0.8, "Specializes in your area of law"),
    ("location", 0.8, "Located in your area"),
    ("demographic", 0.7, "Experienced with your demographic"),
    ("fee", 0.8, "Offers appropriate fee structure"),
)

RESOURCE_REASONS = (
    ("similarity", 0.7, "High relevance to your legal matter"),
    ("content", 0.8, "Covers your area of law"),
    ("demographic", 0.7, "Relevant to your community"),
)

GENERIC_LAWYER_REASON = "General legal assistance available"
GENERIC_RESOURCE_REASON = "General legal information"


# ============================================================================
# Pure match dimensions
# ============================================================================

def cosine_similarity(a, b) -> float:
    """Cosine similarity; 0.0 when either vector has zero norm."""
    a_arr = np.asarray(a, dtype=np.float64)
    b_arr = np.asarray(b, dtype=np.float64)
    norm_a = np.linalg.norm(a_arr)
    norm_b = np.linalg.norm(b_arr)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a_arr, b_arr) / (norm_a * norm_b))


def specialty_match(specialty: Optional[str], legal_type: Optional[str]) -> float:
    if not specialty or not legal_type:
        return 0.0

    practice = specialty.lower()
    wanted = legal_type.lower()

    if wanted in practice:
        return 1.0
    for area in CORE_PRACTICE_AREAS:
        if area in practice and area in wanted:
            return 0.9
    return 0.3


def location_match(lawyer_location: Optional[str], user_location: Optional[str]) -> float:
    if not lawyer_location or not user_location:
        return 0.5

    lawyer_loc = lawyer_location.lower()
    user_loc = user_location.lower()

    # Province-wide practices are checked before the city comparison
    if "b.c." in lawyer_loc or "british columbia" in lawyer_loc:
        return 0.8
    if user_loc in lawyer_loc:
        return 1.0
    if lawyer_loc in user_loc:
        return 0.9
    return 0.5


def lawyer_demographic_match(specialty: Optional[str], profile: UserProfile) -> float:
    score = 0.5
    practice = (specialty or "").lower()
    for flag, term in LAWYER_DEMOGRAPHIC_TERMS:
        if profile.has(flag) and term in practice:
            score += 0.3
    return min(score, 1.0)


def fee_match(fee_structure: Optional[str], low_income: bool) -> float:
    if not fee_structure:
        return 0.5

    fee = fee_structure.lower()
    if low_income:
        if "free" in fee or "pro bono" in fee:
            return 1.0
        if "low-cost" in fee or "sliding" in fee:
            return 0.8
        if "n/a" in fee:
            return 0.6
    return 0.5


def content_match(text: Optional[str], legal_type: Optional[str]) -> float:
    if not text or not legal_type:
        return 0.0

    body = text.lower()
    wanted = legal_type.lower()

    if wanted in body:
        return 1.0
    for term in RELATED_TERMS.get(wanted, ()):
        if term in body:
            return 0.8
    return 0.3


def resource_demographic_match(text: Optional[str], profile: UserProfile) -> float:
    if not text:
        return 0.0

    score = 0.5
    body = text.lower()
    for flag, term in RESOURCE_DEMOGRAPHIC_TERMS:
        if profile.has(flag) and term in body:
            score += 0.2
    return min(score, 1.0)


def relevance_description(score: float) -> str:
    if score > 0.8:
        return "Highly relevant"
    if score > 0.6:
        return "Very relevant"
    if score > 0.4:
        return "Moderately relevant"
    return "Somewhat relevant"


# ============================================================================
# Results
# ============================================================================

@dataclass
class ScoreBreakdown:
    """Per-request score for one candidate."""
    similarity: float
    sub_scores: dict = field(default_factory=dict)
    composite_score: float = 0.0

    def get(self, name: str) -> float:
        if name == "similarity":
            return self.similarity
        return self.sub_scores.get(name, 0.0)


@dataclass
class RankedCandidate:
    """A scored candidate with its explanation."""
    candidate: Candidate
    breakdown: ScoreBreakdown
    match_reasons: list[str] = field(default_factory=list)
    relevance: str = ""

    @property
    def score(self) -> float:
        return self.breakdown.composite_score

    def to_dict(self) -> dict:
        data = self.candidate.to_dict()
        data["score"] = self.score
        if self.candidate.kind == "lawyer":
            data["match_reasons"] = list(self.match_reasons)
        else:
            data["relevance"] = self.relevance
        return data


@dataclass
class ScoringConfig:
    """Weights and vector dimension used by the scorer."""
    lawyer_weights: dict = field(default_factory=lambda: dict(LAWYER_WEIGHTS))
    resource_weights: dict = field(default_factory=lambda: dict(RESOURCE_WEIGHTS))
    dimensions: int = CANDIDATE_EMBEDDING_DIMENSIONS
    default_limit: int = 5

    def __post_init__(self):
        for name, weights in (("lawyer", self.lawyer_weights), ("resource", self.resource_weights)):
            total = sum(weights.values())
            if abs(total - 1.0) > 1e-9:
                raise ValueError(f"{name} weights must sum to 1.0, got {total}")


# ============================================================================
# Scorer
# ============================================================================

class CandidateScorer:
    """
    Scores and ranks candidates of either variant against a user profile.

    Usage:
        scorer = CandidateScorer()
        ranked = scorer.score(query, profile, lawyers, limit=5)
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig()
        self.skipped_count = 0

    def _sub_scores(self, candidate: Candidate, profile: UserProfile) -> dict:
        if isinstance(candidate, Lawyer):
            return {
                "specialty": specialty_match(candidate.specialty, profile.legal_type),
                "location": location_match(candidate.location, profile.location),
                "demographic": lawyer_demographic_match(candidate.specialty, profile),
                "fee": fee_match(candidate.fee_structure, profile.has(Demographic.LOW_INCOME)),
            }
        if isinstance(candidate, Resource):
            return {
                "content": content_match(candidate.text, profile.legal_type),
                "demographic": resource_demographic_match(candidate.text, profile),
            }
        raise TypeError(f"Unsupported candidate type: {type(candidate).__name__}")

    def _weights_for(self, candidate: Candidate) -> dict:
        if isinstance(candidate, Lawyer):
            return self.config.lawyer_weights
        return self.config.resource_weights

    def score_candidate(
        self,
        candidate: Candidate,
        profile: UserProfile,
        query_embedding: list[float],
    ) -> ScoreBreakdown:
        """Compute the breakdown for one candidate."""
        similarity = cosine_similarity(query_embedding, candidate.embedding)
        sub_scores = self._sub_scores(candidate, profile)
        weights = self._weights_for(candidate)

        composite = weights["similarity"] * similarity
        for name, value in sub_scores.items():
            composite += weights[name] * value

        return ScoreBreakdown(similarity=similarity, sub_scores=sub_scores, composite_score=composite)

    def match_reasons(self, candidate: Candidate, breakdown: ScoreBreakdown) -> list[str]:
        if isinstance(candidate, Lawyer):
            table, generic = LAWYER_REASONS, GENERIC_LAWYER_REASON
        else:
            table, generic = RESOURCE_REASONS, GENERIC_RESOURCE_REASON

        reasons = [text for name, threshold, text in table if breakdown.get(name) > threshold]
        return reasons or [generic]

    def _has_usable_embedding(self, candidate: Candidate) -> bool:
        embedding = candidate.embedding
        if not embedding:
            logger.warning(f"Skipping {candidate.kind} {candidate.id}: no embedding")
            return False
        if len(embedding) != self.config.dimensions:
            logger.warning(
                f"Skipping {candidate.kind} {candidate.id}: embedding dimension "
                f"{len(embedding)} != {self.config.dimensions}"
            )
            return False
        return True

    def rank(
        self,
        query: str,
        profile: UserProfile,
        candidates: list[Candidate],
        limit: Optional[int] = None,
    ) -> tuple[list[RankedCandidate], int]:
        """
        Rank candidates for a user and report how many were skipped.

        Args:
            query: The user's description of their legal matter
            profile: User profile (legal type, location, demographics)
            candidates: Lawyers and/or resources with precomputed embeddings
            limit: Maximum results (default from config)

        Returns:
            (ranked, skipped): ranked candidates, composite score descending
            with equal scores in input order, and the number of candidates
            skipped in this call
        """
        limit = self.config.default_limit if limit is None else limit
        if limit <= 0 or not candidates:
            return [], 0

        query_embedding = keyword_query_embedding(query, profile, self.config.dimensions)

        ranked = []
        skipped = 0
        for candidate in candidates:
            try:
                if not self._has_usable_embedding(candidate):
                    skipped += 1
                    continue
                breakdown = self.score_candidate(candidate, profile, query_embedding)
            except Exception as e:
                # One malformed record must not block the rest of the ranking
                logger.warning(f"Skipping {getattr(candidate, 'id', '?')}: scoring failed: {e}")
                skipped += 1
                continue
            ranked.append(RankedCandidate(
                candidate=candidate,
                breakdown=breakdown,
                match_reasons=self.match_reasons(candidate, breakdown),
                relevance=relevance_description(breakdown.composite_score),
            ))

        self.skipped_count += skipped
        if skipped:
            logger.info(f"Scored {len(ranked)} candidates, skipped {skipped}")

        # sorted() is stable, so ties keep input order
        ranked = sorted(ranked, key=lambda r: r.score, reverse=True)
        return ranked[:limit], skipped

    def score(
        self,
        query: str,
        profile: UserProfile,
        candidates: list[Candidate],
        limit: Optional[int] = None,
    ) -> list[RankedCandidate]:
        """Rank candidates for a user, composite score descending."""
        ranked, _ = self.rank(query, profile, candidates, limit)
        return ranked
