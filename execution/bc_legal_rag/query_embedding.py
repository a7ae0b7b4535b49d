"""
Keyword-hash pseudo-embedding for candidate ranking.

This is a deliberately low-fidelity, deterministic stand-in for a real
embedding call, used only to rank lawyers and resources (document retrieval
goes through the embedding gateway). Legal keywords found in the query are
written into vector slots chosen by a 32-bit string hash; the remaining slots
get small noise so sparse queries do not collapse cosine similarity.

Several keywords can hash to the same slot, in which case the later keyword
overwrites the earlier one. That loss is accepted.
"""

import random
import hashlib
from typing import Optional

from .candidates import Demographic, UserProfile, CANDIDATE_EMBEDDING_DIMENSIONS

DEFAULT_KEYWORD_WEIGHT = 0.1
NOISE_AMPLITUDE = 0.05

LEGAL_TERMS = (
    "family", "divorce", "custody", "support", "alimony", "separation",
    "employment", "workplace", "discrimination", "harassment", "termination",
    "criminal", "defense", "charges", "bail", "sentencing",
    "immigration", "visa", "citizenship", "deportation", "refugee",
    "personal", "injury", "accident", "negligence", "liability",
    "business", "contract", "commercial", "partnership", "corporation",
    "real", "estate", "property", "landlord", "tenant", "mortgage",
    "wills", "probate", "inheritance", "trust",
    "human", "rights", "equality", "freedom",
    "aboriginal", "indigenous", "first", "nations", "treaty",
    "lgbtq", "lgbt", "transgender", "sexual", "orientation",
    "disability", "accessibility", "accommodation",
    "senior", "elder", "pension", "retirement",
    "low", "income", "poverty", "welfare", "assistance",
    "free", "legal", "aid", "pro", "bono",
)

KEYWORD_WEIGHTS = {
    "family": 0.8, "divorce": 0.9, "custody": 0.85, "support": 0.8,
    "employment": 0.8, "workplace": 0.85, "discrimination": 0.9,
    "criminal": 0.9, "defense": 0.85, "charges": 0.8,
    "immigration": 0.9, "visa": 0.85, "citizenship": 0.8,
    "personal": 0.7, "injury": 0.8, "accident": 0.75,
    "business": 0.8, "contract": 0.85, "commercial": 0.8,
    "real": 0.7, "estate": 0.8, "property": 0.75,
    "wills": 0.8, "probate": 0.75,
    "human": 0.9, "rights": 0.9,
    "aboriginal": 0.8, "indigenous": 0.8, "first": 0.8,
    "lgbtq": 0.8, "lgbt": 0.8, "transgender": 0.8,
    "disability": 0.8, "accessibility": 0.8,
    "senior": 0.7, "elder": 0.7, "pension": 0.7,
    "low": 0.7, "income": 0.7, "poverty": 0.7,
    "free": 0.8, "legal": 0.9, "aid": 0.8,
}

DEMOGRAPHIC_KEYWORDS = {
    Demographic.FIRST_NATION: ("aboriginal", "indigenous", "first nations"),
    Demographic.LGBTQ: ("lgbtq", "lgbt", "sexual orientation"),
    Demographic.DISABILITY: ("disability", "accessibility"),
    Demographic.SENIOR: ("senior", "elder"),
    Demographic.LOW_INCOME: ("low income", "poverty", "free legal aid"),
}


def hash_keyword(keyword: str) -> int:
    """Non-negative 32-bit string hash (h = h * 31 + code unit)."""
    h = 0
    for ch in keyword:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def extract_keywords(query: str, profile: Optional[UserProfile] = None) -> list[str]:
    """
    Collect legal keywords present in the query and legal type, plus
    keywords implied by the profile's demographic flags.

    Order follows LEGAL_TERMS, then demographics; duplicates are dropped.
    """
    legal_type = profile.legal_type if profile and profile.legal_type else ""
    text = f"{query} {legal_type}".lower()

    keywords = [term for term in LEGAL_TERMS if term in text]

    if profile:
        for flag, extra in DEMOGRAPHIC_KEYWORDS.items():
            if profile.has(flag):
                keywords.extend(extra)

    return list(dict.fromkeys(keywords))


def _noise_seed(query: str, profile: Optional[UserProfile]) -> int:
    parts = [query]
    if profile:
        parts.append(profile.legal_type or "")
        parts.extend(sorted(d.value for d in profile.demographics))
    digest = hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()
    return int(digest[:16], 16)


def keyword_query_embedding(
    query: str,
    profile: Optional[UserProfile] = None,
    dimension: int = CANDIDATE_EMBEDDING_DIMENSIONS,
    seed: Optional[int] = None,
) -> list[float]:
    """
    Build the keyword-hash query vector.

    Args:
        query: The user's description of their legal matter
        profile: Supplies legal type and demographic keywords
        dimension: Target vector length
        seed: Noise seed; derived from the query and profile when omitted,
            so the same request always yields the same vector

    Returns:
        Vector of length `dimension`
    """
    embedding = [0.0] * dimension
    touched = set()

    for keyword in extract_keywords(query, profile):
        slot = hash_keyword(keyword) % dimension
        embedding[slot] = KEYWORD_WEIGHTS.get(keyword.lower(), DEFAULT_KEYWORD_WEIGHT)
        touched.add(slot)

    rng = random.Random(_noise_seed(query, profile) if seed is None else seed)
    for i in range(dimension):
        if i not in touched:
            embedding[i] = (rng.random() - 0.5) * 2 * NOISE_AMPLITUDE

    return embedding
