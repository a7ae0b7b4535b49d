"""
Tests for execution/bc_legal_rag/query_embedding.py

Covers: the 32-bit keyword hash, keyword extraction with demographic
        additions, and the keyword-hash query vector.
"""

import pytest


class TestHashKeyword:

    def test_matches_31_multiplier_string_hash(self):
        from execution.bc_legal_rag.query_embedding import hash_keyword
        assert hash_keyword("") == 0
        assert hash_keyword("a") == 97
        assert hash_keyword("hello") == 99162322

    def test_overflow_wraps_to_signed_32_bit_then_abs(self):
        from execution.bc_legal_rag.query_embedding import hash_keyword
        # this string's 32-bit hash is exactly the minimum signed value
        assert hash_keyword("polygenelubricants") == 2147483648

    def test_never_negative(self):
        from execution.bc_legal_rag.query_embedding import hash_keyword, LEGAL_TERMS
        assert all(hash_keyword(term) >= 0 for term in LEGAL_TERMS)


class TestExtractKeywords:

    def test_query_and_legal_type_are_searched(self):
        from execution.bc_legal_rag.candidates import UserProfile
        from execution.bc_legal_rag.query_embedding import extract_keywords

        profile = UserProfile(query="q", legal_type="Employment")
        keywords = extract_keywords("I faced workplace discrimination", profile)

        assert "employment" in keywords
        assert "workplace" in keywords
        assert "discrimination" in keywords

    def test_case_insensitive(self):
        from execution.bc_legal_rag.query_embedding import extract_keywords
        assert "divorce" in extract_keywords("DIVORCE papers")

    def test_demographic_keywords_added(self):
        from execution.bc_legal_rag.candidates import UserProfile, Demographic
        from execution.bc_legal_rag.query_embedding import extract_keywords

        profile = UserProfile(
            query="q",
            demographics=frozenset({Demographic.FIRST_NATION, Demographic.LOW_INCOME}),
        )
        keywords = extract_keywords("custody", profile)

        assert keywords[0] == "custody"
        for expected in ("aboriginal", "indigenous", "first nations", "low income", "free legal aid"):
            assert expected in keywords

    def test_no_duplicates(self):
        from execution.bc_legal_rag.candidates import UserProfile, Demographic
        from execution.bc_legal_rag.query_embedding import extract_keywords

        profile = UserProfile(query="q", demographics=frozenset({Demographic.SENIOR}))
        keywords = extract_keywords("senior elder abuse", profile)
        assert len(keywords) == len(set(keywords))

    def test_no_legal_terms(self):
        from execution.bc_legal_rag.query_embedding import extract_keywords
        assert extract_keywords("xyz") == []


class TestKeywordQueryEmbedding:

    def test_length(self):
        from execution.bc_legal_rag.query_embedding import keyword_query_embedding
        assert len(keyword_query_embedding("divorce")) == 384
        assert len(keyword_query_embedding("divorce", dimension=16)) == 16

    def test_deterministic(self):
        from execution.bc_legal_rag.candidates import UserProfile
        from execution.bc_legal_rag.query_embedding import keyword_query_embedding

        profile = UserProfile(query="q", legal_type="Family")
        assert keyword_query_embedding("custody of my kids", profile) == \
            keyword_query_embedding("custody of my kids", profile)

    def test_keyword_weight_written_to_hashed_slot(self):
        from execution.bc_legal_rag.query_embedding import keyword_query_embedding, hash_keyword

        embedding = keyword_query_embedding("divorce")
        assert embedding[hash_keyword("divorce") % 384] == 0.9

    def test_unknown_keyword_gets_default_weight(self):
        from execution.bc_legal_rag.query_embedding import (
            keyword_query_embedding, hash_keyword, DEFAULT_KEYWORD_WEIGHT,
        )

        # "treaty" is in the vocabulary but has no weight of its own
        embedding = keyword_query_embedding("treaty")
        assert embedding[hash_keyword("treaty") % 384] == DEFAULT_KEYWORD_WEIGHT

    def test_untouched_slots_are_small_noise(self):
        from execution.bc_legal_rag.query_embedding import keyword_query_embedding, hash_keyword

        embedding = keyword_query_embedding("divorce")
        slot = hash_keyword("divorce") % 384
        noise = [v for i, v in enumerate(embedding) if i != slot]
        assert all(-0.05 <= v <= 0.05 for v in noise)
        assert any(v != 0 for v in noise)

    def test_explicit_seed_controls_noise(self):
        from execution.bc_legal_rag.query_embedding import keyword_query_embedding

        a = keyword_query_embedding("xyz", seed=1)
        b = keyword_query_embedding("xyz", seed=1)
        c = keyword_query_embedding("xyz", seed=2)
        assert a == b
        assert a != c
