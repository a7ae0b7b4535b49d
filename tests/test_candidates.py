"""
Tests for execution/bc_legal_rag/candidates.py and knowledge_base.py

Covers: UserProfile.from_form, record parsing with either key casing,
        dataset loading (list and mapping layouts), CandidatePool,
        Document construction and index_documents.
"""

import json

import pytest


# ---------------------------------------------------------------------------
# UserProfile
# ---------------------------------------------------------------------------

class TestUserProfile:

    def test_from_camel_case_form(self):
        from execution.bc_legal_rag.candidates import UserProfile, Demographic

        profile = UserProfile.from_form({
            "legalMatter": "My landlord kept my deposit",
            "legalType": "Real Estate",
            "location": "Surrey",
            "firstNation": True,
            "lowIncome": "on",
            "senior": False,
        })
        assert profile.query == "My landlord kept my deposit"
        assert profile.legal_type == "Real Estate"
        assert profile.location == "Surrey"
        assert profile.demographics == frozenset({Demographic.FIRST_NATION, Demographic.LOW_INCOME})

    def test_from_snake_case_form(self):
        from execution.bc_legal_rag.candidates import UserProfile, Demographic

        profile = UserProfile.from_form({"query": "q", "legal_type": "Family", "visible_minority": True})
        assert profile.has(Demographic.VISIBLE_MINORITY)
        assert not profile.has(Demographic.LGBTQ)

    def test_empty_form(self):
        from execution.bc_legal_rag.candidates import UserProfile

        profile = UserProfile.from_form({})
        assert profile.query == ""
        assert profile.legal_type is None
        assert profile.demographics == frozenset()


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class TestRecords:

    def test_lawyer_from_capitalized_record(self):
        from execution.bc_legal_rag.candidates import lawyer_from_record

        lawyer = lawyer_from_record("7", {
            "Name": "A. Counsel", "Email": "a@example.com", "Phone": "1",
            "Location": "Victoria", "Specialty": "Family Law",
            "FeeStructure": "Hourly", "Languages": "English, Mandarin",
            "Website": "https://a.example.com", "embedding": [0.1, 0.2],
        })
        assert lawyer.id == "7"
        assert lawyer.kind == "lawyer"
        assert lawyer.languages == ["English", "Mandarin"]
        assert lawyer.contact.website == "https://a.example.com"
        assert lawyer.embedding == [0.1, 0.2]

    def test_lawyer_from_snake_case_record(self):
        from execution.bc_legal_rag.candidates import lawyer_from_record

        lawyer = lawyer_from_record("x", {
            "id": "L-1", "name": "B", "fee_structure": "Free", "languages": ["French"],
        })
        assert lawyer.id == "L-1"
        assert lawyer.fee_structure == "Free"
        assert lawyer.languages == ["French"]
        assert lawyer.embedding is None

    def test_resource_preview(self):
        from execution.bc_legal_rag.candidates import resource_from_record

        resource = resource_from_record("r", {"source": "Guide", "text": "t" * 300})
        assert resource.kind == "resource"
        assert resource.preview() == "t" * 200 + "..."
        assert resource.to_dict() == {"source": "Guide", "text": "t" * 200 + "..."}


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

class TestLoading:

    def test_load_list_and_mapping_layouts(self, data_dir):
        from execution.bc_legal_rag.candidates import load_lawyers, load_resources

        lawyers = load_lawyers(data_dir / "lawyers_embeddings.json")
        resources = load_resources(data_dir / "all_pdfs_embeddings.json")

        assert [l.name for l in lawyers] == ["Jane Family", "Sam Employment", "Ravi Rights"]
        assert [r.id for r in resources] == ["res-0", "res-1"]
        assert all(len(r.embedding) == 384 for r in resources)

    def test_missing_file_raises_oserror(self, tmp_path):
        from execution.bc_legal_rag.candidates import load_lawyers

        with pytest.raises(OSError):
            load_lawyers(tmp_path / "missing.json")

    def test_bad_shape_raises_value_error(self, tmp_path):
        from execution.bc_legal_rag.candidates import load_resources

        path = tmp_path / "bad.json"
        path.write_text(json.dumps("just a string"))
        with pytest.raises(ValueError):
            load_resources(path)

    def test_non_object_record_raises_value_error(self, tmp_path):
        from execution.bc_legal_rag.candidates import load_lawyers

        path = tmp_path / "scalars.json"
        path.write_text(json.dumps([1, 2]))
        with pytest.raises(ValueError, match="Record 0"):
            load_lawyers(path)

    def test_invalid_json_raises_value_error(self, tmp_path):
        from execution.bc_legal_rag.candidates import load_resources

        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ValueError):
            load_resources(path)


class TestCandidatePool:

    def test_replace(self, sample_lawyers, sample_resources):
        from execution.bc_legal_rag.candidates import CandidatePool

        pool = CandidatePool()
        assert pool.is_empty
        pool.replace(sample_lawyers, sample_resources)
        assert not pool.is_empty
        assert pool.degraded is False


# ---------------------------------------------------------------------------
# Knowledge base
# ---------------------------------------------------------------------------

class TestKnowledgeBase:

    def test_document_from_fetched(self, fetched_documents):
        from execution.bc_legal_rag.knowledge_base import Document

        doc = Document.from_fetched(fetched_documents[1])
        assert doc.title == "Residential Tenancy Act"
        assert doc.url == "https://www.bclaws.gov.bc.ca/rta"
        assert doc.raw_text == fetched_documents[1].content
        assert doc.id

    def test_index_documents(self, fetched_documents, mock_embedding_service):
        from execution.bc_legal_rag.chunker import TextChunker
        from execution.bc_legal_rag.knowledge_base import Document, index_documents

        docs = [Document.from_fetched(f) for f in fetched_documents]
        chunks, index = index_documents(docs, TextChunker(), mock_embedding_service)

        assert index.size == len(chunks)
        assert {c.document_ref for c in chunks} == {d.id for d in docs}
        assert mock_embedding_service._call_count == 1

    def test_index_documents_without_chunks_raises(self, mock_embedding_service):
        from execution.bc_legal_rag.chunker import TextChunker
        from execution.bc_legal_rag.knowledge_base import Document, index_documents

        blank = Document.curated("d", "Blank", "   ", "none")
        with pytest.raises(ValueError):
            index_documents([blank], TextChunker(), mock_embedding_service)

    def test_is_initialized(self):
        from execution.bc_legal_rag.knowledge_base import KnowledgeBase, IndexStatus

        kb = KnowledgeBase()
        assert not kb.is_initialized
        kb.status = IndexStatus.INITIALIZING
        assert not kb.is_initialized
        kb.status = IndexStatus.DEGRADED
        assert kb.is_initialized
