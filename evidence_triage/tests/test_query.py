"""Tests for filtering, sorting and search ranking."""

import pytest

from evidence_triage.api_clients.base import APIError
from evidence_triage.schemas.evidence import EvidenceCategory, FilterState
from evidence_triage.schemas.remote import SearchChunk, SearchResponse
from evidence_triage.triage.errors import InvalidRequestError
from evidence_triage.triage.query import (
    filter_evidence,
    local_search,
    merge_semantic_scores,
    search_evidence,
    sort_evidence,
)


VAULT = "vault-1"


@pytest.fixture
def items(make_evidence):
    return [
        make_evidence(
            "obj-1", "contract_v2.pdf",
            category=EvidenceCategory.CONTRACT,
            tags=["agreement"],
            relevance_score=80,
            date_detected="2024-03-01",
            summary="Services agreement.",
        ),
        make_evidence(
            "obj-2", "Email_thread.eml", "message/rfc822",
            category=EvidenceCategory.EMAIL,
            tags=["Medical Record"],
            relevance_score=40,
            created_at="2024-01-20T09:00:00Z",
        ),
        make_evidence(
            "obj-3", "scan.pdf",
            category=EvidenceCategory.FINANCIAL_DOCUMENT,
            relevance_score=60,
            date_detected="2024-03-31",
            extracted_text="INVOICE #1043 Total due: $4,200",
        ),
    ]


def _ids(items):
    return [i.id for i in items]


class TestFilterEvidence:
    """Tests for filter_evidence."""

    def test_no_filters_returns_all(self, items):
        assert len(filter_evidence(items, FilterState())) == 3

    def test_categories_are_or(self, items):
        """Test categories=[contract, photo] matches only the contract."""
        filters = FilterState(categories=["contract", "photo"])
        assert _ids(filter_evidence(items, filters)) == ["obj-1"]

    def test_tags_are_or(self, items):
        filters = FilterState(tags=["agreement", "Medical Record"])
        assert sorted(_ids(filter_evidence(items, filters))) == ["obj-1", "obj-2"]

    def test_dimensions_are_and(self, items):
        filters = FilterState(categories=["contract", "email"], tags=["Medical Record"])
        assert _ids(filter_evidence(items, filters)) == ["obj-2"]

    def test_text_matches_tag_case_insensitively(self, items):
        """Test a record tagged "Medical Record" matches "medical"."""
        assert _ids(filter_evidence(items, FilterState(search_query="medical"))) == ["obj-2"]

    @pytest.mark.parametrize("query,expected", [
        ("CONTRACT_V2", ["obj-1"]),
        ("services", ["obj-1"]),
        ("invoice #1043", ["obj-3"]),
        ("nothing matches this", []),
    ])
    def test_text_fields(self, items, query, expected):
        assert _ids(filter_evidence(items, FilterState(search_query=query))) == expected

    def test_date_range_inclusive(self, items):
        filters = FilterState(date_start="2024-03-01", date_end="2024-03-31")
        assert sorted(_ids(filter_evidence(items, filters))) == ["obj-1", "obj-3"]

    def test_date_range_uses_created_at_fallback(self, items):
        filters = FilterState(date_start="2024-01-20", date_end="2024-01-20")
        assert _ids(filter_evidence(items, filters)) == ["obj-2"]


class TestSortEvidence:
    """Tests for sort_evidence."""

    def test_date_desc_default(self, items):
        assert _ids(filter_evidence(items, FilterState())) == ["obj-3", "obj-1", "obj-2"]

    def test_relevance_asc(self, items):
        filters = FilterState(sort_by="relevance", sort_order="asc")
        assert _ids(filter_evidence(items, filters)) == ["obj-2", "obj-3", "obj-1"]

    def test_name_ignores_case(self, items):
        filters = FilterState(sort_by="name", sort_order="asc")
        assert _ids(filter_evidence(items, filters)) == ["obj-1", "obj-2", "obj-3"]

    def test_ties_keep_input_order(self, make_evidence):
        ties = [make_evidence(f"obj-{n}", relevance_score=50) for n in range(5)]
        assert _ids(sort_evidence(ties, "relevance", "desc")) == _ids(ties)
        assert _ids(sort_evidence(ties, "relevance", "asc")) == _ids(ties)


class TestRanking:
    """Tests for semantic merge and local fallback scoring."""

    def test_semantic_merge_takes_max_chunk(self, items):
        chunks = [
            SearchChunk(object_id="obj-3", hybrid_score=0.41),
            SearchChunk(object_id="obj-3", hybrid_score=0.87),
            SearchChunk(object_id="obj-1", hybrid_score=0.52),
            SearchChunk(object_id="obj-unknown", hybrid_score=0.99),
        ]
        ranked = merge_semantic_scores(items, chunks)
        assert [(r.id, r.search_relevance) for r in ranked] == [("obj-3", 87), ("obj-1", 52)]

    def test_local_scores(self, make_evidence):
        records = [
            make_evidence("tag-only", "scan.pdf", tags=["invoice"]),
            make_evidence("name", "invoice_march.pdf"),
            make_evidence("name-summary-tag", "Invoice-042.pdf", summary="Invoice for services", tags=["Invoice"]),
            make_evidence("text-only", "scan2.pdf", extracted_text="see attached invoice"),
        ]
        scores = {r.id: r.search_relevance for r in local_search(records, "invoice")}
        assert scores == {
            "name-summary-tag": 95,
            "name": 60,
            "tag-only": 45,
            "text-only": 30,
        }


class TestSearchEvidence:
    """Tests for search_evidence."""

    @pytest.mark.asyncio
    async def test_semantic_results(self, repository, vault, items):
        repository.bulk_put(VAULT, items)
        vault.search_response = SearchResponse(chunks=[SearchChunk(object_id="obj-2", hybrid_score=0.7)])

        outcome = await search_evidence(repository, vault, VAULT, "medical history", top_k=5)

        assert outcome.semantic
        assert _ids(outcome.evidence) == ["obj-2"]
        assert vault.search_calls == [(VAULT, "medical history", 5)]

    @pytest.mark.asyncio
    async def test_falls_back_when_index_unavailable(self, repository, vault, make_evidence):
        """Test a filename match outranks a tag-only match in the fallback."""
        repository.bulk_put(VAULT, [
            make_evidence("tagged", "scan.pdf", tags=["invoice"]),
            make_evidence("named", "invoice_march.pdf"),
        ])
        vault.search_error = APIError("Search unavailable", status_code=503)

        outcome = await search_evidence(repository, vault, VAULT, "invoice")

        assert not outcome.semantic
        assert _ids(outcome.evidence) == ["named", "tagged"]
        assert outcome.evidence[0].search_relevance > outcome.evidence[1].search_relevance

    @pytest.mark.asyncio
    async def test_falls_back_when_index_empty(self, repository, vault, items):
        repository.bulk_put(VAULT, items)

        outcome = await search_evidence(repository, vault, VAULT, "agreement")

        assert not outcome.semantic
        assert _ids(outcome.evidence) == ["obj-1"]

    @pytest.mark.asyncio
    async def test_empty_query_rejected(self, repository, vault):
        with pytest.raises(InvalidRequestError):
            await search_evidence(repository, vault, VAULT, "  ")
