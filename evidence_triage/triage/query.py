"""
Filtering, sorting and search over a vault's cached evidence.

Filters are conjunctive across dimensions and disjunctive within the
category and tag sets. Dates compare as ISO strings, which is only valid
because every stored date is zero-padded ISO-8601.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..api_clients.vault import VaultClient
from ..observability.tracing import traced
from ..schemas.evidence import EvidenceItem, FilterState, RankedEvidence
from ..schemas.remote import SearchChunk, SearchSource
from ..store.base import EvidenceRepository
from .errors import InvalidRequestError, best_effort

logger = logging.getLogger(__name__)

# Heuristic scores for the local substring fallback
LOCAL_BASE_SCORE = 30
LOCAL_FILENAME_BONUS = 30
LOCAL_SUMMARY_BONUS = 20
LOCAL_TAG_BONUS = 15


def matches_text(item: EvidenceItem, query: str) -> bool:
    """Case-insensitive substring match on filename, summary, text prefix and tags."""
    q = query.strip().lower()
    if not q:
        return True
    fields = [item.filename, item.summary or "", item.extracted_text or "", *item.tags]
    return any(q in value.lower() for value in fields)


def _in_date_range(item: EvidenceItem, start: Optional[str], end: Optional[str]) -> bool:
    key = item.date_key
    if start and key < start:
        return False
    # Compare on the end bound's precision so the whole end day is included
    if end and key[: len(end)] > end:
        return False
    return True


def sort_evidence(
    items: Iterable[EvidenceItem],
    sort_by: str = "date",
    sort_order: str = "desc",
) -> list[EvidenceItem]:
    """Stable sort by date, relevance or name."""
    if sort_by == "relevance":
        key = lambda item: item.relevance_score  # noqa: E731
    elif sort_by == "name":
        key = lambda item: item.filename.casefold()  # noqa: E731
    else:
        key = lambda item: item.date_key  # noqa: E731
    return sorted(items, key=key, reverse=sort_order == "desc")


def filter_evidence(items: Iterable[EvidenceItem], filters: FilterState) -> list[EvidenceItem]:
    """Apply a FilterState to a list of records and sort the result."""
    categories = set(filters.categories)
    tags = set(filters.tags)

    matched = []
    for item in items:
        if categories and item.category not in categories:
            continue
        if tags and not tags.intersection(item.tags):
            continue
        if not _in_date_range(item, filters.date_start, filters.date_end):
            continue
        if not matches_text(item, filters.search_query):
            continue
        matched.append(item)

    return sort_evidence(matched, filters.sort_by, filters.sort_order)


def merge_semantic_scores(
    items: Iterable[EvidenceItem],
    chunks: Iterable[SearchChunk],
) -> list[RankedEvidence]:
    """
    Rank records by their best chunk score.

    Per vault object the maximum ``hybridScore`` is kept and scaled to an
    integer 0-100. Records without any chunk are dropped.
    """
    best: dict[str, float] = {}
    for chunk in chunks:
        if not chunk.object_id:
            continue
        best[chunk.object_id] = max(best.get(chunk.object_id, 0.0), chunk.hybrid_score)

    ranked = [
        RankedEvidence(
            **item.model_dump(),
            search_relevance=min(100, max(0, round(best[item.remote_object_id] * 100))),
        )
        for item in items
        if item.remote_object_id in best
    ]
    ranked.sort(key=lambda r: r.search_relevance, reverse=True)
    return ranked


def local_search(items: Iterable[EvidenceItem], query: str) -> list[RankedEvidence]:
    """Substring search with a heuristic score, best first."""
    q = query.strip().lower()
    ranked = []
    for item in items:
        if not matches_text(item, q):
            continue
        score = LOCAL_BASE_SCORE
        if q in item.filename.lower():
            score += LOCAL_FILENAME_BONUS
        if item.summary and q in item.summary.lower():
            score += LOCAL_SUMMARY_BONUS
        if any(q in tag.lower() for tag in item.tags):
            score += LOCAL_TAG_BONUS
        ranked.append(RankedEvidence(**item.model_dump(), search_relevance=min(score, 100)))
    ranked.sort(key=lambda r: r.search_relevance, reverse=True)
    return ranked


@dataclass
class SearchOutcome:
    query: str
    evidence: list[RankedEvidence]
    chunks: list[SearchChunk] = field(default_factory=list)
    sources: list[SearchSource] = field(default_factory=list)
    semantic: bool = False

    @property
    def total(self) -> int:
        return len(self.evidence)


@traced("search_evidence", run_type="retriever")
async def search_evidence(
    repository: EvidenceRepository,
    vault: VaultClient,
    vault_id: str,
    query: Optional[str],
    top_k: int = 20,
) -> SearchOutcome:
    """
    Semantic search with a local fallback.

    The vault's hybrid index is tried first; when it fails or matches no
    cached record, the local substring scorer is used instead.

    Raises:
        InvalidRequestError: Empty query.
    """
    if not query or not query.strip():
        raise InvalidRequestError("Query is required")

    items = repository.list_all(vault_id)
    response = await best_effort(
        f"Semantic search in vault {vault_id}",
        vault.search(vault_id, query, top_k=top_k),
    )
    chunks = response.chunks if response else []
    sources = response.sources if response else []

    ranked = merge_semantic_scores(items, chunks)
    if ranked:
        logger.info(f"[Search] {len(ranked)} semantic matches for {query!r} in vault {vault_id}")
        return SearchOutcome(query=query, evidence=ranked, chunks=chunks, sources=sources, semantic=True)

    ranked = local_search(items, query)
    logger.info(f"[Search] Local fallback found {len(ranked)} matches for {query!r} in vault {vault_id}")
    return SearchOutcome(query=query, evidence=ranked, chunks=chunks, sources=sources)
