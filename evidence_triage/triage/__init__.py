"""Evidence triage workflow: reconciliation, resync, queries, uploads."""

from .errors import (
    EvidenceNotFoundError,
    InvalidRequestError,
    StillProcessingError,
    TriageError,
    best_effort,
)
from .query import (
    SearchOutcome,
    filter_evidence,
    local_search,
    matches_text,
    merge_semantic_scores,
    search_evidence,
    sort_evidence,
)
from .reconciler import (
    ClassifyWaitOutcome,
    IngestionReconciler,
    ReconcileResult,
    photo_classification,
    wait_for_classification,
)
from .records import DeleteResult, EvidenceDetail, delete_evidence, get_evidence_detail
from .sync import SyncReport, merge_remote_object, sync_vault
from .uploads import IncomingFile, UploadResult, resolve_content_type, upload_files

__all__ = [
    "TriageError",
    "EvidenceNotFoundError",
    "InvalidRequestError",
    "StillProcessingError",
    "best_effort",
    "SearchOutcome",
    "filter_evidence",
    "local_search",
    "matches_text",
    "merge_semantic_scores",
    "search_evidence",
    "sort_evidence",
    "ClassifyWaitOutcome",
    "IngestionReconciler",
    "ReconcileResult",
    "photo_classification",
    "wait_for_classification",
    "DeleteResult",
    "EvidenceDetail",
    "delete_evidence",
    "get_evidence_detail",
    "SyncReport",
    "merge_remote_object",
    "sync_vault",
    "IncomingFile",
    "UploadResult",
    "resolve_content_type",
    "upload_files",
]
