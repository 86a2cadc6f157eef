"""
Firestore-backed evidence repository.

Records live at ``vaults/{vault_id}/evidence/{evidence_id}``. The full set
is read once at start-up into the in-memory map; mutations write only the
changed documents in a single batch.
"""

import logging
from functools import lru_cache
from typing import Any, Iterable, Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core.exceptions import GoogleAPIError
from pydantic import ValidationError

from ..config.settings import get_settings
from ..schemas.evidence import EvidenceItem
from .base import EvidenceRepository

logger = logging.getLogger(__name__)

VAULTS_COLLECTION = "vaults"
EVIDENCE_COLLECTION = "evidence"


def _initialize_firebase() -> None:
    """Initialize Firebase Admin SDK if not already done."""
    if firebase_admin._apps:
        return

    settings = get_settings()

    if settings.google_application_credentials:
        cred = credentials.Certificate(settings.google_application_credentials)
        firebase_admin.initialize_app(cred)
    elif settings.firebase_project_id:
        # Use default credentials (for Cloud Run, etc.)
        firebase_admin.initialize_app(options={
            "projectId": settings.firebase_project_id
        })
    else:
        firebase_admin.initialize_app()


@lru_cache()
def get_firestore_client() -> Any:
    """Get the Firestore client (sync)."""
    _initialize_firebase()
    return firestore.client()


class FirestoreEvidenceRepository(EvidenceRepository):
    """Evidence repository persisted to Firestore documents."""

    def __init__(self, db: Optional[Any] = None):
        self.db = db if db is not None else get_firestore_client()
        super().__init__()

    def _evidence_ref(self, vault_id: str):
        return (
            self.db.collection(VAULTS_COLLECTION)
            .document(vault_id)
            .collection(EVIDENCE_COLLECTION)
        )

    def _load(self) -> dict[str, dict[str, EvidenceItem]]:
        vaults: dict[str, dict[str, EvidenceItem]] = {}
        try:
            docs = list(self.db.collection_group(EVIDENCE_COLLECTION).stream())
        except GoogleAPIError as e:
            logger.error(f"Failed to load evidence from Firestore: {e}")
            return vaults

        for doc in docs:
            vault_id = doc.reference.parent.parent.id
            try:
                vaults.setdefault(vault_id, {})[doc.id] = EvidenceItem.model_validate(doc.to_dict())
            except ValidationError as e:
                logger.warning(f"Skipping invalid evidence {vault_id}/{doc.id}: {e}")

        logger.info(f"Loaded {len(docs)} evidence documents from Firestore")
        return vaults

    def _persist(
        self,
        vault_id: str,
        upserts: Iterable[EvidenceItem] = (),
        deletes: Iterable[str] = (),
    ) -> None:
        collection = self._evidence_ref(vault_id)
        batch = self.db.batch()
        for item in upserts:
            batch.set(
                collection.document(item.id),
                item.model_dump(mode="json", by_alias=True, exclude_none=True),
            )
        for evidence_id in deletes:
            batch.delete(collection.document(evidence_id))
        try:
            batch.commit()
        except GoogleAPIError as e:
            logger.error(f"Failed to save evidence for vault {vault_id} to Firestore: {e}")
