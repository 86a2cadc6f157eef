"""Error taxonomy for evidence triage operations and best-effort side effects."""

import logging
from typing import Awaitable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TriageError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500


class EvidenceNotFoundError(TriageError):
    """Record absent locally and on the remote vault."""

    status_code = 404

    def __init__(self, message: str = "Evidence not found"):
        super().__init__(message)


class InvalidRequestError(TriageError):
    """Malformed request input."""

    status_code = 400


class StillProcessingError(TriageError):
    """
    Classification requested before remote ingestion finished.

    Not a failure: the caller should retry later. ``status`` carries the
    remote ingestion status (``pending`` or ``processing``).
    """

    status_code = 400

    def __init__(self, status: str):
        super().__init__("Document is still processing")
        self.status = status


async def best_effort(action: str, awaitable: Awaitable[T]) -> Optional[T]:
    """
    Await a side effect whose failure must never fail the caller.

    Used for remote metadata mirroring, remote deletes, ingestion nudges and
    download-URL lookups. Failures are logged and None is returned.
    """
    try:
        return await awaitable
    except Exception as e:
        logger.warning(f"{action} failed (continuing): {e}")
        return None
