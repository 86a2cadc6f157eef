"""Case.dev OCR service client."""

import logging
from typing import Optional

from ..config.settings import get_settings
from ..schemas.remote import OCRJob
from .base import BaseAPIClient

logger = logging.getLogger(__name__)


class OCRClient(BaseAPIClient):
    """Client for asynchronous OCR jobs.

    Jobs are submitted with a document URL, polled with ``get_status`` and
    their recognized text fetched with ``get_text`` once completed.
    """

    async def process(self, document_url: str, engine: Optional[str] = None) -> OCRJob:
        """Submit a document URL for OCR."""
        data = await self._request(
            "POST",
            "/ocr/v1/process",
            json={
                "document_url": document_url,
                "engine": engine or get_settings().ocr_engine,
            },
        )
        job = self._parse(OCRJob, data)
        logger.info(f"OCR job started: {job.id}")
        return job

    @BaseAPIClient.with_retry
    async def get_status(self, job_id: str) -> OCRJob:
        data = await self._request("GET", f"/ocr/v1/{job_id}")
        return self._parse(OCRJob, data)

    @BaseAPIClient.with_retry
    async def get_text(self, job_id: str) -> str:
        """Download the plain-text result of a completed job."""
        response = await self._send("GET", f"/ocr/v1/{job_id}/download/text")
        self._handle_response_error(response)
        return response.text
