"""Case.dev vault (object store) client."""

import logging
from typing import Any, Optional

import httpx

from ..schemas.remote import (
    IngestResponse,
    ObjectStatus,
    ObjectText,
    SearchResponse,
    UploadTarget,
    Vault,
    VaultObject,
)
from .base import APIError, BaseAPIClient

logger = logging.getLogger(__name__)


class VaultClient(BaseAPIClient):
    """Client for vault storage, ingestion status, text and hybrid search.

    Uploads are two-step: ``get_upload_target`` issues a presigned URL and
    ``upload_bytes`` PUTs the file body to it without API credentials.
    """

    async def list_vaults(self) -> list[Vault]:
        data = await self._request("GET", "/vault")
        return self._parse_list(Vault, data, "vaults")

    async def create_vault(self, name: str, description: Optional[str] = None) -> dict[str, Any]:
        """Create a vault and return the raw creation payload."""
        return await self._request(
            "POST",
            "/vault",
            json={"name": name, "description": description, "enableGraph": False},
        )

    @BaseAPIClient.with_retry
    async def get_vault(self, vault_id: str) -> Vault:
        data = await self._request("GET", f"/vault/{vault_id}")
        return self._parse(Vault, data)

    @BaseAPIClient.with_retry
    async def list_objects(self, vault_id: str) -> list[VaultObject]:
        data = await self._request("GET", f"/vault/{vault_id}/objects")
        return self._parse_list(VaultObject, data, "objects")

    async def get_upload_target(
        self,
        vault_id: str,
        filename: str,
        content_type: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> UploadTarget:
        data = await self._request(
            "POST",
            f"/vault/{vault_id}/upload",
            json={
                "filename": filename,
                "contentType": content_type,
                "metadata": metadata,
                "auto_index": True,
            },
        )
        return self._parse(UploadTarget, data)

    async def upload_bytes(self, upload_url: str, content: bytes, content_type: str) -> None:
        """PUT file bytes to a presigned upload URL."""
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
        ) as raw_client:
            try:
                response = await raw_client.put(
                    upload_url,
                    content=content,
                    headers={"Content-Type": content_type},
                )
            except httpx.HTTPError as e:
                raise APIError(f"Failed to upload file to storage: {e}") from e
        if response.status_code >= 400:
            raise APIError(
                f"Failed to upload file to storage: {response.status_code}",
                status_code=response.status_code,
            )

    async def trigger_ingestion(self, vault_id: str, object_id: str) -> IngestResponse:
        data = await self._request("POST", f"/vault/{vault_id}/ingest/{object_id}")
        return self._parse(IngestResponse, data)

    @BaseAPIClient.with_retry
    async def get_object(self, vault_id: str, object_id: str) -> ObjectStatus:
        data = await self._request("GET", f"/vault/{vault_id}/objects/{object_id}")
        return self._parse(ObjectStatus, data)

    @BaseAPIClient.with_retry
    async def get_object_text(self, vault_id: str, object_id: str) -> ObjectText:
        data = await self._request("GET", f"/vault/{vault_id}/objects/{object_id}/text")
        return self._parse(ObjectText, data)

    async def delete_object(self, vault_id: str, object_id: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/vault/{vault_id}/objects/{object_id}")

    async def update_object_metadata(
        self,
        vault_id: str,
        object_id: str,
        metadata: dict[str, Any],
    ) -> None:
        """PATCH custom metadata onto a vault object."""
        logger.info(f"Saving metadata to vault/{vault_id}/objects/{object_id}/metadata")
        await self._request(
            "PATCH",
            f"/vault/{vault_id}/objects/{object_id}/metadata",
            json=metadata,
        )

    @BaseAPIClient.with_retry
    async def search(self, vault_id: str, query: str, top_k: int = 10) -> SearchResponse:
        """Hybrid (vector + BM25) search over a vault's chunks."""
        data = await self._request(
            "POST",
            f"/vault/{vault_id}/search",
            json={"query": query, "method": "hybrid", "topK": top_k},
        )
        return self._parse(SearchResponse, data)
