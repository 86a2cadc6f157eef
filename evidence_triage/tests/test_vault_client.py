"""Tests for the vault client's request shapes and error mapping."""

import json

import httpx
import pytest

from evidence_triage.api_clients.base import APIError, RateLimitError, RemoteTimeoutError
from evidence_triage.api_clients.vault import VaultClient


BASE = "https://api.case.test"


def _client(handler) -> VaultClient:
    return VaultClient(api_key="sk-test", base_url=BASE, transport=httpx.MockTransport(handler))


class TestVaultClient:
    """Tests for VaultClient against a mocked transport."""

    @pytest.mark.asyncio
    async def test_bearer_auth_and_listing(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"objects": [{
                "id": "obj-1",
                "filename": "contract_v2.pdf",
                "contentType": "application/pdf",
                "ingestionStatus": "processing",
                "createdAt": "2024-05-01T10:00:00Z",
            }]})

        async with _client(handler) as client:
            objects = await client.list_objects("vault-1")

        assert objects[0].id == "obj-1"
        assert objects[0].ingestion_status == "processing"
        assert seen[0].url.path == "/vault/vault-1/objects"
        assert seen[0].headers["Authorization"] == "Bearer sk-test"

    @pytest.mark.asyncio
    async def test_search_payload(self):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={
                "method": "hybrid",
                "chunks": [{"objectId": "obj-3", "hybridScore": 0.87, "text": "INVOICE"}],
            })

        async with _client(handler) as client:
            response = await client.search("vault-1", "invoice", top_k=5)

        assert bodies == [{"query": "invoice", "method": "hybrid", "topK": 5}]
        assert response.chunks[0].object_id == "obj-3"
        assert response.chunks[0].hybrid_score == 0.87

    @pytest.mark.asyncio
    async def test_error_status_raises_api_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": "Object not found"})

        async with _client(handler) as client:
            with pytest.raises(APIError) as exc_info:
                await client.delete_object("vault-1", "obj-404")

        assert exc_info.value.status_code == 404
        assert "Object not found" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_rate_limit(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, headers={"Retry-After": "7"})

        async with _client(handler) as client:
            with pytest.raises(RateLimitError) as exc_info:
                await client.create_vault("Smith v. Jones")

        assert exc_info.value.retry_after == 7

    @pytest.mark.asyncio
    async def test_upload_bytes_skips_credentials(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        async with _client(handler) as client:
            await client.upload_bytes("https://storage.test/obj-1", b"%PDF", "application/pdf")

        assert seen[0].method == "PUT"
        assert seen[0].content == b"%PDF"
        assert "Authorization" not in seen[0].headers

    @pytest.mark.asyncio
    async def test_upload_rejected_by_storage(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403)

        async with _client(handler) as client:
            with pytest.raises(APIError, match="Failed to upload"):
                await client.upload_bytes("https://storage.test/obj-1", b"x", "application/pdf")

    @pytest.mark.asyncio
    async def test_connection_error_becomes_api_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(APIError, match="connection refused"):
                await client.delete_object("vault-1", "obj-1")

    @pytest.mark.asyncio
    async def test_timeout_becomes_remote_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with _client(handler) as client:
            with pytest.raises(RemoteTimeoutError):
                await client.create_vault("Smith v. Jones")

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        async with _client(handler) as client:
            with pytest.raises(APIError, match="non-JSON"):
                await client.list_vaults()

    @pytest.mark.asyncio
    async def test_malformed_listing(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"objects": {"id": "obj-1"}})

        async with _client(handler) as client:
            with pytest.raises(APIError, match="expected a list"):
                await client.list_objects("vault-1")

    @pytest.mark.asyncio
    async def test_upload_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection reset", request=request)

        async with _client(handler) as client:
            with pytest.raises(APIError, match="Failed to upload"):
                await client.upload_bytes("https://storage.test/obj-1", b"x", "application/pdf")
