"""Vault (evidence collection) endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...api_clients.vault import VaultClient
from ...triage.errors import InvalidRequestError
from ..deps import get_vault_client
from ..responses import dump, dump_all


router = APIRouter(prefix="/vaults", tags=["vaults"])


class CreateVaultRequest(BaseModel):
    """Request to create a vault."""

    name: Optional[str] = Field(default=None, description="Vault name")
    description: Optional[str] = None


@router.get("")
async def list_vaults(vault: VaultClient = Depends(get_vault_client)):
    vaults = await vault.list_vaults()
    return {"vaults": dump_all(vaults)}


@router.post("")
async def create_vault(
    request: CreateVaultRequest,
    vault: VaultClient = Depends(get_vault_client),
):
    """Create a vault on the remote store."""
    if not request.name or not request.name.strip():
        raise InvalidRequestError("Vault name is required")
    return await vault.create_vault(request.name.strip(), request.description)


@router.get("/{vault_id}")
async def get_vault(vault_id: str, vault: VaultClient = Depends(get_vault_client)):
    return {"vault": dump(await vault.get_vault(vault_id))}
