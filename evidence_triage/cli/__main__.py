"""
CLI for evidence triage.

Commands:
    serve        - Run the HTTP API
    vaults       - List vaults
    upload       - Upload files to a vault
    list         - List cached evidence with filters
    sync         - Resync the local cache from a vault
    classify     - Classify one evidence record
    search       - Search a vault's evidence
    clear-cache  - Drop the local cache of a vault
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table as RichTable

from ..config.settings import get_settings

app = typer.Typer(
    name="evidence-triage",
    help="Evidence triage - upload, classify and search litigation evidence",
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    level = "DEBUG" if verbose else get_settings().log_level.upper()
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _reconciler():
    from ..api_clients import ClassificationClient, OCRClient, VaultClient
    from ..store import get_repository
    from ..triage.reconciler import IngestionReconciler

    return IngestionReconciler(get_repository(), VaultClient(), OCRClient(), ClassificationClient())


def _evidence_table(title: str, items, score_attr: Optional[str] = None) -> RichTable:
    table = RichTable(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Filename")
    table.add_column("Category")
    table.add_column("Relevance", justify="right")
    table.add_column("Status")
    table.add_column("Tags")
    if score_attr:
        table.add_column("Score", justify="right")

    for item in items:
        row = [
            item.id,
            item.filename,
            item.category.value,
            str(item.relevance_score),
            item.ingestion_status.value,
            ", ".join(item.tags) or "-",
        ]
        if score_attr:
            row.append(str(getattr(item, score_attr)))
        table.add_row(*row)
    return table


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """
    Run the HTTP API with uvicorn.
    """
    import uvicorn

    uvicorn.run("evidence_triage.api.main:app", host=host, port=port, reload=reload)


@app.command()
def vaults():
    """
    List vaults on the remote store.
    """
    from ..api_clients import VaultClient

    async def run():
        async with VaultClient() as client:
            return await client.list_vaults()

    results = asyncio.run(run())
    if not results:
        rprint("[yellow]No vaults found[/yellow]")
        return

    table = RichTable(title="Vaults")
    table.add_column("Vault ID", style="cyan")
    table.add_column("Name")
    table.add_column("Objects", justify="right")
    table.add_column("Size", justify="right")
    for v in results:
        table.add_row(v.id, v.name, str(v.total_objects), f"{v.total_bytes:,} bytes")
    console.print(table)


@app.command()
def upload(
    vault_id: str = typer.Argument(..., help="Vault ID"),
    paths: list[Path] = typer.Argument(..., help="Files to upload"),
    classify: bool = typer.Option(False, "--classify", help="Wait for ingestion and classify each upload"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """
    Upload files to a vault.

    Examples:
        evidence-triage upload VAULT_ID contract_v2.pdf scene.png --classify
    """
    from ..triage.reconciler import wait_for_classification
    from ..triage.uploads import IncomingFile, resolve_content_type, upload_files

    _setup_logging(verbose)

    missing = [p for p in paths if not p.is_file()]
    if missing:
        rprint(f"[red]File not found: {', '.join(str(p) for p in missing)}[/red]")
        raise typer.Exit(1)

    files = [
        IncomingFile(
            filename=p.name,
            content=p.read_bytes(),
            content_type=resolve_content_type(p.name, None),
        )
        for p in paths
    ]

    async def run():
        reconciler = _reconciler()
        results = await upload_files(reconciler.repository, reconciler.vault, vault_id, files)
        outcomes = {}
        if classify:
            for r in results:
                if r.status == "uploaded":
                    outcomes[r.evidence_id] = await wait_for_classification(reconciler, vault_id, r.evidence_id)
        return results, outcomes

    results, outcomes = asyncio.run(run())

    for r in results:
        if r.status == "failed":
            rprint(f"[red]✗ {r.filename}:[/red] {r.error}")
            continue
        rprint(f"[green]✓ {r.filename}[/green] -> {r.evidence_id}")
        outcome = outcomes.get(r.evidence_id)
        if outcome is None:
            continue
        if outcome.completed:
            c = outcome.result.classification
            rprint(f"  {c.category.value} (relevance {c.relevance_score}): {c.summary}")
        else:
            rprint(f"  [yellow]Still {outcome.last_status}; will complete in background[/yellow]")


@app.command("list")
def list_evidence(
    vault_id: str = typer.Argument(..., help="Vault ID"),
    category: Optional[list[str]] = typer.Option(None, "--category", "-c", help="Category filter (repeatable)"),
    tag: Optional[list[str]] = typer.Option(None, "--tag", "-t", help="Tag filter (repeatable)"),
    date_start: Optional[str] = typer.Option(None, "--from", help="Start date (YYYY-MM-DD)"),
    date_end: Optional[str] = typer.Option(None, "--to", help="End date (YYYY-MM-DD)"),
    query: str = typer.Option("", "--query", "-q", help="Text filter"),
    sort_by: str = typer.Option("date", "--sort-by", help="date, relevance or name"),
    sort_order: str = typer.Option("desc", "--sort-order", help="asc or desc"),
    sync: bool = typer.Option(False, "--sync", help="Resync from the vault first"),
):
    """
    List cached evidence with the same filters as the HTTP listing.
    """
    from pydantic import ValidationError

    from ..api_clients import VaultClient
    from ..schemas.evidence import FilterState
    from ..store import get_repository
    from ..triage.query import filter_evidence
    from ..triage.sync import sync_vault

    try:
        filters = FilterState(
            categories=category or [],
            tags=tag or [],
            date_start=date_start,
            date_end=date_end,
            search_query=query,
            sort_by=sort_by,
            sort_order=sort_order,
        )
    except ValidationError as e:
        rprint(f"[red]Invalid filter: {e.errors()[0]['msg']}[/red]")
        raise typer.Exit(1)

    repository = get_repository()
    if sync:
        async def run():
            async with VaultClient() as client:
                return await sync_vault(repository, client, vault_id)

        report = asyncio.run(run())
        if not report.ok:
            rprint("[yellow]Sync failed; showing cached evidence[/yellow]")

    items = filter_evidence(repository.list_all(vault_id), filters)
    if not items:
        rprint("[yellow]No evidence found[/yellow]")
        return
    console.print(_evidence_table(f"Evidence in {vault_id} ({len(items)})", items))


@app.command()
def sync(
    vault_id: str = typer.Argument(..., help="Vault ID"),
):
    """
    Resync the local cache from a vault's object listing.
    """
    from ..api_clients import VaultClient
    from ..store import get_repository
    from ..triage.sync import sync_vault

    async def run():
        async with VaultClient() as client:
            return await sync_vault(get_repository(), client, vault_id)

    report = asyncio.run(run())
    if not report.ok:
        rprint(f"[red]Failed to sync vault {vault_id}[/red]")
        raise typer.Exit(1)

    rprint(f"\n[green]✓ Synced:[/green] {vault_id}")
    rprint(f"  Remote objects: {report.remote_objects}")
    rprint(f"  New: {len(report.created)}")
    rprint(f"  Updated: {len(report.updated)}")
    rprint(f"  Classifications restored: {len(report.restored)}")


@app.command()
def classify(
    vault_id: str = typer.Argument(..., help="Vault ID"),
    evidence_id: str = typer.Argument(..., help="Evidence or vault object ID"),
    wait: bool = typer.Option(False, "--wait", "-w", help="Retry while the vault is still processing"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """
    Classify one evidence record.

    Examples:
        # Single attempt
        evidence-triage classify VAULT_ID OBJECT_ID

        # Retry every 5s (up to 24 times) until ingestion finishes
        evidence-triage classify VAULT_ID OBJECT_ID --wait
    """
    from ..api_clients.base import APIError, ConfigurationError
    from ..triage.errors import EvidenceNotFoundError, StillProcessingError
    from ..triage.reconciler import wait_for_classification

    _setup_logging(verbose)

    async def run():
        reconciler = _reconciler()
        if wait:
            outcome = await wait_for_classification(reconciler, vault_id, evidence_id)
            if not outcome.completed:
                raise StillProcessingError(outcome.last_status or "processing")
            return outcome.result
        return await reconciler.reconcile(vault_id, evidence_id)

    try:
        result = asyncio.run(run())
    except StillProcessingError as e:
        rprint(f"[yellow]Document is still {e.status}; retry later[/yellow]")
        raise typer.Exit(2)
    except EvidenceNotFoundError:
        rprint(f"[red]Evidence not found: {evidence_id}[/red]")
        raise typer.Exit(1)
    except (APIError, ConfigurationError) as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)

    c = result.classification
    rprint(f"\n[green]✓ Classified:[/green] {result.evidence.filename}")
    rprint(f"  Category: {c.category.value}")
    rprint(f"  Confidence: {c.confidence:.2f} ({result.source.value})")
    rprint(f"  Relevance: {c.relevance_score}")
    rprint(f"  Tags: {', '.join(c.suggested_tags) or '-'}")
    if c.date_detected:
        rprint(f"  Date: {c.date_detected}")
    rprint(f"  Summary: {c.summary}")


@app.command()
def search(
    vault_id: str = typer.Argument(..., help="Vault ID"),
    query: str = typer.Argument(..., help="Search query"),
    top_k: Optional[int] = typer.Option(None, "--top-k", "-k", help="Number of chunks to retrieve"),
):
    """
    Search a vault's evidence (hybrid search, local fallback).
    """
    from ..api_clients import VaultClient
    from ..store import get_repository
    from ..triage.errors import InvalidRequestError
    from ..triage.query import search_evidence

    async def run():
        async with VaultClient() as client:
            return await search_evidence(
                get_repository(),
                client,
                vault_id,
                query,
                top_k=top_k or get_settings().search_top_k,
            )

    try:
        outcome = asyncio.run(run())
    except InvalidRequestError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)

    rprint(f"\n🔍 Searching: [cyan]{query}[/cyan] ({'semantic' if outcome.semantic else 'local fallback'})")
    if not outcome.evidence:
        rprint("[yellow]No results found[/yellow]")
        return
    console.print(_evidence_table(f"Results ({outcome.total})", outcome.evidence, score_attr="search_relevance"))


@app.command("clear-cache")
def clear_cache(
    vault_id: str = typer.Argument(..., help="Vault ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """
    Drop the local cache of a vault. Vault objects are not touched.
    """
    from ..store import get_repository

    if not yes and not typer.confirm(f"Clear cached evidence for {vault_id}?"):
        raise typer.Exit(1)

    removed = get_repository().clear(vault_id)
    rprint(f"[green]✓ Removed {removed} cached records[/green]")


if __name__ == "__main__":
    app()
