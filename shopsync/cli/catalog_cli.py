"""Typer CLI for scraping, uploading, deleting and pulling catalogs."""

import os

os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

from pathlib import Path

from dotenv import load_dotenv

# .env.local first so its values win (load_dotenv never overrides)
load_dotenv(Path.cwd() / ".env.local")
load_dotenv(Path.cwd() / ".env")

import asyncio
import json
from enum import Enum
from typing import List, Optional

import questionary
import typer

from shopsync.config import get_settings
from shopsync.models.events import (
    CompleteEvent,
    ErrorEvent,
    FetchingEvent,
    ProductsEvent,
    ProgressEvent,
    WaitingEvent,
    WarningEvent,
)
from shopsync.models.storefront_models import ScrapedProduct
from shopsync.models.upload_models import UploadProgress
from shopsync.services.admin_client import AdminConfigError, get_admin_client
from shopsync.services.admin_operations import delete_products, fetch_products
from shopsync.services.domain import is_valid_store_domain
from shopsync.services.product_uploader import upload_products, validate_products
from shopsync.services.record_converter import (
    admin_to_scraped,
    export_filename,
    export_json,
    export_jsonl,
)
from shopsync.services.storefront_scraper import StorefrontScraper

app = typer.Typer(help="Copy storefront catalogs into a destination store.")


class ExportFormat(str, Enum):
    json = "json"
    jsonl = "jsonl"


def _run_async_with_cleanup(coro):
    """
    Run a coroutine on a fresh event loop and tear the loop down afterwards.

    Pending tasks are cancelled and async generators closed even when the
    coroutine raises, so no sockets are left open.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        try:
            pending = [task for task in asyncio.all_tasks(loop) if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            loop.close()
            asyncio.set_event_loop(None)


def _describe(event) -> str | None:
    """One terminal line per progress event; None for events not worth printing."""
    if isinstance(event, FetchingEvent):
        return f"Fetching page {event.page}... ({event.total} products so far)"
    if isinstance(event, ProgressEvent):
        return f"✓ Page {event.page}: {event.fetched} products (total {event.total})"
    if isinstance(event, WaitingEvent):
        if event.reason == "rate_limit":
            return (
                f"Rate limited on page {event.page}, retrying in "
                f"{event.delay / 1000:.1f}s (attempt {event.attempt})"
            )
        return None
    if isinstance(event, WarningEvent):
        return f"⚠ {event.message}"
    if isinstance(event, CompleteEvent):
        return f"✓ Scraped {event.count} products from {event.store_domain}"
    return None


def _print_progress(progress: UploadProgress) -> None:
    done = progress.completed + progress.failed
    typer.echo(
        f"  {done}/{progress.total} processed "
        f"({progress.completed} ok, {progress.failed} failed) - last: {progress.current}"
    )


def _load_products(file: Path) -> List[ScrapedProduct]:
    """Read a JSON export: ``{"products": [...]}`` or a bare list."""
    # JSON-Lines exports hold flat search records, not products
    if file.suffix == ".jsonl":
        raise ValueError("upload needs a JSON export, not JSON-Lines")

    data = json.loads(file.read_text(encoding="utf-8"))
    items = (data.get("products") or []) if isinstance(data, dict) else data
    return [ScrapedProduct.model_validate(item) for item in items]


def _admin_client_or_exit():
    try:
        return get_admin_client()
    except AdminConfigError as e:
        typer.echo(f"✗ {e}", err=True)
        raise typer.Exit(1)


@app.command()
def scrape(
    domain: str = typer.Argument(..., help="Store domain or any URL on the store"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output file (defaults to a dated export name)"
    ),
    fmt: ExportFormat = typer.Option(ExportFormat.json, "--format", "-f"),
):
    """Scrape a store's public catalog and save it to a file."""
    if not is_valid_store_domain(domain):
        typer.echo(f"✗ Invalid store domain: {domain}", err=True)
        raise typer.Exit(1)

    scraper = StorefrontScraper.from_settings(domain, get_settings())
    products: List[ScrapedProduct] = []

    async def run() -> str | None:
        async for event in scraper.iter_events():
            if isinstance(event, ErrorEvent):
                return event.error
            if isinstance(event, ProductsEvent):
                products.extend(event.chunk)
                continue
            line = _describe(event)
            if line:
                typer.echo(line)
        return None

    typer.echo(f"Scraping {scraper.domain}...")
    error = _run_async_with_cleanup(run())
    if error:
        typer.echo(f"✗ Error scraping store: {error}", err=True)
        raise typer.Exit(1)

    path = output or Path(export_filename(scraper.domain, fmt.value))
    content = export_jsonl(products) if fmt is ExportFormat.jsonl else export_json(products)
    path.write_text(content, encoding="utf-8")
    typer.echo(f"✓ Saved {len(products)} products to {path}")


@app.command()
def upload(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", min=1),
    delay_ms: Optional[int] = typer.Option(
        None, "--delay-ms", min=0, help="Pause between batches (milliseconds)"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Upload products from a scrape export to the destination store."""
    try:
        products = _load_products(file)
    except ValueError as e:
        typer.echo(f"✗ Could not read {file}: {e}", err=True)
        raise typer.Exit(1)

    validation = validate_products(products)
    if not validation.valid:
        typer.echo("✗ Product validation failed:", err=True)
        for error in validation.errors:
            typer.echo(f"  - {error}", err=True)
        raise typer.Exit(1)

    client = _admin_client_or_exit()
    if not yes:
        confirmed = questionary.confirm(
            f"Upload {len(products)} products to {client.store_domain}?",
            default=False,
        ).ask()
        if not confirmed:
            typer.echo("Upload cancelled.")
            raise typer.Exit(0)

    settings = get_settings()
    typer.echo(f"Uploading {len(products)} products to {client.store_domain}...")
    progress = _run_async_with_cleanup(
        upload_products(
            client,
            products,
            batch_size=batch_size or settings.upload_batch_size,
            delay_between_batches_ms=(
                delay_ms if delay_ms is not None else settings.upload_batch_delay_ms
            ),
            on_progress=_print_progress,
            media_settle_delay=settings.upload_media_settle_delay_seconds,
        )
    )

    typer.echo(f"✓ Uploaded {progress.completed}/{progress.total} products")
    if progress.failed:
        typer.echo(f"✗ {progress.failed} products failed:", err=True)
        for error in progress.errors:
            typer.echo(f"  - {error.product_title}: {error.error}", err=True)
        raise typer.Exit(1)


@app.command()
def delete(
    product_ids: List[str] = typer.Argument(..., help="Product GIDs to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Delete products from the destination store."""
    client = _admin_client_or_exit()
    if not yes:
        confirmed = questionary.confirm(
            f"Delete {len(product_ids)} products from {client.store_domain}?",
            default=False,
        ).ask()
        if not confirmed:
            typer.echo("Delete cancelled.")
            raise typer.Exit(0)

    result = _run_async_with_cleanup(delete_products(client, product_ids))
    typer.echo(f"✓ Deleted {result.successful} products")
    if result.failed:
        typer.echo(f"✗ {result.failed} deletes failed:", err=True)
        for error in result.errors:
            typer.echo(f"  - {error.product_id}: {error.error}", err=True)
        raise typer.Exit(1)


@app.command()
def pull(
    output: Optional[Path] = typer.Option(None, "--output", "-o"),
    first: int = typer.Option(50, "--first", min=1, max=250, help="Products per request"),
):
    """Export the destination store's catalog as JSON-Lines."""
    client = _admin_client_or_exit()

    async def fetch_all() -> List[ScrapedProduct]:
        products: List[ScrapedProduct] = []
        cursor = None
        while True:
            page = await fetch_products(client, first=first, after=cursor)
            products.extend(admin_to_scraped(product) for product in page.products)
            typer.echo(f"Fetched {len(products)} products...")
            if not page.page_info.has_next_page:
                return products
            cursor = page.page_info.end_cursor

    try:
        products = _run_async_with_cleanup(fetch_all())
    except Exception as e:
        typer.echo(f"✗ Error fetching products: {e}", err=True)
        raise typer.Exit(1)

    path = output or Path(export_filename(client.store_domain, "jsonl"))
    path.write_text(export_jsonl(products), encoding="utf-8")
    typer.echo(f"✓ Saved {len(products)} products to {path}")


if __name__ == "__main__":
    app()
