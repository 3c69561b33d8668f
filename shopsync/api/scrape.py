"""Storefront scraping and export endpoints.

``/scrape-stream`` is what the browser uses: it answers with a
``text/event-stream`` body carrying one ``data: <json>`` frame per scrape
event. The stream itself never fails; scrape errors arrive as an ``error``
frame. Only request validation answers with a plain JSON error.
"""

import logging
from typing import AsyncIterator

from fastapi import APIRouter
from fastapi.responses import JSONResponse, Response, StreamingResponse

from shopsync.config import get_settings
from shopsync.models.api_models import ExportRequest, ScrapeRequest
from shopsync.models.events import format_sse
from shopsync.services.domain import extract_domain, is_valid_store_domain
from shopsync.services.record_converter import export_filename, export_json, export_jsonl
from shopsync.services.storefront_scraper import ScrapeError, StorefrontScraper

logger = logging.getLogger(__name__)
router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

EXPORT_MEDIA_TYPES = {
    "json": "application/json",
    "jsonl": "application/x-ndjson",
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _check_domain(domain: str | None) -> JSONResponse | None:
    """JSON 400 for a missing or malformed domain, None when it is usable."""
    if not domain or not domain.strip():
        return _error(400, "Domain is required")
    if not is_valid_store_domain(domain):
        return _error(400, f"Invalid store domain: {domain}")
    return None


async def _event_frames(scraper: StorefrontScraper) -> AsyncIterator[str]:
    async for event in scraper.iter_events():
        yield format_sse(event)


@router.post("/scrape-stream")
async def scrape_stream(body: ScrapeRequest):
    """Scrape a store and stream progress as server-sent events."""
    invalid = _check_domain(body.domain)
    if invalid is not None:
        logger.warning("Rejected scrape-stream request for %r", body.domain)
        return invalid

    scraper = StorefrontScraper.from_settings(body.domain, get_settings())
    logger.info("Streaming scrape of %s", scraper.domain)
    return StreamingResponse(
        _event_frames(scraper),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/scrape")
async def scrape(body: ScrapeRequest):
    """Scrape a store and answer once with the whole catalog."""
    invalid = _check_domain(body.domain)
    if invalid is not None:
        return invalid

    scraper = StorefrontScraper.from_settings(body.domain, get_settings())
    try:
        result = await scraper.scrape()
    except ScrapeError as e:
        logger.warning("Scrape of %s failed: %s", scraper.domain, e)
        return _error(400, str(e))
    except Exception as e:
        logger.error("Unexpected error scraping %s: %s", scraper.domain, e, exc_info=True)
        return _error(500, str(e) or "Unknown error occurred")

    return {
        "success": True,
        "products": [product.model_dump(mode="json") for product in result.products],
        "count": result.count,
        "storeDomain": result.store_domain,
        "warnings": result.warnings,
    }


@router.post("/export")
async def export_products(body: ExportRequest):
    """Download scraped products as a JSON document or JSON-Lines file."""
    if body.format == "jsonl":
        content = export_jsonl(body.products)
    else:
        content = export_json(body.products)

    store_domain = extract_domain(body.store_domain) if body.store_domain else None
    filename = export_filename(store_domain, body.format)
    logger.info("Exporting %d products as %s", len(body.products), filename)
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[body.format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
