"""Destination catalog endpoints: upload, delete and list products."""

import asyncio
import logging
from typing import Any, AsyncIterator, Sequence

import httpx
from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse, StreamingResponse

from shopsync.api.scrape import SSE_HEADERS
from shopsync.config import get_settings
from shopsync.constants import DEFAULT_PRODUCT_LIST_PAGE_SIZE, MAX_PRODUCT_LIST_PAGE_SIZE
from shopsync.models.api_models import DeleteProductsRequest, UploadScrapedRequest
from shopsync.models.events import format_sse
from shopsync.models.storefront_models import ScrapedProduct
from shopsync.models.upload_models import UploadProgress
from shopsync.services.admin_client import (
    AdminAPIError,
    AdminConfigError,
    ShopifyAdminClient,
    get_admin_client,
)
from shopsync.services.admin_operations import delete_products, fetch_products
from shopsync.services.product_uploader import upload_products, validate_products
from shopsync.tasks import is_shutting_down, track_background_task

logger = logging.getLogger(__name__)
router = APIRouter()


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, **extra},
    )


def _prepare_upload(
    body: UploadScrapedRequest,
) -> tuple[ShopifyAdminClient | None, JSONResponse | None]:
    """Validate an upload request and build the admin client.

    Returns the client, or the error response to send instead.
    """
    if is_shutting_down():
        return None, _error(503, "Server is shutting down")

    if body.products is None:
        return None, _error(400, "Products array is required")

    validation = validate_products(body.products)
    if not validation.valid:
        logger.warning(
            "Rejected upload of %d products: %d validation errors",
            len(body.products),
            len(validation.errors),
        )
        return None, _error(400, "Product validation failed", details=validation.errors)

    try:
        return get_admin_client(), None
    except AdminConfigError as e:
        logger.error("Admin API is not configured: %s", e)
        return None, _error(500, str(e))


def _upload_options(body: UploadScrapedRequest) -> dict[str, Any]:
    settings = get_settings()
    return {
        "batch_size": body.batch_size or settings.upload_batch_size,
        "delay_between_batches_ms": (
            body.delay_between_batches
            if body.delay_between_batches is not None
            else settings.upload_batch_delay_ms
        ),
        "media_settle_delay": settings.upload_media_settle_delay_seconds,
    }


@router.post("/upload-scraped")
async def upload_scraped(body: UploadScrapedRequest):
    """Upload scraped products in batches and answer with the final progress."""
    client, error = _prepare_upload(body)
    if error is not None:
        return error

    try:
        progress = await upload_products(client, body.products, **_upload_options(body))
    except Exception as e:
        logger.error("Upload failed: %s", e, exc_info=True)
        return _error(500, str(e) or "Failed to upload products")

    logger.info(
        "Uploaded %d/%d products (%d failed)",
        progress.completed,
        progress.total,
        progress.failed,
    )
    return {"success": True, "result": progress.model_dump(by_alias=True)}


async def _upload_frames(
    client: ShopifyAdminClient,
    products: Sequence[ScrapedProduct],
    options: dict[str, Any],
) -> AsyncIterator[str]:
    """Run the upload in a task and relay its progress callbacks as SSE frames."""
    queue: asyncio.Queue = asyncio.Queue()

    def on_progress(progress: UploadProgress) -> None:
        queue.put_nowait({"type": "progress", **progress.model_dump(by_alias=True)})

    async def run() -> None:
        try:
            result = await upload_products(
                client, products, on_progress=on_progress, **options
            )
        except Exception as e:
            logger.error("Streamed upload failed: %s", e, exc_info=True)
            queue.put_nowait({"type": "error", "error": str(e) or "Failed to upload products"})
        else:
            queue.put_nowait({"type": "done", "result": result.model_dump(by_alias=True)})
        finally:
            queue.put_nowait(None)

    # The upload keeps running if the client goes away mid-stream
    track_background_task(asyncio.create_task(run()))

    while True:
        frame = await queue.get()
        if frame is None:
            break
        yield format_sse(frame)


@router.post("/upload-scraped-stream")
async def upload_scraped_stream(body: UploadScrapedRequest):
    """Upload scraped products, streaming per-batch progress as server-sent events."""
    client, error = _prepare_upload(body)
    if error is not None:
        return error

    return StreamingResponse(
        _upload_frames(client, body.products, _upload_options(body)),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/delete-products")
async def delete_products_endpoint(body: DeleteProductsRequest):
    """Delete products from the destination store, one id at a time."""
    if not body.product_ids:
        return _error(400, "Product IDs array is required")

    try:
        client = get_admin_client()
    except AdminConfigError as e:
        logger.error("Admin API is not configured: %s", e)
        return _error(500, str(e))

    result = await delete_products(client, body.product_ids)
    logger.info(
        "Deleted %d of %d products", result.successful, len(body.product_ids)
    )
    return {"success": True, "result": result.model_dump(by_alias=True)}


@router.get("/products")
async def list_products(
    first: int = Query(
        DEFAULT_PRODUCT_LIST_PAGE_SIZE, ge=1, le=MAX_PRODUCT_LIST_PAGE_SIZE
    ),
    after: str | None = None,
    query: str | None = None,
):
    """One cursor page of the destination catalog."""
    try:
        client = get_admin_client()
        page = await fetch_products(client, first=first, after=after, query=query)
    except (AdminAPIError, httpx.HTTPError) as e:
        logger.error("Failed to fetch products: %s", e)
        return _error(500, str(e))

    return {
        "success": True,
        "products": [product.model_dump(by_alias=True) for product in page.products],
        "pageInfo": page.page_info.model_dump(by_alias=True),
    }
