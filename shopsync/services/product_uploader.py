"""Re-create scraped products in the destination store.

Products are uploaded in fixed-size batches. Every product in a batch is
submitted at once and awaited together; one product failing never affects
the others. Only product creation decides success. Variant prices, SKUs and
images are best-effort follow-ups that are logged when they fail.
"""

import asyncio
import time
from typing import Any, Callable, Sequence

import logfire

from shopsync.constants import (
    MEDIA_SETTLE_DELAY_SECONDS,
    UPLOAD_BATCH_DELAY_MS,
    UPLOAD_BATCH_SIZE,
)
from shopsync.models.storefront_models import ScrapedProduct
from shopsync.models.upload_models import (
    ProductUploadInput,
    ProductUploadResult,
    ProductValidation,
    UploadProgress,
)
from shopsync.services.admin_client import ShopifyAdminClient
from shopsync.services.admin_operations import (
    add_product_media,
    create_product,
    create_variant,
    get_default_variant_id,
    set_variant_sku,
    update_variant_price,
)
from shopsync.services.record_converter import to_upload_input

ProgressCallback = Callable[[UploadProgress], None]


def validate_products(products: Sequence[ScrapedProduct] | None) -> ProductValidation:
    """Check every product before any upload starts.

    Collects all violations instead of stopping at the first one.
    """
    if not products:
        return ProductValidation(valid=False, errors=["No products found in data"])

    errors: list[str] = []
    for index, product in enumerate(products):
        if not product.title:
            errors.append(f"Product at index {index} is missing title")
        if not product.variants:
            errors.append(f'Product "{product.title}" has no variants')
        for variant_index, variant in enumerate(product.variants):
            if not variant.price:
                errors.append(
                    f'Product "{product.title}" variant {variant_index} is missing price'
                )
    return ProductValidation(valid=not errors, errors=errors)


async def _apply_variants(
    client: ShopifyAdminClient, product_id: str, upload: ProductUploadInput
) -> None:
    """Price the auto-created default variant and add the remaining ones."""
    first, *others = upload.variants

    default_variant_id = await get_default_variant_id(client, product_id)
    if default_variant_id:
        await update_variant_price(client, product_id, default_variant_id, first)
        await set_variant_sku(client, default_variant_id, first.sku)

    for variant in others:
        variant_id = await create_variant(client, product_id, variant)
        if variant_id:
            await set_variant_sku(client, variant_id, variant.sku)


async def _attach_images(
    client: ShopifyAdminClient,
    product_id: str,
    product: ScrapedProduct,
    settle_delay: float,
) -> None:
    # The new product is not always visible to the media endpoint right away
    await asyncio.sleep(settle_delay)
    media = [
        {"originalSource": image.src, "alt": image.alt or product.title or ""}
        for image in product.images
    ]
    payload = await add_product_media(client, product_id, media)
    if payload.get("mediaUserErrors"):
        logfire.warn(
            "Media errors for product",
            product_title=product.title,
            product_id=product_id,
            media_user_errors=payload["mediaUserErrors"],
        )
    else:
        logfire.info(
            "Images attached",
            product_title=product.title,
            product_id=product_id,
            image_count=len(payload.get("media") or []),
        )


async def upload_single_product(
    client: ShopifyAdminClient,
    product: ScrapedProduct,
    *,
    media_settle_delay: float = MEDIA_SETTLE_DELAY_SECONDS,
) -> ProductUploadResult:
    """Create one product and apply its variants and images.

    Never raises: a failed creation is returned as an unsuccessful result.
    """
    start_time = time.time()
    upload = to_upload_input(product)

    try:
        product_id = await create_product(client, upload.product_create_input())
    except Exception as e:
        logfire.error(
            "Product creation failed",
            product_title=product.title,
            error=str(e),
            error_type=type(e).__name__,
        )
        return ProductUploadResult(success=False, error=str(e))

    if upload.variants:
        try:
            await _apply_variants(client, product_id, upload)
        except Exception as e:
            logfire.error(
                "Failed to create/update variants",
                product_title=product.title,
                product_id=product_id,
                variant_count=len(upload.variants),
                error=str(e),
                error_type=type(e).__name__,
            )

    if product.images:
        try:
            await _attach_images(client, product_id, product, media_settle_delay)
        except Exception as e:
            logfire.error(
                "Failed to add images",
                product_title=product.title,
                product_id=product_id,
                image_count=len(product.images),
                error=str(e),
                error_type=type(e).__name__,
            )

    logfire.info(
        "Product uploaded",
        product_title=product.title,
        product_id=product_id,
        variant_count=len(upload.variants),
        image_count=len(product.images),
        response_time_ms=(time.time() - start_time) * 1000,
    )
    return ProductUploadResult(success=True, product_id=product_id)


async def upload_products(
    client: ShopifyAdminClient,
    products: Sequence[ScrapedProduct],
    *,
    batch_size: int = UPLOAD_BATCH_SIZE,
    delay_between_batches_ms: int = UPLOAD_BATCH_DELAY_MS,
    on_progress: ProgressCallback | None = None,
    media_settle_delay: float = MEDIA_SETTLE_DELAY_SECONDS,
) -> UploadProgress:
    """Upload products in concurrent batches and report aggregate progress.

    Args:
        client: Destination Admin API client
        products: Products to create (validate with validate_products() first)
        batch_size: Products submitted together per batch
        delay_between_batches_ms: Pause after every batch but the last
        on_progress: Receives a snapshot of the progress after each batch
        media_settle_delay: Wait after creation before attaching images (seconds)

    Returns:
        Final UploadProgress for this run
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    start_time = time.time()
    progress = UploadProgress(total=len(products))
    logfire.info(
        "Starting product upload",
        total=progress.total,
        batch_size=batch_size,
        delay_between_batches_ms=delay_between_batches_ms,
    )

    for start in range(0, len(products), batch_size):
        batch = products[start : start + batch_size]
        results = await asyncio.gather(
            *(
                upload_single_product(
                    client, product, media_settle_delay=media_settle_delay
                )
                for product in batch
            ),
            return_exceptions=True,
        )

        for product, result in zip(batch, results):
            if isinstance(result, BaseException):
                progress.record_failure(product.title, str(result))
            elif result.success:
                progress.record_success()
            else:
                progress.record_failure(product.title, result.error or "Unknown error")

        progress.current = batch[-1].title
        logfire.info(
            "Upload batch finished",
            batch_index=start // batch_size,
            completed=progress.completed,
            failed=progress.failed,
            total=progress.total,
        )
        if on_progress is not None:
            on_progress(progress.snapshot())

        if start + batch_size < len(products):
            await asyncio.sleep(delay_between_batches_ms / 1000)

    logfire.info(
        "Product upload finished",
        total=progress.total,
        completed=progress.completed,
        failed=progress.failed,
        total_time_ms=(time.time() - start_time) * 1000,
    )
    return progress


async def upload_products_from_json(
    client: ShopifyAdminClient,
    data: dict[str, Any],
    **options: Any,
) -> UploadProgress:
    """Upload a ``{"products": [...]}`` document such as export_json() writes."""
    products = [ScrapedProduct.model_validate(item) for item in data.get("products") or []]
    return await upload_products(client, products, **options)
