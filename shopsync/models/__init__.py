"""Pydantic models for scraped records, upload state and scrape events."""

from shopsync.models.storefront_models import (
    ScrapedImage,
    ScrapedProduct,
    ScrapedVariant,
    ScrapeResult,
)
from shopsync.models.upload_models import (
    DeleteResult,
    ProductUploadInput,
    ProductValidation,
    UploadProgress,
    VariantUploadInput,
)

__all__ = [
    "ScrapedImage",
    "ScrapedProduct",
    "ScrapedVariant",
    "ScrapeResult",
    "DeleteResult",
    "ProductUploadInput",
    "ProductValidation",
    "UploadProgress",
    "VariantUploadInput",
]
