"""Request bodies accepted by the HTTP API."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shopsync.models.storefront_models import ScrapedProduct


class _RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScrapeRequest(_RequestModel):
    """Store to scrape; any URL-ish form is accepted and normalized."""

    domain: str | None = None


class UploadScrapedRequest(_RequestModel):
    # Optional so a missing list yields the API's own 400, not a 422
    products: list[ScrapedProduct] | None = None
    batch_size: int | None = Field(default=None, ge=1)
    delay_between_batches: int | None = Field(
        default=None, ge=0, description="Milliseconds between batches"
    )


class DeleteProductsRequest(_RequestModel):
    product_ids: list[str] | None = None


class ExportRequest(_RequestModel):
    products: list[ScrapedProduct] = Field(default_factory=list)
    format: Literal["json", "jsonl"] = "json"
    store_domain: str | None = None
