"""Scrape progress events streamed to the browser over server-sent events.

Each event is tagged by ``type``. Field names on the wire are camelCase
where the browser client expects them (``storeDomain``, ``chunkIndex``).
"""

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from shopsync.models.storefront_models import ScrapedProduct


class _Event(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class StartEvent(_Event):
    type: Literal["start"] = "start"
    domain: str


class FetchingEvent(_Event):
    type: Literal["fetching"] = "fetching"
    page: int
    total: int


class ProgressEvent(_Event):
    type: Literal["progress"] = "progress"
    page: int
    fetched: int
    total: int


class WaitingEvent(_Event):
    """Emitted before every timed suspension of the scraper."""

    type: Literal["waiting"] = "waiting"
    delay: int = Field(..., ge=0, description="Wait duration in milliseconds")
    page: int
    total: int
    reason: Literal["pagination", "rate_limit"] = "pagination"
    attempt: int | None = None


class CompleteEvent(_Event):
    type: Literal["complete"] = "complete"
    count: int
    store_domain: str = Field(..., alias="storeDomain")


class ProductsEvent(_Event):
    type: Literal["products"] = "products"
    chunk: list[ScrapedProduct]
    chunk_index: int = Field(..., alias="chunkIndex")
    total_chunks: int = Field(..., alias="totalChunks")


class DoneEvent(_Event):
    type: Literal["done"] = "done"


class WarningEvent(_Event):
    type: Literal["warning"] = "warning"
    message: str


class ErrorEvent(_Event):
    type: Literal["error"] = "error"
    error: str


ScrapeEvent = Annotated[
    Union[
        StartEvent,
        FetchingEvent,
        ProgressEvent,
        WaitingEvent,
        CompleteEvent,
        ProductsEvent,
        DoneEvent,
        WarningEvent,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]


def format_sse(payload: BaseModel | dict[str, Any]) -> str:
    """Render one ``data: <json>`` server-sent-event frame."""
    if isinstance(payload, BaseModel):
        body = payload.model_dump_json(by_alias=True)
    else:
        body = json.dumps(payload)
    return f"data: {body}\n\n"
