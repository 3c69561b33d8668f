"""Models for products read from a storefront's public products.json feed."""

from dataclasses import dataclass, field
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class _FeedModel(BaseModel):
    """Base for feed records.

    Unknown feed fields are kept so exports stay verbatim, and numeric
    prices are coerced to strings (the feed usually sends "19.99").
    A ``null`` for a field that has a non-null default falls back to that
    default, so sparse records still load and upload validation reports
    the missing title or price.
    """

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    @model_validator(mode="before")
    @classmethod
    def _null_to_default(cls, data):
        if not isinstance(data, dict):
            return data
        fields = cls.model_fields
        return {
            key: value
            for key, value in data.items()
            if value is not None or key not in fields or fields[key].default is None
        }


class ScrapedVariant(_FeedModel):
    """A single purchasable variant of a scraped product."""

    id: int | None = None
    product_id: int | None = None
    title: str = ""
    option1: str | None = None
    option2: str | None = None
    option3: str | None = None
    price: str = ""
    compare_at_price: str | None = None
    sku: str | None = None
    grams: int = 0
    available: bool = False
    requires_shipping: bool = True
    taxable: bool = True
    position: int = 1


class ScrapedImage(_FeedModel):
    """Product image as listed in the feed."""

    id: int | None = None
    product_id: int | None = None
    variant_ids: list[int] = Field(default_factory=list)
    src: str = ""
    width: int | None = None
    height: int | None = None
    alt: str | None = None
    position: int = 1


class ScrapedProduct(_FeedModel):
    """Product record from the storefront feed.

    ``url`` is not part of the feed; the scraper derives it from the handle
    once per product and never touches the record afterwards.
    """

    id: int | None = None
    title: str = ""
    handle: str = ""
    body_html: str | None = ""
    vendor: str = ""
    product_type: str = ""
    tags: list[str] = Field(default_factory=list)
    variants: list[ScrapedVariant] = Field(default_factory=list)
    images: list[ScrapedImage] = Field(default_factory=list)
    url: str | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tag_string(cls, value):
        # Older feeds send tags as one comma-separated string
        if isinstance(value, str):
            return [tag.strip() for tag in value.split(",") if tag.strip()]
        return value


@dataclass
class ScrapeResult:
    """Result of a complete (non-streaming) storefront scrape."""

    products: List[ScrapedProduct]
    store_domain: str
    warnings: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.products)
