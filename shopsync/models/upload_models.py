"""Models for uploading scraped products to the destination store."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Serialized as camelCase for the Admin API and the browser client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VariantUploadInput(_CamelModel):
    """Variant attributes carried into the destination schema.

    Price and weight are always present. ``sku`` travels separately because
    the bulk variant mutations do not accept it.
    """

    price: str
    compare_at_price: str | None = None
    sku: str | None = None
    requires_shipping: bool = True
    taxable: bool = True
    weight: float = 0
    weight_unit: Literal["GRAMS", "KILOGRAMS", "POUNDS", "OUNCES"] = "GRAMS"


class ProductUploadInput(_CamelModel):
    """Destination schema for one product."""

    title: str
    description_html: str = ""
    vendor: str = ""
    product_type: str = ""
    tags: list[str] = Field(default_factory=list)
    variants: list[VariantUploadInput] = Field(default_factory=list)

    def product_create_input(self) -> dict:
        """Fields accepted by ``productCreate`` (variants are added afterwards)."""
        return {
            "title": self.title,
            "descriptionHtml": self.description_html,
            "vendor": self.vendor,
            "productType": self.product_type,
            "tags": self.tags,
            "status": "ACTIVE",
        }


class UploadError(_CamelModel):
    product_title: str
    error: str


class UploadProgress(_CamelModel):
    """Aggregate state of one upload run.

    Created fresh per run and mutated in place between batches.
    ``completed + failed`` never exceeds ``total``.
    """

    total: int = Field(..., ge=0)
    completed: int = 0
    failed: int = 0
    current: str | None = None
    errors: list[UploadError] = Field(default_factory=list)

    def record_success(self) -> None:
        self.completed += 1

    def record_failure(self, product_title: str, error: str) -> None:
        self.failed += 1
        self.errors.append(UploadError(product_title=product_title, error=error))

    def snapshot(self) -> "UploadProgress":
        return self.model_copy(deep=True)


class ProductUploadResult(BaseModel):
    """Outcome of uploading a single product."""

    success: bool
    product_id: str | None = None
    error: str | None = None


class ProductValidation(BaseModel):
    """Every violation found while validating a product list."""

    valid: bool
    errors: list[str] = Field(default_factory=list)


class DeleteError(_CamelModel):
    product_id: str
    error: str


class DeleteResult(_CamelModel):
    successful: int = 0
    failed: int = 0
    errors: list[DeleteError] = Field(default_factory=list)
