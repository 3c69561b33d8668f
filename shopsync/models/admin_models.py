"""Products as returned by the destination store's Admin GraphQL API."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _AdminModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AdminImage(_AdminModel):
    id: str | None = None
    url: str
    alt_text: str = ""


class AdminVariant(_AdminModel):
    id: str
    title: str = ""
    price: str = "0.00"
    sku: str = ""
    compare_at_price: str = ""
    inventory_quantity: int = 0


class AdminProduct(_AdminModel):
    id: str
    title: str
    handle: str = ""
    description_html: str = ""
    vendor: str = ""
    product_type: str = ""
    tags: list[str] = Field(default_factory=list)
    status: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    images: list[AdminImage] = Field(default_factory=list)
    variants: list[AdminVariant] = Field(default_factory=list)


class PageInfo(_AdminModel):
    has_next_page: bool = False
    end_cursor: str | None = None


class ProductPage(_AdminModel):
    products: list[AdminProduct] = Field(default_factory=list)
    page_info: PageInfo = Field(default_factory=PageInfo)
