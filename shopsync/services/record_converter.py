"""Conversions between scraped feed records, the upload schema and exports."""

import json
import re
from datetime import date
from typing import Any, Iterable, Literal

from shopsync.models.admin_models import AdminProduct
from shopsync.models.storefront_models import ScrapedImage, ScrapedProduct, ScrapedVariant
from shopsync.models.upload_models import ProductUploadInput, VariantUploadInput

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")
_GID_NUMBER_RE = re.compile(r"(\d+)$")

# &amp; last so "&amp;lt;" decodes to "&lt;", not "<"
_ENTITIES = (
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&apos;", "'"),
    ("&#039;", "'"),
    ("&amp;", "&"),
)


def to_upload_input(product: ScrapedProduct) -> ProductUploadInput:
    """Map a scraped product onto the destination upload schema."""
    return ProductUploadInput(
        title=product.title,
        description_html=product.body_html or "",
        vendor=product.vendor,
        product_type=product.product_type,
        tags=list(product.tags),
        variants=[
            VariantUploadInput(
                price=variant.price,
                compare_at_price=variant.compare_at_price or None,
                sku=variant.sku or None,
                requires_shipping=variant.requires_shipping,
                taxable=variant.taxable,
                weight=variant.grams,
                weight_unit="GRAMS",
            )
            for variant in product.variants
        ],
    )


def strip_html(html: str | None) -> str:
    """Approximate plain text of a product description.

    Removes tags with a pattern, decodes the common named entities and
    collapses whitespace. Numeric character references other than
    ``&#039;`` are left as-is and malformed markup may leak through.
    """
    if not html:
        return ""
    text = _TAG_RE.sub("", html)
    for entity, replacement in _ENTITIES:
        text = text.replace(entity, replacement)
    return _WHITESPACE_RE.sub(" ", text).strip()


def _parse_price(value: str | None) -> float:
    try:
        return float(value) if value else 0.0
    except (TypeError, ValueError):
        return 0.0


def to_jsonl_record(product: ScrapedProduct) -> dict[str, Any]:
    """Flat search-index record for one product."""
    first_variant = product.variants[0] if product.variants else None
    first_image = product.images[0] if product.images else None
    return {
        "product_id": product.id,
        "title": product.title,
        "text": strip_html(product.body_html),
        "price": _parse_price(first_variant.price if first_variant else None),
        "url": product.url or "",
        "image": first_image.src if first_image else "",
        "in_stock": any(variant.available for variant in product.variants),
        "category": product.product_type,
        "tags": list(product.tags),
    }


def export_json(products: Iterable[ScrapedProduct]) -> str:
    """Pretty-printed ``{"products": [...]}`` document, re-uploadable as-is."""
    payload = {"products": [product.model_dump(mode="json") for product in products]}
    return json.dumps(payload, indent=2, ensure_ascii=False)


def export_jsonl(products: Iterable[ScrapedProduct]) -> str:
    """One JSON record per line, see to_jsonl_record()."""
    lines = [
        json.dumps(to_jsonl_record(product), ensure_ascii=False) for product in products
    ]
    return "".join(f"{line}\n" for line in lines)


def export_filename(
    store_domain: str | None,
    fmt: Literal["json", "jsonl"],
    on: date | None = None,
) -> str:
    """Download name like ``shop.com-products-2024-05-01.jsonl``."""
    stamp = (on or date.today()).isoformat()
    return f"{store_domain or 'products'}-products-{stamp}.{fmt}"


def _numeric_id(gid: str | None) -> int | None:
    """``gid://shopify/Product/123`` -> 123."""
    if not gid:
        return None
    match = _GID_NUMBER_RE.search(gid)
    return int(match.group(1)) if match else None


def admin_to_scraped(product: AdminProduct) -> ScrapedProduct:
    """Map a destination-store product back into the scraped feed shape."""
    product_id = _numeric_id(product.id)
    return ScrapedProduct(
        id=product_id,
        title=product.title,
        handle=product.handle,
        body_html=product.description_html,
        vendor=product.vendor,
        product_type=product.product_type,
        tags=list(product.tags),
        variants=[
            ScrapedVariant(
                id=_numeric_id(variant.id),
                product_id=product_id,
                title=variant.title,
                price=variant.price,
                compare_at_price=variant.compare_at_price or None,
                sku=variant.sku or None,
                available=variant.inventory_quantity > 0,
                position=position,
            )
            for position, variant in enumerate(product.variants, start=1)
        ],
        images=[
            ScrapedImage(
                id=_numeric_id(image.id),
                product_id=product_id,
                src=image.url,
                alt=image.alt_text or None,
                position=position,
            )
            for position, image in enumerate(product.images, start=1)
        ],
    )
