"""Tests for record conversion and export."""

import json
from datetime import date

import pytest
from hypothesis import given, strategies as st

from shopsync.models.storefront_models import ScrapedProduct
from shopsync.services.admin_operations import parse_product_node
from shopsync.services.record_converter import (
    admin_to_scraped,
    export_filename,
    export_json,
    export_jsonl,
    strip_html,
    to_jsonl_record,
    to_upload_input,
)


class TestStripHtml:
    """Test strip_html()."""

    def test_entities_and_tags(self):
        assert strip_html("<p>Hello&nbsp;World</p>") == "Hello World"

    def test_whitespace_collapses(self):
        assert strip_html("<p>One</p>\n\n<p>Two</p>") == "One Two"

    @pytest.mark.parametrize(
        "html,expected",
        [
            ("Tom &amp; Jerry", "Tom & Jerry"),
            ("&lt;b&gt;", "<b>"),
            ("&quot;quoted&quot;", '"quoted"'),
            ("it&#039;s", "it's"),
            ("it&apos;s", "it's"),
            ("&amp;lt;", "&lt;"),
        ],
    )
    def test_named_entities(self, html, expected):
        assert strip_html(html) == expected

    @pytest.mark.parametrize("html", ["", None])
    def test_empty(self, html):
        assert strip_html(html) == ""

    @given(text=st.text(alphabet=st.characters(exclude_characters="<>&")))
    def test_plain_text_only_loses_whitespace(self, text):
        """Property: text without markup survives apart from whitespace runs."""
        assert strip_html(text) == " ".join(text.split())


class TestToUploadInput:
    """Test the scraped-to-destination mapping."""

    def test_maps_product_fields(self, make_feed_product):
        product = ScrapedProduct.model_validate(make_feed_product(7, variant_count=2))

        upload = to_upload_input(product)

        assert upload.title == "Product 7"
        assert upload.description_html == "<p>Soft cotton tee</p>"
        assert upload.vendor == "Acme"
        assert upload.product_type == "Shirts"
        assert upload.tags == ["cotton", "summer"]
        assert len(upload.variants) == 2

    def test_maps_variant_fields(self, make_feed_product):
        product = ScrapedProduct.model_validate(make_feed_product(7, variant_count=2))

        first, second = to_upload_input(product).variants

        assert first.price == "19.99"
        assert first.compare_at_price == "29.99"
        assert first.sku == "SKU-7-0"
        assert first.weight == 200
        assert first.weight_unit == "GRAMS"
        assert first.requires_shipping is True
        assert second.compare_at_price is None

    def test_null_body_html(self, make_feed_product):
        product = ScrapedProduct.model_validate(make_feed_product(1, body_html=None))
        assert to_upload_input(product).description_html == ""

    def test_create_input_is_active_and_camel_cased(self, make_feed_product):
        product = ScrapedProduct.model_validate(make_feed_product(1))

        create_input = to_upload_input(product).product_create_input()

        assert create_input["status"] == "ACTIVE"
        assert create_input["descriptionHtml"] == "<p>Soft cotton tee</p>"
        assert create_input["productType"] == "Shirts"
        assert "variants" not in create_input


class TestJsonlRecords:
    """Test the flat search-index record."""

    def test_record_fields(self, make_feed_product):
        raw = make_feed_product(5, variant_count=2)
        product = ScrapedProduct.model_validate({**raw, "url": "https://shop.com/products/product-5"})

        record = to_jsonl_record(product)

        assert record == {
            "product_id": 5,
            "title": "Product 5",
            "text": "Soft cotton tee",
            "price": 19.99,
            "url": "https://shop.com/products/product-5",
            "image": "https://cdn.example.com/5-0.jpg",
            "in_stock": True,
            "category": "Shirts",
            "tags": ["cotton", "summer"],
        }

    def test_out_of_stock_without_image(self, make_feed_product):
        raw = make_feed_product(5, image_count=0)
        raw["variants"][0]["available"] = False
        record = to_jsonl_record(ScrapedProduct.model_validate(raw))

        assert record["in_stock"] is False
        assert record["image"] == ""
        assert record["url"] == ""

    def test_unparseable_price_is_zero(self, make_feed_product):
        record = to_jsonl_record(ScrapedProduct.model_validate(make_feed_product(1, price="free")))
        assert record["price"] == 0.0

    def test_export_jsonl_one_line_per_product(self, sample_products):
        lines = export_jsonl(sample_products).splitlines()

        assert len(lines) == 3
        assert [json.loads(line)["product_id"] for line in lines] == [1, 2, 3]

    def test_export_jsonl_empty(self):
        assert export_jsonl([]) == ""


class TestJsonExport:
    """Test the re-uploadable JSON document."""

    def test_export_json_wraps_products(self, sample_products):
        document = json.loads(export_json(sample_products))

        assert list(document) == ["products"]
        assert len(document["products"]) == 3
        assert document["products"][0]["published_at"] == "2024-01-01T00:00:00-05:00"

    def test_export_json_round_trips(self, sample_products):
        document = json.loads(export_json(sample_products))
        restored = [ScrapedProduct.model_validate(item) for item in document["products"]]
        assert [p.model_dump() for p in restored] == [p.model_dump() for p in sample_products]

    @pytest.mark.parametrize(
        "domain,fmt,expected",
        [
            ("shop.com", "jsonl", "shop.com-products-2024-05-01.jsonl"),
            ("shop.com", "json", "shop.com-products-2024-05-01.json"),
            (None, "json", "products-products-2024-05-01.json"),
        ],
    )
    def test_export_filename(self, domain, fmt, expected):
        assert export_filename(domain, fmt, on=date(2024, 5, 1)) == expected


class TestAdminToScraped:
    """Test mapping destination products back into feed records."""

    def test_listing_round_trip_preserves_upload_fields(self, make_feed_product):
        """Test title, body, prices and image sources survive a listing round trip."""
        original = ScrapedProduct.model_validate(make_feed_product(9, variant_count=2))
        node = {
            "id": "gid://shopify/Product/9",
            "title": original.title,
            "handle": original.handle,
            "descriptionHtml": original.body_html,
            "vendor": original.vendor,
            "productType": original.product_type,
            "tags": original.tags,
            "status": "ACTIVE",
            "images": {
                "edges": [
                    {"node": {"id": "gid://shopify/ProductImage/90", "url": img.src, "altText": None}}
                    for img in original.images
                ]
            },
            "variants": {
                "edges": [
                    {
                        "node": {
                            "id": f"gid://shopify/ProductVariant/{v.id}",
                            "title": v.title,
                            "price": v.price,
                            "sku": v.sku,
                            "compareAtPrice": v.compare_at_price,
                            "inventoryQuantity": 3,
                        }
                    }
                    for v in original.variants
                ]
            },
        }

        restored = admin_to_scraped(parse_product_node(node))

        assert restored.id == 9
        assert restored.title == original.title
        assert restored.body_html == original.body_html
        assert restored.tags == original.tags
        assert [v.price for v in restored.variants] == [v.price for v in original.variants]
        assert [v.sku for v in restored.variants] == [v.sku for v in original.variants]
        assert [i.src for i in restored.images] == [i.src for i in original.images]
        assert all(v.available for v in restored.variants)
        assert to_upload_input(restored).variants[0].compare_at_price == "29.99"
