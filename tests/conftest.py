"""Shared pytest fixtures and configuration.

Fixture Categories:
1. Infrastructure: mock_settings, mock_logfire, respx_mock, test_client
2. Feed data: make_feed_product, make_feed_page, sample_products
3. Admin API: admin_client, admin_graphql_url, graphql_handler
"""

import json
import os
from typing import Any, Callable
from unittest.mock import MagicMock, Mock

import httpx
import pytest
import respx

# Services log through logfire; tests never configure it
os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

from shopsync.models.storefront_models import ScrapedProduct  # noqa: E402

DESTINATION_DOMAIN = "dest-store.myshopify.com"
ADMIN_TOKEN = "shpat_test_token_1234"


@pytest.fixture
def respx_mock():
    """Respx mock fixture for HTTP mocking."""
    with respx.mock:
        yield respx


@pytest.fixture
def mock_settings(monkeypatch):
    """Settings with a configured destination store and no delays."""
    from shopsync.config import Settings

    settings = Settings(
        shopify_store_domain=DESTINATION_DOMAIN,
        shopify_admin_api_access_token=ADMIN_TOKEN,
        shopify_api_version="2024-10",
        env="local",
        logfire_token=None,
        sentry_dsn=None,
        scrape_page_delay_seconds=0,
        scrape_initial_retry_delay_seconds=0,
        upload_batch_delay_ms=0,
        upload_media_settle_delay_seconds=0,
    )

    # Patch where get_settings is used so request handlers see the mock
    for module in (
        "shopsync.config",
        "shopsync.main",
        "shopsync.logging_config",
        "shopsync.api.scrape",
        "shopsync.api.catalog",
        "shopsync.services.admin_client",
        "shopsync.services.storefront_scraper",
        "shopsync.cli.catalog_cli",
    ):
        monkeypatch.setattr(f"{module}.get_settings", lambda: settings)
    return settings


@pytest.fixture
def mock_logfire(monkeypatch):
    """
    Mock Logfire for testing without actual logging.

    Returns the mock so tests can assert on ``info``/``warn``/``error`` calls.
    """
    from contextlib import contextmanager

    @contextmanager
    def mock_span(*args, **kwargs):
        yield {}

    mock_logfire_module = MagicMock()
    mock_logfire_module.info = Mock()
    mock_logfire_module.warn = Mock()
    mock_logfire_module.error = Mock()
    mock_logfire_module.span = mock_span
    mock_logfire_module.configure = Mock()
    mock_logfire_module.instrument_fastapi = Mock()
    mock_logfire_module.instrument_httpx = Mock()
    mock_logfire_module.instrument_pydantic = Mock()

    # Patch module-level imports in our code (only modules that use logfire)
    for module in (
        "shopsync.main",
        "shopsync.tasks",
        "shopsync.logging_config",
        "shopsync.middleware.correlation_id",
        "shopsync.services.domain",
        "shopsync.services.storefront_scraper",
        "shopsync.services.admin_client",
        "shopsync.services.admin_operations",
        "shopsync.services.product_uploader",
    ):
        monkeypatch.setattr(f"{module}.logfire", mock_logfire_module)

    return mock_logfire_module


@pytest.fixture
def test_client(mock_settings, mock_logfire):
    """FastAPI TestClient for E2E tests."""
    from fastapi.testclient import TestClient

    from shopsync.main import app

    return TestClient(app)


# =============================================================================
# Feed data
# =============================================================================


@pytest.fixture
def make_feed_product() -> Callable[..., dict[str, Any]]:
    """Factory for one raw ``products.json`` product record."""

    def _make(
        product_id: int = 1,
        title: str | None = None,
        price: str = "19.99",
        variant_count: int = 1,
        image_count: int = 1,
        **overrides: Any,
    ) -> dict[str, Any]:
        product = {
            "id": product_id,
            "title": title if title is not None else f"Product {product_id}",
            "handle": f"product-{product_id}",
            "body_html": "<p>Soft cotton tee</p>",
            "published_at": "2024-01-01T00:00:00-05:00",
            "vendor": "Acme",
            "product_type": "Shirts",
            "tags": ["cotton", "summer"],
            "variants": [
                {
                    "id": product_id * 100 + index,
                    "product_id": product_id,
                    "title": f"Size {index}",
                    "option1": f"Size {index}",
                    "price": price,
                    "compare_at_price": "29.99" if index == 0 else None,
                    "sku": f"SKU-{product_id}-{index}",
                    "grams": 200,
                    "available": index == 0,
                    "requires_shipping": True,
                    "taxable": True,
                    "position": index + 1,
                }
                for index in range(variant_count)
            ],
            "images": [
                {
                    "id": product_id * 1000 + index,
                    "product_id": product_id,
                    "variant_ids": [],
                    "src": f"https://cdn.example.com/{product_id}-{index}.jpg",
                    "width": 800,
                    "height": 800,
                    "alt": None,
                    "position": index + 1,
                }
                for index in range(image_count)
            ],
        }
        product.update(overrides)
        return product

    return _make


@pytest.fixture
def make_feed_page(make_feed_product) -> Callable[[int, int], httpx.Response]:
    """Factory for a ``products.json`` response with ``count`` products."""

    def _make(count: int, start_id: int = 1) -> httpx.Response:
        products = [make_feed_product(start_id + offset) for offset in range(count)]
        return httpx.Response(200, json={"products": products})

    return _make


@pytest.fixture
def sample_products(make_feed_product) -> list[ScrapedProduct]:
    """Three valid scraped products; the second has two variants."""
    return [
        ScrapedProduct.model_validate(make_feed_product(1)),
        ScrapedProduct.model_validate(make_feed_product(2, variant_count=2)),
        ScrapedProduct.model_validate(make_feed_product(3, image_count=0)),
    ]


# =============================================================================
# Admin API
# =============================================================================


@pytest.fixture
def admin_graphql_url() -> str:
    return f"https://{DESTINATION_DOMAIN}/admin/api/2024-10/graphql.json"


@pytest.fixture
def admin_client():
    """Admin client for the test destination store."""
    from shopsync.services.admin_client import ShopifyAdminClient

    return ShopifyAdminClient(
        store_domain=DESTINATION_DOMAIN,
        access_token=ADMIN_TOKEN,
        api_version="2024-10",
    )


@pytest.fixture
def graphql_handler() -> Callable[..., Callable[[httpx.Request], httpx.Response]]:
    """Build a respx side effect that answers Admin GraphQL operations.

    ``fail_titles`` makes ``productCreate`` return a user error for those
    product titles. Every request body is appended to ``handler.calls``.
    """

    def _build(fail_titles: tuple[str, ...] = ()) -> Callable[[httpx.Request], httpx.Response]:
        created = {"count": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            handler.calls.append(body)
            query = body["query"]
            variables = body.get("variables") or {}

            if "productCreateMedia" in query:
                data = {"productCreateMedia": {"media": [{"id": "gid://shopify/MediaImage/1"}], "mediaUserErrors": []}}
            elif "productCreate(" in query:
                title = variables["input"]["title"]
                if title in fail_titles:
                    data = {
                        "productCreate": {
                            "product": None,
                            "userErrors": [{"field": ["title"], "message": f"{title} is not allowed"}],
                        }
                    }
                else:
                    created["count"] += 1
                    data = {
                        "productCreate": {
                            "product": {
                                "id": f"gid://shopify/Product/{created['count']}",
                                "title": title,
                                "handle": title.lower().replace(" ", "-"),
                            },
                            "userErrors": [],
                        }
                    }
            elif "productVariantsBulkUpdate" in query:
                data = {"productVariantsBulkUpdate": {"productVariants": [{"id": "gid://shopify/ProductVariant/1"}], "userErrors": []}}
            elif "productVariantsBulkCreate" in query:
                data = {"productVariantsBulkCreate": {"productVariants": [{"id": "gid://shopify/ProductVariant/2"}], "userErrors": []}}
            elif "inventoryItemUpdate" in query:
                data = {"inventoryItemUpdate": {"inventoryItem": {"id": "gid://shopify/InventoryItem/1"}, "userErrors": []}}
            elif "productVariant(" in query:
                data = {"productVariant": {"id": variables["id"], "inventoryItem": {"id": "gid://shopify/InventoryItem/1"}}}
            elif "product(" in query:
                data = {"product": {"variants": {"edges": [{"node": {"id": "gid://shopify/ProductVariant/1"}}]}}}
            elif "productDelete" in query:
                data = {"productDelete": {"deletedProductId": variables["input"]["id"], "userErrors": []}}
            else:
                data = {}
            return httpx.Response(200, json={"data": data})

        handler.calls = []
        return handler

    return _build
