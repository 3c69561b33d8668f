"""End-to-end tests for main application."""

from unittest.mock import patch

from fastapi.testclient import TestClient

from shopsync import __version__
from shopsync.main import app


class TestMainApplication:
    """Test FastAPI application initialization."""

    def test_app_initialization(self):
        """Test that FastAPI app is initialized correctly."""
        assert app.title == "Shopsync"
        assert app.version == __version__

    def test_root_endpoint(self, test_client):
        """Test root endpoint."""
        response = test_client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Shopsync API"
        assert data["destination"] == "dest-store.myshopify.com"

    def test_router_registration(self, test_client):
        """Test that every route is mounted under its prefix."""
        paths = set(app.openapi()["paths"])

        assert {
            "/health",
            "/api/shopify/scrape-stream",
            "/api/shopify/scrape",
            "/api/shopify/export",
            "/api/shopify/upload-scraped",
            "/api/shopify/upload-scraped-stream",
            "/api/shopify/delete-products",
            "/api/shopify/products",
        } <= paths

    def test_cors_preflight(self, test_client):
        response = test_client.options(
            "/api/shopify/scrape-stream",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
            },
        )

        assert response.status_code == 200
        assert "access-control-allow-origin" in response.headers

    def test_lifespan_startup_and_shutdown(self, mock_settings, mock_logfire):
        """Test lifespan sets up logfire and skips Sentry without a DSN."""
        with patch("shopsync.main.sentry_sdk.init") as sentry_init:
            with TestClient(app) as client:
                assert client.get("/health").status_code == 200

        mock_logfire.configure.assert_called_once()
        sentry_init.assert_not_called()
        messages = [call.args[0] for call in mock_logfire.info.call_args_list]
        assert "Application startup complete" in messages
        assert "Application shutdown complete" in messages

    def test_lifespan_initializes_sentry(self, mock_settings, mock_logfire):
        mock_settings.sentry_dsn = "https://public@sentry.example.com/1"

        with patch("shopsync.main.sentry_sdk.init") as sentry_init:
            with TestClient(app):
                pass

        assert sentry_init.call_args.kwargs["dsn"] == "https://public@sentry.example.com/1"
