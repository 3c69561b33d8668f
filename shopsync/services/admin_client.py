"""Destination store Admin GraphQL API client."""

import json
import time
from typing import Any

import httpx
import logfire

from shopsync.config import get_settings
from shopsync.constants import SHOPIFY_API_TIMEOUT_SECONDS, SHOPIFY_API_VERSION
from shopsync.logging_config import mask_secret, redact_tokens


class AdminAPIError(Exception):
    """Base exception for Admin API failures."""

    pass


class AdminConfigError(AdminAPIError):
    """Store domain or access token is not configured."""

    pass


class AdminHTTPError(AdminAPIError):
    """Non-2xx answer from the Admin API."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Shopify API Error ({status_code}): {body}")
        self.status_code = status_code


class GraphQLError(AdminAPIError):
    """Top-level ``errors`` in a GraphQL response."""

    def __init__(self, errors: Any):
        super().__init__(f"GraphQL Error: {json.dumps(errors)}")
        self.errors = errors


class UserError(AdminAPIError):
    """A mutation payload reported ``userErrors``."""

    def __init__(self, operation: str, user_errors: list[dict[str, Any]]):
        messages = ", ".join(
            str(error.get("message", error)) for error in user_errors
        )
        super().__init__(messages or f"{operation} failed")
        self.operation = operation
        self.user_errors = user_errors


class ShopifyAdminClient:
    """Thin async wrapper around the Admin GraphQL endpoint.

    Every call opens its own ``httpx.AsyncClient`` so the instance can be
    shared by concurrent uploads without lifecycle management.
    """

    def __init__(
        self,
        store_domain: str,
        access_token: str,
        api_version: str = SHOPIFY_API_VERSION,
        timeout: float = SHOPIFY_API_TIMEOUT_SECONDS,
    ):
        if not store_domain:
            raise AdminConfigError(
                "SHOPIFY_STORE_DOMAIN is not set in environment variables"
            )
        if not access_token:
            raise AdminConfigError(
                "SHOPIFY_ADMIN_API_ACCESS_TOKEN is not set in environment variables"
            )
        self.store_domain = store_domain
        self.api_version = api_version
        self.timeout = timeout
        self._access_token = access_token
        self.endpoint = (
            f"https://{store_domain}/admin/api/{api_version}/graphql.json"
        )

    def __repr__(self) -> str:
        return (
            f"ShopifyAdminClient(store_domain={self.store_domain!r}, "
            f"api_version={self.api_version!r}, "
            f"access_token={mask_secret(self._access_token)!r})"
        )

    async def request(
        self, query: str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Run a GraphQL document and return its ``data``.

        Raises:
            AdminHTTPError: Non-2xx response
            GraphQLError: Response carries top-level ``errors``
            UserError: Any top-level payload carries non-empty ``userErrors``
            httpx.RequestError: Transport failure
        """
        start_time = time.time()
        headers = {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self._access_token,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.endpoint,
                    headers=headers,
                    json={"query": query, "variables": variables or {}},
                )
        except httpx.RequestError as e:
            logfire.error(
                "Admin API request error",
                endpoint=self.endpoint,
                error=str(e),
                error_type=type(e).__name__,
                response_time_ms=(time.time() - start_time) * 1000,
            )
            raise

        elapsed_ms = (time.time() - start_time) * 1000
        if not response.is_success:
            logfire.error(
                "Admin API HTTP error",
                endpoint=self.endpoint,
                status_code=response.status_code,
                response_body=response.text[:500],
                response_time_ms=elapsed_ms,
                headers=redact_tokens(headers),
            )
            raise AdminHTTPError(response.status_code, response.text)

        payload = response.json()
        if payload.get("errors"):
            logfire.error(
                "Admin API GraphQL error",
                endpoint=self.endpoint,
                errors=payload["errors"],
                response_time_ms=elapsed_ms,
            )
            raise GraphQLError(payload["errors"])

        data = payload.get("data") or {}
        for operation, result in data.items():
            if isinstance(result, dict) and result.get("userErrors"):
                logfire.warn(
                    "Admin API user errors",
                    operation=operation,
                    user_errors=result["userErrors"],
                    response_time_ms=elapsed_ms,
                )
                raise UserError(operation, result["userErrors"])

        logfire.info(
            "Admin API request completed",
            operations=list(data.keys()),
            response_time_ms=elapsed_ms,
        )
        return data

    async def mutate(
        self, mutation: str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return await self.request(mutation, variables)

    async def query(
        self, query: str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return await self.request(query, variables)


def get_admin_client() -> ShopifyAdminClient:
    """Build a client for the configured destination store.

    Raises:
        AdminConfigError: If the store domain or access token is missing
    """
    settings = get_settings()
    return ShopifyAdminClient(
        store_domain=settings.shopify_store_domain or "",
        access_token=settings.shopify_admin_api_access_token or "",
        api_version=settings.shopify_api_version,
        timeout=settings.shopify_api_timeout_seconds,
    )
