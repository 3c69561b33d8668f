"""Storefront catalog scraper with streamed progress.

Walks a store's public ``products.json`` feed page by page (250 products per
page) and reports what it is doing as ``ScrapeEvent``s:

- Pages are fetched strictly in order, one at a time, with a fixed delay in
  between to stay under the feed's implicit rate limit.
- HTTP 429 and connection failures are retried on the same page with
  exponential backoff (or the server's ``Retry-After``), up to a fixed
  number of attempts.
- HTTP 400 past the first page is the platform's pagination ceiling and
  ends the scrape with a warning instead of an error.
- An empty page, a short page, or the hard page ceiling ends pagination.

``iter_events()`` never raises: a fatal problem becomes a single ``error``
event. ``scrape()`` is the non-streaming variant and raises ``ScrapeError``.
"""

import asyncio
import math
import time
from typing import AsyncIterator, Iterator, List

import httpx
import logfire
from pydantic import ValidationError

from shopsync.config import Settings, get_settings
from shopsync.constants import (
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    PRODUCT_STREAM_CHUNK_SIZE,
    PRODUCTS_PAGE_SIZE,
    SCRAPE_INITIAL_RETRY_DELAY_SECONDS,
    SCRAPE_MAX_PAGES,
    SCRAPE_MAX_RETRIES,
    SCRAPE_PAGE_DELAY_SECONDS,
    SCRAPE_PAGINATION_WARNING_PAGE,
    SCRAPER_USER_AGENT,
)
from shopsync.models.events import (
    CompleteEvent,
    DoneEvent,
    ErrorEvent,
    FetchingEvent,
    ProductsEvent,
    ProgressEvent,
    ScrapeEvent,
    StartEvent,
    WaitingEvent,
    WarningEvent,
)
from shopsync.models.storefront_models import ScrapedProduct, ScrapeResult
from shopsync.services.domain import build_products_url, extract_domain, product_url


class ScrapeError(Exception):
    """Base exception for failures that end a scrape."""

    pass


class StoreNotFoundError(ScrapeError):
    """The feed answered 404: wrong domain or not a supported storefront."""

    def __init__(self, domain: str):
        super().__init__("Store not found. Make sure the domain is correct.")
        self.domain = domain


class RateLimitExhaustedError(ScrapeError):
    """Still rate limited after every retry attempt."""

    pass


class MalformedResponseError(ScrapeError):
    """The feed body is not JSON or has no ``products`` list."""

    pass


class StoreHttpError(ScrapeError):
    """Any other non-2xx answer from the feed."""

    def __init__(self, status_code: int, reason: str = ""):
        super().__init__(f"Failed to fetch products: {status_code} {reason}".rstrip())
        self.status_code = status_code


class StoreRequestError(ScrapeError):
    """The feed could not be reached after every retry attempt."""

    pass


def retry_delay_seconds(
    response: httpx.Response | None, attempt: int, initial_delay: float
) -> float:
    """Delay before retrying a page.

    Honors a numeric ``Retry-After`` header; otherwise backs off
    exponentially as ``initial_delay * 2**attempt``.
    """
    if response is not None:
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return max(float(retry_after.strip()), 0.0)
            except ValueError:
                # HTTP-date form; fall back to backoff
                pass
    return initial_delay * (2**attempt)


class StorefrontScraper:
    """Scrape one store's complete product feed.

    Example:
        >>> scraper = StorefrontScraper("https://www.example-store.com/collections/all")
        >>> async for event in scraper.iter_events():
        ...     print(event.type)
    """

    HEADERS = {
        "Accept": "application/json",
        "User-Agent": SCRAPER_USER_AGENT,
    }

    def __init__(
        self,
        domain: str,
        *,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        page_delay_seconds: float = SCRAPE_PAGE_DELAY_SECONDS,
        max_retries: int = SCRAPE_MAX_RETRIES,
        initial_retry_delay_seconds: float = SCRAPE_INITIAL_RETRY_DELAY_SECONDS,
        max_pages: int = SCRAPE_MAX_PAGES,
        page_size: int = PRODUCTS_PAGE_SIZE,
        chunk_size: int = PRODUCT_STREAM_CHUNK_SIZE,
    ):
        """Initialize the scraper.

        Args:
            domain: Store identifier in any form accepted by extract_domain()
            timeout: HTTP timeout per request (seconds)
            page_delay_seconds: Pause between pages (seconds)
            max_retries: Total attempts per page on 429 or connection failure
            initial_retry_delay_seconds: Base for exponential backoff (seconds)
            max_pages: Hard ceiling on pages fetched
            page_size: Products requested per page
            chunk_size: Products per streamed ``products`` event
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.domain = extract_domain(domain)
        self.products_url = build_products_url(self.domain)
        self.timeout = timeout
        self.page_delay_seconds = page_delay_seconds
        self.max_retries = max_retries
        self.initial_retry_delay_seconds = initial_retry_delay_seconds
        self.max_pages = max_pages
        self.page_size = page_size
        self.chunk_size = chunk_size
        self.products: List[ScrapedProduct] = []
        self.warnings: List[str] = []

    @classmethod
    def from_settings(
        cls, domain: str, settings: Settings | None = None
    ) -> "StorefrontScraper":
        """Build a scraper using the configured delays and limits."""
        settings = settings or get_settings()
        return cls(
            domain,
            timeout=settings.scraper_timeout_seconds,
            page_delay_seconds=settings.scrape_page_delay_seconds,
            max_retries=settings.scrape_max_retries,
            initial_retry_delay_seconds=settings.scrape_initial_retry_delay_seconds,
            max_pages=settings.scrape_max_pages,
        )

    async def iter_events(self) -> AsyncIterator[ScrapeEvent]:
        """Scrape the store, yielding progress events.

        The stream always ends with exactly one ``done`` or ``error`` event.
        """
        start_time = time.time()
        yield StartEvent(domain=self.domain)

        try:
            async for event in self._paginate():
                yield event
        except ScrapeError as e:
            logfire.error(
                "Storefront scrape failed",
                domain=self.domain,
                error=str(e),
                error_type=type(e).__name__,
                products_before_failure=len(self.products),
                total_time_ms=(time.time() - start_time) * 1000,
            )
            yield ErrorEvent(error=str(e))
            return
        except Exception as e:
            logfire.error(
                "Unexpected error during storefront scrape",
                domain=self.domain,
                error=str(e),
                error_type=type(e).__name__,
            )
            yield ErrorEvent(error=str(e) or "Unknown error occurred")
            return

        logfire.info(
            "Storefront scrape completed",
            domain=self.domain,
            product_count=len(self.products),
            warning_count=len(self.warnings),
            total_time_ms=(time.time() - start_time) * 1000,
        )
        yield CompleteEvent(count=len(self.products), store_domain=self.domain)
        for event in self._product_chunks():
            yield event
        yield DoneEvent()

    async def scrape(self) -> ScrapeResult:
        """Scrape the store without streaming.

        Raises:
            ScrapeError: On any fatal feed problem
        """
        async for _ in self._paginate():
            pass
        logfire.info(
            "Storefront scrape completed",
            domain=self.domain,
            product_count=len(self.products),
            warning_count=len(self.warnings),
        )
        return ScrapeResult(
            products=list(self.products),
            store_domain=self.domain,
            warnings=list(self.warnings),
        )

    async def _paginate(self) -> AsyncIterator[ScrapeEvent]:
        self.products = []
        self.warnings = []
        page = 1

        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers=self.HEADERS,
        ) as client:
            while True:
                yield FetchingEvent(page=page, total=len(self.products))

                response: httpx.Response | None = None
                async for item in self._fetch_page(client, page):
                    if isinstance(item, httpx.Response):
                        response = item
                    else:
                        yield item

                if response.status_code == 404:
                    raise StoreNotFoundError(self.domain)
                if response.status_code == 400 and page > 1:
                    yield self._warn(
                        f"Received 400 error on page {page}. Likely reached pagination "
                        f"limit. Stopping with {len(self.products)} products."
                    )
                    return
                if not response.is_success:
                    raise StoreHttpError(response.status_code, response.reason_phrase)

                page_products = self._parse_page(response, page)
                if not page_products:
                    return

                self.products.extend(page_products)
                yield ProgressEvent(
                    page=page, fetched=len(page_products), total=len(self.products)
                )

                if len(page_products) < self.page_size:
                    return

                if page >= self.max_pages:
                    yield self._warn(
                        f"Stopping at page {page} for safety. "
                        f"Total products: {len(self.products)}"
                    )
                    return
                if page == SCRAPE_PAGINATION_WARNING_PAGE:
                    yield self._warn(
                        f"Reached page {page}. The store may limit pagination. "
                        f"Total products so far: {len(self.products)}"
                    )

                page += 1
                yield WaitingEvent(
                    delay=int(self.page_delay_seconds * 1000),
                    page=page,
                    total=len(self.products),
                    reason="pagination",
                )
                await asyncio.sleep(self.page_delay_seconds)

    async def _fetch_page(
        self, client: httpx.AsyncClient, page: int
    ) -> AsyncIterator[WaitingEvent | httpx.Response]:
        """Request one page, retrying on 429 and connection failures.

        Yields a ``waiting`` event before each backoff and finally the
        response that ended the retry loop.
        """
        params = {"limit": self.page_size, "page": page}
        last_attempt = self.max_retries - 1

        for attempt in range(self.max_retries):
            request_start = time.time()
            try:
                response = await client.get(self.products_url, params=params)
            except httpx.TransportError as e:
                if attempt == last_attempt:
                    raise StoreRequestError(
                        f"Failed to reach store after {self.max_retries} attempts: {e}"
                    ) from e
                delay = retry_delay_seconds(
                    None, attempt, self.initial_retry_delay_seconds
                )
                logfire.warn(
                    "Storefront request failed, retrying",
                    domain=self.domain,
                    page=page,
                    attempt=attempt + 1,
                    delay_seconds=delay,
                    error=str(e),
                    error_type=type(e).__name__,
                )
            else:
                logfire.info(
                    "Storefront page requested",
                    domain=self.domain,
                    page=page,
                    status_code=response.status_code,
                    response_time_ms=(time.time() - request_start) * 1000,
                )
                if response.status_code != 429:
                    yield response
                    return
                if attempt == last_attempt:
                    raise RateLimitExhaustedError(
                        f"Rate limited by store on page {page} after "
                        f"{self.max_retries} attempts"
                    )
                delay = retry_delay_seconds(
                    response, attempt, self.initial_retry_delay_seconds
                )
                logfire.warn(
                    "Storefront rate limited, backing off",
                    domain=self.domain,
                    page=page,
                    attempt=attempt + 1,
                    delay_seconds=delay,
                )

            yield WaitingEvent(
                delay=int(delay * 1000),
                page=page,
                total=len(self.products),
                reason="rate_limit",
                attempt=attempt + 1,
            )
            await asyncio.sleep(delay)

    def _parse_page(self, response: httpx.Response, page: int) -> List[ScrapedProduct]:
        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError("Invalid response format from store") from e

        raw_products = data.get("products") if isinstance(data, dict) else None
        if not isinstance(raw_products, list):
            raise MalformedResponseError("Invalid response format from store")

        try:
            products = [ScrapedProduct.model_validate(item) for item in raw_products]
        except ValidationError as e:
            raise MalformedResponseError(
                f"Invalid product record on page {page} "
                f"({e.error_count()} validation errors)"
            ) from e

        for product in products:
            product.url = product_url(product.handle, self.domain)
        return products

    def _product_chunks(self) -> Iterator[ProductsEvent]:
        total_chunks = math.ceil(len(self.products) / self.chunk_size)
        for index, start in enumerate(range(0, len(self.products), self.chunk_size)):
            yield ProductsEvent(
                chunk=self.products[start : start + self.chunk_size],
                chunk_index=index,
                total_chunks=total_chunks,
            )

    def _warn(self, message: str) -> WarningEvent:
        self.warnings.append(message)
        logfire.warn(
            "Storefront scrape warning",
            domain=self.domain,
            message=message,
            product_count=len(self.products),
        )
        return WarningEvent(message=message)


async def scrape_store(domain: str, settings: Settings | None = None) -> ScrapeResult:
    """Scrape a store's complete catalog using configured limits."""
    return await StorefrontScraper.from_settings(domain, settings).scrape()
