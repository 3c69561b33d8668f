"""Application-wide constants.

This module centralizes all magic numbers and configuration constants
to ensure a single source of truth and easier maintenance.

Most of these values mirror limits imposed by the storefront's public
product feed and the destination Admin API.
"""

# =============================================================================
# Storefront Scraping
# =============================================================================

# Products per page on the public products.json feed (platform maximum)
PRODUCTS_PAGE_SIZE = 250

# Delay between page requests to stay under the feed's implicit rate limit (seconds)
SCRAPE_PAGE_DELAY_SECONDS = 3.0

# Total attempts per page when rate limited or the connection fails
SCRAPE_MAX_RETRIES = 5

# Base for exponential backoff when no Retry-After header is sent (seconds)
SCRAPE_INITIAL_RETRY_DELAY_SECONDS = 2.0

# Page at which the feed usually starts refusing deeper pagination
SCRAPE_PAGINATION_WARNING_PAGE = 100

# Hard ceiling on pages fetched in a single scrape
SCRAPE_MAX_PAGES = 150

# Products per "products" event when streaming results back to the caller
PRODUCT_STREAM_CHUNK_SIZE = 100

# Browser-like user agent; some storefronts reject unknown clients
SCRAPER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# =============================================================================
# HTTP Timeout Configuration
# =============================================================================

# Default timeout for storefront feed requests (seconds)
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0

# Timeout for destination Admin API calls (seconds)
SHOPIFY_API_TIMEOUT_SECONDS = 30.0

# =============================================================================
# Uploading
# =============================================================================

# Products submitted concurrently per batch
UPLOAD_BATCH_SIZE = 10

# Pause between upload batches (milliseconds, matches the public API contract)
UPLOAD_BATCH_DELAY_MS = 1000

# Wait after product creation before attaching media (seconds)
MEDIA_SETTLE_DELAY_SECONDS = 0.5

# =============================================================================
# Destination Admin API
# =============================================================================

# Admin GraphQL API version used when none is configured
SHOPIFY_API_VERSION = "2024-10"

# Default page size for the destination product listing
DEFAULT_PRODUCT_LIST_PAGE_SIZE = 50

# Maximum page size the listing query accepts
MAX_PRODUCT_LIST_PAGE_SIZE = 250
