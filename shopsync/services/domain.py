"""Store identifier normalization.

Users paste store identifiers in many forms (``https://www.shop.com/collections/all``,
``shop.com:443``, ``my-store.myshopify.com``). Everything downstream works
with the bare hostname.
"""

import re

import logfire

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_WWW_RE = re.compile(r"^www\.", re.IGNORECASE)
_PATH_SEPARATORS_RE = re.compile(r"[/?#]")

# Label characters plus hyphen/underscore/dot, 2+ letter top-level segment
_DOMAIN_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]*[a-zA-Z0-9]\.[a-zA-Z]{2,}$")


def extract_domain(value: str) -> str:
    """Reduce a store identifier to its bare hostname.

    Strips scheme, path/query/fragment, port and a leading ``www.``.
    Never raises: on any parse problem the input is returned unchanged.
    """
    try:
        domain = _SCHEME_RE.sub("", value.strip())
        domain = _PATH_SEPARATORS_RE.split(domain, maxsplit=1)[0]
        domain = domain.split(":")[0]
        return _WWW_RE.sub("", domain)
    except Exception as e:
        logfire.warn(
            "Could not normalize store domain",
            value=repr(value),
            error=str(e),
            error_type=type(e).__name__,
        )
        return value


def is_valid_store_domain(value: str | None) -> bool:
    """Check a store identifier against a conservative hostname pattern."""
    if not value or not value.strip():
        return False
    return bool(_DOMAIN_RE.match(extract_domain(value)))


def build_products_url(domain: str) -> str:
    """Public paginated product feed for a store (pagination params added per request)."""
    return f"https://{extract_domain(domain)}/products.json"


def product_url(handle: str, domain: str) -> str:
    """Canonical product-detail URL on the storefront."""
    return f"https://{extract_domain(domain)}/products/{handle}"
