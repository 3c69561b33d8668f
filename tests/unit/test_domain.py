"""Tests for store domain normalization."""

import pytest
from hypothesis import given, strategies as st

from shopsync.services.domain import (
    build_products_url,
    extract_domain,
    is_valid_store_domain,
    product_url,
)

label = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789"),
    min_size=2,
    max_size=15,
).filter(lambda s: s != "www")
tld = st.text(alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz"), min_size=2, max_size=6)


class TestExtractDomain:
    """Test extract_domain()."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("https://www.shop.com/collections/all", "shop.com"),
            ("http://shop.com", "shop.com"),
            ("HTTPS://Shop.com/", "Shop.com"),
            ("shop.com:443", "shop.com"),
            ("www.shop.com", "shop.com"),
            ("my-store.myshopify.com", "my-store.myshopify.com"),
            ("  shop.com/products?page=2  ", "shop.com"),
            ("shop.com#reviews", "shop.com"),
            ("https://shop.com:8080/a/b?c=d#e", "shop.com"),
        ],
    )
    def test_extract_domain_forms(self, value, expected):
        """Test the identifier forms users paste."""
        assert extract_domain(value) == expected

    def test_extract_domain_only_strips_leading_www(self):
        """Test www. inside the host is kept."""
        assert extract_domain("shop.www.com") == "shop.www.com"

    def test_extract_domain_never_raises(self, mock_logfire):
        """Test non-string input is returned unchanged and logged."""
        assert extract_domain(None) is None
        mock_logfire.warn.assert_called_once()

    @given(host=st.builds(lambda a, b: f"{a}.{b}", label, tld))
    def test_extract_domain_is_idempotent(self, host):
        """Property: normalizing twice equals normalizing once."""
        once = extract_domain(f"https://www.{host}/collections/all?x=1")
        assert once == host
        assert extract_domain(once) == once


class TestIsValidStoreDomain:
    """Test is_valid_store_domain()."""

    @pytest.mark.parametrize(
        "value",
        ["shop.com", "my-store.myshopify.com", "https://www.shop.co.uk/", "a1.io"],
    )
    def test_valid_domains(self, value):
        assert is_valid_store_domain(value) is True

    @pytest.mark.parametrize(
        "value",
        ["", "   ", None, "localhost", "shop", "-shop.com", "shop.c", "shop.123", "sh op.com"],
    )
    def test_invalid_domains(self, value):
        assert is_valid_store_domain(value) is False

    @given(host=st.builds(lambda a, b: f"{a}.{b}", label, tld))
    def test_generated_hosts_are_valid(self, host):
        """Property: label.tld hosts are always accepted."""
        assert is_valid_store_domain(host)


class TestUrls:
    """Test feed and product URL builders."""

    def test_build_products_url(self):
        assert build_products_url("https://www.shop.com/x") == "https://shop.com/products.json"

    def test_product_url(self):
        assert product_url("blue-tee", "shop.com") == "https://shop.com/products/blue-tee"
