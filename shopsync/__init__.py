"""Scrape storefront catalogs and re-create them in a destination store."""

__version__ = "0.1.0"
