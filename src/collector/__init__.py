"""
AffiMark Data Collection Package

Fetches product pages and extracts structured product data:
- Meta tags and Schema.org JSON-LD
- Platform markup (Amazon, Zalando, Shopify, generic)
"""

from .page_scraper import (
    PageScraper,
    ScrapeError,
    extract_product_data,
    parse_price,
    normalize_availability,
    detect_currency_from_url,
)

__all__ = [
    "PageScraper",
    "ScrapeError",
    "extract_product_data",
    "parse_price",
    "normalize_availability",
    "detect_currency_from_url",
]
