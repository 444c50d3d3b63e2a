"""
Product Page Scraper

Fetches a product page with httpx and extracts product data:
- Open Graph / product meta tags
- Platform-specific markup (Amazon, Zalando, Shopify, generic)
- Schema.org Product JSON-LD
- Return policy and shipping hints

Parsing is separated from fetching so it can run on stored HTML.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import httpx
from bs4 import BeautifulSoup

from src.verifier.helpers import Availability, Platform, enum_value
from src.verifier.models import ProductPrice, ScrapedProductData

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9,de;q=0.8",
}

META_FIELDS = {
    "og:title": "title",
    "og:description": "description",
    "og:image": "image_url",
    "product:brand": "brand",
    "product:price:amount": "price_amount",
    "product:price:currency": "price_currency",
}

EUR_TLDS = (".de", ".fr", ".it", ".es", ".nl", ".at")

RETURN_POLICY_PATTERN = re.compile(
    r"(free returns?|return policy|returns? within \d+|\d+[- ]day returns?|r(ü|ue)ckgabe)",
    re.IGNORECASE,
)
SHIPPING_PATTERN = re.compile(
    r"(free shipping|free delivery|ships? within|delivery in \d+|versand|lieferung)",
    re.IGNORECASE,
)

AMAZON_BADGES = [
    re.compile(r"class=\"[^\"]*bestseller[^\"]*\"", re.IGNORECASE),
    re.compile(r"Amazon.{0,10}?s\s*Choice", re.IGNORECASE),
    re.compile(r"Climate Pledge Friendly", re.IGNORECASE),
    re.compile(r"(\d+[Kk]?\+)\s*bought\s+in\s+past\s+month", re.IGNORECASE),
]


class ScrapeError(Exception):
    """Raised when a product page cannot be fetched."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


# =============================================================================
# FETCHING
# =============================================================================

class PageScraper:
    """
    Async product page scraper.

    Usage:
        async with PageScraper(timeout=15.0) as scraper:
            product = await scraper.scrape(normalized.normalized, normalized.platform)
    """

    def __init__(self, timeout: float = 15.0, client: Optional[httpx.AsyncClient] = None):
        self._client = client or httpx.AsyncClient(
            headers=DEFAULT_HEADERS,
            follow_redirects=True,
            timeout=httpx.Timeout(timeout),
        )

    async def fetch_html(self, url: str) -> str:
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            raise ScrapeError(f"Request failed for {url}: {e}") from e

        if response.status_code != 200:
            raise ScrapeError(
                f"HTTP {response.status_code} for {url}",
                status_code=response.status_code,
            )
        return response.text

    async def scrape(self, url: str, platform: Any) -> ScrapedProductData:
        html = await self.fetch_html(url)
        data = extract_product_data(html, platform, url)
        logger.info(
            f"Scraped {url}: title={'yes' if data.title else 'no'}, "
            f"price={data.price.amount if data.price else None}, rating={data.rating}"
        )
        return data

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


# =============================================================================
# EXTRACTION
# =============================================================================

class _Extraction:
    """Mutable scratch state while the extractors fill in fields."""

    def __init__(self):
        self.fields: Dict[str, Any] = {
            "title": None,
            "brand": None,
            "category": None,
            "description": None,
            "image_url": None,
            "seller_name": None,
        }
        self.amount: Optional[float] = None
        self.original_amount: Optional[float] = None
        self.currency: Optional[str] = None
        self.rating: Optional[float] = None
        self.review_count: Optional[int] = None
        self.availability: Optional[str] = None
        self.variants: List[str] = []
        self.claims: List[str] = []
        self.raw_meta: Dict[str, str] = {}

    def set_if_empty(self, name: str, value: Any) -> None:
        if value and not self.fields.get(name):
            self.fields[name] = value


def extract_product_data(html: str, platform: Any, url: str) -> ScrapedProductData:
    """
    Extract product data from page HTML.

    Meta tags run first, then the platform extractor, then JSON-LD; each
    step only fills fields that are still empty.
    """
    soup = BeautifulSoup(html or "", "lxml")
    state = _Extraction()

    _extract_meta_tags(soup, state)

    platform_value = enum_value(platform)
    if platform_value == Platform.AMAZON.value:
        _extract_amazon(html, soup, state)
    elif platform_value == Platform.ZALANDO.value:
        _extract_zalando(soup, state)
    elif platform_value == Platform.SHOPIFY.value:
        _extract_shopify(html, state)
    else:
        _extract_generic(soup, state)

    _extract_json_ld(soup, state)

    currency = state.currency
    if not currency or currency == "EUR":
        currency = detect_currency_from_url(url)

    page_text = soup.get_text(" ", strip=True)

    return ScrapedProductData(
        title=state.fields["title"],
        brand=state.fields["brand"],
        category=state.fields["category"],
        description=state.fields["description"],
        price=ProductPrice(
            amount=state.amount,
            currency=currency,
            original_amount=state.original_amount,
        ) if state.amount is not None else None,
        rating=state.rating,
        review_count=state.review_count,
        availability=state.availability or Availability.UNKNOWN.value,
        image_url=state.fields["image_url"],
        variants=state.variants,
        claims=state.claims,
        seller_name=state.fields["seller_name"],
        has_return_policy=bool(RETURN_POLICY_PATTERN.search(page_text)),
        has_shipping_info=bool(SHIPPING_PATTERN.search(page_text)),
        raw_meta=state.raw_meta,
    )


def _extract_meta_tags(soup: BeautifulSoup, state: _Extraction) -> None:
    for tag in soup.find_all("meta"):
        key = tag.get("property") or tag.get("name")
        content = tag.get("content")
        if not key or content is None or key.lower() not in META_FIELDS:
            continue

        field_name = META_FIELDS[key.lower()]
        value = _clean_text(content)
        state.raw_meta[field_name] = value

        if field_name == "price_amount":
            if state.amount is None:
                state.amount = parse_price(value)
        elif field_name == "price_currency":
            state.currency = value.upper()
        else:
            state.set_if_empty(field_name, value)

    if not state.fields["title"] and soup.title and soup.title.string:
        state.fields["title"] = _clean_text(soup.title.string)


def _extract_json_ld(soup: BeautifulSoup, state: _Extraction) -> None:
    for script in soup.find_all("script", attrs={"type": re.compile(r"application/ld\+json", re.I)}):
        try:
            parsed = json.loads(script.string or "")
        except (json.JSONDecodeError, TypeError):
            continue

        for product in find_products_in_json_ld(parsed):
            state.set_if_empty("title", _json_ld_text(product.get("name")))
            state.set_if_empty("brand", _json_ld_text(product.get("brand")))
            state.set_if_empty("description", _json_ld_text(product.get("description")))

            image = product.get("image")
            if isinstance(image, list):
                image = image[0] if image else None
            if isinstance(image, dict):
                image = image.get("url")
            if isinstance(image, str):
                state.set_if_empty("image_url", image)

            rating = product.get("aggregateRating") or {}
            if isinstance(rating, dict):
                if state.rating is None and rating.get("ratingValue") is not None:
                    state.rating = _to_float(rating.get("ratingValue"))
                if state.review_count is None:
                    count = rating.get("reviewCount") or rating.get("ratingCount")
                    state.review_count = _to_int(count)

            offers = product.get("offers")
            if isinstance(offers, list):
                offers = offers[0] if offers else None
            if isinstance(offers, dict) and state.amount is None:
                state.amount = parse_price(offers.get("price") or offers.get("lowPrice"))
                if offers.get("priceCurrency"):
                    state.currency = str(offers["priceCurrency"]).upper()
                if offers.get("availability"):
                    state.availability = normalize_availability(str(offers["availability"]))
                seller = offers.get("seller")
                if isinstance(seller, dict):
                    state.set_if_empty("seller_name", _json_ld_text(seller.get("name")))

            state.set_if_empty("category", _json_ld_text(product.get("category")))


def _json_ld_text(value: Any) -> Optional[str]:
    """Plain text from a JSON-LD value; named nodes give their name, lists their first entry."""
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, dict):
        value = value.get("name")
    if isinstance(value, str):
        return _clean_text(value) or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def find_products_in_json_ld(obj: Any) -> List[Dict[str, Any]]:
    """Schema.org Product nodes, including those nested in lists and @graph."""
    products: List[Dict[str, Any]] = []
    if isinstance(obj, list):
        for item in obj:
            products.extend(find_products_in_json_ld(item))
    elif isinstance(obj, dict):
        node_type = obj.get("@type")
        if node_type == "Product" or (isinstance(node_type, list) and "Product" in node_type):
            products.append(obj)
        if obj.get("@graph"):
            products.extend(find_products_in_json_ld(obj["@graph"]))
    return products


def _extract_amazon(html: str, soup: BeautifulSoup, state: _Extraction) -> None:
    title = soup.find(id="productTitle")
    if title:
        state.set_if_empty("title", _clean_text(title.get_text()))

    byline = soup.find(id="bylineInfo")
    if byline and not state.fields["brand"]:
        match = re.search(r"(?:Visit the |Brand: )(.*?)(?: Store|$)", byline.get_text(" ", strip=True))
        if match:
            state.fields["brand"] = _clean_text(match.group(1))

    if state.amount is None:
        whole = soup.find(class_="a-price-whole")
        fraction = soup.find(class_="a-price-fraction")
        if whole and fraction:
            digits = re.sub(r"[^\d]", "", whole.get_text())
            cents = re.sub(r"[^\d]", "", fraction.get_text())
            if digits:
                state.amount = float(f"{digits}.{cents or '0'}")

    if state.rating is None:
        match = re.search(r"(\d[.,]\d)\s*(?:out of|von)\s*5", html, re.IGNORECASE)
        if match:
            state.rating = float(match.group(1).replace(",", "."))

    if state.review_count is None:
        reviews = soup.find(id="acrCustomerReviewText")
        if reviews:
            match = re.search(r"[\d.,]+", reviews.get_text())
            if match:
                state.review_count = _to_int(re.sub(r"[.,]", "", match.group(0)))

    for badge in AMAZON_BADGES:
        match = badge.search(html)
        if not match:
            continue
        if match.groups():
            state.claims.append(f"{match.group(1)} bought in past month")
        else:
            text = re.sub(r"<[^>]+>", "", match.group(0)).strip()[:50]
            if text:
                state.claims.append(text)

    if not state.availability:
        availability = soup.find(id="availability")
        if availability:
            text = availability.get_text(" ", strip=True).lower()
            state.availability = (
                Availability.IN_STOCK.value if "in stock" in text else Availability.OUT_OF_STOCK.value
            )


def _extract_zalando(soup: BeautifulSoup, state: _Extraction) -> None:
    # Most Zalando data comes from JSON-LD
    tag = soup.find(attrs={"data-brand-name": True})
    if tag:
        state.set_if_empty("brand", _clean_text(tag["data-brand-name"]))


def _extract_shopify(html: str, state: _Extraction) -> None:
    meta_match = re.search(r"var\s+meta\s*=\s*(\{[\s\S]*?\});\s*(?:for|var|</script)", html)
    if meta_match:
        try:
            meta = json.loads(meta_match.group(1))
        except json.JSONDecodeError:
            meta = {}
        product = meta.get("product") or {}
        state.set_if_empty("title", product.get("title"))
        state.set_if_empty("brand", product.get("vendor"))
        state.set_if_empty("category", product.get("type"))

    product_match = re.search(r"product:\s*(\{[\s\S]*?\})\s*,?\s*(?:collection|template)", html)
    if product_match:
        try:
            product = json.loads(product_match.group(1))
        except json.JSONDecodeError:
            return
        state.set_if_empty("title", product.get("title"))
        state.set_if_empty("brand", product.get("vendor"))
        variants = product.get("variants")
        if isinstance(variants, list):
            state.variants = [
                str(v.get("title") or v.get("name")) for v in variants
                if isinstance(v, dict) and (v.get("title") or v.get("name"))
            ]


def _extract_generic(soup: BeautifulSoup, state: _Extraction) -> None:
    if state.amount is None:
        tag = soup.find(attrs={"itemprop": "price"})
        if tag is not None:
            state.amount = parse_price(tag.get("content") or tag.get_text())
    if state.amount is None:
        tag = soup.find(attrs={"data-price": True})
        if tag is not None:
            state.amount = parse_price(tag["data-price"])
    if state.amount is None:
        tag = soup.find(class_=re.compile("price", re.I))
        if tag is not None:
            match = re.search(r"\d+[.,]\d{2}", tag.get_text())
            if match:
                state.amount = parse_price(match.group(0))

    if state.rating is None:
        tag = soup.find(attrs={"itemprop": "ratingValue"})
        if tag is not None:
            state.rating = _to_float(tag.get("content") or tag.get_text())

    if state.review_count is None:
        tag = soup.find(attrs={"itemprop": "reviewCount"})
        if tag is not None:
            state.review_count = _to_int(tag.get("content") or tag.get_text())


# =============================================================================
# PARSING HELPERS
# =============================================================================

def parse_price(value: Any) -> Optional[float]:
    """
    Parse a price in European (1.234,56) or US (1,234.56) notation.

    A lone comma followed by exactly two digits is a decimal comma,
    otherwise commas are thousands separators.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)

    cleaned = re.sub(r"[^\d.,]", "", str(value))
    if not re.search(r"\d", cleaned):
        return None

    if "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif "," in cleaned:
        if len(cleaned.split(",")[-1]) == 2:
            cleaned = cleaned.replace(",", ".", 1)
        else:
            cleaned = cleaned.replace(",", "")

    match = re.match(r"\d+(\.\d+)?", cleaned)
    return float(match.group(0)) if match else None


def normalize_availability(value: str) -> str:
    """Map schema.org availability URLs and labels to our values."""
    lower = value.lower()
    if "instock" in lower or "in_stock" in lower:
        return Availability.IN_STOCK.value
    if "outofstock" in lower or "out_of_stock" in lower:
        return Availability.OUT_OF_STOCK.value
    if "preorder" in lower:
        return "preorder"
    if "limited" in lower:
        return Availability.LIMITED.value
    return Availability.UNKNOWN.value


def detect_currency_from_url(url: str) -> str:
    try:
        host = (urlsplit(url).hostname or "").lower()
    except ValueError:
        return "EUR"

    if any(tld in host for tld in EUR_TLDS):
        return "EUR"
    if ".co.uk" in host:
        return "GBP"
    if ".com" in host and ".com." not in host:
        return "USD"
    if ".se" in host:
        return "SEK"
    if ".dk" in host:
        return "DKK"
    if ".pl" in host:
        return "PLN"
    if ".ch" in host:
        return "CHF"
    return "EUR"


def _clean_text(value: str) -> str:
    return re.sub(r"\s+", " ", value or "").strip()


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(str(value).replace(",", "."))
    except (TypeError, ValueError):
        return None


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(float(str(value)))
    except (TypeError, ValueError, OverflowError):
        return None
