"""
URL Normalizer

Cleans product URLs before analysis:
- Strips tracking parameters (utm_*, click ids) but keeps affiliate parameters
- Detects platform, merchant and region from the hostname
- Extracts platform product ids (Amazon ASIN, Zalando SKU, ASOS id)
- Classifies the URL as product page or listing/content page

Never raises: unparseable input yields a degraded NormalizedUrl.
"""

import logging
import re
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit, SplitResult

from .helpers import Platform

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class NormalizedUrl:
    original: str
    normalized: str
    merchant: str
    platform: Platform
    region: Optional[str]
    product_id: Optional[str]
    is_product_page: bool

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["platform"] = self.platform.value
        return data


@dataclass
class UrlValidation:
    valid: bool
    error: Optional[str] = None


@dataclass
class PlatformPattern:
    """One row of the platform table. First matching row wins."""
    pattern: "re.Pattern[str]"
    platform: Platform
    merchant: str
    region: Optional[Callable[[SplitResult], Optional[str]]] = None
    product_id: Optional[Callable[[SplitResult], Optional[str]]] = None


# =============================================================================
# PARAMETER LISTS
# =============================================================================

TRACKING_PARAMS = frozenset({
    "utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content",
    "fbclid", "gclid", "dclid", "msclkid",
    "ref", "ref_", "src", "source",
    "srsltid", "mc_cid", "mc_eid",
    "_ga", "_gl", "yclid",
})

# Compared lower-cased; always kept even if a tracking rule matches.
AFFILIATE_PARAMS = frozenset({
    "tag", "ascsubtag", "linkcode", "linkid",
    "awc", "awinaffid", "clickref",
    "irclickid", "sharedid",
    "tduid", "subid",
})


# =============================================================================
# PLATFORM TABLE
# =============================================================================

AMAZON_REGIONS = {
    "de": "DE", "co.uk": "UK", "com": "US", "fr": "FR",
    "it": "IT", "es": "ES", "nl": "NL", "pl": "PL",
    "se": "SE", "com.be": "BE", "com.tr": "TR",
    "co.jp": "JP", "ca": "CA", "com.au": "AU",
    "in": "IN", "com.br": "BR", "com.mx": "MX",
    "sg": "SG", "ae": "AE", "sa": "SA",
}

ZALANDO_REGIONS = {
    "de": "DE", "co.uk": "UK", "fr": "FR", "it": "IT",
    "es": "ES", "nl": "NL", "pl": "PL", "se": "SE",
    "be": "BE", "at": "AT", "ch": "CH",
}


def _tld_after(host: str, brand: str) -> Optional[str]:
    match = re.search(re.escape(brand) + r"\.(.+)", host)
    return match.group(1) if match else None


def _upper_tld(brand: str) -> Callable[[SplitResult], Optional[str]]:
    def extract(url: SplitResult) -> Optional[str]:
        tld = _tld_after(url.hostname or "", brand)
        return tld.upper() if tld else None
    return extract


def _fixed(region: Optional[str]) -> Callable[[SplitResult], Optional[str]]:
    return lambda url: region


def _amazon_region(url: SplitResult) -> Optional[str]:
    tld = _tld_after(url.hostname or "", "amazon")
    return AMAZON_REGIONS.get(tld) if tld else None


def _amazon_asin(url: SplitResult) -> Optional[str]:
    for pattern in (r"/dp/([A-Z0-9]{10})", r"/gp/product/([A-Z0-9]{10})"):
        match = re.search(pattern, url.path, re.IGNORECASE)
        if match:
            return match.group(1).upper()
    return None


def _zalando_region(url: SplitResult) -> Optional[str]:
    tld = _tld_after(url.hostname or "", "zalando")
    if not tld:
        return None
    return ZALANDO_REGIONS.get(tld, tld.upper())


def _zalando_sku(url: SplitResult) -> Optional[str]:
    match = re.search(r"([A-Z0-9]+-[A-Z0-9]+)\.html", url.path, re.IGNORECASE)
    return match.group(1) if match else None


def _asos_id(url: SplitResult) -> Optional[str]:
    match = re.search(r"prd/(\d+)", url.path, re.IGNORECASE)
    return match.group(1) if match else None


PLATFORM_PATTERNS: List[PlatformPattern] = [
    PlatformPattern(
        re.compile(r"amazon\.(de|co\.uk|com|fr|it|es|nl|pl|se|com\.be|com\.tr|co\.jp|ca|com\.au|in|com\.br|com\.mx|sg|ae|sa)", re.I),
        Platform.AMAZON, "Amazon", _amazon_region, _amazon_asin,
    ),
    PlatformPattern(
        re.compile(r"zalando\.(de|co\.uk|fr|it|es|nl|pl|se|be|at|ch|fi|dk|no|ie|ee|lv|lt|sk|si|hr|cz)", re.I),
        Platform.ZALANDO, "Zalando", _zalando_region, _zalando_sku,
    ),
    PlatformPattern(
        re.compile(r"aboutyou\.(de|com|fr|it|es|nl|pl|at|ch|be)", re.I),
        Platform.ABOUTYOU, "About You", _upper_tld("aboutyou"),
    ),
    PlatformPattern(re.compile(r"asos\.com", re.I), Platform.ASOS, "ASOS", _fixed("EU"), _asos_id),
    PlatformPattern(
        re.compile(r"sephora\.(de|com|fr|it|es|co\.uk)", re.I),
        Platform.SEPHORA, "Sephora", _upper_tld("sephora"),
    ),
    PlatformPattern(
        re.compile(r"douglas\.(de|nl|at|pl|it|fr|es)", re.I),
        Platform.DOUGLAS, "Douglas", _upper_tld("douglas"),
    ),
    PlatformPattern(
        re.compile(r"mediamarkt\.(de|nl|at|es|it|pl|be|se)", re.I),
        Platform.MEDIAMARKT, "MediaMarkt", _upper_tld("mediamarkt"),
    ),
    PlatformPattern(re.compile(r"saturn\.de", re.I), Platform.SATURN, "Saturn", _fixed("DE")),
    PlatformPattern(
        re.compile(r"ltk\.to|liketoknow\.it|shopltk\.com", re.I),
        Platform.LTK, "LTK", _fixed("GLOBAL"),
    ),
    PlatformPattern(re.compile(r"awin1\.com|prf\.hn", re.I), Platform.AWIN, "Awin Network"),
    PlatformPattern(
        re.compile(r"impact\.com|impactradius\.com|sjv\.io", re.I),
        Platform.IMPACT, "Impact Network",
    ),
    PlatformPattern(
        re.compile(r"tradedoubler\.com|clk\.tradedoubler", re.I),
        Platform.TRADEDOUBLER, "Tradedoubler Network",
    ),
]

VALID_HOST = re.compile(r"[\w.-]+")

# Characters left as-is when re-encoding the path; "%" keeps existing escapes intact
PATH_SAFE = "/%:@!$&'()*+,;=~"

PRODUCT_PATH_PATTERNS = [
    re.compile(p, re.I) for p in (
        r"/products?/", r"/p/", r"/item/", r"/dp/", r"/prd/", r"/sku/", r"\d{4,}\.html",
    )
]

NON_PRODUCT_PATH_PATTERNS = [
    re.compile(p, re.I) for p in (
        r"/collections?/", r"/categor", r"/search", r"/blog", r"/page/", r"/filter", r"/brand/",
    )
]


# =============================================================================
# PUBLIC API
# =============================================================================

def normalize_url(raw_url: str) -> NormalizedUrl:
    """
    Normalize a product URL and detect merchant/platform/region.

    Args:
        raw_url: URL as pasted by the user, with or without scheme

    Returns:
        NormalizedUrl. Unparseable input returns platform 'unknown'
        with the raw string as the normalized value.
    """
    url_str = (raw_url or "").strip()
    if not url_str.lower().startswith(("http://", "https://")):
        url_str = "https://" + url_str

    try:
        parts = urlsplit(url_str)
        hostname = parts.hostname
        # Accessing port validates the netloc
        parts.port
    except ValueError:
        hostname = None

    if not hostname or not VALID_HOST.fullmatch(hostname):
        logger.debug(f"Could not parse URL: {raw_url!r}")
        return _degraded(raw_url)

    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key.lower() in AFFILIATE_PARAMS or key.lower() not in TRACKING_PARAMS
    ]
    netloc = parts.netloc.lower() if "@" not in parts.netloc else parts.netloc
    path = quote(parts.path, safe=PATH_SAFE) or "/"
    cleaned = SplitResult(parts.scheme.lower(), netloc, path, urlencode(query), "")
    normalized = urlunsplit(cleaned).rstrip("/")

    platform = Platform.UNKNOWN
    merchant = _merchant_from_domain(hostname)
    region = None
    product_id = None

    for row in PLATFORM_PATTERNS:
        if row.pattern.search(hostname):
            platform = row.platform
            merchant = row.merchant
            region = row.region(cleaned) if row.region else None
            product_id = row.product_id(cleaned) if row.product_id else None
            break

    if platform == Platform.UNKNOWN and _is_shopify_store(cleaned):
        platform = Platform.SHOPIFY

    return NormalizedUrl(
        original=raw_url,
        normalized=normalized,
        merchant=merchant,
        platform=platform,
        region=region or None,
        product_id=product_id or None,
        is_product_page=_detect_product_page(cleaned, platform),
    )


def validate_url(raw_url: str) -> UrlValidation:
    """Check that a URL is usable before starting an analysis."""
    if not raw_url or not raw_url.strip():
        return UrlValidation(valid=False, error="URL is required")

    url_str = raw_url.strip()
    if not url_str.lower().startswith(("http://", "https://")):
        url_str = "https://" + url_str

    try:
        parts = urlsplit(url_str)
        hostname = parts.hostname
        parts.port
    except ValueError:
        return UrlValidation(valid=False, error="Invalid URL format")

    if parts.scheme not in ("http", "https"):
        return UrlValidation(valid=False, error="URL must use HTTP or HTTPS protocol")
    if not hostname or not VALID_HOST.fullmatch(hostname):
        return UrlValidation(valid=False, error="Invalid URL format")
    if "." not in hostname:
        return UrlValidation(valid=False, error="Invalid domain name")

    return UrlValidation(valid=True)


# =============================================================================
# INTERNALS
# =============================================================================

def _degraded(raw_url: str) -> NormalizedUrl:
    return NormalizedUrl(
        original=raw_url,
        normalized=raw_url,
        merchant="Unknown",
        platform=Platform.UNKNOWN,
        region=None,
        product_id=None,
        is_product_page=False,
    )


def _merchant_from_domain(hostname: str) -> str:
    """'www.nike.com' -> 'Nike'."""
    labels = re.sub(r"^www\.", "", hostname).split(".")
    if len(labels) >= 2:
        name = labels[0]
        return name[:1].upper() + name[1:]
    return hostname


def _is_shopify_store(url: SplitResult) -> bool:
    return "/products/" in url.path or "myshopify.com" in (url.hostname or "")


def _detect_product_page(url: SplitResult, platform: Platform) -> bool:
    path = url.path.lower()

    if platform == Platform.AMAZON:
        return "/dp/" in path or "/gp/product/" in path
    if platform == Platform.SHOPIFY:
        return "/products/" in path and not path.rstrip("/").endswith("/products")
    if platform == Platform.ZALANDO:
        return path.endswith(".html") and "/catalog/" not in path and "/filter/" not in path

    if any(p.search(path) for p in NON_PRODUCT_PATH_PATTERNS):
        return False
    if any(p.search(path) for p in PRODUCT_PATH_PATTERNS):
        return True

    segments = [s for s in path.split("/") if s]
    return len(segments) >= 2
