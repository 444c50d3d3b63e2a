"""
Verifier Helpers

Shared enumerations, thresholds and numeric helpers used by every stage
of the product verifier pipeline.

String enums serialize to the exact values the frontend expects
(e.g. ``GREEN``, ``trust_first``), so records can be dumped straight to JSON.
"""

from enum import Enum
from typing import Any, List


# =============================================================================
# ENUMERATIONS
# =============================================================================

class Platform(str, Enum):
    """Merchant platform detected from a product URL."""
    AMAZON = "amazon"
    ZALANDO = "zalando"
    ABOUTYOU = "aboutyou"
    ASOS = "asos"
    SEPHORA = "sephora"
    DOUGLAS = "douglas"
    MEDIAMARKT = "mediamarkt"
    SATURN = "saturn"
    LTK = "ltk"
    AWIN = "awin"
    IMPACT = "impact"
    TRADEDOUBLER = "tradedoubler"
    SHOPIFY = "shopify"
    UNKNOWN = "unknown"


class VerdictStatus(str, Enum):
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"
    TEST_FIRST = "TEST_FIRST"


class PrimaryAction(str, Enum):
    APPROVE = "APPROVE"
    ALT_BRAND = "ALT_BRAND"
    ALT_PRODUCT = "ALT_PRODUCT"
    TEST_FIRST = "TEST_FIRST"


class ConfidenceLevel(str, Enum):
    LOW = "LOW"
    MED = "MED"
    HIGH = "HIGH"


class EvidenceQuality(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EvidenceSourceType(str, Enum):
    PRODUCT_PAGE = "product_page"
    TRUSTPILOT = "trustpilot"
    REVIEWS_IO = "reviews_io"
    GOOGLE_REVIEWS = "google_reviews"
    AFFILIATE_DB = "affiliate_db"
    POLICY_PAGE = "policy_page"
    BRAND_SITE = "brand_site"


class DataQuality(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class HardStopFlag(str, Enum):
    """Verdict-level hard stops, checked in declaration order."""
    MERCHANT_RISK_EXTREME = "MERCHANT_RISK_EXTREME"
    COMPLIANCE_RISK_HIGH = "COMPLIANCE_RISK_HIGH"
    EVIDENCE_TOO_THIN = "EVIDENCE_TOO_THIN"
    PRODUCT_PAGE_NOT_FOUND = "PRODUCT_PAGE_NOT_FOUND"
    OUT_OF_STOCK = "OUT_OF_STOCK"


class RankMode(str, Enum):
    BALANCED = "balanced"
    DEMAND_FIRST = "demand_first"
    TRUST_FIRST = "trust_first"
    ECONOMICS_FIRST = "economics_first"


class PrimaryRoute(str, Enum):
    CATEGORY_ALTERNATIVES = "category_alternatives"
    BRAND_ALTERNATIVES = "brand_alternatives"
    TEST_FIRST = "test_first"


class BucketStrategy(str, Enum):
    STANDARD = "standard"
    CONSERVATIVE = "conservative"
    # Reserved; currently behaves like STANDARD.
    AGGRESSIVE = "aggressive"


class BucketKey(str, Enum):
    SAFE = "safe"
    UPSIDE = "upside"
    BUDGET = "budget"
    TRENDING = "trending"


class PillarName(str, Enum):
    PRODUCT_VIABILITY = "product_viability"
    OFFER_MERCHANT = "offer_merchant"
    ECONOMICS = "economics"


class AvoidCause(str, Enum):
    DEMAND = "demand"
    MERCHANT = "merchant"
    ECONOMICS = "economics"
    MULTIPLE = "multiple"


class Availability(str, Enum):
    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"
    LIMITED = "limited"
    UNKNOWN = "unknown"


# Bucket fill order is part of the output contract.
BUCKET_ORDER: List[BucketKey] = [
    BucketKey.SAFE,
    BucketKey.UPSIDE,
    BucketKey.BUDGET,
    BucketKey.TRENDING,
]


# =============================================================================
# THRESHOLDS
# =============================================================================

# Winner eligibility floors
WINNER_MIN_COVERAGE = 0.3
WINNER_MIN_PRODUCT_VIABILITY = 30
WINNER_MIN_OFFER_MERCHANT = 30
WINNER_MIN_ECONOMICS = 25

# Verdict
VERDICT_RED_FLOOR = 40
VERDICT_GREEN_FLOOR = 65
VERDICT_YELLOW_AVERAGE = 50
MERCHANT_EXTREME_RATING = 2.0

# Intent routing
SUPPRESS_WINNER_COVERAGE = 0.4
TRENDING_MIN_COVERAGE = 0.6
WEAK_PILLAR_THRESHOLD = 50
VERY_WEAK_PILLAR_THRESHOLD = 35

# Earning band click assumptions
MONTHLY_CLICKS_LOW = 500
MONTHLY_CLICKS_HIGH = 2000


# =============================================================================
# NUMERIC HELPERS
# =============================================================================

def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def percentile(sorted_values: List[float], fraction: float) -> float:
    """
    Index-based percentile over an ascending list.

    Uses floor(n * fraction), matching how category stats are computed
    from affiliate program rows.
    """
    if not sorted_values:
        return 0.0
    index = min(int(len(sorted_values) * fraction), len(sorted_values) - 1)
    return sorted_values[index]


def enum_value(value: Any) -> Any:
    """Return the raw value of an enum member, pass everything else through."""
    return value.value if isinstance(value, Enum) else value


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive scores (Python's round() is banker's)."""
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)

