"""
Verifier Input Models

Dataclasses describing what the collaborators hand to the pipeline:
- ScrapedProductData: product page extraction
- ReputationData: merchant reputation aggregate
- CommissionData: affiliate program economics
- CategoryBenchmarks / CategoryStats: category-level reference numbers

All fields are optional where the collaborator may not find the data.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


@dataclass
class ProductPrice:
    amount: float
    currency: str = "EUR"
    original_amount: Optional[float] = None

    @property
    def is_discounted(self) -> bool:
        return self.original_amount is not None and self.original_amount > self.amount


@dataclass
class ScrapedProductData:
    """Everything the page scraper could extract from a product page."""
    title: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    price: Optional[ProductPrice] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    availability: str = "unknown"
    image_url: Optional[str] = None
    variants: List[str] = field(default_factory=list)
    claims: List[str] = field(default_factory=list)
    seller_name: Optional[str] = None
    region_availability: List[str] = field(default_factory=list)
    has_return_policy: bool = False
    has_shipping_info: bool = False
    raw_meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScrapedProductData":
        data = dict(data or {})
        price = data.pop("price", None)
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        if isinstance(price, dict) and price.get("amount") is not None:
            known["price"] = ProductPrice(
                amount=float(price["amount"]),
                currency=price.get("currency") or "EUR",
                original_amount=price.get("original_amount"),
            )
        return cls(**known)


@dataclass
class ReputationData:
    """Merchant reputation aggregated across review platforms."""
    trustpilot_rating: Optional[float] = None
    trustpilot_reviews: int = 0
    google_rating: Optional[float] = None
    google_reviews: int = 0
    reviews_io_rating: Optional[float] = None
    reviews_io_reviews: int = 0
    overall_rating: Optional[float] = None
    overall_reviews: int = 0
    sentiment_score: Optional[float] = None
    has_shipping_complaints: bool = False
    has_quality_complaints: bool = False
    has_support_complaints: bool = False
    recency_days: int = 0

    @property
    def has_trustpilot(self) -> bool:
        return self.trustpilot_rating is not None or self.trustpilot_reviews > 0

    @property
    def has_reviews_io(self) -> bool:
        return self.reviews_io_rating is not None or self.reviews_io_reviews > 0


@dataclass
class CommissionData:
    """Affiliate program economics for a brand or category."""
    rate_low: float
    rate_high: float
    cookie_days: int = 30
    network: Optional[str] = None
    avg_conversion_rate: Optional[float] = None
    avg_order_value: Optional[float] = None
    refund_rate: Optional[float] = None
    requires_application: bool = False
    program_name: Optional[str] = None
    program_confidence: Optional[int] = None
    last_verified_days: int = 30
    # True when rates came from the brand's own program, not a category fallback
    is_brand_program: bool = True


@dataclass
class CategoryBenchmarks:
    """
    Reference numbers for a product category, used by pillar scoring.

    Commission, conversion and refund rates are percentages (4 means 4%).
    """
    avg_commission: float
    avg_cookie_days: int
    avg_conversion_rate: float
    avg_order_value: float
    avg_refund_rate: float
    avg_review_count: int
    avg_price: float


@dataclass
class CategoryStats:
    """Price and AOV distribution across the candidate pool of a category."""
    median_price: float = 50.0
    price_p25: float = 25.0
    price_p75: float = 100.0
    median_aov: float = 50.0
    avg_commission: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
