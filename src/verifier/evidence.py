"""
Evidence Engine

Tracks every data source that informed an analysis, measures how well
the sources agree, and explains the resulting confidence level.

Usage:
    collector = EvidenceCollector()
    collector.add_product_page_evidence(ProductPageEvidence(...))
    collector.add_reputation_evidence(ReputationEvidence(...))
    collector.add_affiliate_db_evidence(AffiliateDbEvidence(...))
    summary = collector.get_summary()
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .helpers import (
    ConfidenceLevel,
    EvidenceQuality,
    EvidenceSourceType,
    round_half_up,
)

logger = logging.getLogger(__name__)

REVIEW_SOURCES = {
    EvidenceSourceType.PRODUCT_PAGE,
    EvidenceSourceType.TRUSTPILOT,
    EvidenceSourceType.REVIEWS_IO,
}

BADGE_COLORS = {
    ConfidenceLevel.HIGH: "emerald",
    ConfidenceLevel.MED: "amber",
    ConfidenceLevel.LOW: "red",
}

FRESH_DATA_DAYS = 7
STALE_DATA_DAYS = 30


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class EvidenceSource:
    source: EvidenceSourceType
    label: str
    data_points: int
    recency_days: Optional[int]
    quality: EvidenceQuality
    snippets: Optional[List[str]] = None
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "source": self.source.value,
            "label": self.label,
            "data_points": self.data_points,
            "recency_days": self.recency_days,
            "quality": self.quality.value,
        }
        if self.snippets is not None:
            data["snippets"] = list(self.snippets)
        if self.url is not None:
            data["url"] = self.url
        return data


@dataclass
class ProductPageEvidence:
    has_rating: bool = False
    rating: Optional[float] = None
    review_count: int = 0
    has_price: bool = False
    has_description: bool = False
    has_brand: bool = False
    has_images: bool = False
    page_url: Optional[str] = None


@dataclass
class ReputationEvidence:
    trustpilot_score: Optional[float] = None
    trustpilot_reviews: int = 0
    reviews_io_score: Optional[float] = None
    reviews_io_reviews: int = 0
    recency_days: Optional[int] = None


@dataclass
class AffiliateDbEvidence:
    program_found: bool = False
    program_name: Optional[str] = None
    confidence_score: Optional[int] = None
    last_verified_days: Optional[int] = None


@dataclass
class EvidenceSummary:
    sources: List[EvidenceSource]
    total_data_points: int
    source_count: int
    cross_source_agreement: ConfidenceLevel
    confidence: ConfidenceLevel
    confidence_explanation: List[str] = field(default_factory=list)
    gaps: List[str] = field(default_factory=list)
    strengths: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sources": [s.to_dict() for s in self.sources],
            "total_data_points": self.total_data_points,
            "source_count": self.source_count,
            "cross_source_agreement": self.cross_source_agreement.value,
            "confidence": self.confidence.value,
            "confidence_explanation": list(self.confidence_explanation),
            "gaps": list(self.gaps),
            "strengths": list(self.strengths),
        }


# =============================================================================
# COLLECTOR
# =============================================================================

class EvidenceCollector:
    """Accumulates evidence sources for one analysis."""

    def __init__(self):
        self.sources: List[EvidenceSource] = []

    def add_source(self, source: EvidenceSource) -> None:
        self.sources.append(source)

    def add_product_page_evidence(self, data: ProductPageEvidence) -> None:
        """One live-scrape source; review volume counts a tenth per review, capped at 10."""
        points = 0.0
        if data.has_rating and data.rating is not None:
            points += 1
        if data.review_count > 0:
            points += min(data.review_count, 100) / 10
        for present in (data.has_price, data.has_description, data.has_brand, data.has_images):
            if present:
                points += 1

        if points >= 8:
            quality = EvidenceQuality.HIGH
        elif points >= 4:
            quality = EvidenceQuality.MEDIUM
        else:
            quality = EvidenceQuality.LOW

        self.add_source(EvidenceSource(
            source=EvidenceSourceType.PRODUCT_PAGE,
            label="Product Page",
            data_points=round_half_up(points),
            recency_days=0,
            quality=quality,
            url=data.page_url,
        ))

    def add_reputation_evidence(self, data: ReputationEvidence) -> None:
        if data.trustpilot_score is not None or data.trustpilot_reviews > 0:
            self.add_source(EvidenceSource(
                source=EvidenceSourceType.TRUSTPILOT,
                label="Trustpilot",
                data_points=min(data.trustpilot_reviews, 100),
                recency_days=data.recency_days,
                quality=_review_quality(data.trustpilot_reviews),
            ))

        if data.reviews_io_score is not None or data.reviews_io_reviews > 0:
            self.add_source(EvidenceSource(
                source=EvidenceSourceType.REVIEWS_IO,
                label="Reviews.io",
                data_points=min(data.reviews_io_reviews, 100),
                recency_days=data.recency_days,
                quality=_review_quality(data.reviews_io_reviews),
            ))

    def add_affiliate_db_evidence(self, data: AffiliateDbEvidence) -> None:
        if not data.program_found:
            return

        score = data.confidence_score or 0
        if score >= 4:
            quality = EvidenceQuality.HIGH
        elif score >= 3:
            quality = EvidenceQuality.MEDIUM
        else:
            quality = EvidenceQuality.LOW

        self.add_source(EvidenceSource(
            source=EvidenceSourceType.AFFILIATE_DB,
            label="Affiliate Database",
            data_points=1,
            recency_days=data.last_verified_days,
            quality=quality,
        ))

    def get_summary(self) -> EvidenceSummary:
        """Fold all collected sources into an EvidenceSummary."""
        total = sum(s.data_points for s in self.sources)
        agreement = calculate_cross_source_agreement(self.sources)
        confidence = calculate_confidence(self.sources, total, agreement)
        explanations, gaps, strengths = _generate_explanations(self.sources, confidence)

        logger.debug(
            f"Evidence: {len(self.sources)} sources, {total} points, "
            f"agreement={agreement.value}, confidence={confidence.value}"
        )

        return EvidenceSummary(
            sources=list(self.sources),
            total_data_points=round_half_up(total),
            source_count=len(self.sources),
            cross_source_agreement=agreement,
            confidence=confidence,
            confidence_explanation=explanations,
            gaps=gaps,
            strengths=strengths,
        )


# =============================================================================
# AGREEMENT & CONFIDENCE
# =============================================================================

def calculate_cross_source_agreement(sources: List[EvidenceSource]) -> ConfidenceLevel:
    if len(sources) < 2:
        return ConfidenceLevel.LOW

    high_quality = sum(1 for s in sources if s.quality == EvidenceQuality.HIGH)
    not_low = sum(1 for s in sources if s.quality != EvidenceQuality.LOW)

    if high_quality >= 2 and len(sources) >= 3:
        return ConfidenceLevel.HIGH
    if not_low >= 2:
        return ConfidenceLevel.MED
    return ConfidenceLevel.LOW


def calculate_confidence(
    sources: List[EvidenceSource],
    total_data_points: int,
    agreement: ConfidenceLevel,
) -> ConfidenceLevel:
    """
    Confidence tier from source count, volume, agreement and freshness.

    HIGH: >=3 sources, >=20 points, agreement not LOW, a high-quality
          source and a source no older than 7 days.
    MED:  >=2 sources, >=10 points, and a high-quality source or
          agreement not LOW.
    """
    has_high_quality = any(s.quality == EvidenceQuality.HIGH for s in sources)
    has_fresh_data = any(
        s.recency_days is not None and s.recency_days <= FRESH_DATA_DAYS for s in sources
    )

    if (
        len(sources) >= 3
        and total_data_points >= 20
        and agreement != ConfidenceLevel.LOW
        and has_high_quality
        and has_fresh_data
    ):
        return ConfidenceLevel.HIGH

    if (
        len(sources) >= 2
        and total_data_points >= 10
        and (has_high_quality or agreement != ConfidenceLevel.LOW)
    ):
        return ConfidenceLevel.MED

    return ConfidenceLevel.LOW


def _review_quality(reviews: int) -> EvidenceQuality:
    if reviews >= 50:
        return EvidenceQuality.HIGH
    if reviews >= 10:
        return EvidenceQuality.MEDIUM
    return EvidenceQuality.LOW


def _generate_explanations(sources: List[EvidenceSource], confidence: ConfidenceLevel):
    explanations: List[str] = []
    gaps: List[str] = []
    strengths: List[str] = []

    types = {s.source for s in sources}

    if EvidenceSourceType.PRODUCT_PAGE in types:
        page = next(s for s in sources if s.source == EvidenceSourceType.PRODUCT_PAGE)
        if page.quality == EvidenceQuality.HIGH:
            strengths.append("Rich product page data available")
    else:
        gaps.append("Product page data not extracted")

    if EvidenceSourceType.TRUSTPILOT in types or EvidenceSourceType.REVIEWS_IO in types:
        strengths.append("Third-party reviews available")
    else:
        gaps.append("No third-party merchant reviews found")

    if EvidenceSourceType.AFFILIATE_DB in types:
        strengths.append("Affiliate program data verified")
    else:
        gaps.append("No affiliate program data - using category estimates")

    total_reviews = sum(s.data_points for s in sources if s.source in REVIEW_SOURCES)
    if total_reviews < 10:
        gaps.append("Limited review volume (fewer than 10 reviews)")
        explanations.append("Low review count reduces prediction accuracy")
    elif total_reviews >= 100:
        strengths.append(f"Strong review volume ({total_reviews}+ reviews)")

    if any(s.recency_days is not None and s.recency_days > STALE_DATA_DAYS for s in sources):
        gaps.append("Some data is older than 30 days")

    if confidence == ConfidenceLevel.LOW:
        explanations.append("Confidence is LOW because: " + ", ".join(gaps[:2]))
    elif confidence == ConfidenceLevel.MED:
        if gaps:
            explanations.append("Some data gaps exist: " + gaps[0])
        explanations.append("Confidence is MEDIUM - verify key assumptions before committing")
    else:
        explanations.append("Strong evidence from multiple sources supports this analysis")

    return explanations, gaps, strengths


# =============================================================================
# UI FORMATTING
# =============================================================================

def format_evidence_for_ui(summary: EvidenceSummary) -> Dict[str, Any]:
    """Project an EvidenceSummary into display rows and colored badges."""
    return {
        "sources_display": [
            {
                "name": s.label,
                "quality": s.quality.value,
                "count": f"{s.data_points} data points" if s.data_points > 1 else "1 data point",
            }
            for s in summary.sources
        ],
        "agreement_badge": {
            "label": summary.cross_source_agreement.value,
            "color": BADGE_COLORS[summary.cross_source_agreement],
        },
        "confidence_badge": {
            "label": summary.confidence.value,
            "color": BADGE_COLORS[summary.confidence],
        },
    }
