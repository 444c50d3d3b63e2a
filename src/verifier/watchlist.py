"""
Watchlist Monitor

Compares a watched product's stored snapshot against freshly collected
data and produces alerts for:
- review rating changes
- commission rate changes
- the product going out of stock
- higher-commission alternatives in the same category

Snapshots keep only pillar scores, so previous rating and commission are
estimated back from those scores. The estimates are coarse by nature.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from .helpers import Availability
from .models import ScrapedProductData

RATING_CHANGE_THRESHOLD = 0.3
COMMISSION_CHANGE_THRESHOLD = 1.5
BETTER_ALTERNATIVE_MIN_RATE = 10
BETTER_ALTERNATIVE_MAX_ECONOMICS = 60

DEFAULT_MONITORING_CONFIG = {
    "review_sentiment": True,
    "commission_changes": True,
    "policy_changes": True,
    "better_alternatives": True,
}


@dataclass
class WatchlistAlert:
    user_id: str
    watchlist_id: str
    alert_type: str
    severity: str  # info | warning | critical
    title: str
    description: str
    previous_value: Optional[Dict[str, Any]] = None
    new_value: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# ESTIMATES
# =============================================================================

def estimate_previous_rating(product_viability: Optional[float]) -> float:
    """Rough review rating implied by a product viability score; a missing score counts as 0."""
    product_viability = product_viability or 0
    if product_viability >= 80:
        return 4.5
    if product_viability >= 70:
        return 4.2
    if product_viability >= 60:
        return 4.0
    if product_viability >= 50:
        return 3.5
    if product_viability >= 40:
        return 3.0
    return 2.5


def estimate_previous_commission(economics: Optional[float]) -> float:
    """Rough average commission % implied by an economics score; a missing score counts as 0."""
    economics = economics or 0
    if economics >= 80:
        return 10
    if economics >= 65:
        return 7
    if economics >= 50:
        return 5
    if economics >= 35:
        return 3
    return 2


# =============================================================================
# ALERTS
# =============================================================================

def detect_watchlist_alerts(
    item: Dict[str, Any],
    current_product: ScrapedProductData,
    current_program: Optional[Dict[str, Any]] = None,
    better_programs: Optional[List[Dict[str, Any]]] = None,
) -> List[WatchlistAlert]:
    """
    Alerts for one watchlist row.

    Args:
        item: Watchlist row (id, user_id, product_name, brand, last_snapshot,
              monitoring_config)
        current_product: Fresh scrape of the watched URL
        current_program: Best active program for the item's brand, if any
        better_programs: High-commission programs of other brands in the
                         category, best first

    Returns:
        Alerts in rating, commission, availability, alternative order
    """
    snapshot = item.get("last_snapshot")
    if not snapshot:
        return []

    config = {**DEFAULT_MONITORING_CONFIG, **(item.get("monitoring_config") or {})}
    scores = snapshot.get("scores") or {}
    viability = scores.get("product_viability") or 0
    economics = scores.get("economics_feasibility") or 0
    name = item.get("product_name") or "Product"
    alerts: List[WatchlistAlert] = []

    def alert(alert_type, severity, title, description, previous=None, new=None):
        alerts.append(WatchlistAlert(
            user_id=str(item.get("user_id")),
            watchlist_id=str(item.get("id")),
            alert_type=alert_type,
            severity=severity,
            title=title,
            description=description,
            previous_value=previous,
            new_value=new,
        ))

    rating = current_product.rating
    if config["review_sentiment"] and rating is not None:
        previous = estimate_previous_rating(viability)
        delta = rating - previous
        if abs(delta) >= RATING_CHANGE_THRESHOLD:
            alert(
                "review_sentiment_change",
                "warning" if delta < 0 else "info",
                f"{name} ratings improved" if delta > 0 else f"{name} ratings dropped",
                f"Rating changed from ~{previous:.1f} to {rating:.1f}",
                {"rating": previous},
                {"rating": rating},
            )

    if config["commission_changes"] and item.get("brand") and current_program:
        low = current_program.get("commission_rate_low") or 0
        high = current_program.get("commission_rate_high") or 0
        current_avg = (low + high) / 2
        previous_avg = estimate_previous_commission(economics)
        if abs(current_avg - previous_avg) >= COMMISSION_CHANGE_THRESHOLD:
            increased = current_avg > previous_avg
            alert(
                "commission_change",
                "info" if increased else "warning",
                f"Commission rate {'increased' if increased else 'decreased'} for {item['brand']}",
                f"Now offering {low}-{high}%",
                {"estimated_avg": previous_avg},
                {"rate_low": low, "rate_high": high},
            )

    if current_product.availability == Availability.OUT_OF_STOCK.value:
        alert(
            "availability_change",
            "critical",
            f"{name} is out of stock",
            "Product is currently unavailable. Consider finding alternatives.",
            {"availability": Availability.IN_STOCK.value},
            {"availability": Availability.OUT_OF_STOCK.value},
        )

    if config["better_alternatives"] and item.get("category") and better_programs:
        best = better_programs[0]
        best_rate = best.get("commission_rate_high") or 0
        if (
            economics < BETTER_ALTERNATIVE_MAX_ECONOMICS
            and best_rate >= BETTER_ALTERNATIVE_MIN_RATE
        ):
            alert(
                "better_alternative",
                "info",
                f"Better alternative found: {best.get('brand_name')}",
                f"{best.get('brand_name')} offers up to {best_rate}% via {best.get('network')}",
                None,
                {"brand": best.get("brand_name"), "rate": best_rate},
            )

    return alerts


def refresh_snapshot(snapshot: Dict[str, Any], current_product: ScrapedProductData) -> Dict[str, Any]:
    """Keep scores until a full re-analysis; record the latest rating and availability."""
    return {
        "scores": snapshot.get("scores"),
        "verdict": snapshot.get("verdict"),
        "confidence": snapshot.get("confidence"),
        "last_rating": current_product.rating,
        "last_availability": current_product.availability,
    }
