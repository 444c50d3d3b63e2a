"""
Verifier Service

Orchestrates a product verification session:
1. URL validation and normalization
2. Product scrape (cached per normalized URL)
3. Reputation, commission and category lookups
4. Deterministic pipeline (scores, verdict, routing, alternatives)
5. Follow-ups: re-rank, playbook, watchlist and watchlist monitoring

Database reads for optional context degrade to "no data" with a warning;
the pipeline then runs on category benchmarks.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from src.collector.page_scraper import PageScraper, ScrapeError
from src.database import repository
from src.database.models import SessionStatus
from src.utils.config import Settings, get_settings
from src.verifier import (
    BucketizerConfig,
    BucketStrategy,
    ClaudePlaybookProvider,
    CommissionData,
    PipelineInput,
    PlaybookGenerator,
    PlaybookInput,
    RankedAlternative,
    RankMode,
    ReputationData,
    ScrapedProductData,
    bucketize,
    commission_from_program,
    compute_category_stats,
    derive_brand_slug,
    derive_category,
    detect_watchlist_alerts,
    get_benchmarks,
    normalize_url,
    program_to_candidate,
    refresh_snapshot,
    rerank_with_mode,
    run_verifier_pipeline,
    validate_url,
)

from .errors import (
    AlternativeNotFoundError,
    InvalidUrlError,
    NothingToRerankError,
    ProductFetchError,
    SessionNotFoundError,
    SessionNotReadyError,
)

logger = logging.getLogger(__name__)

BETTER_PROGRAM_MIN_COMMISSION = 10
BETTER_PROGRAM_LIMIT = 3


class VerifierService:
    """Service for product verification sessions."""

    def __init__(
        self,
        scraper: Optional[PageScraper] = None,
        playbook_generator: Optional[PlaybookGenerator] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.scraper = scraper or PageScraper(timeout=self.settings.SCRAPE_TIMEOUT)

        if playbook_generator is None:
            provider = None
            if self.settings.ANTHROPIC_API_KEY:
                provider = ClaudePlaybookProvider(
                    api_key=self.settings.ANTHROPIC_API_KEY,
                    model=self.settings.CLAUDE_MODEL,
                )
            playbook_generator = PlaybookGenerator(provider)
        self.playbook_generator = playbook_generator

    # =========================================================================
    # ANALYZE
    # =========================================================================

    async def analyze_url(
        self,
        url: str,
        user_id: str,
        user_categories: Optional[List[str]] = None,
        traffic_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Run a full verification for a product URL.

        Args:
            url: Product URL as pasted by the user
            user_id: Owner of the new session
            user_categories: Categories the user's audience follows
            traffic_type: ORGANIC, PAID or MIXED

        Returns:
            Dict with session_id, status, snapshot and recommendations

        Raises:
            InvalidUrlError: URL failed validation
            ProductFetchError: Product page could not be fetched
        """
        validation = validate_url(url)
        if not validation.valid:
            raise InvalidUrlError(validation.error or "Invalid URL")

        normalized = normalize_url(url)
        user_context = {
            "traffic_type": traffic_type or "ORGANIC",
            "categories": list(user_categories or []),
        }
        session_id = repository.create_verifier_session(
            user_id, url, normalized.to_dict(), user_context
        )

        try:
            product = await self._get_product(normalized.normalized, normalized.platform)
        except ScrapeError as e:
            repository.fail_verifier_session(session_id, f"Product fetch failed: {e}")
            raise ProductFetchError(f"Could not fetch product page: {e}", session_id) from e
        except Exception as e:
            repository.fail_verifier_session(session_id, f"Product load failed: {e}")
            raise

        try:
            category = (product.category or derive_category(normalized.platform)).lower()
            brand_slug = derive_brand_slug(product.brand, normalized.merchant)

            reputation = self._get_reputation(brand_slug)
            commission = self._get_commission(brand_slug, category)
            programs = self._get_category_programs(category)
            candidates = [
                program_to_candidate(p)
                for p in programs
                if p.get("brand_slug") != brand_slug
            ][: self.settings.MAX_CANDIDATES]

            report = run_verifier_pipeline(PipelineInput(
                normalized=normalized,
                product=product,
                category=category,
                benchmarks=get_benchmarks(category),
                reputation=reputation,
                commission=commission,
                candidates=candidates,
                category_stats=compute_category_stats(programs),
                user_categories=user_context["categories"],
                items_per_bucket=self.settings.ITEMS_PER_BUCKET,
            ))

            snapshot = report.snapshot()
            recommendations = report.recommendations()
            product_data = product.to_dict()
            product_data["category"] = category
            product_data["merchant"] = normalized.merchant

            repository.update_verifier_session(
                session_id,
                status=SessionStatus.RECOMMENDATIONS_READY.value,
                product_data=product_data,
                scores=snapshot["scores"],
                score_breakdowns=snapshot["score_breakdowns"],
                confidence=snapshot["confidence"]["level"],
                evidence=snapshot["confidence"]["evidence"],
                verdict=snapshot["verdict"],
                insights=snapshot["insights"],
                economics=snapshot["economics"],
                coverage=snapshot["coverage"],
                routing=recommendations["routing"],
                rank_mode=recommendations["mode"],
                winner=recommendations["winner"],
                buckets=recommendations["buckets"],
                ranked_alternatives=[r.to_dict() for r in report.ranking.ranked],
            )
        except Exception as e:
            repository.fail_verifier_session(session_id, str(e))
            raise

        logger.info(
            f"Session {session_id}: {report.verdict.status.value} for {normalized.normalized}"
        )
        return {
            "session_id": session_id,
            "status": SessionStatus.RECOMMENDATIONS_READY.value,
            "snapshot": snapshot,
            "recommendations": recommendations,
        }

    async def _get_product(self, normalized_url: str, platform: Any) -> ScrapedProductData:
        """Scrape a product page, reusing a fresh cached extraction."""
        cached = None
        try:
            cached = repository.get_cached_scrape(normalized_url)
        except SQLAlchemyError as e:
            logger.warning(f"Scrape cache lookup failed: {e}")

        if cached:
            logger.debug(f"Scrape cache hit for {normalized_url}")
            return ScrapedProductData.from_dict(cached)

        product = await self.scraper.scrape(normalized_url, platform)

        try:
            repository.store_scrape(
                normalized_url,
                getattr(platform, "value", platform),
                product.to_dict(),
                ttl_hours=self.settings.SCRAPE_CACHE_HOURS,
            )
        except SQLAlchemyError as e:
            logger.warning(f"Could not cache scrape for {normalized_url}: {e}")

        return product

    def _get_reputation(self, brand_slug: str) -> Optional[ReputationData]:
        try:
            row = repository.get_brand_reputation(brand_slug)
        except SQLAlchemyError as e:
            logger.warning(f"Reputation lookup failed for {brand_slug}: {e}")
            return None
        return reputation_from_row(row) if row else None

    def _get_commission(self, brand_slug: str, category: str) -> Optional[CommissionData]:
        """Brand program first, else the best program in the category."""
        try:
            program = repository.get_brand_program(brand_slug)
            if program:
                return commission_from_program(program, is_brand_program=True)

            fallback = repository.get_category_programs(category, limit=1)
        except SQLAlchemyError as e:
            logger.warning(f"Commission lookup failed for {brand_slug}: {e}")
            return None

        if fallback:
            return commission_from_program(fallback[0], is_brand_program=False)
        return None

    def _get_category_programs(self, category: str) -> List[Dict[str, Any]]:
        try:
            return repository.get_category_programs(category)
        except SQLAlchemyError as e:
            logger.warning(f"Program lookup failed for {category}: {e}")
            return []

    # =========================================================================
    # SESSIONS
    # =========================================================================

    def get_session(self, session_id: str, user_id: str) -> Dict[str, Any]:
        session = repository.get_verifier_session(session_id, user_id)
        if not session:
            raise SessionNotFoundError("Session not found", session_id)
        return session_to_response(session)

    def rerank_session(self, session_id: str, user_id: str, mode: RankMode) -> Dict[str, Any]:
        """
        Re-rank the stored alternatives under another mode.

        Raises:
            SessionNotFoundError: Unknown session
            NothingToRerankError: Session has no alternatives
        """
        session = repository.get_verifier_session(session_id, user_id)
        if not session:
            raise SessionNotFoundError("Session not found", session_id)

        previous = [RankedAlternative.from_dict(r) for r in session.get("ranked_alternatives") or []]
        if not previous:
            raise NothingToRerankError("No alternatives to re-rank", session_id)

        mode = RankMode(mode)
        programs = self._get_category_programs((session.get("product_data") or {}).get("category") or "")
        ranking = rerank_with_mode(previous, mode, compute_category_stats(programs))
        buckets = bucketize(ranking.ranked, ranking.winner, BucketizerConfig(
            items_per_bucket=self.settings.ITEMS_PER_BUCKET,
            show_trending=True,
            bucket_strategy=BucketStrategy.STANDARD,
        ))

        winner = buckets.winner.to_dict() if buckets.winner else None
        bucket_dicts = [b.to_dict() for b in buckets.buckets]
        repository.update_verifier_session(
            session_id,
            rank_mode=mode.value,
            winner=winner,
            buckets=bucket_dicts,
            ranked_alternatives=[r.to_dict() for r in ranking.ranked],
        )

        logger.info(f"Session {session_id} re-ranked in {mode.value} mode")
        return {
            "mode": mode.value,
            "winner": winner,
            "buckets": bucket_dicts,
            "total_candidates": buckets.total_candidates,
        }

    # =========================================================================
    # PLAYBOOK
    # =========================================================================

    async def generate_session_playbook(
        self,
        session_id: str,
        user_id: str,
        selected_alternative_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Generate a promotion playbook for the original product or an alternative.

        Raises:
            SessionNotFoundError: Unknown session
            AlternativeNotFoundError: Alternative id not in the session
        """
        session = repository.get_verifier_session(session_id, user_id)
        if not session:
            raise SessionNotFoundError("Session not found", session_id)

        if selected_alternative_id:
            alternatives = session.get("ranked_alternatives") or []
            alternative = next(
                (a for a in alternatives if str(a.get("id")) == selected_alternative_id), None
            )
            if alternative is None:
                raise AlternativeNotFoundError("Selected alternative not found", session_id)
            approved_id = selected_alternative_id
            data = playbook_input_for_alternative(session, alternative)
        else:
            approved_id = session_id
            data = playbook_input_for_product(session)

        playbook = await self.playbook_generator.generate(data, approved_id)
        result = playbook.to_dict()

        repository.update_verifier_session(
            session_id,
            status=SessionStatus.PLAYBOOK_READY.value,
            selected_alternative_id=selected_alternative_id,
            approved_item=result["approved_item"],
            playbook=result,
        )
        return result

    # =========================================================================
    # WATCHLIST
    # =========================================================================

    def add_to_watchlist(self, session_id: str, user_id: str) -> Dict[str, Any]:
        """
        Watch the session's product and complete the session.

        Raises:
            SessionNotFoundError: Unknown session
            SessionNotReadyError: Session has no scores (still analysing or failed)
        """
        session = repository.get_verifier_session(session_id, user_id)
        if not session:
            raise SessionNotFoundError("Session not found", session_id)

        scores = session.get("scores") or {}
        if scores.get("product_viability") is None or scores.get("economics") is None:
            raise SessionNotReadyError("Session has no analysis results to watch", session_id)

        product = session.get("product_data") or {}
        snapshot = {
            "scores": {
                "product_viability": scores.get("product_viability"),
                "offer_merchant": scores.get("offer_merchant"),
                "economics_feasibility": scores.get("economics"),
            },
            "verdict": (session.get("verdict") or {}).get("status"),
            "confidence": session.get("confidence"),
        }

        item = repository.create_watchlist_item(
            user_id=user_id,
            url=session["input_url"],
            normalized_url=session.get("normalized_url"),
            product_name=product.get("title") or "Product",
            brand=product.get("brand"),
            merchant=product.get("merchant") or product.get("seller_name"),
            category=product.get("category"),
            last_snapshot=snapshot,
            session_id=session_id,
        )
        repository.update_verifier_session(session_id, status=SessionStatus.COMPLETED.value)
        return item

    def list_watchlist(self, user_id: str) -> List[Dict[str, Any]]:
        return repository.list_watchlist(user_id)

    def list_alerts(self, user_id: str, unread_only: bool = False) -> List[Dict[str, Any]]:
        return repository.list_alerts(user_id, unread_only=unread_only)

    async def run_watchlist_monitor(self) -> Dict[str, int]:
        """
        Check every due watchlist item once.

        A failure on one item is logged, the item is rescheduled without
        alerts and the batch continues.

        Returns:
            {"checked": items checked, "alerts": alerts created}
        """
        items = repository.get_due_watchlist_items(limit=self.settings.WATCHLIST_BATCH_SIZE)
        checked = 0
        alert_total = 0

        for item in items:
            try:
                alerts = await self._check_watchlist_item(item)
            except ScrapeError as e:
                logger.warning(f"Watchlist fetch failed for {item['id']}: {e}")
                self._reschedule_watchlist_item(item["id"])
                continue
            except Exception as e:
                logger.error(f"Watchlist check failed for {item['id']}: {e}", exc_info=True)
                self._reschedule_watchlist_item(item["id"])
                continue
            checked += 1
            alert_total += alerts

        logger.info(f"Watchlist monitor: checked {checked}/{len(items)}, {alert_total} alerts")
        return {"checked": checked, "alerts": alert_total}

    async def _check_watchlist_item(self, item: Dict[str, Any]) -> int:
        url = item.get("normalized_url") or item["url"]
        product = await self.scraper.scrape(url, normalize_url(url).platform)

        program = None
        if item.get("brand"):
            program = repository.get_brand_program(derive_brand_slug(item["brand"], item.get("merchant")))

        better_programs = []
        if item.get("category"):
            better_programs = repository.get_category_programs(
                item["category"],
                min_commission=BETTER_PROGRAM_MIN_COMMISSION,
                limit=BETTER_PROGRAM_LIMIT,
            )

        alerts = detect_watchlist_alerts(item, product, program, better_programs)
        snapshot = refresh_snapshot(item.get("last_snapshot") or {}, product)
        repository.record_watchlist_check(
            item["id"],
            [a.to_dict() for a in alerts],
            snapshot,
            recheck_hours=self.settings.WATCHLIST_RECHECK_HOURS,
        )
        return len(alerts)

    def _reschedule_watchlist_item(self, item_id: str) -> None:
        """Move a failed item to its next check, keeping the stored snapshot."""
        try:
            repository.record_watchlist_check(
                item_id, [], None, recheck_hours=self.settings.WATCHLIST_RECHECK_HOURS
            )
        except SQLAlchemyError as e:
            logger.error(f"Could not reschedule watchlist item {item_id}: {e}")


# =============================================================================
# CONVERSIONS
# =============================================================================

def reputation_from_row(row: Dict[str, Any], now: Optional[datetime] = None) -> ReputationData:
    """ReputationData from a brand_reputation row; recency counts from scraped_at."""
    recency_days = 0
    scraped_at = row.get("scraped_at")
    if isinstance(scraped_at, datetime):
        now = now or datetime.now(timezone.utc)
        if scraped_at.tzinfo is None:
            scraped_at = scraped_at.replace(tzinfo=timezone.utc)
        recency_days = max(0, (now - scraped_at).days)

    return ReputationData(
        trustpilot_rating=row.get("trustpilot_rating"),
        trustpilot_reviews=row.get("trustpilot_reviews") or 0,
        google_rating=row.get("google_rating"),
        google_reviews=row.get("google_reviews") or 0,
        reviews_io_rating=row.get("reviews_io_rating"),
        reviews_io_reviews=row.get("reviews_io_reviews") or 0,
        overall_rating=row.get("overall_rating"),
        overall_reviews=row.get("overall_reviews") or 0,
        sentiment_score=row.get("sentiment_score"),
        has_shipping_complaints=bool(row.get("has_shipping_complaints")),
        has_quality_complaints=bool(row.get("has_quality_complaints")),
        has_support_complaints=bool(row.get("has_support_complaints")),
        recency_days=recency_days,
    )


def _common_playbook_fields(session: Dict[str, Any]) -> Dict[str, Any]:
    insights = session.get("insights") or {}
    user_context = session.get("user_context") or {}
    price = (session.get("product_data") or {}).get("price") or {}
    return {
        "currency": price.get("currency") or "EUR",
        "top_pros": list(insights.get("top_pros") or []),
        "top_risks": list(insights.get("top_risks") or []),
        "user_region": session.get("region") or "EU",
        "traffic_type": user_context.get("traffic_type") or "ORGANIC",
    }


def playbook_input_for_product(session: Dict[str, Any]) -> PlaybookInput:
    product = session.get("product_data") or {}
    merchant = product.get("merchant") or product.get("seller_name") or "Unknown"
    commission = (session.get("economics") or {}).get("commission")
    price = product.get("price") or {}

    return PlaybookInput(
        product_title=product.get("title") or "Product",
        brand=product.get("brand") or merchant,
        category=product.get("category") or "general",
        merchant=merchant,
        price=price.get("amount"),
        commission_rate=(
            f"{commission['rate_pct_low']}-{commission['rate_pct_high']}%" if commission else "varies"
        ),
        network=(commission or {}).get("network") or "Unknown",
        cookie_days=(session.get("economics") or {}).get("cookie_days") or 30,
        **_common_playbook_fields(session),
    )


def playbook_input_for_alternative(session: Dict[str, Any], alternative: Dict[str, Any]) -> PlaybookInput:
    return PlaybookInput(
        product_title=alternative.get("title") or "Product",
        brand=alternative.get("brand") or "Unknown",
        category=alternative.get("category") or "general",
        merchant=alternative.get("merchant") or "Unknown",
        price=alternative.get("price_low"),
        commission_rate=(
            f"{alternative.get('commission_rate_low', 0)}-{alternative.get('commission_rate_high', 0)}%"
        ),
        network=alternative.get("network") or "",
        cookie_days=alternative.get("cookie_days") or 30,
        **_common_playbook_fields(session),
    )


def session_to_response(session: Dict[str, Any]) -> Dict[str, Any]:
    """API view of a stored session."""
    product = session.get("product_data") or {}
    return {
        "session_id": session["id"],
        "status": session.get("status"),
        "error_message": session.get("error_message"),
        "input_url": session.get("input_url"),
        "normalized_url": session.get("normalized_url"),
        "platform": session.get("platform"),
        "region": session.get("region"),
        "snapshot": {
            "product": {
                "title": product.get("title"),
                "brand": product.get("brand"),
                "category": product.get("category"),
                "merchant": product.get("merchant"),
                "price": product.get("price"),
                "region_availability": product.get("region_availability") or [],
            },
            "scores": session.get("scores"),
            "score_breakdowns": session.get("score_breakdowns"),
            "confidence": {
                "level": session.get("confidence"),
                "evidence": session.get("evidence"),
            },
            "verdict": session.get("verdict"),
            "insights": session.get("insights"),
            "economics": session.get("economics"),
            "coverage": session.get("coverage"),
        },
        "recommendations": {
            "mode": session.get("rank_mode"),
            "routing": session.get("routing"),
            "winner": session.get("winner"),
            "buckets": session.get("buckets") or [],
            "can_rerank": len(session.get("ranked_alternatives") or []) > 1,
        },
        "selected_alternative_id": session.get("selected_alternative_id"),
        "playbook": session.get("playbook"),
        "created_at": session.get("created_at"),
        "updated_at": session.get("updated_at"),
    }
