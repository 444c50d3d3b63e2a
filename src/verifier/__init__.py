"""
Product Verifier for AffiMark

Decides whether a product URL is worth promoting as an affiliate and, if
not, which alternatives to promote instead:

1. **URL Normalizer**
   Canonical URL, platform, region and product id from a pasted link.

2. **Coverage / Evidence**
   How much data backs each pillar, and how far the sources can be trusted.

3. **Scoring / Verdict**
   Three 0-100 pillars (product viability, offer & merchant, economics)
   folded into GREEN / YELLOW / RED / TEST_FIRST with pros, risks and
   assumptions.

4. **Intent Router / Ranker / Bucketizer**
   Picks a rank mode from the verdict and weakest pillar, ranks
   alternatives and splits them into safe / upside / budget / trending.

Example Usage:
    from src.verifier import PipelineInput, normalize_url, run_verifier_pipeline

    normalized = normalize_url("https://www.amazon.de/dp/B08N5WRWNW?tag=x-21")
    report = run_verifier_pipeline(PipelineInput(
        normalized=normalized,
        product=scraped,
        category="electronics",
        benchmarks=get_benchmarks("electronics"),
    ))
    print(report.verdict.status, report.winner)
"""

from .helpers import (
    BUCKET_ORDER,
    Availability,
    AvoidCause,
    BucketKey,
    BucketStrategy,
    ConfidenceLevel,
    DataQuality,
    EvidenceQuality,
    EvidenceSourceType,
    HardStopFlag,
    PillarName,
    Platform,
    PrimaryAction,
    PrimaryRoute,
    RankMode,
    VerdictStatus,
)

from .models import (
    CategoryBenchmarks,
    CategoryStats,
    CommissionData,
    ProductPrice,
    ReputationData,
    ScrapedProductData,
)

from .url_normalizer import (
    NormalizedUrl,
    UrlValidation,
    normalize_url,
    validate_url,
)

from .coverage import (
    CoverageInput,
    CoverageResult,
    build_coverage_input,
    calculate_coverage,
    quick_coverage_check,
)

from .evidence import (
    AffiliateDbEvidence,
    EvidenceCollector,
    EvidenceSource,
    EvidenceSummary,
    ProductPageEvidence,
    ReputationEvidence,
    format_evidence_for_ui,
)

from .scoring import (
    EarningBand,
    ScoreResult,
    ScoringInput,
    compute_earning_band,
    compute_scores,
    get_benchmarks,
)

from .verdict import (
    VerdictInput,
    VerdictResult,
    compute_verdict,
    detect_hard_stops,
)

from .intent_router import (
    IntentRouterInput,
    IntentRouterOutput,
    PillarScores,
    RankWeights,
    find_weakest_pillar,
    get_weights_for_mode,
    route_intent,
)

from .ranker import (
    RankedAlternative,
    RankerCandidate,
    RankerOutput,
    calculate_price_percentile,
    rank_alternatives,
    rerank_with_mode,
)

from .bucketizer import (
    Bucket,
    BucketizerConfig,
    BucketizerOutput,
    bucketize,
    create_empty_bucketizer_output,
    get_buckets_summary,
)

from .candidates import (
    commission_from_program,
    compute_category_stats,
    derive_brand_slug,
    derive_category,
    program_to_candidate,
)

from .pipeline import (
    PipelineInput,
    VerifierReport,
    run_verifier_pipeline,
)

from .playbook import (
    ClaudePlaybookProvider,
    PlaybookGenerator,
    PlaybookInput,
    PlaybookResult,
    generate_playbook_from_template,
)

from .watchlist import (
    WatchlistAlert,
    detect_watchlist_alerts,
    refresh_snapshot,
    estimate_previous_commission,
    estimate_previous_rating,
)

__all__ = [
    # Enums & constants
    "BUCKET_ORDER",
    "Availability",
    "AvoidCause",
    "BucketKey",
    "BucketStrategy",
    "ConfidenceLevel",
    "DataQuality",
    "EvidenceQuality",
    "EvidenceSourceType",
    "HardStopFlag",
    "PillarName",
    "Platform",
    "PrimaryAction",
    "PrimaryRoute",
    "RankMode",
    "VerdictStatus",

    # Inputs
    "CategoryBenchmarks",
    "CategoryStats",
    "CommissionData",
    "ProductPrice",
    "ReputationData",
    "ScrapedProductData",

    # URL
    "NormalizedUrl",
    "UrlValidation",
    "normalize_url",
    "validate_url",

    # Coverage
    "CoverageInput",
    "CoverageResult",
    "build_coverage_input",
    "calculate_coverage",
    "quick_coverage_check",

    # Evidence
    "AffiliateDbEvidence",
    "EvidenceCollector",
    "EvidenceSource",
    "EvidenceSummary",
    "ProductPageEvidence",
    "ReputationEvidence",
    "format_evidence_for_ui",

    # Scoring & verdict
    "EarningBand",
    "ScoreResult",
    "ScoringInput",
    "compute_earning_band",
    "compute_scores",
    "get_benchmarks",
    "VerdictInput",
    "VerdictResult",
    "compute_verdict",
    "detect_hard_stops",

    # Routing & ranking
    "IntentRouterInput",
    "IntentRouterOutput",
    "PillarScores",
    "RankWeights",
    "find_weakest_pillar",
    "get_weights_for_mode",
    "route_intent",
    "RankedAlternative",
    "RankerCandidate",
    "RankerOutput",
    "calculate_price_percentile",
    "rank_alternatives",
    "rerank_with_mode",
    "Bucket",
    "BucketizerConfig",
    "BucketizerOutput",
    "bucketize",
    "create_empty_bucketizer_output",
    "get_buckets_summary",

    # Candidates
    "commission_from_program",
    "compute_category_stats",
    "derive_brand_slug",
    "derive_category",
    "program_to_candidate",

    # Pipeline
    "PipelineInput",
    "VerifierReport",
    "run_verifier_pipeline",

    # Playbook & watchlist
    "ClaudePlaybookProvider",
    "PlaybookGenerator",
    "PlaybookInput",
    "PlaybookResult",
    "generate_playbook_from_template",
    "WatchlistAlert",
    "detect_watchlist_alerts",
    "refresh_snapshot",
    "estimate_previous_commission",
    "estimate_previous_rating",
]

__version__ = "1.0.0"
