"""
Playbook Generator

Builds a marketing playbook for an approved product or alternative.

Generation is capability-based:
- an AI provider (Claude) is tried first when configured
- its JSON is validated and sanitized (length caps, channel set,
  banned revenue claims)
- any failure falls back to a deterministic template, so a playbook
  is always produced
"""

import json
import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import anthropic

logger = logging.getLogger(__name__)

CHANNELS = ["SEO", "ADS", "EMAIL", "SOCIAL"]

BANNED_PATTERNS = [
    re.compile(r"guaranteed? (revenue|income|earnings|money)", re.IGNORECASE),
    re.compile(r"you will (earn|make|receive)", re.IGNORECASE),
    re.compile(r"100%\s*(guarantee|certain|sure)", re.IGNORECASE),
    re.compile(r"risk.?free", re.IGNORECASE),
    re.compile(r"passive income", re.IGNORECASE),
    re.compile(r"get rich", re.IGNORECASE),
    re.compile(r"unlimited (earnings|revenue)", re.IGNORECASE),
]

MIN_TEST_DAYS = 14
MAX_TEST_DAYS = 90
DEFAULT_TEST_DAYS = 30

SYSTEM_PROMPT = (
    "You are a marketing strategist for affiliate content creators. "
    "Generate structured JSON output only. Never make claims about guaranteed revenue. "
    "Use ranges and estimates only. Be specific and actionable."
)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class PlaybookInput:
    product_title: str
    brand: str
    category: str
    merchant: str
    price: Optional[float] = None
    currency: str = "EUR"
    commission_rate: str = ""  # e.g. "8-12%"
    network: str = ""
    cookie_days: int = 30
    top_pros: List[str] = field(default_factory=list)
    top_risks: List[str] = field(default_factory=list)
    user_region: str = "EU"
    traffic_type: str = "ORGANIC"


@dataclass
class PlaybookResult:
    approved_item: Dict[str, str]
    positioning_angles: List[Dict[str, Any]]
    audience: Dict[str, Any]
    channel_plan: List[Dict[str, Any]]
    assets_checklist: List[str]
    tracking_checklist: List[str]
    test_plan: Dict[str, Any]
    compliance_notes: List[str]
    source: str = "template"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# AI PROVIDER
# =============================================================================

class ClaudePlaybookProvider:
    """Asks Claude for a playbook as a single JSON object."""

    DEFAULT_MODEL = "claude-sonnet-4-20250514"
    MAX_TOKENS = 2000
    TEMPERATURE = 0.3

    def __init__(self, api_key: str, model: Optional[str] = None):
        if not api_key:
            raise ValueError("ANTHROPIC_API_KEY not provided")
        self.model = model or self.DEFAULT_MODEL
        self.async_client = anthropic.AsyncAnthropic(api_key=api_key)

    async def try_generate(self, data: PlaybookInput) -> Optional[Dict[str, Any]]:
        """Raw playbook JSON, or None when the call or parsing fails."""
        try:
            response = await self.async_client.messages.create(
                model=self.model,
                max_tokens=self.MAX_TOKENS,
                temperature=self.TEMPERATURE,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": build_prompt(data)}],
            )
        except anthropic.APIError as e:
            logger.warning(f"Playbook generation failed: {e}")
            return None

        content = "".join(block.text for block in response.content if hasattr(block, "text"))
        return extract_json_object(content)


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """First {...} span of a model response, parsed."""
    match = re.search(r"\{[\s\S]*\}", text or "")
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def build_prompt(data: PlaybookInput) -> str:
    price = f"{data.currency} {data.price}" if data.price else "Unknown"
    return f"""Generate a marketing playbook for an affiliate creator promoting this product.

Product: {data.product_title}
Brand: {data.brand}
Category: {data.category}
Merchant: {data.merchant}
Price: {price}
Commission: {data.commission_rate} via {data.network}
Cookie Window: {data.cookie_days} days
Region: {data.user_region}
Traffic Type: {data.traffic_type}

Key Strengths: {'; '.join(data.top_pros)}
Key Risks: {'; '.join(data.top_risks)}

Return ONLY valid JSON with this exact structure:
{{
  "positioning_angles": [
    {{"angle_name": "string (max 30 chars)", "hook": "string (max 100 chars)", "proof_points": ["string (max 80 chars)"]}}
  ],
  "audience": {{
    "primary_segment": "string (max 80 chars)",
    "pain_points": ["string (max 60 chars)"],
    "objections": ["string (max 60 chars)"],
    "buying_triggers": ["string (max 60 chars)"]
  }},
  "channel_plan": [
    {{"channel": "SEO|ADS|EMAIL|SOCIAL", "recommended": true, "steps": ["string (max 80 chars)"]}}
  ],
  "assets_checklist": ["string (max 60 chars)"],
  "tracking_checklist": ["string (max 60 chars)"],
  "test_plan": {{
    "kpis": ["string (max 40 chars)"],
    "duration_days": 30,
    "iteration_rules": ["string (max 80 chars)"]
  }},
  "compliance_notes": ["string (max 80 chars)"]
}}

Provide exactly 2 positioning angles, 3 pain points, 2 objections, 3 buying triggers, all 4 channels, 5 assets, 4 tracking items, 3 KPIs, 3 iteration rules, and 2-3 compliance notes.
NEVER mention guaranteed revenue or earnings. Use "potential" and "estimated" language only."""


# =============================================================================
# VALIDATION
# =============================================================================

def validate_playbook(
    raw: Dict[str, Any],
    data: PlaybookInput,
    approved_item_id: str,
) -> Optional[PlaybookResult]:
    """
    Sanitize an AI playbook.

    Returns None when required sections are missing or any text contains
    a banned revenue claim.
    """
    if not raw.get("positioning_angles") or not raw.get("audience") or not raw.get("channel_plan"):
        return None

    audience = raw.get("audience") if isinstance(raw.get("audience"), dict) else {}
    test_plan = raw.get("test_plan") if isinstance(raw.get("test_plan"), dict) else {}

    result = PlaybookResult(
        approved_item=_approved_item(data, approved_item_id),
        positioning_angles=_sanitize_angles(raw.get("positioning_angles")),
        audience={
            "primary_segment": truncate(str(audience.get("primary_segment") or "General audience"), 80),
            "pain_points": sanitize_string_list(audience.get("pain_points"), 60, 3),
            "objections": sanitize_string_list(audience.get("objections"), 60, 3),
            "buying_triggers": sanitize_string_list(audience.get("buying_triggers"), 60, 3),
        },
        channel_plan=_sanitize_channel_plan(raw.get("channel_plan")),
        assets_checklist=sanitize_string_list(raw.get("assets_checklist"), 60, 8),
        tracking_checklist=sanitize_string_list(raw.get("tracking_checklist"), 60, 6),
        test_plan={
            "kpis": sanitize_string_list(test_plan.get("kpis"), 40, 4),
            "duration_days": _duration_days(test_plan.get("duration_days")),
            "iteration_rules": sanitize_string_list(test_plan.get("iteration_rules"), 80, 3),
        },
        compliance_notes=sanitize_string_list(raw.get("compliance_notes"), 80, 5),
        source="ai",
    )

    if contains_banned_claim(json.dumps(result.to_dict())):
        logger.warning("AI playbook contained a banned revenue claim, using template")
        return None
    return result


def contains_banned_claim(text: str) -> bool:
    return any(pattern.search(text) for pattern in BANNED_PATTERNS)


def sanitize_string_list(items: Any, max_length: int, max_items: int) -> List[str]:
    """Non-blank strings only, first max_items, each truncated."""
    if not isinstance(items, list):
        return []
    cleaned = [i.strip() for i in items if isinstance(i, str) and i.strip()]
    return [truncate(i, max_length) for i in cleaned[:max_items]]


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def _sanitize_angles(angles: Any) -> List[Dict[str, Any]]:
    if not isinstance(angles, list):
        return []
    return [
        {
            "angle_name": truncate(str(a.get("angle_name") or "Positioning Angle"), 30),
            "hook": truncate(str(a.get("hook") or ""), 100),
            "proof_points": sanitize_string_list(a.get("proof_points"), 80, 3),
        }
        for a in angles[:2]
        if isinstance(a, dict)
    ]


def _sanitize_channel_plan(plan: Any) -> List[Dict[str, Any]]:
    """Exactly one entry per known channel, in SEO/ADS/EMAIL/SOCIAL order."""
    if not isinstance(plan, list):
        return channel_plan_for_category("products", "ORGANIC")

    entries = [p for p in plan if isinstance(p, dict)]
    result = []
    for channel in CHANNELS:
        entry = next((p for p in entries if str(p.get("channel", "")).upper() == channel), {})
        recommended = entry.get("recommended")
        if recommended is None:
            recommended = channel in ("SOCIAL", "SEO")
        result.append({
            "channel": channel,
            "recommended": bool(recommended),
            "steps": sanitize_string_list(entry.get("steps"), 80, 4),
        })
    return result


def _duration_days(value: Any) -> int:
    try:
        days = int(float(value))
    except (TypeError, ValueError):
        days = 0
    if not days:
        days = DEFAULT_TEST_DAYS
    return max(MIN_TEST_DAYS, min(MAX_TEST_DAYS, days))


def _approved_item(data: PlaybookInput, approved_item_id: str) -> Dict[str, str]:
    return {"id": approved_item_id, "title": data.product_title, "brand": data.brand}


# =============================================================================
# TEMPLATE FALLBACK
# =============================================================================

def generate_playbook_from_template(data: PlaybookInput, approved_item_id: str) -> PlaybookResult:
    """Deterministic playbook; always succeeds."""
    brand = data.brand
    category = data.category

    return PlaybookResult(
        approved_item=_approved_item(data, approved_item_id),
        positioning_angles=[
            {
                "angle_name": "Value Comparison",
                "hook": f"Why {brand} stands out in {category}: honest review with real numbers",
                "proof_points": [
                    "Price-to-quality analysis vs top 3 competitors",
                    "Real user feedback highlights and concerns",
                    "Feature comparison that helps your audience decide",
                ],
            },
            {
                "angle_name": "Problem Solver",
                "hook": f"The {category} product I actually recommend (and why)",
                "proof_points": [
                    "Address the specific pain point this product solves",
                    "Show before/after or use-case scenarios",
                    "Include your personal experience or testing results",
                ],
            },
        ],
        audience={
            "primary_segment": f"{category} enthusiasts researching before purchase",
            "pain_points": [
                f"Overwhelmed by too many {category} options",
                "Worried about quality vs price trade-offs",
                "Need trusted recommendations from real users",
            ],
            "objections": [
                '"Is this really worth the price?"',
                '"Are there better alternatives I\'m missing?"',
            ],
            "buying_triggers": [
                "Detailed comparison content with clear winner",
                "Limited-time deals or seasonal promotions",
                "Social proof from other buyers",
            ],
        },
        channel_plan=channel_plan_for_category(category, data.traffic_type),
        assets_checklist=[
            "Product review article/video (1000+ words or 5+ min)",
            f"Comparison table: {brand} vs top 2-3 alternatives",
            "Social media carousel or short-form video",
            "Email template for existing audience",
            "Affiliate disclosure statement",
        ],
        tracking_checklist=[
            "Set up affiliate link with UTM parameters",
            "Create SmartWrapper link for tracking",
            "Add conversion pixel or postback URL",
            "Set up click tracking per channel",
        ],
        test_plan={
            "kpis": ["Click-through rate (CTR)", "Conversion rate", "Earnings per click (EPC)"],
            "duration_days": DEFAULT_TEST_DAYS,
            "iteration_rules": [
                "If CTR < 2% after 7 days: revise headline and hook",
                "If conversion < 1% after 14 days: test different positioning angle",
                "If EPC meets target after 30 days: scale to additional channels",
            ],
        },
        compliance_notes=[
            "Include FTC/ASA affiliate disclosure in all content",
            'Avoid income claims; use "potential" and "estimated" language',
            f"{data.commission_rate} commission via {data.network}, {data.cookie_days}-day cookie",
        ],
        source="template",
    )


def channel_plan_for_category(category: str, traffic_type: str) -> List[Dict[str, Any]]:
    is_paid = traffic_type in ("PAID", "MIXED")

    if is_paid:
        ads_steps = [
            "Test 2-3 ad creatives with different angles",
            "Start with small daily budget to validate conversion rate",
            "Target purchase-intent keywords only",
            "Set up conversion tracking before launching",
        ]
    else:
        ads_steps = [
            "Consider testing with small budget once organic validates",
            "Focus on retargeting existing blog/video visitors",
            "Use platform-native shopping ads if available",
        ]

    return [
        {
            "channel": "SEO",
            "recommended": True,
            "steps": [
                f'Create "Best {category}" or "{category} Review" long-form content',
                f'Target comparison keywords: "{category} vs" queries',
                "Add internal links from existing related content",
                "Optimize for featured snippets with structured data",
            ],
        },
        {"channel": "ADS", "recommended": is_paid, "steps": ads_steps},
        {
            "channel": "EMAIL",
            "recommended": True,
            "steps": [
                "Send dedicated product recommendation to relevant segment",
                "Include in next newsletter with comparison angle",
                f"Create automated sequence for new subscribers interested in {category}",
                "A/B test subject lines (review vs comparison framing)",
            ],
        },
        {
            "channel": "SOCIAL",
            "recommended": True,
            "steps": [
                "Create short-form video review (TikTok/Reels/Shorts)",
                "Post comparison carousel on Instagram/LinkedIn",
                "Share authentic use case or unboxing content",
                "Pin affiliate link in bio with clear CTA",
            ],
        },
    ]


# =============================================================================
# GENERATOR
# =============================================================================

class PlaybookGenerator:
    """
    Tries the configured AI provider, falls back to the template.

    Usage:
        generator = PlaybookGenerator(ClaudePlaybookProvider(api_key))
        playbook = await generator.generate(data, approved_item_id)
    """

    def __init__(self, provider: Optional[ClaudePlaybookProvider] = None):
        self.provider = provider

    async def generate(self, data: PlaybookInput, approved_item_id: str) -> PlaybookResult:
        if self.provider is not None:
            raw = await self.provider.try_generate(data)
            if raw:
                validated = validate_playbook(raw, data, approved_item_id)
                if validated:
                    logger.info(f"AI playbook generated for {approved_item_id}")
                    return validated

        logger.info(f"Template playbook generated for {approved_item_id}")
        return generate_playbook_from_template(data, approved_item_id)
