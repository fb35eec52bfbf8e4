"""Deterministic domain model — static lookup tables and policy helpers.

No I/O.  Fully unit-testable.  This is the customization surface for the
comparison tool: swap the keyword tables to retarget a different category
of marketing software.
"""

from __future__ import annotations

from src.macompare.models import CompanySize

# ---------------------------------------------------------------------------
# Layer 1 — Goal to strength-tag keywords
# ---------------------------------------------------------------------------

GOAL_STRENGTH_KEYWORDS: dict[str, list[str]] = {
    "Acquisition": [
        "lead-generation", "landing-pages", "forms", "ads", "social",
        "acquisition", "growth",
    ],
    "Activation": [
        "onboarding", "welcome-series", "activation", "engagement",
        "behavioral", "triggers",
    ],
    "Retention": [
        "loyalty", "retention", "churn", "lifecycle", "customer-success",
        "engagement",
    ],
    "Omnichannel": [
        "omnichannel", "multi-channel", "email", "sms", "push", "whatsapp",
        "unified",
    ],
    "CRM": [
        "crm", "sales", "pipeline", "contacts", "deals", "integration", "sync",
    ],
}

GOVERNANCE_KEYWORDS: frozenset[str] = frozenset({
    "enterprise", "sso", "rbac", "governance", "compliance", "security",
})

GENERAL_INDUSTRY = "General"


def goal_keywords(goal: str) -> list[str]:
    return GOAL_STRENGTH_KEYWORDS.get(goal, [])


def count_goal_tag_matches(strength_tags: tuple[str, ...] | list[str], goal: str) -> int:
    keywords = goal_keywords(goal)
    if not keywords:
        return 0
    return sum(
        1 for tag in strength_tags
        if any(kw in tag.lower() for kw in keywords)
    )


def has_governance(strength_tags: tuple[str, ...] | list[str]) -> bool:
    return any(tag.lower() in GOVERNANCE_KEYWORDS for tag in strength_tags)


def industry_variants(industry: str | None) -> list[str]:
    """Lowercased industry name plus its hyphenated form.

    Empty for a missing industry or the ``General`` sentinel, which disables
    the industry-fit bonus.
    """
    if not industry or industry == GENERAL_INDUSTRY:
        return []
    lowered = industry.lower().strip()
    if not lowered:
        return []
    hyphenated = lowered.replace(" ", "-")
    return [lowered] if hyphenated == lowered else [lowered, hyphenated]


# ---------------------------------------------------------------------------
# Layer 2 — Budget and complexity policy
# ---------------------------------------------------------------------------

COMPLEXITY_ORDER: dict[str, int] = {"light": 1, "medium": 2, "heavy": 3}

_TOLERATED_COMPLEXITY: dict[str, frozenset[str]] = {
    "low": frozenset({"light"}),
    "medium": frozenset({"light", "medium"}),
    "high": frozenset({"light", "medium", "heavy"}),
}


def complexity_tolerated(complexity: str, tolerance: str | None) -> bool:
    if tolerance is None:
        return True
    allowed = _TOLERATED_COMPLEXITY.get(tolerance)
    if allowed is None:
        return True
    return complexity in allowed


def budget_fit_fraction(price_bucket: str, sensitivity: str | None) -> float:
    """Share of the budget weight earned by a price bucket.

    ``low`` sensitivity (price-sensitive) rewards cheap buckets only;
    ``high`` (value-focused) is tolerant of every bucket.
    """
    bucket = (price_bucket or "").lower()
    if sensitivity == "low":
        if "low" in bucket or "free" in bucket:
            return 1.0
        if "medium" in bucket:
            return 0.5
        return 0.0
    if sensitivity == "medium":
        if "medium" in bucket:
            return 1.0
        if "low" in bucket or "high" in bucket:
            return 0.7
        return 0.3
    if sensitivity == "high":
        if "enterprise" in bucket or "high" in bucket:
            return 1.0
        return 0.8
    return 0.0


# ---------------------------------------------------------------------------
# Layer 3 — Reason phrasing
# ---------------------------------------------------------------------------

SEGMENT_LABELS: dict[CompanySize, str] = {
    "SMB": "small businesses",
    "MM": "mid-market companies",
    "ENT": "enterprises",
}

COMPANY_SIZE_LABELS: dict[CompanySize, str] = {
    "SMB": "Small Business",
    "MM": "Mid-Market",
    "ENT": "Enterprise",
}

_GOAL_PHRASES: dict[str, str] = {
    "Acquisition": "Strong lead generation and acquisition capabilities",
    "Activation": "Excellent onboarding and user activation features",
    "Retention": "Proven retention and loyalty program tools",
    "Omnichannel": "True omnichannel orchestration across all channels",
    "CRM": "Deep CRM integration and sales alignment",
}

_BUDGET_PHRASES: dict[str, str] = {
    "low": "Competitive pricing for your budget",
    "medium": "Good value for money",
    "high": "Premium features worth the investment",
}

_COMPLEXITY_PHRASES: dict[str, str] = {
    "light": "Easy to set up and get started",
    "medium": "Balanced setup complexity with powerful features",
    "heavy": "Highly customizable for complex needs",
}


def segment_reason(size: CompanySize) -> str:
    return f"Built specifically for {SEGMENT_LABELS[size]}"


def goal_reason(goal: str) -> str:
    return _GOAL_PHRASES.get(goal, f"Aligned with your {goal} goals")


def budget_reason(sensitivity: str) -> str:
    return _BUDGET_PHRASES.get(sensitivity, "Fits your budget criteria")


def complexity_reason(complexity: str) -> str:
    return _COMPLEXITY_PHRASES.get(
        complexity, "Matches your implementation preferences",
    )


RELAXATION_MESSAGES: list[str | None] = [
    None,
    "Some advanced filters were relaxed to show more options.",
    "Showing vendors for your company size. Refine other criteria for better matches.",
    "Showing all vendors sorted by relevance. Try adjusting your filters.",
    "Showing all available vendors.",
]
