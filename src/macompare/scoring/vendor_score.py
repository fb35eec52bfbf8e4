"""Vendor fit score — additive point model, clamped to [0, 100].

Components, evaluated in order (reasons accumulate in the same order):
  - Segment match                                  +segment_match
  - Goal alignment (strength-tag keywords)          0..goal_alignment
  - Review rating (G2 / Capterra average)           0..rating_bonus
  - Industry fit                                   +industry_fit
  - Advanced filters (only when supplied):
      channel coverage      capped at 3 matches
      integration coverage  capped at 4 matches
      budget fit            0..budget_fit
      governance           +governance
      implementation fit   +complexity_fit
  - Own-product nudge (is_brevo)                   +brevo_bonus

Fully deterministic.  No I/O.
"""

from __future__ import annotations

import logging
import math

from src.macompare.config import ScoringWeights, settings
from src.macompare.domain_model import (
    budget_fit_fraction,
    budget_reason,
    complexity_reason,
    complexity_tolerated,
    count_goal_tag_matches,
    goal_reason,
    has_governance,
    industry_variants,
    segment_reason,
)
from src.macompare.models import (
    AdvancedFilters,
    ScoreBreakdown,
    UserProfile,
    Vendor,
    VendorScore,
)

logger = logging.getLogger(__name__)

MAX_CHANNEL_MATCHES = 3
MAX_INTEGRATION_MATCHES = 4
TOP_RATED_THRESHOLD = 4.5


def round_half_up(value: float) -> int:
    """Nearest integer, with exact halves rounded up."""
    return math.floor(value + 0.5)


def _channel_corpus(vendor: Vendor) -> list[str]:
    corpus = [c.lower() for c in vendor.channels]
    corpus.extend(
        f.feature.lower() for f in vendor.features
        if f.category.lower() == "channels"
    )
    corpus.extend(t.lower() for t in vendor.strength_tags)
    return corpus


def count_channel_matches(vendor: Vendor, required: list[str]) -> int:
    corpus = _channel_corpus(vendor)
    return sum(
        1 for channel in required
        if any(channel.lower() in entry for entry in corpus)
    )


def count_integration_matches(vendor: Vendor, required: list[str]) -> int:
    available = [i.lower() for i in vendor.native_integrations]
    return sum(
        1 for integration in required
        if any(integration.lower() in a for a in available)
    )


def goal_alignment(vendor: Vendor, goal: str, weights: ScoringWeights) -> int:
    matches = count_goal_tag_matches(vendor.strength_tags, goal)
    # A declared goal with no supporting tags counts as a single match
    if matches == 0 and goal.lower() in (g.lower() for g in vendor.supported_goals):
        matches = 1
    if matches >= 3:
        return weights.goal_alignment
    if matches == 2:
        return round_half_up(weights.goal_alignment * 0.7)
    if matches == 1:
        return round_half_up(weights.goal_alignment * 0.4)
    return 0


def industry_fit(vendor: Vendor, industry: str | None) -> bool:
    variants = industry_variants(industry)
    if not variants:
        return False
    return any(
        v in tag.lower() for tag in vendor.strength_tags for v in variants
    )


def score_vendor(
    vendor: Vendor,
    profile: UserProfile,
    advanced: AdvancedFilters | None = None,
    weights: ScoringWeights | None = None,
) -> VendorScore:
    """Compute the 0-100 fit score and up to three "why recommended" reasons."""
    w = weights or settings.scoring_weights
    total = float(w.base_score)
    reasons: list[str] = []
    breakdown = ScoreBreakdown()

    if profile.company_size in vendor.target_segments:
        breakdown.segment = w.segment_match
        total += breakdown.segment
        reasons.append(segment_reason(profile.company_size))

    breakdown.goal = goal_alignment(vendor, profile.primary_goal, w)
    if breakdown.goal > 0:
        total += breakdown.goal
        reasons.append(goal_reason(profile.primary_goal))

    avg_rating = vendor.average_rating
    breakdown.rating = round_half_up(avg_rating / 5.0 * w.rating_bonus)
    total += breakdown.rating
    if avg_rating >= TOP_RATED_THRESHOLD:
        reasons.append(f"Top-rated with {avg_rating:.1f}/5 average rating")

    if industry_fit(vendor, profile.industry):
        total += w.industry_fit
        reasons.append(f"Strong fit for {profile.industry} industry")

    if advanced is not None:
        if advanced.channels:
            channel_matches = count_channel_matches(vendor, advanced.channels)
            breakdown.channels = min(
                channel_matches, MAX_CHANNEL_MATCHES,
            ) * w.channel_match
            total += breakdown.channels
            if channel_matches >= 3:
                reasons.append("Excellent channel coverage")

        if advanced.integrations:
            integration_matches = count_integration_matches(
                vendor, advanced.integrations,
            )
            breakdown.integrations = min(
                integration_matches, MAX_INTEGRATION_MATCHES,
            ) * w.integration_match
            total += breakdown.integrations
            if integration_matches >= 2:
                reasons.append("Has your required integrations")

        if advanced.budget_sensitivity:
            breakdown.budget = round_half_up(
                budget_fit_fraction(
                    vendor.starting_price_bucket, advanced.budget_sensitivity,
                ) * w.budget_fit
            )
            total += breakdown.budget
            if breakdown.budget > 0:
                reasons.append(budget_reason(advanced.budget_sensitivity))

        if advanced.governance and has_governance(vendor.strength_tags):
            total += w.governance
            reasons.append("Enterprise-grade security & governance")

        if advanced.implementation_tolerance and complexity_tolerated(
            vendor.complexity, advanced.implementation_tolerance,
        ):
            total += w.complexity_fit
            reasons.append(complexity_reason(vendor.complexity))

    if vendor.is_brevo:
        total += w.brevo_bonus

    final = round_half_up(min(max(total, 0.0), 100.0))
    logger.debug(
        "Score %s: seg=%d goal=%d rating=%d ch=%d int=%d budget=%d raw=%.1f -> %d",
        vendor.vendor_id, breakdown.segment, breakdown.goal, breakdown.rating,
        breakdown.channels, breakdown.integrations, breakdown.budget,
        total, final,
    )
    return VendorScore(
        vendor_id=vendor.vendor_id,
        score=final,
        breakdown=breakdown,
        reasons=reasons[:settings.display.max_reasons],
    )


def score_vendors(
    vendors: list[Vendor],
    profile: UserProfile,
    advanced: AdvancedFilters | None = None,
    weights: ScoringWeights | None = None,
) -> list[VendorScore]:
    """Score every vendor; highest first, ties kept in catalog order."""
    scores = [score_vendor(v, profile, advanced, weights) for v in vendors]
    return sorted(scores, key=lambda s: s.score, reverse=True)


def get_why_recommended(
    vendor: Vendor,
    profile: UserProfile,
    advanced: AdvancedFilters | None = None,
) -> list[str]:
    return score_vendor(vendor, profile, advanced).reasons
