"""Vendor filtering with a never-empty guarantee.

Progressive relaxation — the first tier reaching the minimum result count wins:
  0. segment + goal + advanced filters + search
  1. segment + goal + search             (advanced filters dropped)
  2. segment + search                    (goal dropped)
  3. search only                         (any non-empty result)
  4. entire catalog                      (final fallback)
"""

from __future__ import annotations

import logging
import unicodedata
from collections.abc import Sequence

from src.macompare.config import settings
from src.macompare.domain_model import (
    COMPLEXITY_ORDER,
    GENERAL_INDUSTRY,
    RELAXATION_MESSAGES,
    complexity_tolerated,
    count_goal_tag_matches,
    has_governance,
)
from src.macompare.models import (
    AdvancedFilters,
    FilterResult,
    SortOption,
    UserProfile,
    Vendor,
)
from src.macompare.scoring.vendor_score import (
    count_channel_matches,
    count_integration_matches,
    score_vendor,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

def matches_segment(vendor: Vendor, profile: UserProfile) -> bool:
    return profile.company_size in vendor.target_segments


def matches_goal(vendor: Vendor, profile: UserProfile) -> bool:
    goal = profile.primary_goal.lower()
    if any(g.lower() == goal for g in vendor.supported_goals):
        return True
    return count_goal_tag_matches(vendor.strength_tags, profile.primary_goal) > 0


def matches_advanced(vendor: Vendor, advanced: AdvancedFilters) -> bool:
    """Required capabilities: at least one channel, at least one integration."""
    if advanced.channels and count_channel_matches(vendor, advanced.channels) == 0:
        return False
    if advanced.integrations and count_integration_matches(
        vendor, advanced.integrations,
    ) == 0:
        return False
    if advanced.governance and not has_governance(vendor.strength_tags):
        return False
    return complexity_tolerated(vendor.complexity, advanced.implementation_tolerance)


def matches_search(vendor: Vendor, search: str) -> bool:
    needle = search.lower().strip()
    if not needle:
        return True
    if needle in vendor.name.lower():
        return True
    if needle in vendor.short_description.lower():
        return True
    if any(needle in t.lower() for t in vendor.strength_tags):
        return True
    return any(needle in i.lower() for i in vendor.native_integrations)


def apply_search(vendors: Sequence[Vendor], search: str | None) -> list[Vendor]:
    if not search or not search.strip():
        return list(vendors)
    return [v for v in vendors if matches_search(v, search)]


# ---------------------------------------------------------------------------
# Relaxation
# ---------------------------------------------------------------------------

def _tier(
    vendors: Sequence[Vendor],
    profile: UserProfile,
    advanced: AdvancedFilters | None,
    search: str | None,
    *,
    use_segment: bool,
    use_goal: bool,
) -> list[Vendor]:
    results = [
        v for v in vendors
        if (not use_segment or matches_segment(v, profile))
        and (not use_goal or matches_goal(v, profile))
        and (advanced is None or matches_advanced(v, advanced))
    ]
    return apply_search(results, search)


def filter_vendors(
    vendors: Sequence[Vendor],
    profile: UserProfile,
    advanced: AdvancedFilters | None = None,
    search: str | None = None,
    min_results: int | None = None,
) -> FilterResult:
    """Filter the catalog, relaxing constraints until enough vendors remain."""
    threshold = (
        min_results if min_results is not None
        else settings.display.min_vendors_before_relax
    )

    tiers = [
        (0, advanced, True, True),
        (1, None, True, True),
        (2, None, True, False),
    ]
    for level, adv, use_segment, use_goal in tiers:
        results = _tier(
            vendors, profile, adv, search,
            use_segment=use_segment, use_goal=use_goal,
        )
        logger.debug("Relaxation tier %d: %d vendors", level, len(results))
        if results and len(results) >= threshold:
            return FilterResult(
                vendors=results, relaxed=level > 0, relaxation_level=level,
            )

    results = apply_search(vendors, search)
    logger.debug("Relaxation tier 3: %d vendors", len(results))
    if results:
        return FilterResult(vendors=results, relaxed=True, relaxation_level=3)

    logger.debug("Relaxation tier 4: returning full catalog (%d)", len(vendors))
    return FilterResult(vendors=list(vendors), relaxed=True, relaxation_level=4)


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------

def _name_key(name: str) -> str:
    decomposed = unicodedata.normalize("NFKD", name)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.casefold()


def sort_vendors(
    vendors: Sequence[Vendor],
    sort_by: SortOption,
    profile: UserProfile,
    advanced: AdvancedFilters | None = None,
) -> list[Vendor]:
    """Reorder vendors without changing the set.  All sorts are stable."""
    if sort_by == "recommended":
        scores = {
            v.vendor_id: score_vendor(v, profile, advanced).score for v in vendors
        }
        return sorted(vendors, key=lambda v: scores[v.vendor_id], reverse=True)
    if sort_by == "rating":
        return sorted(vendors, key=lambda v: v.average_rating, reverse=True)
    if sort_by == "complexity":
        return sorted(vendors, key=lambda v: COMPLEXITY_ORDER.get(v.complexity, 99))
    if sort_by == "name":
        return sorted(vendors, key=lambda v: _name_key(v.name))
    return list(vendors)


def filter_and_sort_vendors(
    vendors: Sequence[Vendor],
    profile: UserProfile,
    sort_by: SortOption = "recommended",
    advanced: AdvancedFilters | None = None,
    search: str | None = None,
) -> FilterResult:
    filtered = filter_vendors(vendors, profile, advanced, search)
    ordered = sort_vendors(filtered.vendors, sort_by, profile, advanced)
    return filtered.model_copy(update={"vendors": ordered})


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------

def get_filter_summary(
    profile: UserProfile, advanced: AdvancedFilters | None = None,
) -> list[str]:
    summary = [f"Size: {profile.company_size}"]
    if profile.industry and profile.industry != GENERAL_INDUSTRY:
        summary.append(f"Industry: {profile.industry}")
    summary.append(f"Goal: {profile.primary_goal}")

    if advanced is not None:
        if advanced.channels:
            summary.append(f"Channels: {', '.join(advanced.channels)}")
        if advanced.integrations:
            summary.append(f"Integrations: {', '.join(advanced.integrations)}")
        if advanced.governance:
            summary.append("Governance required")
        if advanced.budget_sensitivity:
            summary.append(f"Budget: {advanced.budget_sensitivity}")
        if advanced.implementation_tolerance:
            summary.append(f"Complexity: {advanced.implementation_tolerance}")
    return summary


def get_relaxation_message(result: FilterResult) -> str | None:
    if not result.relaxed:
        return None
    if 0 <= result.relaxation_level < len(RELAXATION_MESSAGES):
        return RELAXATION_MESSAGES[result.relaxation_level] or RELAXATION_MESSAGES[4]
    return RELAXATION_MESSAGES[4]
