"""Top-level orchestrator for the vendor comparison tool.

Pipeline:
  1. Receive the catalog handle (loaded once by the caller)
  2. Filter with progressive relaxation           (never empty)
  3. Sort by the requested criterion              (stable)
  4. Score every surviving vendor for display     (deterministic)
  5. Attach relaxation message and filter summary
"""

from __future__ import annotations

import logging

from src.macompare.catalog import VendorCatalog
from src.macompare.filtering.filters import (
    filter_and_sort_vendors,
    get_filter_summary,
    get_relaxation_message,
)
from src.macompare.models import (
    AdvancedFilters,
    ComparisonResult,
    RankedVendor,
    SortOption,
    UserProfile,
)
from src.macompare.scoring.vendor_score import score_vendor

logger = logging.getLogger(__name__)


def compare(
    catalog: VendorCatalog,
    profile: UserProfile,
    advanced: AdvancedFilters | None = None,
    search: str | None = None,
    sort_by: SortOption = "recommended",
) -> ComparisonResult:
    result = filter_and_sort_vendors(
        list(catalog), profile, sort_by, advanced, search,
    )
    ranked = [
        RankedVendor(vendor=v, score=score_vendor(v, profile, advanced))
        for v in result.vendors
    ]
    logger.info(
        "Comparison complete: %d/%d vendors (relaxation=%d, sort=%s, advanced=%s)",
        len(ranked), len(catalog), result.relaxation_level, sort_by,
        "on" if advanced is not None else "off",
    )
    return ComparisonResult(
        vendors=ranked,
        relaxed=result.relaxed,
        relaxation_level=result.relaxation_level,
        relaxation_message=get_relaxation_message(result),
        filter_summary=get_filter_summary(profile, advanced),
    )
