"""Pydantic v2 data models — the data contracts flowing through the comparison tool."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

CompanySize = Literal["SMB", "MM", "ENT"]

Complexity = Literal["light", "medium", "heavy"]

FeatureLevel = Literal["full", "partial", "limited", "none"]

Sensitivity = Literal["low", "medium", "high"]

SortOption = Literal["recommended", "rating", "complexity", "name"]


# ---------------------------------------------------------------------------
# Vendor catalog records
# ---------------------------------------------------------------------------

class ReviewSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    rating: float = Field(default=0.0, ge=0.0, le=5.0)
    reviews_count: int = Field(default=0, ge=0)
    url: str = ""
    last_checked: str = ""


class VendorFeature(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    feature: str
    level: FeatureLevel = "full"
    notes: str | None = None


class VendorFeedback(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["pro", "con"]
    theme: str
    description: str = ""
    weight: int | None = Field(default=None, ge=1, le=5)
    source_url: str | None = None


class Vendor(BaseModel):
    """Immutable catalog record.  Never mutated once the catalog is loaded."""

    model_config = ConfigDict(frozen=True)

    vendor_id: str
    name: str
    logo_path: str = ""
    website_url: str = ""
    short_description: str = ""
    long_description: str | None = None

    target_segments: tuple[CompanySize, ...] = ()
    supported_goals: tuple[str, ...] = ()
    strength_tags: tuple[str, ...] = ()
    weakness_tags: tuple[str, ...] = ()
    industry_focus: tuple[str, ...] = ()

    complexity: Complexity = "medium"
    channels: tuple[str, ...] = ()
    native_integrations: tuple[str, ...] = ()
    governance_features: tuple[str, ...] = ()
    pricing_model: str = "custom"
    starting_price_bucket: str = "unknown"
    pricing_notes: str | None = None

    g2: ReviewSource = ReviewSource()
    capterra: ReviewSource = ReviewSource()

    features: tuple[VendorFeature, ...] = ()
    feedback: tuple[VendorFeedback, ...] = ()
    last_updated: str = ""

    is_brevo: bool = False

    @property
    def average_rating(self) -> float:
        return (self.g2.rating + self.capterra.rating) / 2.0


# ---------------------------------------------------------------------------
# Request inputs
# ---------------------------------------------------------------------------

class UserProfile(BaseModel):
    company_size: CompanySize = "MM"
    industry: str | None = "General"
    primary_goal: str = "Retention"


class AdvancedFilters(BaseModel):
    """Gated filter set.  ``None`` in its place means "no advanced constraints"."""

    channels: list[str] = Field(default_factory=list)
    integrations: list[str] = Field(default_factory=list)
    budget_sensitivity: Sensitivity | None = "medium"
    governance: bool = False
    implementation_tolerance: Sensitivity | None = "medium"


# ---------------------------------------------------------------------------
# Scoring / output types
# ---------------------------------------------------------------------------

class ScoreBreakdown(BaseModel):
    segment: int = 0
    goal: int = 0
    rating: int = 0
    channels: int = 0
    integrations: int = 0
    budget: int = 0


class VendorScore(BaseModel):
    vendor_id: str
    score: int = Field(ge=0, le=100)
    breakdown: ScoreBreakdown = Field(default_factory=ScoreBreakdown)
    reasons: list[str] = Field(default_factory=list)


class FilterResult(BaseModel):
    vendors: list[Vendor] = Field(default_factory=list)
    relaxed: bool = False
    relaxation_level: int = Field(default=0, ge=0, le=4)


class RankedVendor(BaseModel):
    vendor: Vendor
    score: VendorScore


class ComparisonResult(BaseModel):
    vendors: list[RankedVendor] = Field(default_factory=list)
    relaxed: bool = False
    relaxation_level: int = 0
    relaxation_message: str | None = None
    filter_summary: list[str] = Field(default_factory=list)
