"""Streamlit UI for the marketing automation comparison tool and plan generator."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import pandas as pd
import streamlit as st

sys.path.insert(0, str(Path(__file__).resolve().parent))

from src.macompare.catalog import VendorCatalog  # noqa: E402
from src.macompare.config import settings  # noqa: E402
from src.macompare.domain_model import (  # noqa: E402
    COMPANY_SIZE_LABELS,
    GOAL_STRENGTH_KEYWORDS,
)
from src.macompare.engine import compare  # noqa: E402
from src.macompare.models import (  # noqa: E402
    AdvancedFilters,
    ComparisonResult,
    UserProfile,
    Vendor,
)
from src.macompare.plans.models import PlanOutcome  # noqa: E402
from src.macompare.plans.service import (  # noqa: E402
    SUPPORTED_LANGUAGES,
    PlanGenerationService,
    PlanRequestError,
)
from src.macompare.plans.store import SupabasePlanStore  # noqa: E402
from src.macompare.polling.controller import PollState  # noqa: E402
from src.macompare.polling.gateway import AIGatewayClient  # noqa: E402

logging.basicConfig(level=settings.log_level)

st.set_page_config(page_title="Marketing Automation Compare", layout="wide")
st.title("Marketing Automation — Vendor Comparison")

INDUSTRY_OPTIONS = [
    "General", "Ecommerce", "Retail", "SaaS", "B2B", "Media",
    "Financial Services", "Nonprofit",
]
CHANNEL_OPTIONS = ["Email", "SMS", "WhatsApp", "Push", "In-app", "Chat", "Social"]
INTEGRATION_OPTIONS = [
    "Shopify", "WooCommerce", "Magento", "Salesforce", "Zapier", "Segment",
    "Snowflake", "Slack",
]
SORT_LABELS = {
    "recommended": "Recommended",
    "rating": "Rating",
    "complexity": "Ease of setup",
    "name": "Name",
}
LANGUAGE_LABELS = {"en": "English", "fr": "Français", "de": "Deutsch", "es": "Español"}


@st.cache_resource
def _load_catalog() -> VendorCatalog:
    return VendorCatalog.from_json()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _results_frame(result: ComparisonResult) -> pd.DataFrame:
    rows = [
        {
            "Vendor": r.vendor.name,
            "Fit score": r.score.score,
            "Rating": round(r.vendor.average_rating, 2),
            "Complexity": r.vendor.complexity,
            "Starting price": r.vendor.starting_price_bucket,
            "Segments": ", ".join(r.vendor.target_segments),
        }
        for r in result.vendors
    ]
    return pd.DataFrame(rows)


def _render_comparison(result: ComparisonResult) -> None:
    if result.relaxation_message:
        st.warning(result.relaxation_message)
    st.caption(" · ".join(result.filter_summary))

    st.dataframe(_results_frame(result), use_container_width=True, hide_index=True)

    for rank, ranked in enumerate(result.vendors, 1):
        vendor = ranked.vendor
        with st.expander(f"#{rank}: {vendor.name} — {ranked.score.score}/100"):
            st.markdown(vendor.short_description or "")
            if ranked.score.reasons:
                st.markdown("**Why recommended**")
                for reason in ranked.score.reasons:
                    st.markdown(f"- {reason}")
            b = ranked.score.breakdown
            cols = st.columns(6)
            cols[0].metric("Segment", b.segment)
            cols[1].metric("Goal", b.goal)
            cols[2].metric("Rating", b.rating)
            cols[3].metric("Channels", b.channels)
            cols[4].metric("Integrations", b.integrations)
            cols[5].metric("Budget", b.budget)


def _side_by_side(vendors: list[Vendor]) -> pd.DataFrame:
    data = {
        v.name: {
            "Segments": ", ".join(v.target_segments),
            "Goals": ", ".join(v.supported_goals),
            "Channels": ", ".join(v.channels),
            "Integrations": ", ".join(v.native_integrations),
            "Complexity": v.complexity,
            "Pricing": f"{v.pricing_model} ({v.starting_price_bucket})",
            "G2": f"{v.g2.rating:.1f} ({v.g2.reviews_count})",
            "Capterra": f"{v.capterra.rating:.1f} ({v.capterra.reviews_count})",
        }
        for v in vendors
    }
    return pd.DataFrame(data)


def _render_plan(outcome: PlanOutcome) -> None:
    plan = outcome.plan
    if plan is None:
        return
    source = "saved plan" if outcome.source == "db" else "freshly generated"
    st.success(f"Marketing plan ready ({source})")
    summary = plan.company_summary
    st.subheader(summary.name)
    st.markdown(f"**Website:** {summary.website}")
    st.markdown(f"**Activities:** {summary.activities}")
    st.markdown(f"**Target:** {summary.target}")
    if plan.introduction:
        st.info(plan.introduction)
    for program in plan.programs_list:
        with st.expander(program.program_name):
            st.markdown(f"**Objective:** {program.objective}")
            st.markdown(f"**Target:** {program.target}")
            if program.kpi:
                st.markdown(f"**KPI:** {program.kpi}")
            if program.description:
                st.markdown(program.description)
            for scenario in program.scenarios or []:
                st.markdown(f"- {scenario.scenario_target or scenario.scenario_objective or 'Scenario'}")
    if plan.conclusion:
        st.markdown(plan.conclusion)
    if outcome.source == "ai" and not outcome.persisted:
        st.caption("Plan could not be saved; it will be regenerated next time.")


async def _generate(
    domain: str, industry: str, language: str, force: bool, on_update,
) -> PlanOutcome:
    gateway = AIGatewayClient()
    store = SupabasePlanStore()
    service = PlanGenerationService(gateway, store, on_update=on_update)
    try:
        return await service.generate(domain, industry, language, force=force)
    finally:
        await gateway.close()
        await store.close()


# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------

with st.sidebar:
    st.header("Your company")
    company_size = st.selectbox(
        "Company size",
        list(COMPANY_SIZE_LABELS),
        index=1,
        format_func=lambda s: COMPANY_SIZE_LABELS[s],
    )
    industry = st.selectbox("Industry", INDUSTRY_OPTIONS)
    primary_goal = st.selectbox(
        "Primary goal", list(GOAL_STRENGTH_KEYWORDS), index=2,
    )

    st.markdown("---")
    use_advanced = st.checkbox("Advanced filters", value=False)
    advanced: AdvancedFilters | None = None
    if use_advanced:
        channels = st.multiselect("Required channels", CHANNEL_OPTIONS)
        integrations = st.multiselect("Required integrations", INTEGRATION_OPTIONS)
        budget = st.select_slider(
            "Budget sensitivity", ["low", "medium", "high"], value="medium",
        )
        tolerance = st.select_slider(
            "Implementation tolerance", ["low", "medium", "high"], value="medium",
        )
        governance = st.checkbox("Governance / security required")
        advanced = AdvancedFilters(
            channels=channels,
            integrations=integrations,
            budget_sensitivity=budget,
            governance=governance,
            implementation_tolerance=tolerance,
        )

    st.markdown("---")
    st.caption("Service credentials are loaded from `.env` file.")
    if settings.ai_gateway_api_key:
        st.success("AI gateway key loaded")
    else:
        st.warning("No AI gateway key found")


profile = UserProfile(
    company_size=company_size, industry=industry, primary_goal=primary_goal,
)
catalog = _load_catalog()


# ---------------------------------------------------------------------------
# Main tabs
# ---------------------------------------------------------------------------

tab_compare, tab_side, tab_plan = st.tabs([
    "Recommendations", "Side by Side", "Marketing Plan",
])

# --- Tab 1: Recommendations ---
with tab_compare:
    col_search, col_sort = st.columns([3, 1])
    search = col_search.text_input("Search vendors", placeholder="Name, capability, integration...")
    sort_by = col_sort.selectbox(
        "Sort by", list(SORT_LABELS), format_func=lambda s: SORT_LABELS[s],
    )
    result = compare(catalog, profile, advanced, search or None, sort_by)
    _render_comparison(result)


# --- Tab 2: Side by Side ---
with tab_side:
    disp = settings.display
    names = {v.vendor_id: v.name for v in catalog}
    picked = st.multiselect(
        f"Pick {disp.min_compare_vendors} to {disp.max_compare_vendors} vendors",
        list(names),
        format_func=lambda vid: names[vid],
        max_selections=disp.max_compare_vendors,
    )
    if len(picked) < disp.min_compare_vendors:
        st.info(f"Select at least {disp.min_compare_vendors} vendors to compare.")
    else:
        st.dataframe(
            _side_by_side(catalog.get_vendors_by_ids(picked)),
            use_container_width=True,
        )


# --- Tab 3: Marketing Plan ---
with tab_plan:
    st.subheader("Generate a marketing relationship plan")
    with st.form("plan_form"):
        domain = st.text_input("Company domain *", placeholder="example.com")
        language = st.selectbox(
            "Language", SUPPORTED_LANGUAGES, format_func=lambda code: LANGUAGE_LABELS[code],
        )
        force = st.checkbox("Regenerate even if a saved plan exists")
        submitted = st.form_submit_button("Generate Plan", type="primary")

    if submitted:
        progress_bar = st.progress(0.0)
        status_text = st.empty()

        def _on_update(state: PollState) -> None:
            progress_bar.progress(min(state.progress / 100.0, 1.0))
            if state.logs:
                status_text.text(state.logs[-1])

        try:
            outcome = asyncio.run(_generate(domain, industry, language, force, _on_update))
        except PlanRequestError as e:
            st.error(str(e))
        else:
            if outcome.success:
                progress_bar.progress(1.0)
                _render_plan(outcome)
            else:
                st.error(outcome.error or "Plan generation failed")
                with st.expander("Generation log"):
                    st.text("\n".join(outcome.logs))
