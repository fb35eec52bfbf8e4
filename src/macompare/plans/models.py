"""Marketing plan data contracts."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Language = Literal["en", "fr", "de", "es"]

PlanSource = Literal["db", "ai"]


class ProgramScenario(BaseModel):
    model_config = ConfigDict(extra="allow")

    scenario_target: str | None = None
    scenario_objective: str | None = None
    main_messages_ideas: str | None = None
    message_sequence: list[dict[str, Any]] | dict[str, Any] | None = None


class MarketingProgram(BaseModel):
    program_name: str
    target: str = "Not specified"
    objective: str = "Not specified"
    kpi: str = ""
    description: str = ""
    scenarios: list[ProgramScenario] | None = None


class CompanySummary(BaseModel):
    name: str
    website: str
    activities: str = "Not specified"
    target: str = "Not specified"
    industry: str | None = None
    target_audience: str | None = None
    nb_employees: str | None = None
    business_model: str | None = None
    customer_lifecycle_key_steps: str | None = None


class BrevoHelpScenario(BaseModel):
    model_config = ConfigDict(extra="allow")

    scenario_name: str | None = None
    why_brevo_is_better: str | None = None
    omnichannel_channels: str | None = None
    setup_efficiency: str | None = None


class MarketingPlan(BaseModel):
    company_summary: CompanySummary
    programs_list: list[MarketingProgram] = Field(default_factory=list)
    introduction: str = ""
    tools_used: str = ""
    conclusion: str = ""
    how_brevo_helps_you: list[BrevoHelpScenario] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ValidationIssue(BaseModel):
    field: str
    message: str


class DbResult(BaseModel):
    success: bool
    data: MarketingPlan | None = None
    error: str | None = None


class PlanOutcome(BaseModel):
    """What the caller of plan generation receives."""

    success: bool
    source: PlanSource | None = None
    plan: MarketingPlan | None = None
    error: str | None = None
    phase: str | None = None
    job_id: str | None = None
    persisted: bool = False
    logs: list[str] = Field(default_factory=list)
