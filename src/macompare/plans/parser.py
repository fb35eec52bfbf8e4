"""Result parser — raw AI agent output to ``MarketingPlan``.

Agent output arrives in many shapes: a JSON string (optionally wrapped in
markdown fences or followed by chatter), an object whose ``text`` / ``result``
field holds such a string, or an object nesting the plan under
``response.data.content``.  ``parse_plan_data`` returns ``None`` for anything
it cannot turn into a plan; callers treat that as a parse failure.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from src.macompare.plans.models import (
    BrevoHelpScenario,
    CompanySummary,
    MarketingPlan,
    MarketingProgram,
    ProgramScenario,
    ValidationIssue,
)
from src.macompare.plans.normalize import extract_company_name_from_domain

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)```", re.DOTALL)
_OPEN_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?(.+)$", re.DOTALL)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_DETAILS_KEY_RE = re.compile(r"^program_(\d+)_details$")

_STRING_WRAPPER_KEYS = ("text", "message", "output", "result", "data")

_CONTENT_PATHS: list[tuple[str, ...]] = [
    ("response", "data", "content"),
    ("content",),
    ("result",),
    ("data",),
    ("output",),
    (),
]

NOT_SPECIFIED = "Not specified"


# ---------------------------------------------------------------------------
# JSON extraction
# ---------------------------------------------------------------------------

def _strip_fences(text: str) -> str:
    m = _FENCE_RE.search(text)
    if m:
        return m.group(1).strip()
    m = _OPEN_FENCE_RE.match(text)
    return m.group(1).strip() if m else text


def _balanced_prefix(text: str) -> str | None:
    """Text up to the brace closing the first top-level object."""
    depth = 0
    in_string = False
    escape = False
    for i, char in enumerate(text):
        if escape:
            escape = False
            continue
        if char == "\\":
            escape = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[: i + 1]
    return None


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_json(text: str) -> dict[str, Any] | None:
    cleaned = _strip_fences(text.strip())

    m = _OBJECT_RE.search(cleaned)
    if m:
        candidate = m.group(0)
        parsed = _loads_object(candidate)
        if parsed is not None:
            return parsed
        trimmed = _balanced_prefix(candidate)
        if trimmed and trimmed != candidate:
            parsed = _loads_object(trimmed)
            if parsed is not None:
                logger.debug("Parsed JSON after trimming trailing content")
                return parsed

    return _loads_object(cleaned)


def _nested(obj: Any, paths: list[tuple[str, ...]]) -> tuple[Any, tuple[str, ...]]:
    for path in paths:
        current = obj
        for key in path:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                break
        else:
            return current, path
    return None, ()


# ---------------------------------------------------------------------------
# Plan sections
# ---------------------------------------------------------------------------

def _text(value: Any, default: str = "") -> str:
    if isinstance(value, str) and value.strip():
        return value
    return default


def has_content(value: str | None) -> bool:
    return bool(value) and value != NOT_SPECIFIED and bool(value.strip())


def _company_summary(data: Any, domain: str | None) -> CompanySummary:
    if not isinstance(data, dict):
        return CompanySummary(
            name=extract_company_name_from_domain(domain),
            website=domain or "Unknown",
        )
    activities = _text(data.get("activities")) or _text(data.get("industry"), NOT_SPECIFIED)
    target = _text(data.get("target")) or _text(data.get("target_audience"), NOT_SPECIFIED)
    return CompanySummary(
        name=_text(data.get("name")) or extract_company_name_from_domain(domain),
        website=_text(data.get("website")) or domain or "Unknown",
        activities=activities,
        target=target,
        industry=_text(data.get("industry")) or activities,
        target_audience=_text(data.get("target_audience")) or target,
        nb_employees=_text(data.get("nb_employees")) or None,
        business_model=_text(data.get("business_model")) or None,
        customer_lifecycle_key_steps=_text(data.get("customer_lifecycle_key_steps")) or None,
    )


def _scenarios(value: Any) -> list[ProgramScenario] | None:
    if not isinstance(value, list):
        return None
    return [ProgramScenario(**s) for s in value if isinstance(s, dict)]


def _program(raw: dict[str, Any], index: int) -> MarketingProgram:
    return MarketingProgram(
        program_name=_text(raw.get("program_name")) or _text(raw.get("name"), f"Program {index + 1}"),
        target=_text(raw.get("target"), NOT_SPECIFIED),
        objective=_text(raw.get("objective"), NOT_SPECIFIED),
        kpi=_text(raw.get("kpi")),
        description=_text(raw.get("description")),
        scenarios=_scenarios(raw.get("scenarios")),
    )


def _programs(data: Any, content: dict[str, Any]) -> list[MarketingProgram]:
    if isinstance(data, list):
        items = data
    elif isinstance(data, dict):
        items = list(data.values())
    else:
        items = []
    programs = [_program(p, i) for i, p in enumerate(items) if isinstance(p, dict)]

    if not programs:
        programs = [MarketingProgram(
            program_name="Marketing Program",
            description="No program details available",
        )]

    # program_N_details keys carry the full scenarios for program N (1-based)
    for key in sorted(content):
        m = _DETAILS_KEY_RE.match(key)
        if not m:
            continue
        idx = int(m.group(1)) - 1
        details = content[key]
        if not (0 <= idx < len(programs)) or not isinstance(details, dict):
            continue
        name = _text(details.get("program_name")) or _text(details.get("name"))
        scenarios = _scenarios(details.get("scenarios"))
        update: dict[str, Any] = {}
        if name:
            update["program_name"] = name
        if scenarios is not None:
            update["scenarios"] = scenarios
        programs[idx] = programs[idx].model_copy(update=update)
    return programs


def _conversation_id(raw: Any) -> str | None:
    value, _ = _nested(raw, [
        ("response", "data", "metadata", "conversation_id"),
        ("metadata", "conversation_id"),
        ("conversation_id",),
    ])
    return value if isinstance(value, str) and value else None


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def parse_plan_data(
    response_data: Any, context: dict[str, Any] | None = None,
) -> MarketingPlan | None:
    """Build a plan from agent output, or ``None`` when it is unusable.

    ``context`` may carry ``domain`` for company-summary fallbacks.
    """
    domain = (context or {}).get("domain")
    if not response_data:
        return None

    if isinstance(response_data, str):
        parsed = extract_json(response_data)
        if parsed is None:
            logger.error("Agent output is a string without a JSON object (length %d)", len(response_data))
            return None
        response_data = parsed

    if isinstance(response_data, dict):
        for key in _STRING_WRAPPER_KEYS:
            value = response_data.get(key)
            if isinstance(value, str):
                nested = extract_json(value)
                if nested and "company_summary" in nested:
                    response_data = nested
                    break

    content, path = _nested(response_data, _CONTENT_PATHS)
    if isinstance(content, str):
        content = extract_json(content)
    if not isinstance(content, dict):
        content = response_data
    if not isinstance(content, dict):
        return None
    if "company_summary" not in content and "programs_list" not in content:
        logger.error("Agent output has no plan sections (keys: %s)", sorted(content)[:10])
        return None

    helps = content.get("how_brevo_helps_you")
    if not isinstance(helps, list):
        helps = []
    try:
        plan = MarketingPlan(
            company_summary=_company_summary(content.get("company_summary"), domain),
            programs_list=_programs(content.get("programs_list"), content),
            introduction=_text(content.get("introduction")),
            tools_used=_text(content.get("tools_used")),
            conclusion=_text(content.get("conclusion")),
            how_brevo_helps_you=[BrevoHelpScenario(**h) for h in helps if isinstance(h, dict)],
        )
    except (ValidationError, TypeError) as exc:
        logger.error("Plan structure rejected: %s", type(exc).__name__)
        return None

    plan.metadata["content_path"] = ".".join(path) or "direct"
    conversation_id = _conversation_id(response_data)
    if conversation_id:
        plan.metadata["conversation_id"] = conversation_id
    return plan


def validate_plan(plan: MarketingPlan) -> list[ValidationIssue]:
    summary = plan.company_summary
    issues: list[ValidationIssue] = []
    if not (has_content(summary.activities) or has_content(summary.industry)):
        issues.append(ValidationIssue(
            field="company_summary.activities",
            message="Missing required field: either activities or industry must be provided",
        ))
    if not (has_content(summary.target) or has_content(summary.target_audience)):
        issues.append(ValidationIssue(
            field="company_summary.target",
            message="Missing required field: either target or target_audience must be provided",
        ))
    return issues
