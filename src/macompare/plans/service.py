"""Plan generation flow — stored plan lookup, agent run, persistence.

  1. Validate + normalize the company domain and language
  2. Return the stored plan for (domain, language) unless ``force``
  3. Submit the agent prompt and poll it to a terminal state
  4. Persist a completed plan; storage failure never fails the generation
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from src.macompare.config import PollingSettings, settings
from src.macompare.plans.models import PlanOutcome
from src.macompare.plans.normalize import is_domain_likely_valid, normalize_domain
from src.macompare.plans.parser import parse_plan_data
from src.macompare.plans.store import PlanStore
from src.macompare.polling.controller import (
    JobPollingController,
    JobService,
    PollState,
    ResultParser,
    Sleeper,
)

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = ("en", "fr", "de", "es")

_INTROS: dict[str, str] = {
    "en": (
        "You are an expert marketing strategist. Analyze the company at {domain} "
        "and create a comprehensive marketing relationship plan."
    ),
    "fr": (
        "Vous êtes un expert en stratégie marketing. Analysez l'entreprise {domain} "
        "et créez un plan marketing relationnel complet. Répondez en français."
    ),
    "de": (
        "Sie sind ein Experte für Marketingstrategie. Analysieren Sie das Unternehmen "
        "{domain} und erstellen Sie einen umfassenden Marketing-Beziehungsplan. "
        "Antworten Sie auf Deutsch."
    ),
    "es": (
        "Eres un experto en estrategia de marketing. Analiza la empresa {domain} y "
        "crea un plan de marketing relacional completo. Responde en español."
    ),
}

_PLAN_FORMAT = """\
Create a detailed marketing relationship plan for the company at {domain}, which \
operates in the {industry} industry.

Structure your response as a JSON object with the following format:
{{
  "introduction": "Brief overview of the plan",
  "company_summary": {{
    "name": "Company name",
    "website": "{domain}",
    "activities": "Main activities",
    "target": "Primary target audience",
    "industry": "{industry}",
    "nb_employees": "Estimated employee count",
    "business_model": "B2B or B2C",
    "customer_lifecycle_key_steps": "Key customer lifecycle stages"
  }},
  "programs_list": [
    {{
      "program_name": "Program Name",
      "target": "Target audience for this program",
      "objective": "Main objective",
      "kpi": "Key performance indicator",
      "description": "Program description",
      "scenarios": [
        {{
          "scenario_target": "Specific target",
          "scenario_objective": "Scenario objective",
          "main_messages_ideas": "Key messages",
          "message_sequence": [
            {{"title": "Message 1", "description": "When to send", "content": "Message content"}}
          ]
        }}
      ]
    }}
  ],
  "how_brevo_helps_you": [
    {{
      "scenario_name": "Scenario",
      "why_brevo_is_better": "Why Brevo is the best solution",
      "omnichannel_channels": "Channels to use (Email, SMS, WhatsApp, etc.)",
      "setup_efficiency": "How easy it is to set up"
    }}
  ],
  "conclusion": "Closing summary"
}}

Focus on actionable, specific recommendations. Include 3-5 marketing programs \
with detailed scenarios.
"""


class PlanRequestError(ValueError):
    """Invalid plan request input."""


def build_prompt(domain: str, industry: str, language: str) -> str:
    intro = _INTROS.get(language, _INTROS["en"]).format(domain=domain)
    return f"{intro}\n\n{_PLAN_FORMAT.format(domain=domain, industry=industry)}"


class PlanGenerationService:
    def __init__(
        self,
        gateway: JobService,
        store: PlanStore,
        *,
        parser: ResultParser = parse_plan_data,
        config: PollingSettings | None = None,
        sleep: Sleeper | None = None,
        on_update: Callable[[PollState], None] | None = None,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._parser = parser
        self._config = config or settings.polling
        self._sleep = sleep
        self._on_update = on_update
        self.controller: JobPollingController | None = None

    def _new_controller(self) -> JobPollingController:
        kwargs: dict[str, Any] = {"config": self._config, "on_update": self._on_update}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return JobPollingController(self._gateway, self._parser, **kwargs)

    def cancel(self) -> None:
        if self.controller is not None:
            self.controller.cancel()

    async def generate(
        self,
        domain: str,
        industry: str,
        language: str = "en",
        *,
        force: bool = False,
        email: str | None = None,
    ) -> PlanOutcome:
        if language not in SUPPORTED_LANGUAGES:
            raise PlanRequestError(f"Unsupported language: {language}")
        normalized = normalize_domain(domain)
        if not is_domain_likely_valid(normalized):
            raise PlanRequestError("Invalid domain provided")

        if not force:
            existing = await self._store.lookup(normalized, language)
            if existing.success and existing.data is not None:
                logger.info("Serving stored plan for %s/%s", normalized, language)
                return PlanOutcome(success=True, source="db", plan=existing.data)

        self.controller = self._new_controller()
        parameters = {
            "prompt": build_prompt(normalized, industry, language),
            "metadata": {
                "client": settings.agent_alias,
                "industry": industry,
                "domain": normalized,
                "language": language,
            },
        }
        state = await self.controller.run(
            parameters, context={"domain": normalized, "language": language},
        )

        if state.phase != "completed":
            logger.warning(
                "Plan generation for %s ended %s: %s", normalized, state.phase, state.error,
            )
            return PlanOutcome(
                success=False, source="ai", error=state.error, phase=state.phase,
                job_id=state.job_id, logs=state.logs,
            )

        persisted = await self._persist(state, normalized, language, email)
        return PlanOutcome(
            success=True, source="ai", plan=state.result, phase=state.phase,
            job_id=state.job_id, persisted=persisted, logs=state.logs,
        )

    async def _persist(
        self, state: PollState, domain: str, language: str, email: str | None,
    ) -> bool:
        meta = state.metadata
        target_domain = meta.get("domain") or domain
        target_language = meta.get("language") or language
        try:
            result = await self._store.upsert(
                target_domain, target_language, state.result,
                email=meta.get("email") or email,
            )
        except Exception as exc:
            logger.error("Plan storage raised %s; plan still returned", type(exc).__name__)
            return False
        if not result.success:
            logger.error("Plan storage failed (%s); plan still returned", result.error)
        return result.success
