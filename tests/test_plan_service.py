"""Plan generation flow — stored plan lookup, agent run and fail-open persistence."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from src.macompare.config import PollingSettings
from src.macompare.plans.models import CompanySummary, DbResult, MarketingPlan
from src.macompare.plans.service import (
    PlanGenerationService,
    PlanRequestError,
    build_prompt,
)
from src.macompare.plans.store import SupabasePlanStore
from src.macompare.polling.controller import PollResponse

PLAN_JSON = json.dumps({
    "company_summary": {"name": "Acme", "website": "acme.io", "activities": "Widgets"},
    "programs_list": [{"program_name": "Welcome", "objective": "Activate"}],
})


class FakeGateway:
    def __init__(self, responses: list[PollResponse]) -> None:
        self.responses = list(responses)
        self.submitted: list[dict[str, Any]] = []

    async def submit(self, parameters: dict[str, Any]) -> str:
        self.submitted.append(parameters)
        return "job-12345678"

    async def poll(self, job_id: str) -> PollResponse:
        return self.responses.pop(0)


class FakeStore:
    def __init__(
        self,
        stored: MarketingPlan | None = None,
        upsert_result: DbResult | Exception | None = None,
    ) -> None:
        self.stored = stored
        self.upsert_result = upsert_result or DbResult(success=True)
        self.lookups: list[tuple[str, str]] = []
        self.upserts: list[tuple[str, str, MarketingPlan, str | None]] = []

    async def lookup(self, domain: str, language: str) -> DbResult:
        self.lookups.append((domain, language))
        return DbResult(success=True, data=self.stored)

    async def upsert(
        self, domain: str, language: str, plan: MarketingPlan, email: str | None = None,
    ) -> DbResult:
        self.upserts.append((domain, language, plan, email))
        if isinstance(self.upsert_result, Exception):
            raise self.upsert_result
        return self.upsert_result


async def _no_sleep(delay: float) -> None:
    return None


def _make_service(gateway: FakeGateway, store: FakeStore) -> PlanGenerationService:
    return PlanGenerationService(
        gateway, store, config=PollingSettings(max_polls=5), sleep=_no_sleep,
    )


def _done() -> list[PollResponse]:
    return [
        PollResponse(status="running"),
        PollResponse(status="completed", result={"text": PLAN_JSON}),
    ]


class TestValidation:
    def test_invalid_domain(self):
        service = _make_service(FakeGateway([]), FakeStore())
        with pytest.raises(PlanRequestError, match="Invalid domain"):
            asyncio.run(service.generate("localhost", "Retail"))

    def test_unsupported_language(self):
        service = _make_service(FakeGateway([]), FakeStore())
        with pytest.raises(PlanRequestError, match="Unsupported language"):
            asyncio.run(service.generate("acme.io", "Retail", "it"))


class TestStoredPlan:
    def test_returns_stored_plan(self):
        stored = MarketingPlan(company_summary=CompanySummary(name="Acme", website="acme.io"))
        gateway = FakeGateway([])
        store = FakeStore(stored=stored)
        outcome = asyncio.run(_make_service(gateway, store).generate("https://www.Acme.io/", "Retail"))

        assert outcome.success
        assert outcome.source == "db"
        assert outcome.plan == stored
        assert store.lookups == [("acme.io", "en")]
        assert gateway.submitted == []

    def test_force_skips_lookup(self):
        stored = MarketingPlan(company_summary=CompanySummary(name="Old", website="acme.io"))
        gateway = FakeGateway(_done())
        store = FakeStore(stored=stored)
        outcome = asyncio.run(
            _make_service(gateway, store).generate("acme.io", "Retail", force=True),
        )

        assert outcome.source == "ai"
        assert outcome.plan.company_summary.name == "Acme"
        assert store.lookups == []


class TestGeneration:
    def test_generates_and_persists(self):
        gateway = FakeGateway(_done())
        store = FakeStore()
        outcome = asyncio.run(
            _make_service(gateway, store).generate("acme.io", "Retail", "fr", email="cmo@acme.io"),
        )

        assert outcome.success
        assert outcome.source == "ai"
        assert outcome.persisted
        assert outcome.job_id == "job-12345678"
        assert outcome.plan.programs_list[0].program_name == "Welcome"
        domain, language, plan, email = store.upserts[0]
        assert (domain, language, email) == ("acme.io", "fr", "cmo@acme.io")
        assert plan == outcome.plan

        params = gateway.submitted[0]
        assert params["metadata"]["language"] == "fr"
        assert params["metadata"]["domain"] == "acme.io"
        assert "Répondez en français" in params["prompt"]

    def test_persistence_failure_is_not_fatal(self):
        store = FakeStore(upsert_result=DbResult(success=False, error="Upsert failed: HTTP 500"))
        outcome = asyncio.run(_make_service(FakeGateway(_done()), store).generate("acme.io", "Retail"))
        assert outcome.success
        assert outcome.plan is not None
        assert not outcome.persisted

    def test_persistence_exception_is_not_fatal(self):
        store = FakeStore(upsert_result=RuntimeError("db down"))
        outcome = asyncio.run(_make_service(FakeGateway(_done()), store).generate("acme.io", "Retail"))
        assert outcome.success
        assert not outcome.persisted

    def test_failed_generation_is_not_persisted(self):
        gateway = FakeGateway([PollResponse(status="failed", error="Agent crashed")])
        store = FakeStore()
        outcome = asyncio.run(_make_service(gateway, store).generate("acme.io", "Retail"))

        assert not outcome.success
        assert outcome.error == "Agent crashed"
        assert outcome.phase == "failed"
        assert store.upserts == []

    def test_unparseable_result(self):
        gateway = FakeGateway([PollResponse(status="completed", result="I could not do it")])
        outcome = asyncio.run(_make_service(gateway, FakeStore()).generate("acme.io", "Retail"))
        assert not outcome.success
        assert outcome.error == "Failed to parse AI response"

    def test_unreadable_lookup_is_a_cache_miss(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, text="<html>proxy error</html>")
            return httpx.Response(201)

        store = SupabasePlanStore(
            "https://db.test", "service-key",
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        gateway = FakeGateway(_done())
        outcome = asyncio.run(_make_service(gateway, store).generate("acme.io", "Retail"))

        assert outcome.success
        assert outcome.source == "ai"
        assert outcome.persisted
        assert len(gateway.submitted) == 1


class TestPrompt:
    def test_english(self):
        prompt = build_prompt("acme.io", "Retail", "en")
        assert prompt.startswith("You are an expert marketing strategist")
        assert "operates in the Retail industry" in prompt
        assert '"programs_list"' in prompt

    def test_other_languages(self):
        assert "auf Deutsch" in build_prompt("acme.io", "Retail", "de")
        assert "en español" in build_prompt("acme.io", "Retail", "es")
