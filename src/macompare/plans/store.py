"""Plan persistence — Supabase REST (PostgREST) over httpx.

Table ``marketing_plans`` keyed by ``(company_domain, user_language)``;
the plan itself lives in the ``form_data`` JSON column.  Operations return a
``DbResult`` instead of raising.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx
from pydantic import ValidationError

from src.macompare.config import settings
from src.macompare.plans.models import DbResult, MarketingPlan
from src.macompare.plans.normalize import normalize_domain

logger = logging.getLogger(__name__)


class PlanStore(Protocol):
    async def lookup(self, domain: str, language: str) -> DbResult: ...

    async def upsert(
        self, domain: str, language: str, plan: MarketingPlan, email: str | None = None,
    ) -> DbResult: ...


class SupabasePlanStore:
    """Async client for the marketing plans table."""

    def __init__(
        self,
        url: str | None = None,
        key: str | None = None,
        *,
        table: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = (url if url is not None else settings.supabase_url).rstrip("/")
        self.key = key if key is not None else settings.supabase_key
        self.table = table or settings.plans_table
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.url and self.key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=settings.polling.request_timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    def _headers(self, upsert: bool = False) -> dict[str, str]:
        headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json",
            "Prefer": "return=minimal",
        }
        if upsert:
            headers["Prefer"] = "return=minimal,resolution=merge-duplicates"
        return headers

    async def lookup(self, domain: str, language: str) -> DbResult:
        if not domain:
            return DbResult(success=False, error="Company domain is required")
        if not self.configured:
            logger.warning("Supabase not configured, skipping plan lookup")
            return DbResult(success=True)

        normalized = normalize_domain(domain)
        params = {
            "select": "form_data",
            "company_domain": f"eq.{normalized}",
            "user_language": f"eq.{language}",
            "limit": "1",
        }
        try:
            response = await self._get_client().get(
                f"{self.url}/rest/v1/{self.table}",
                headers=self._headers(),
                params=params,
            )
        except httpx.HTTPError as exc:
            logger.error("Plan lookup failed: %s", type(exc).__name__)
            return DbResult(success=False, error=f"Lookup failed: {type(exc).__name__}")

        if response.status_code >= 400:
            logger.error("Plan lookup error (%d)", response.status_code)
            return DbResult(success=False, error=f"Lookup failed: HTTP {response.status_code}")

        try:
            rows = response.json()
        except ValueError:
            logger.error("Plan lookup returned a non-JSON body (%d)", response.status_code)
            return DbResult(success=False, error="Lookup failed: invalid response body")
        if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
            logger.error("Plan lookup returned %s instead of rows", type(rows).__name__)
            return DbResult(success=False, error="Lookup failed: unexpected response shape")
        if not rows or not rows[0].get("form_data"):
            return DbResult(success=True)
        try:
            plan = MarketingPlan.model_validate(rows[0]["form_data"])
        except ValidationError:
            logger.error("Stored plan for %s/%s does not validate", normalized, language)
            return DbResult(success=False, error="Stored plan is malformed")
        return DbResult(success=True, data=plan)

    async def upsert(
        self, domain: str, language: str, plan: MarketingPlan, email: str | None = None,
    ) -> DbResult:
        if not domain:
            return DbResult(success=False, error="Company domain is required")
        if not self.configured:
            logger.warning("Supabase not configured, skipping plan upsert")
            return DbResult(success=False, error="Supabase not configured")

        normalized = normalize_domain(domain)
        if not normalized:
            return DbResult(success=False, error=f"Domain normalization failed for: {domain}")

        body = {
            "company_domain": normalized,
            "user_language": language,
            "email": email or settings.default_email,
            "form_data": plan.model_dump(mode="json"),
        }
        try:
            response = await self._get_client().post(
                f"{self.url}/rest/v1/{self.table}",
                headers=self._headers(upsert=True),
                params={"on_conflict": "company_domain,user_language"},
                json=body,
            )
        except httpx.HTTPError as exc:
            logger.error("Plan upsert failed: %s", type(exc).__name__)
            return DbResult(success=False, error=f"Upsert failed: {type(exc).__name__}")

        if response.status_code >= 400:
            logger.error("Plan upsert error (%d) for %s", response.status_code, normalized)
            return DbResult(success=False, error=f"Upsert failed: HTTP {response.status_code}")

        logger.info("Plan saved: %s/%s", normalized, language)
        return DbResult(success=True)

    async def plan_exists(self, domain: str, language: str) -> bool:
        result = await self.lookup(domain, language)
        return result.success and result.data is not None
