"""AI gateway client — the job submission service behind plan generation.

Submits an agent run (``POST /api/v1/analyze``) and reads its status
(``GET /api/v1/analyze/{job_id}``).  Raw response bodies are never put into
exception messages.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from src.macompare.config import settings
from src.macompare.polling.controller import JobServiceError, PollResponse

logger = logging.getLogger(__name__)


class AIGatewayClient:
    """Async client for the AI gateway REST API."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        *,
        agent_alias: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = (base_url if base_url is not None else settings.ai_gateway_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.ai_gateway_api_key
        self.agent_alias = agent_alias or settings.agent_alias
        self.timeout = timeout or settings.polling.request_timeout
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "Content-Type": "application/json",
        }

    async def submit(self, parameters: dict[str, Any]) -> str:
        """Start an agent run.  ``parameters`` carries ``prompt`` and ``metadata``."""
        body = {
            "agentAlias": self.agent_alias,
            "prompt": parameters.get("prompt", ""),
            "metadata": parameters.get("metadata", {}),
        }
        try:
            response = await self._get_client().post(
                f"{self.base_url}/api/v1/analyze",
                headers=self._headers(),
                json=body,
            )
        except httpx.HTTPError as exc:
            raise JobServiceError(f"AI service unreachable ({type(exc).__name__})") from exc

        if response.status_code >= 400:
            logger.error("Gateway submit error: %d", response.status_code)
            raise JobServiceError(
                f"AI service temporarily unavailable ({response.status_code})",
                response.status_code,
            )

        data = response.json()
        job_id = data.get("jobId") or data.get("job_id")
        if not job_id:
            raise JobServiceError("AI service returned no job ID")
        logger.info("Gateway job created: %s", job_id)
        return job_id

    async def poll(self, job_id: str) -> PollResponse:
        try:
            response = await self._get_client().get(
                f"{self.base_url}/api/v1/analyze/{job_id}",
                headers={"x-api-key": self.api_key},
            )
        except httpx.HTTPError as exc:
            raise JobServiceError(f"AI service unreachable ({type(exc).__name__})") from exc

        if response.status_code == 404:
            raise JobServiceError("Plan not found (404)", 404)
        if response.status_code >= 400:
            logger.error("Gateway poll error: %d", response.status_code)
            raise JobServiceError(f"AI service error ({response.status_code})", response.status_code)

        data = response.json()
        logger.debug(
            "Gateway poll %s: status=%s has_result=%s keys=%s",
            job_id, data.get("status"), data.get("result") is not None, sorted(data),
        )
        return PollResponse(
            status=str(data.get("status", "")),
            result=data.get("result"),
            message=data.get("message"),
            error=data.get("error"),
            metadata=data.get("metadata") or {},
        )
