"""AI gateway client against an in-process httpx mock transport."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from src.macompare.polling.controller import JobServiceError
from src.macompare.polling.gateway import AIGatewayClient
from src.macompare.polling.schedule import is_invalid_job_error


def _make_gateway(handler) -> AIGatewayClient:
    return AIGatewayClient(
        "https://gateway.test/",
        "test-key",
        agent_alias="plan-agent",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestSubmit:
    def test_returns_job_id(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"jobId": "job-abcdef12"})

        gateway = _make_gateway(handler)
        job_id = asyncio.run(gateway.submit({"prompt": "Plan please", "metadata": {"language": "fr"}}))

        assert job_id == "job-abcdef12"
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://gateway.test/api/v1/analyze"
        assert request.headers["x-api-key"] == "test-key"
        assert json.loads(request.content) == {
            "agentAlias": "plan-agent",
            "prompt": "Plan please",
            "metadata": {"language": "fr"},
        }

    def test_snake_case_job_id(self):
        gateway = _make_gateway(lambda r: httpx.Response(200, json={"job_id": "job-snake123"}))
        assert asyncio.run(gateway.submit({})) == "job-snake123"

    def test_http_error_hides_body(self):
        gateway = _make_gateway(lambda r: httpx.Response(503, text="internal stack trace"))
        with pytest.raises(JobServiceError) as exc_info:
            asyncio.run(gateway.submit({}))
        assert exc_info.value.status_code == 503
        assert str(exc_info.value) == "AI service temporarily unavailable (503)"

    def test_missing_job_id(self):
        gateway = _make_gateway(lambda r: httpx.Response(200, json={}))
        with pytest.raises(JobServiceError, match="no job ID"):
            asyncio.run(gateway.submit({}))

    def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        gateway = _make_gateway(handler)
        with pytest.raises(JobServiceError, match="unreachable"):
            asyncio.run(gateway.submit({}))


class TestPoll:
    def test_maps_response(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={
                "status": "completed",
                "result": {"text": "{}"},
                "metadata": {"conversation_id": "conv-1"},
            })

        response = asyncio.run(_make_gateway(handler).poll("job-abcdef12"))

        assert str(seen[0].url) == "https://gateway.test/api/v1/analyze/job-abcdef12"
        assert response.status == "completed"
        assert response.result == {"text": "{}"}
        assert response.metadata == {"conversation_id": "conv-1"}
        assert response.error is None

    def test_missing_fields(self):
        response = asyncio.run(
            _make_gateway(lambda r: httpx.Response(200, json={"status": "running"})).poll("job-1"),
        )
        assert response.status == "running"
        assert response.metadata == {}

    def test_not_found(self):
        gateway = _make_gateway(lambda r: httpx.Response(404))
        with pytest.raises(JobServiceError) as exc_info:
            asyncio.run(gateway.poll("job-abcdef12"))
        assert exc_info.value.status_code == 404
        assert is_invalid_job_error(str(exc_info.value))

    def test_server_error_is_retryable(self):
        gateway = _make_gateway(lambda r: httpx.Response(502))
        with pytest.raises(JobServiceError) as exc_info:
            asyncio.run(gateway.poll("job-abcdef12"))
        assert str(exc_info.value) == "AI service error (502)"
        assert not is_invalid_job_error(str(exc_info.value))


def test_configured():
    assert AIGatewayClient("https://gateway.test", "key").configured
    assert not AIGatewayClient("", "").configured
