"""Unit tests for RetellClient."""

import json
from unittest.mock import patch

import httpx
import pytest
from tenacity import wait_none

from agentline.core.exceptions import ConfigurationError, RetellAPIError, RetellRateLimitError
from agentline.infrastructure.retell.client import RetellClient


class TestRetellClient:
    """Test suite for RetellClient class."""

    @pytest.fixture
    def requests(self):
        return []

    @pytest.fixture
    def responses(self):
        """Queue of responses handed out in order; the last one repeats."""
        return [httpx.Response(200, json={"ok": True})]

    @pytest.fixture
    async def client(self, requests, responses):
        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return responses.pop(0) if len(responses) > 1 else responses[0]

        client = RetellClient(
            api_key="key_abc",
            base_url="https://retell.test",
            transport=httpx.MockTransport(handler),
        )
        yield client
        await client.close()

    @pytest.fixture(autouse=True)
    def no_backoff(self):
        with patch.object(RetellClient._call.retry, "wait", wait_none()):
            yield

    async def test_sends_bearer_key(self, client, requests):
        await client.get_agent("agent_1")

        assert requests[0].headers["Authorization"] == "Bearer key_abc"
        assert requests[0].url.path == "/get-agent/agent_1"

    async def test_update_phone_number_sends_nulls(self, client, requests):
        """Test None fields are sent as JSON null to clear an assignment."""
        await client.update_phone_number(
            "+15550001111", inbound_agent_id=None, nickname="Active Number"
        )

        request = requests[0]
        assert request.method == "PATCH"
        assert request.url.raw_path == b"/update-phone-number/%2B15550001111"
        assert json.loads(request.content) == {"inbound_agent_id": None, "nickname": "Active Number"}

    async def test_create_agent_payload(self, client, requests):
        await client.create_agent(
            agent_name="Front desk",
            voice_id="11labs-Adrian",
            language="en-US",
            llm_id="llm_1",
            webhook_url="https://app.test/api/v1/webhooks/retell",
        )

        body = json.loads(requests[0].content)
        assert body["response_engine"] == {"type": "retell-llm", "llm_id": "llm_1"}
        assert body["webhook_url"] == "https://app.test/api/v1/webhooks/retell"

    async def test_empty_body_returns_empty_dict(self, client, responses):
        responses[:] = [httpx.Response(204)]

        assert await client._call("DELETE", "/delete-agent/agent_1") == {}

    async def test_error_carries_status(self, client, responses):
        responses[:] = [httpx.Response(404, text="not found")]

        with pytest.raises(RetellAPIError, match="Retell API error 404") as exc_info:
            await client.get_agent("missing")

        assert exc_info.value.upstream_status == 404

    async def test_rate_limit_is_retried(self, client, requests, responses):
        """Test a 429 is retried and a later success is returned."""
        responses[:] = [
            httpx.Response(429),
            httpx.Response(200, json={"agent_id": "agent_1"}),
        ]

        result = await client.get_agent("agent_1")

        assert result == {"agent_id": "agent_1"}
        assert len(requests) == 2

    async def test_rate_limit_gives_up_after_three_attempts(self, client, requests, responses):
        responses[:] = [httpx.Response(429)]

        with pytest.raises(RetellRateLimitError):
            await client.get_agent("agent_1")

        assert len(requests) == 3

    async def test_timeout_is_wrapped(self, requests):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = RetellClient(api_key="k", base_url="https://retell.test", transport=httpx.MockTransport(handler))
        try:
            with pytest.raises(RetellAPIError, match="timeout"):
                await client.get_agent("agent_1")
        finally:
            await client.close()

    def test_requires_api_key(self):
        with patch("agentline.infrastructure.retell.client.get_settings") as mock_settings:
            mock_settings.return_value.retell_api_key = ""
            with pytest.raises(ConfigurationError):
                RetellClient()
