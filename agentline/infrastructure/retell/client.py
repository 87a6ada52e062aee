"""Retell API client with retry on rate limiting."""

from typing import Any
from urllib.parse import quote

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from agentline.config import get_settings
from agentline.core.exceptions import (
    ConfigurationError,
    RetellAPIError,
    RetellRateLimitError,
)
from agentline.core.logging import get_logger

logger = get_logger(__name__)


def _segment(value: str) -> str:
    return quote(value, safe="")


class RetellClient:
    """Async client for the Retell REST API.

    Wraps httpx.AsyncClient with:
    - Bearer API key authentication
    - Automatic retry with exponential backoff on HTTP 429
    - Typed errors carrying the upstream status in the message
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Retell client.

        Args:
            api_key: Retell API key. If not provided, uses settings.
            base_url: API root. If not provided, uses settings.
            timeout: Default per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        settings = get_settings()
        self._api_key = api_key or settings.retell_api_key
        if not self._api_key:
            raise ConfigurationError("RETELL_API_KEY is not configured")

        self._client = httpx.AsyncClient(
            base_url=base_url or settings.retell_base_url,
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=timeout or settings.retell_timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    @retry(
        retry=retry_if_exception_type((RetellRateLimitError,)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _call(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make a single API call with retry logic.

        Args:
            method: HTTP method
            path: Endpoint path, e.g. /get-agent/{id}
            payload: JSON body

        Returns:
            Decoded JSON response ({} for empty bodies)

        Raises:
            RetellRateLimitError: On HTTP 429 (triggers retry)
            RetellAPIError: On any other failure
        """
        logger.debug("Calling Retell API", method=method, path=path)
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.TimeoutException as e:
            logger.error("Retell API timeout", method=method, path=path)
            raise RetellAPIError(f"Retell API timeout on {path}") from e
        except httpx.RequestError as e:
            logger.error("Retell API connection failed", method=method, path=path, error=str(e))
            raise RetellAPIError(f"Retell API connection error on {path}: {e}") from e

        if response.status_code == 429:
            logger.warning("Rate limit hit, will retry", method=method, path=path)
            raise RetellRateLimitError(
                f"Retell API error 429 on {path}: rate limited",
                upstream_status=429,
            )

        if response.is_error:
            body = response.text[:500]
            logger.error(
                "Retell API call failed",
                method=method,
                path=path,
                status=response.status_code,
                body=body,
            )
            raise RetellAPIError(
                f"Retell API error {response.status_code} on {path}: {body}",
                upstream_status=response.status_code,
            )

        if not response.content:
            return {}
        return response.json()

    # === LLM configs ===

    async def create_llm(
        self,
        general_prompt: str,
        model: str,
        general_tools: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        return await self._call(
            "POST",
            "/create-retell-llm",
            {
                "model": model,
                "model_high_priority": True,
                "general_prompt": general_prompt,
                "general_tools": general_tools or [],
            },
        )

    async def get_llm(self, llm_id: str) -> dict[str, Any]:
        return await self._call("GET", f"/get-retell-llm/{_segment(llm_id)}")

    async def update_llm(self, llm_id: str, **fields: Any) -> dict[str, Any]:
        return await self._call("PATCH", f"/update-retell-llm/{_segment(llm_id)}", fields)

    # === Agents ===

    async def create_agent(
        self,
        agent_name: str,
        voice_id: str,
        language: str,
        llm_id: str,
        webhook_url: str,
    ) -> dict[str, Any]:
        return await self._call(
            "POST",
            "/create-agent",
            {
                "agent_name": agent_name,
                "voice_id": voice_id,
                "language": language,
                "response_engine": {"type": "retell-llm", "llm_id": llm_id},
                "webhook_url": webhook_url,
            },
        )

    async def get_agent(self, agent_id: str) -> dict[str, Any]:
        return await self._call("GET", f"/get-agent/{_segment(agent_id)}")

    async def update_agent(self, agent_id: str, **fields: Any) -> dict[str, Any]:
        return await self._call("PATCH", f"/update-agent/{_segment(agent_id)}", fields)

    async def publish_agent(self, agent_id: str) -> dict[str, Any]:
        return await self._call("POST", f"/publish-agent/{_segment(agent_id)}")

    async def delete_agent(self, agent_id: str) -> None:
        await self._call("DELETE", f"/delete-agent/{_segment(agent_id)}")

    # === Phone numbers ===

    async def update_phone_number(self, phone_number: str, **fields: Any) -> dict[str, Any]:
        """Change a number's agent assignment or nickname.

        Fields set to None are sent as JSON null (which unassigns an agent).
        """
        return await self._call(
            "PATCH", f"/update-phone-number/{_segment(phone_number)}", fields
        )

    async def import_phone_number(
        self,
        phone_number: str,
        termination_uri: str,
        inbound_agent_id: str | None = None,
        inbound_webhook_url: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "phone_number": phone_number,
            "termination_uri": termination_uri,
            "inbound_agent_id": inbound_agent_id,
        }
        if inbound_webhook_url:
            payload["inbound_webhook_url"] = inbound_webhook_url
        return await self._call("POST", "/import-phone-number", payload)

    async def delete_phone_number(self, phone_number: str) -> None:
        await self._call("DELETE", f"/delete-phone-number/{_segment(phone_number)}")
