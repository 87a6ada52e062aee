"""Twilio client for number inventory and trunk routing."""

import asyncio
from functools import partial
from typing import Any, Callable, TypeVar

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client as TwilioRestClient

from agentline.config import get_settings
from agentline.core.exceptions import ConfigurationError, TelephonyError
from agentline.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class TelephonyClient:
    """Async facade over the synchronous Twilio SDK.

    SDK calls run in a worker thread so the event loop keeps serving
    other numbers of a fan-out while one request is in flight.
    """

    def __init__(
        self,
        account_sid: str | None = None,
        auth_token: str | None = None,
        trunk_sid: str | None = None,
        rest_client: TwilioRestClient | None = None,
    ):
        settings = get_settings()
        self._trunk_sid = trunk_sid or settings.twilio_trunk_sid

        if rest_client is not None:
            self._client = rest_client
            return

        account_sid = account_sid or settings.twilio_account_sid
        auth_token = auth_token or settings.twilio_auth_token
        if not account_sid or not auth_token:
            raise ConfigurationError("Twilio credentials are not configured")
        self._client = TwilioRestClient(account_sid, auth_token)

    @property
    def trunk_sid(self) -> str:
        if not self._trunk_sid:
            raise ConfigurationError("TWILIO_TRUNK_SID is not configured")
        return self._trunk_sid

    async def _run(self, operation: str, func: Callable[[], T]) -> T:
        try:
            return await asyncio.to_thread(func)
        except TwilioRestException as e:
            logger.error(
                "Twilio API call failed",
                operation=operation,
                status=e.status,
                code=e.code,
                error=e.msg,
            )
            raise TelephonyError(
                f"Twilio API error {e.status} during {operation}: {e.msg}",
                upstream_status=e.status,
                details={"code": e.code},
            ) from e

    # === Inventory ===

    async def search_available_numbers(
        self,
        country: str,
        area_code: str | None = None,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"limit": limit}
        if area_code:
            params["area_code"] = area_code

        def _search() -> list[Any]:
            return self._client.available_phone_numbers(country).local.list(**params)

        numbers = await self._run("search_available_numbers", _search)
        return [
            {
                "phone_number": n.phone_number,
                "friendly_name": n.friendly_name,
                "locality": n.locality,
                "region": n.region,
                "iso_country": n.iso_country,
                "capabilities": n.capabilities,
            }
            for n in numbers
        ]

    async def purchase_number(
        self,
        phone_number: str,
        *,
        attach_to_trunk: bool,
        fallback_voice_url: str | None = None,
    ) -> str:
        """Buy a number, routed live through the trunk or to the fallback URL.

        Returns:
            The new incoming phone number SID
        """
        params: dict[str, Any] = {"phone_number": phone_number}
        if attach_to_trunk:
            params["trunk_sid"] = self.trunk_sid
        else:
            params["voice_url"] = fallback_voice_url
            params["voice_method"] = "POST"

        record = await self._run(
            "purchase_number",
            partial(self._client.incoming_phone_numbers.create, **params),
        )
        logger.info(
            "Purchased phone number",
            phone_number=phone_number,
            sid=record.sid,
            via_trunk=attach_to_trunk,
        )
        return record.sid

    async def release_number(self, sid: str) -> None:
        await self._run("release_number", self._client.incoming_phone_numbers(sid).delete)
        logger.info("Released phone number", sid=sid)

    # === Routing ===

    async def detach_from_trunk(self, sid: str) -> bool:
        """Remove a number from the SIP trunk.

        Returns:
            False if the number was not on the trunk (nothing to do)
        """
        trunk_numbers = self._client.trunking.v1.trunks(self.trunk_sid).phone_numbers
        try:
            await self._run("detach_from_trunk", trunk_numbers(sid).delete)
        except TelephonyError as e:
            if e.upstream_status == 404:
                logger.info("Number already detached from trunk", sid=sid)
                return False
            raise
        return True

    async def attach_to_trunk(self, sid: str) -> bool:
        """Add a number to the SIP trunk.

        Returns:
            False if the number was already on the trunk (nothing to do)
        """
        trunk_numbers = self._client.trunking.v1.trunks(self.trunk_sid).phone_numbers
        try:
            await self._run("fetch_trunk_number", trunk_numbers(sid).fetch)
        except TelephonyError as e:
            if e.upstream_status != 404:
                raise
        else:
            logger.info("Number already attached to trunk", sid=sid)
            return False

        await self._run(
            "attach_to_trunk",
            partial(trunk_numbers.create, phone_number_sid=sid),
        )
        return True

    async def set_voice_url(self, sid: str, voice_url: str) -> None:
        await self._run(
            "set_voice_url",
            partial(
                self._client.incoming_phone_numbers(sid).update,
                voice_url=voice_url,
                voice_method="POST",
            ),
        )

    async def clear_voice_url(self, sid: str) -> None:
        await self._run(
            "clear_voice_url",
            partial(self._client.incoming_phone_numbers(sid).update, voice_url=""),
        )
