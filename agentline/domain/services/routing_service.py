"""Fallback and restore orchestration for a client's phone numbers."""

import asyncio
from typing import Awaitable, Callable, Sequence

from agentline.core.exceptions import ConfigurationError
from agentline.core.logging import get_logger
from agentline.domain.entities.jobs import JobType
from agentline.domain.entities.routing import PhoneStatus, RoutingResult
from agentline.infrastructure.database.models import PhoneNumber
from agentline.infrastructure.database.repositories import (
    ClientRepository,
    PhoneNumberRepository,
    WebhookJobRepository,
)
from agentline.infrastructure.telephony.client import TelephonyClient

logger = get_logger(__name__)

NumberOperation = Callable[[PhoneNumber], Awaitable[None]]


class RoutingService:
    """Moves all numbers of a client between live and fallback routing.

    Live routing means the number is a member of the SIP trunk, which hands
    the call to the agent linked on the number record. Fallback routing means
    the number is off the trunk and answers with the out-of-minutes message.
    """

    def __init__(
        self,
        telephony: TelephonyClient,
        clients: ClientRepository,
        phone_numbers: PhoneNumberRepository,
        jobs: WebhookJobRepository | None = None,
        fallback_voice_url: str = "",
    ):
        self._telephony = telephony
        self._clients = clients
        self._phone_numbers = phone_numbers
        self._jobs = jobs
        self._fallback_voice_url = fallback_voice_url

    async def suspend_client_numbers(self, client_id: str) -> RoutingResult:
        """Switch every number of the client to the fallback message.

        Never raises for per-number failures; they are counted in the result
        and queued for retry.
        """
        numbers = await self._phone_numbers.list_for_client(client_id)
        if not numbers:
            logger.info("No phone numbers to suspend", client_id=client_id)
            return RoutingResult()

        await self._set_status(client_id, PhoneStatus.INACTIVE)

        result = await self._fan_out(numbers, self.suspend_number)
        logger.info(
            "Switched numbers to fallback",
            client_id=client_id,
            success=result.success,
            failed=result.failed,
        )
        await self._enqueue_retries(client_id, numbers, result, JobType.SUSPEND_NUMBER)
        return result

    async def restore_client_numbers(self, client_id: str) -> RoutingResult:
        """Reattach every number of the client to live agent routing."""
        numbers = await self._phone_numbers.list_for_client(client_id)
        if not numbers:
            logger.info("No phone numbers to restore", client_id=client_id)
            return RoutingResult()

        await self._set_status(client_id, PhoneStatus.ACTIVE)

        result = await self._fan_out(numbers, self.restore_number)
        logger.info(
            "Restored numbers to agents",
            client_id=client_id,
            success=result.success,
            failed=result.failed,
        )
        await self._enqueue_retries(client_id, numbers, result, JobType.RESTORE_NUMBER)
        return result

    async def suspend_number(self, number: PhoneNumber) -> None:
        """Detach one number from the trunk, then point it at the fallback."""
        if not self._fallback_voice_url:
            raise ConfigurationError("TWILIO_OUT_OF_MINUTES_TWIML_URL is not configured")
        await self._telephony.detach_from_trunk(number.twilio_sid)
        await self._telephony.set_voice_url(number.twilio_sid, self._fallback_voice_url)

    async def restore_number(self, number: PhoneNumber) -> None:
        """Put one number back on the trunk and drop the fallback URL."""
        await self._telephony.attach_to_trunk(number.twilio_sid)
        await self._telephony.clear_voice_url(number.twilio_sid)

    async def reapply(self, phone_number_id: str, wanted: PhoneStatus) -> str:
        """Re-run a single number's routing change from the job queue.

        Returns:
            "applied", "missing" (number or client gone) or "superseded"
            (the client's status has changed since the job was queued)
        """
        number = await self._phone_numbers.get(phone_number_id)
        if number is None:
            return "missing"
        client = await self._clients.get(number.client_id)
        if client is None:
            return "missing"
        if client.phone_status != wanted:
            logger.info(
                "Routing job superseded",
                phone_number_id=phone_number_id,
                wanted=wanted.value,
                current=client.phone_status.value,
            )
            return "superseded"

        if wanted is PhoneStatus.INACTIVE:
            await self.suspend_number(number)
        else:
            await self.restore_number(number)
        return "applied"

    async def _fan_out(
        self, numbers: Sequence[PhoneNumber], operation: NumberOperation
    ) -> RoutingResult:
        outcomes = await asyncio.gather(
            *(operation(number) for number in numbers),
            return_exceptions=True,
        )

        result = RoutingResult()
        for number, outcome in zip(numbers, outcomes):
            if isinstance(outcome, BaseException):
                result.failed += 1
                result.errors[number.phone_number] = str(outcome)
                logger.error(
                    "Routing change failed for number",
                    phone_number=number.phone_number,
                    error=str(outcome),
                )
            else:
                result.success += 1
        return result

    async def _set_status(self, client_id: str, status: PhoneStatus) -> None:
        # Routing is still attempted when the flag write fails.
        try:
            await self._clients.set_phone_status(client_id, status)
        except Exception as e:
            logger.error(
                "Failed to update phone status",
                client_id=client_id,
                status=status.value,
                error=str(e),
            )

    async def _enqueue_retries(
        self,
        client_id: str,
        numbers: Sequence[PhoneNumber],
        result: RoutingResult,
        job_type: JobType,
    ) -> None:
        if not result.failed or self._jobs is None:
            return
        for number in numbers:
            if number.phone_number not in result.errors:
                continue
            try:
                await self._jobs.enqueue(
                    job_type,
                    {"phone_number_id": number.id, "client_id": client_id},
                )
            except Exception as e:
                logger.error(
                    "Failed to enqueue routing retry",
                    phone_number=number.phone_number,
                    job_type=job_type.value,
                    error=str(e),
                )
