"""Phone number search, purchase, agent linking and release."""

from typing import Any, Sequence

from agentline.core.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    NotFoundError,
    TelephonyError,
    ValidationError,
)
from agentline.core.logging import get_logger
from agentline.domain.entities.events import PHONE_NUMBER_SUBSCRIPTION
from agentline.infrastructure.database.models import PhoneNumber
from agentline.infrastructure.database.repositories import (
    AgentRepository,
    PhoneNumberRepository,
)
from agentline.infrastructure.payments.client import PaymentGateway
from agentline.infrastructure.retell.client import RetellClient
from agentline.infrastructure.telephony.client import TelephonyClient

logger = get_logger(__name__)

AREA_CODE_REQUIRED = frozenset({"US", "CA"})
ACTIVE_NICKNAME = "Active Number"


class PhoneNumberService:
    def __init__(
        self,
        telephony: TelephonyClient,
        retell: RetellClient,
        payments: PaymentGateway | None,
        agents: AgentRepository,
        phone_numbers: PhoneNumberRepository,
        *,
        app_url: str,
        sip_trunk_uri: str,
        phone_number_price_id: str = "",
    ):
        self._telephony = telephony
        self._retell = retell
        self._payments = payments
        self._agents = agents
        self._phone_numbers = phone_numbers
        self._app_url = app_url.rstrip("/")
        self._sip_trunk_uri = sip_trunk_uri
        self._price_id = phone_number_price_id

    async def list_numbers(self, client_id: str) -> Sequence[PhoneNumber]:
        return await self._phone_numbers.list_for_client(client_id)

    async def search(self, country: str, area_code: str | None = None) -> list[dict[str, Any]]:
        country = country.strip().upper()
        if not country:
            raise ValidationError("Country is required")
        if country in AREA_CODE_REQUIRED and not area_code:
            raise ValidationError(f"Area code is required for {country}")

        try:
            return await self._telephony.search_available_numbers(country, area_code)
        except TelephonyError as e:
            if e.upstream_status == 404 or e.details.get("code") == 20404:
                raise ValidationError(
                    f"Phone numbers are not available for country {country}"
                ) from e
            raise

    async def create_purchase_checkout(
        self, client_id: str, email: str | None, phone_number: str
    ) -> dict[str, Any]:
        """Start a Stripe subscription checkout for one number.

        The number itself is bought when the checkout webhook arrives.
        """
        if self._payments is None or not self._price_id:
            raise ConfigurationError("Phone number pricing is not configured")

        session = await self._payments.create_checkout_session(
            price_id=self._price_id,
            customer_email=email,
            metadata={
                "user_id": client_id,
                "phone_number": phone_number,
                "type": PHONE_NUMBER_SUBSCRIPTION,
            },
            success_url=f"{self._app_url}/dashboard/phone-numbers?success=true",
            cancel_url=f"{self._app_url}/dashboard/phone-numbers?canceled=true",
        )
        logger.info("Phone number checkout created", client_id=client_id, phone_number=phone_number)
        return session

    async def link(self, client_id: str, phone_number_id: str, agent_id: str | None) -> PhoneNumber:
        """Assign a number to one of the client's agents, or unassign it."""
        number = await self._get_owned(client_id, phone_number_id)

        if agent_id is None:
            try:
                await self._retell.update_phone_number(number.phone_number, inbound_agent_id=None)
            except ExternalServiceError as e:
                logger.warning("Failed to unassign number in Retell", phone_number=number.phone_number, error=str(e))
            await self._phone_numbers.set_agent(number.id, None)
            number.agent_id = None
            return number

        agent = await self._agents.get(agent_id)
        if agent is None or agent.client_id != client_id:
            raise NotFoundError("Agent not found")

        try:
            await self._retell.update_phone_number(
                number.phone_number,
                inbound_agent_id=agent.retell_agent_id,
                nickname=ACTIVE_NICKNAME,
            )
        except ExternalServiceError as e:
            logger.info(
                "Number not registered in Retell, importing",
                phone_number=number.phone_number,
                error=str(e),
            )
            webhook_url = None
            if self._app_url.startswith("https://"):
                webhook_url = f"{self._app_url}/api/v1/webhooks/retell"
            await self._retell.import_phone_number(
                number.phone_number,
                termination_uri=self._sip_trunk_uri,
                inbound_agent_id=agent.retell_agent_id,
                inbound_webhook_url=webhook_url,
            )

        await self._phone_numbers.set_agent(number.id, agent.id)
        number.agent_id = agent.id
        logger.info("Linked number to agent", phone_number=number.phone_number, agent_id=agent.id)
        return number

    async def release(self, client_id: str, phone_number_id: str) -> None:
        """Give a number back everywhere, then delete the record.

        Each external cleanup step is best-effort so a stale resource on one
        provider does not block the others.
        """
        number = await self._get_owned(client_id, phone_number_id)

        try:
            await self._retell.delete_phone_number(number.phone_number)
        except ExternalServiceError as e:
            logger.warning("Retell number delete failed", phone_number=number.phone_number, error=str(e))

        try:
            await self._telephony.release_number(number.twilio_sid)
        except ExternalServiceError as e:
            logger.warning("Twilio release failed", phone_number=number.phone_number, error=str(e))

        if number.stripe_subscription_item_id and self._payments is not None:
            try:
                await self._payments.cancel_subscription_for_item(number.stripe_subscription_item_id)
            except ExternalServiceError as e:
                logger.warning(
                    "Subscription cancel failed",
                    phone_number=number.phone_number,
                    error=str(e),
                )

        await self._phone_numbers.delete(number.id)
        logger.info("Released phone number", client_id=client_id, phone_number=number.phone_number)

    async def _get_owned(self, client_id: str, phone_number_id: str) -> PhoneNumber:
        number = await self._phone_numbers.get(phone_number_id)
        if number is None or number.client_id != client_id:
            raise NotFoundError("Phone number not found")
        return number
