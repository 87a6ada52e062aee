"""Stripe webhook reconciliation: minute top-ups and number subscriptions."""

from typing import Iterable

from agentline.core.exceptions import DatabaseError
from agentline.core.logging import get_logger
from agentline.domain.entities.events import (
    CheckoutCompletedEvent,
    CheckoutSession,
    PaymentIntent,
    PaymentSucceededEvent,
    StripeEvent,
)
from agentline.domain.services.routing_service import RoutingService
from agentline.infrastructure.database.repositories import (
    ClientRepository,
    PhoneNumberRepository,
)
from agentline.infrastructure.payments.client import LineItem, PaymentGateway
from agentline.infrastructure.telephony.client import TelephonyClient

logger = get_logger(__name__)


def compute_purchased_minutes(
    line_items: Iterable[LineItem], packages: dict[str, int]
) -> int:
    """Sum minutes over line items; unknown price ids contribute nothing."""
    total = 0
    for item in line_items:
        per_unit = packages.get(item.price_id or "")
        if per_unit is None:
            logger.warning("Unknown price id in purchase", price_id=item.price_id)
            continue
        total += per_unit * item.quantity
    return total


class BillingService:
    """Applies verified Stripe events to client balances and inventory."""

    def __init__(
        self,
        payments: PaymentGateway,
        telephony: TelephonyClient,
        clients: ClientRepository,
        phone_numbers: PhoneNumberRepository,
        routing: RoutingService,
        minute_packages: dict[str, int],
        fallback_voice_url: str = "",
        phone_number_monthly_cost: float = 0.0,
    ):
        self._payments = payments
        self._telephony = telephony
        self._clients = clients
        self._phone_numbers = phone_numbers
        self._routing = routing
        self._minute_packages = minute_packages
        self._fallback_voice_url = fallback_voice_url
        self._monthly_cost = phone_number_monthly_cost

    async def handle_event(self, event: StripeEvent) -> str:
        """Dispatch on event type.

        Returns:
            Short status string for logging and tests
        """
        if isinstance(event, CheckoutCompletedEvent):
            if event.session.is_phone_number_subscription:
                return await self.provision_phone_number(event.session)
            return await self.apply_checkout_top_up(event.session)
        if isinstance(event, PaymentSucceededEvent):
            return await self.apply_payment_intent(event.payment_intent)

        logger.info("Unhandled Stripe event", event_type=event.type, event_id=event.id)
        return "ignored"

    # === Minutes ===

    async def apply_checkout_top_up(self, session: CheckoutSession) -> str:
        email = session.email
        if not email:
            logger.error("Checkout session without customer email", session_id=session.id)
            return "no_email"

        line_items = await self._payments.list_line_items(session.id)
        minutes = compute_purchased_minutes(line_items, self._minute_packages)
        if minutes <= 0:
            logger.warning("No minutes in checkout", session_id=session.id)
            return "no_minutes"

        return await self._credit_minutes(
            email,
            minutes,
            amount_cents=session.amount_total or 0,
            source=f"checkout:{session.id}",
        )

    async def apply_payment_intent(self, intent: PaymentIntent) -> str:
        email = intent.email
        price_id = intent.metadata.get("price_id")
        if not email or not price_id:
            logger.warning(
                "Payment intent missing email or price id",
                payment_intent_id=intent.id,
            )
            return "ignored"

        minutes = compute_purchased_minutes(
            [LineItem(price_id=price_id, quantity=1)], self._minute_packages
        )
        if minutes <= 0:
            return "no_minutes"

        return await self._credit_minutes(
            email,
            minutes,
            amount_cents=intent.amount or 0,
            source=f"payment_intent:{intent.id}",
        )

    async def _credit_minutes(
        self, email: str, minutes: int, amount_cents: int, source: str
    ) -> str:
        client = await self._clients.find_by_email(email)
        if client is None:
            logger.error("No client for payment email", email=email, source=source)
            return "unknown_client"

        new_balance = await self._clients.add_minutes(client.id, minutes)
        if new_balance is None:
            raise DatabaseError(
                "Failed to add minutes", details={"client_id": client.id, "minutes": minutes}
            )

        logger.info(
            "Minutes purchased",
            client_id=client.id,
            minutes=minutes,
            minutes_included=new_balance,
            amount=amount_cents / 100,
            source=source,
        )

        # Credited minutes stay even if routing restore fails; failed numbers
        # are queued for retry by the routing service.
        try:
            await self._routing.restore_client_numbers(client.id)
        except Exception as e:
            logger.error("Failed to restore numbers after top-up", client_id=client.id, error=str(e))
        return "credited"

    # === Phone number subscriptions ===

    async def provision_phone_number(self, session: CheckoutSession) -> str:
        client_id = session.metadata.get("user_id")
        phone_number = session.metadata.get("phone_number")
        if not client_id or not phone_number:
            logger.error("Phone number checkout missing metadata", session_id=session.id)
            return "ignored"

        client = await self._clients.get(client_id)
        if client is None:
            logger.error("Phone number checkout for unknown client", client_id=client_id)
            return "unknown_client"

        subscription_item_id = None
        if session.subscription:
            subscription_item_id = await self._payments.get_subscription_item_id(
                session.subscription
            )
        if session.customer:
            await self._clients.set_stripe_customer_if_missing(client.id, session.customer)

        has_minutes = client.minutes_remaining > 0
        sid = await self._telephony.purchase_number(
            phone_number,
            attach_to_trunk=has_minutes,
            fallback_voice_url=self._fallback_voice_url,
        )

        try:
            await self._phone_numbers.create(
                client_id=client.id,
                phone_number=phone_number,
                twilio_sid=sid,
                monthly_cost=self._monthly_cost,
                stripe_subscription_item_id=subscription_item_id,
            )
        except Exception:
            logger.error("Failed to store phone number, releasing", phone_number=phone_number, sid=sid)
            try:
                await self._telephony.release_number(sid)
            except Exception as release_error:
                logger.critical(
                    "Failed to release orphaned number",
                    phone_number=phone_number,
                    sid=sid,
                    error=str(release_error),
                )
            raise

        logger.info(
            "Phone number provisioned",
            client_id=client.id,
            phone_number=phone_number,
            live=has_minutes,
        )
        return "provisioned"
