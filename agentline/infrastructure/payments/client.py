"""Stripe gateway for checkout, subscriptions and webhook verification."""

import asyncio
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, TypeVar

import stripe

from agentline.config import get_settings
from agentline.core.exceptions import (
    ConfigurationError,
    PaymentError,
    SignatureVerificationError,
)
from agentline.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class LineItem:
    price_id: str | None
    quantity: int


class PaymentGateway:
    """Async facade over the Stripe SDK.

    The API key is passed per request instead of through the module-level
    `stripe.api_key`.
    """

    def __init__(self, secret_key: str | None = None, webhook_secret: str | None = None):
        settings = get_settings()
        self._secret_key = secret_key or settings.stripe_secret_key
        self._webhook_secret = webhook_secret or settings.stripe_webhook_secret
        if not self._secret_key:
            raise ConfigurationError("STRIPE_SECRET_KEY is not configured")

    async def _run(self, operation: str, func: Callable[[], T]) -> T:
        try:
            return await asyncio.to_thread(func)
        except stripe.StripeError as e:
            logger.error(
                "Stripe API call failed",
                operation=operation,
                status=e.http_status,
                error=str(e),
            )
            raise PaymentError(
                f"Stripe API error {e.http_status} during {operation}: {e.user_message or e}",
                upstream_status=e.http_status,
            ) from e

    def verify_webhook(self, payload: bytes, signature: str | None) -> None:
        """Check a webhook payload against the `Stripe-Signature` header.

        Raises:
            SignatureVerificationError: If the header is missing or invalid
        """
        if not signature:
            raise SignatureVerificationError("Missing stripe-signature header")
        if not self._webhook_secret:
            raise ConfigurationError("STRIPE_WEBHOOK_SECRET is not configured")
        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"), signature, self._webhook_secret
            )
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            raise SignatureVerificationError(f"Invalid Stripe signature: {e}") from e

    async def create_checkout_session(
        self,
        *,
        price_id: str,
        customer_email: str | None,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        mode: str = "subscription",
    ) -> dict[str, Any]:
        session = await self._run(
            "create_checkout_session",
            partial(
                stripe.checkout.Session.create,
                mode=mode,
                line_items=[{"price": price_id, "quantity": 1}],
                customer_email=customer_email,
                metadata=metadata,
                success_url=success_url,
                cancel_url=cancel_url,
                api_key=self._secret_key,
            ),
        )
        return {"id": session["id"], "url": session["url"]}

    async def list_line_items(self, session_id: str) -> list[LineItem]:
        result = await self._run(
            "list_line_items",
            partial(
                stripe.checkout.Session.list_line_items,
                session_id,
                limit=100,
                api_key=self._secret_key,
            ),
        )
        items = []
        for item in result["data"]:
            price = item["price"]
            items.append(
                LineItem(
                    price_id=price["id"] if price else None,
                    quantity=item["quantity"] or 1,
                )
            )
        return items

    async def get_subscription_item_id(self, subscription_id: str) -> str | None:
        subscription = await self._run(
            "retrieve_subscription",
            partial(stripe.Subscription.retrieve, subscription_id, api_key=self._secret_key),
        )
        data = subscription["items"]["data"]
        return data[0]["id"] if data else None

    async def cancel_subscription_for_item(self, subscription_item_id: str) -> None:
        item = await self._run(
            "retrieve_subscription_item",
            partial(
                stripe.SubscriptionItem.retrieve,
                subscription_item_id,
                api_key=self._secret_key,
            ),
        )
        await self._run(
            "cancel_subscription",
            partial(stripe.Subscription.cancel, item["subscription"], api_key=self._secret_key),
        )
        logger.info("Cancelled subscription", subscription_id=item["subscription"])
