"""Webhook handler endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from agentline.api.deps import (
    get_billing_service,
    get_call_webhook_service,
    get_job_queue_worker,
    get_payment_gateway,
)
from agentline.api.v1.schemas.webhooks import ProcessQueueResponse, StripeWebhookResponse
from agentline.config import get_settings
from agentline.core.auth import verify_cron_secret
from agentline.core.exceptions import SignatureVerificationError
from agentline.core.logging import get_logger
from agentline.core.webhooks import RETELL_SIGNATURE_HEADER, verify_signature
from agentline.domain.entities.events import parse_retell_event, parse_stripe_event
from agentline.domain.services.billing_service import BillingService
from agentline.domain.services.call_webhook_service import CallWebhookService
from agentline.domain.services.job_queue_service import JobQueueWorker
from agentline.infrastructure.payments.client import PaymentGateway

router = APIRouter()
logger = get_logger(__name__)

STRIPE_SIGNATURE_HEADER = "stripe-signature"


@router.post("/retell", status_code=status.HTTP_204_NO_CONTENT)
async def handle_retell_webhook(
    request: Request,
    service: Annotated[CallWebhookService, Depends(get_call_webhook_service)],
) -> Response:
    """Handle Retell call lifecycle events.

    Returns 204 for anything that should not be redelivered (processed,
    ignored event type, unknown agent), 401 for a bad signature and 500
    when processing failed and Retell should retry.
    """
    body = await request.body()

    try:
        verify_signature(
            body,
            request.headers.get(RETELL_SIGNATURE_HEADER),
            get_settings().retell_api_key,
        )
    except SignatureVerificationError as e:
        logger.warning("Rejected Retell webhook", reason=e.message)
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"detail": "Unauthorized"})

    try:
        event = parse_retell_event(body)
    except ValueError as e:
        logger.error("Malformed Retell webhook", error=str(e))
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": "Invalid payload"})

    try:
        result = await service.handle_event(event)
    except Exception as e:
        logger.error("Retell webhook processing failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    logger.info("Retell webhook handled", outcome=result.outcome.value)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/stripe", response_model=StripeWebhookResponse)
async def handle_stripe_webhook(
    request: Request,
    payments: Annotated[PaymentGateway, Depends(get_payment_gateway)],
    service: Annotated[BillingService, Depends(get_billing_service)],
) -> StripeWebhookResponse | JSONResponse:
    """Handle Stripe payment events."""
    payload = await request.body()

    try:
        payments.verify_webhook(payload, request.headers.get(STRIPE_SIGNATURE_HEADER))
        event = parse_stripe_event(payload)
    except SignatureVerificationError as e:
        logger.warning("Rejected Stripe webhook", reason=e.message)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": e.message})
    except ValueError as e:
        logger.error("Malformed Stripe webhook", error=str(e))
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": "Invalid payload"})

    logger.info("Stripe webhook received", event_type=event.type, event_id=event.id)

    try:
        outcome = await service.handle_event(event)
    except Exception as e:
        logger.error("Stripe webhook processing failed", event_type=event.type, error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Webhook handler failed"},
        )

    logger.info("Stripe webhook handled", event_type=event.type, outcome=outcome)
    return StripeWebhookResponse(received=True)


@router.post(
    "/process-queue",
    response_model=ProcessQueueResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(verify_cron_secret)],
)
async def process_queue(
    worker: Annotated[JobQueueWorker, Depends(get_job_queue_worker)],
) -> ProcessQueueResponse:
    """Run one pass of the webhook job queue (called by an external cron)."""
    report = await worker.run_pass()
    if not report.results:
        return ProcessQueueResponse(processed=0, message="No jobs")
    return ProcessQueueResponse.model_validate(report.to_dict())
