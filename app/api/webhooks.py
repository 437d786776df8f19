from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Header
from sentry_sdk import capture_exception
from starlette.requests import Request

from app.depends.services import get_email_service, get_webhook_service
from app.exceptions import UpstreamFailure, WebhookProcessingError
from app.services.email_service import EmailService
from app.services.webhooks.stripe import StripeWebhookService

router = APIRouter(tags=["webhooks"])

logger = structlog.getLogger(__name__)


@router.post("/webhook")
@router.post("/stripe-webhook")
async def stripe_webhook(
        req: Request,
        background_tasks: BackgroundTasks,
        stripe_signature: Annotated[Optional[str], Header()] = None,
        webhook_service: Optional[StripeWebhookService] = Depends(get_webhook_service),
        email_service: EmailService = Depends(get_email_service),
):
    if webhook_service is None:
        logger.error("Stripe webhook secret not configured")
        raise UpstreamFailure("Webhook secret not configured")

    # the signature covers the body exactly as sent; never re-serialize it
    payload = await req.body()
    event = webhook_service.construct_event(payload, stripe_signature)

    try:
        result = await webhook_service.process_event(event)
    except Exception as e:
        logger.error("Failed to process webhook", event_id=event.id, error=repr(e))
        capture_exception(e)
        raise WebhookProcessingError()

    if result.should_notify:
        background_tasks.add_task(email_service.notify_license, result.customer_email, result.license_code)
    return result.to_response()
