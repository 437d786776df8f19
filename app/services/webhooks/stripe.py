from typing import Optional

import sentry_sdk
import structlog

from app.exceptions import WebhookProcessingError
from app.models.stripe.checkout import CheckoutSession
from app.models.stripe.webhooks import WebhookEvent, WebhookResult
from app.repository.licenses_repository import LicensesRepository
from app.repository.users_repository import UsersRepository
from app.services.licenses.state_machine import LicenseStateMachine
from app.services.webhooks.signature import StripeSignatureVerifier

logger = structlog.getLogger(__name__)


class StripeWebhookService:
    model = WebhookEvent

    def __init__(
            self,
            verifier: StripeSignatureVerifier,
            state_machine: LicenseStateMachine,
            users: UsersRepository,
            licenses: LicensesRepository,
    ):
        self._verifier = verifier
        self._state_machine = state_machine
        self._users = users
        self._licenses = licenses

    def construct_event(self, payload: bytes, signature: Optional[str]) -> WebhookEvent:
        """Verify ``payload`` exactly as received, then parse it."""
        self._verifier.verify(payload, signature)
        try:
            return self.model.model_validate_json(payload)
        except ValueError as e:
            logger.error("Failed to validate webhook data", error=str(e))
            sentry_sdk.capture_exception(e)
            raise WebhookProcessingError("Malformed webhook payload")

    async def _handle_checkout_completed(self, event: WebhookEvent) -> WebhookResult:
        session = CheckoutSession.model_validate(event.data.object)
        if not session.is_paid:
            logger.info("Checkout session not paid yet", session_id=session.id,
                        payment_status=str(session.payment_status))
            return WebhookResult(ignored=True)

        existing = await self._licenses.get_by_session_id(session.id)
        if existing is not None:
            logger.info("Duplicate webhook delivery", event_id=event.id, session_id=session.id, code=existing.code)
            return WebhookResult(duplicate=True, license_code=existing.code)

        email = session.purchaser_email
        user_id = None
        if email:
            user, created = await self._users.get_or_create_placeholder(email)
            user_id = str(user.id)
            if created:
                logger.info("Placeholder account created for purchase", email=email, user_id=user_id)
        else:
            logger.warning("Checkout session without purchaser email", session_id=session.id)
            sentry_sdk.set_context("stripe_webhook", {"session_id": session.id, "event_id": event.id})
            sentry_sdk.capture_message("Checkout session without purchaser email")

        result = await self._state_machine.issue(
            user_id,
            session_id=session.id,
            customer_email=email,
            product_id=session.price_id,
        )
        return WebhookResult(
            duplicate=result.replayed,
            license_code=result.license.code,
            customer_email=email,
        )

    async def process_event(self, event: WebhookEvent) -> WebhookResult:
        logger.info("Received webhook event", event_id=event.id, event_type=event.type)
        if not event.issues_license:
            logger.debug("Ignoring webhook event", event_id=event.id, event_type=event.type)
            return WebhookResult(ignored=True)
        return await self._handle_checkout_completed(event)
