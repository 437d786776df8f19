from fastapi import APIRouter, Depends

from app.depends.services import get_stripe_service
from app.models.stripe.checkout import CreateCheckoutDTO
from app.services.stripe_service import StripeService

router = APIRouter(tags=["checkout"])


@router.post("/create-checkout-session")
async def create_checkout_session(data: CreateCheckoutDTO, stripe: StripeService = Depends(get_stripe_service)):
    session = await stripe.create_checkout_session(price_id=data.price_id, customer_email=data.customer_email)
    return {"ok": True, "url": session.url, "id": session.id}
