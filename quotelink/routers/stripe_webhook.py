# quotelink/routers/stripe_webhook.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from ..deps import Services, get_lifecycle, get_services
from ..quotes import QuoteLifecycle

router = APIRouter(prefix="/stripe", tags=["stripe"])

logger = logging.getLogger("uvicorn.error")


@router.post("/webhook")
async def webhook(
    req: Request,
    services: Services = Depends(get_services),
    quotes: QuoteLifecycle = Depends(get_lifecycle),
):
    if not services.settings.stripe_webhook_secret:
        logger.error("Stripe webhook secret missing (STRIPE_WEBHOOK_SECRET)")
        raise HTTPException(status_code=500, detail="Webhook secret not configured")

    payload = await req.body()
    event = services.checkout.parse_event(payload, req.headers.get("stripe-signature"))
    logger.info(f"Stripe webhook received: {event.type}")

    if event.type == "checkout.session.completed" and event.session is not None:
        await run_in_threadpool(quotes.handle_checkout_completed, event.session)

    return {"ok": True}
