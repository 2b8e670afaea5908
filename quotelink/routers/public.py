# quotelink/routers/public.py
# No auth on these routes: holding the unique link is the credential.
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from ..deps import get_lifecycle
from ..models import AcceptIn, CheckoutOut, PaymentConfirmedOut, PublicQuoteOut
from ..quotes import QuoteLifecycle

router = APIRouter(prefix="/public", tags=["public"])


@router.get("/quotes/{link_id}", response_model=PublicQuoteOut)
def get_public_quote(link_id: str, quotes: QuoteLifecycle = Depends(get_lifecycle)):
    return {"quote": quotes.get_public_quote(link_id)}


@router.post("/quotes/{link_id}/accept", response_model=CheckoutOut)
def accept_quote(link_id: str, payload: AcceptIn, quotes: QuoteLifecycle = Depends(get_lifecycle)):
    return {"checkout_url": quotes.accept_quote(link_id, str(payload.option_id))}


@router.get("/payment/success", response_model=PaymentConfirmedOut)
def payment_success(
    quote_id: UUID,
    session_id: Optional[str] = Query(default=None),
    quotes: QuoteLifecycle = Depends(get_lifecycle),
):
    quote = quotes.confirm_payment(str(quote_id), session_id)
    return {"success": True, "status": quote["status"]}
