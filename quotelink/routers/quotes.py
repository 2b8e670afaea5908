# quotelink/routers/quotes.py
from uuid import UUID

from fastapi import APIRouter, Depends

from ..deps import get_lifecycle, get_user_id
from ..models import CreatedQuoteOut, QuoteIn, QuoteListOut, SentQuoteOut
from ..quotes import QuoteLifecycle

router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post("", response_model=CreatedQuoteOut)
def create_quote(
    payload: QuoteIn,
    user_id: str = Depends(get_user_id),
    quotes: QuoteLifecycle = Depends(get_lifecycle),
):
    return quotes.create_quote(
        user_id,
        client_name=payload.client_name,
        client_email=payload.client_email,
        job_description=payload.job_description,
        options=payload.options,
    )


@router.get("", response_model=QuoteListOut)
def list_quotes(user_id: str = Depends(get_user_id), quotes: QuoteLifecycle = Depends(get_lifecycle)):
    return {"quotes": quotes.list_quotes(user_id)}


@router.put("/{quote_id}/send", response_model=SentQuoteOut)
def send_quote(
    quote_id: UUID,
    user_id: str = Depends(get_user_id),
    quotes: QuoteLifecycle = Depends(get_lifecycle),
):
    return {"quote": quotes.send_quote(user_id, str(quote_id))}
