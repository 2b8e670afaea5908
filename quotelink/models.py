# quotelink/models.py
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


# ──────────────────────────────────────────────────────────────────────────────
# Requests
# ──────────────────────────────────────────────────────────────────────────────
class SignupIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    business_name: str = Field(..., min_length=1)


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class OptionIn(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    # numeric(12, 2) column
    price: float = Field(..., ge=0, le=9_999_999_999.99, allow_inf_nan=False)


class QuoteIn(BaseModel):
    client_name: str = Field(..., min_length=1)
    client_email: EmailStr
    job_description: str = Field(..., min_length=1)
    options: List[OptionIn] = Field(..., min_length=1)


class AcceptIn(BaseModel):
    option_id: UUID


# ──────────────────────────────────────────────────────────────────────────────
# Responses
# ──────────────────────────────────────────────────────────────────────────────
class ClientSummary(BaseModel):
    name: str
    email: Optional[str] = None


class OptionOut(BaseModel):
    id: UUID
    quote_id: UUID
    title: str
    description: Optional[str] = None
    price: float
    option_order: int


class QuoteBase(BaseModel):
    id: UUID
    client_id: UUID
    job_description: str
    status: str
    unique_link_id: str
    accepted_option_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None


class QuoteOut(QuoteBase):
    owner_id: UUID
    checkout_session_id: Optional[str] = None


class QuoteWithOptions(QuoteOut):
    clients: Optional[ClientSummary] = None
    quote_options: List[OptionOut] = []


class PublicQuote(QuoteBase):
    """Link holder view of a quote; never carries owner_id."""
    business_name: Optional[str] = None
    clients: Optional[ClientSummary] = None
    quote_options: List[OptionOut] = []


class CreatedQuoteOut(BaseModel):
    quote: QuoteOut
    options: List[OptionOut]


class QuoteListOut(BaseModel):
    quotes: List[QuoteWithOptions]


class SentQuoteOut(BaseModel):
    quote: QuoteOut


class PublicQuoteOut(BaseModel):
    quote: PublicQuote


class CheckoutOut(BaseModel):
    checkout_url: str


class PaymentConfirmedOut(BaseModel):
    success: bool
    status: str
