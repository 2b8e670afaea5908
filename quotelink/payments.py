# quotelink/payments.py
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import stripe

from .errors import CheckoutError, PaymentNotVerifiedError, ValidationError
from .settings import Settings

logger = logging.getLogger("uvicorn.error")


@dataclass
class CheckoutSession:
    id: str
    url: Optional[str] = None
    payment_status: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class CheckoutEvent:
    type: str
    session: Optional[CheckoutSession] = None


METADATA_KEYS = ("quote_id", "option_id", "owner_id")


def _to_session(obj: Any) -> CheckoutSession:
    meta = getattr(obj, "metadata", None)
    metadata = {}
    for key in METADATA_KEYS:
        value = getattr(meta, key, None) if meta else None
        if value is not None:
            metadata[key] = str(value)
    return CheckoutSession(
        id=obj.id,
        url=getattr(obj, "url", None),
        payment_status=getattr(obj, "payment_status", None),
        metadata=metadata,
    )


class StripeCheckout:
    """Stripe Checkout sessions for accepted quote options."""

    def __init__(self, settings: Settings):
        stripe.api_key = settings.stripe_secret_key
        stripe.max_network_retries = 2
        stripe.default_http_client = stripe.RequestsClient(timeout=settings.stripe_timeout)
        self.currency = settings.stripe_currency
        self.webhook_secret = settings.stripe_webhook_secret

    def create_session(
        self,
        *,
        name: str,
        description: Optional[str],
        amount_minor: int,
        customer_email: Optional[str],
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> CheckoutSession:
        product_data = {"name": name}
        if description:
            product_data["description"] = description
        params = dict(
            mode="payment",
            payment_method_types=["card"],
            line_items=[{
                "price_data": {
                    "currency": self.currency,
                    "product_data": product_data,
                    "unit_amount": amount_minor,
                },
                "quantity": 1,
            }],
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
        )
        if customer_email:
            params["customer_email"] = customer_email
        try:
            sess = stripe.checkout.Session.create(**params)
        except stripe.StripeError as e:
            logger.error(f"Stripe Checkout create failed: {e}")
            raise CheckoutError() from e
        return _to_session(sess)

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        try:
            sess = stripe.checkout.Session.retrieve(session_id)
        except stripe.StripeError as e:
            logger.error(f"Stripe Checkout retrieve failed for {session_id}: {e}")
            raise PaymentNotVerifiedError("Could not verify payment") from e
        return _to_session(sess)

    def expire_session(self, session_id: str) -> None:
        try:
            stripe.checkout.Session.expire(session_id)
        except stripe.StripeError as e:
            # the session simply lapses after 24h if this fails
            logger.warning(f"Stripe Checkout expire failed for {session_id}: {e}")

    def parse_event(self, payload: bytes, signature: Optional[str]) -> CheckoutEvent:
        """Verify the Stripe-Signature header and decode the event."""
        try:
            event = stripe.Webhook.construct_event(
                payload=payload,
                sig_header=signature,
                secret=self.webhook_secret,
            )
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.error(
                f"Stripe webhook verify FAILED: {e}; "
                f"sig_header_present={bool(signature)}"
            )
            raise ValidationError("signature verification failed") from e

        etype = event.type
        if etype.startswith("checkout.session."):
            return CheckoutEvent(type=etype, session=_to_session(event.data.object))
        return CheckoutEvent(type=etype)
