# quotelink/quotes.py
"""Quote lifecycle: draft -> sent -> accepted -> paid.

Every status change is a single conditional update filtered on the current
status, so a transition either happens exactly once or matches no row.
"""
import logging
import secrets
import time
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx
from supabase import Client

from .errors import InvalidStateError, NotFoundError, PaymentNotVerifiedError, StoreError
from .models import OptionIn
from .settings import Settings

logger = logging.getLogger("uvicorn.error")

DRAFT = "draft"
SENT = "sent"
ACCEPTED = "accepted"
PAID = "paid"

# statuses a quote may be (re)sent from
SENDABLE = (DRAFT, SENT)

QUOTE_WITH_RELATIONS = "*, clients(name, email), quote_options(*)"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_minor_units(price: Any) -> int:
    """Major currency units to minor units, rounding half up."""
    cents = Decimal(str(price)) * 100
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _sort_options(row: Dict[str, Any]) -> Dict[str, Any]:
    if isinstance(row.get("quote_options"), list):
        row["quote_options"] = sorted(row["quote_options"], key=lambda o: o.get("option_order") or 0)
    return row


class QuoteLifecycle:
    def __init__(self, sb: Client, checkout, settings: Settings):
        self.sb = sb
        self.checkout = checkout
        self.settings = settings

    # ──────────────────────────────────────────────────────────────────────────
    # Store helpers
    # ──────────────────────────────────────────────────────────────────────────
    def _retrying(self, what: str, fn: Callable[[], Any]) -> Any:
        attempts = self.settings.store_retries
        for attempt in range(attempts):
            try:
                return fn()
            except httpx.TransportError as e:
                if attempt < attempts - 1:
                    logger.warning(f"{what}: attempt {attempt + 1} failed: {e}")
                    time.sleep(self.settings.store_retry_delay * (2 ** attempt))
                else:
                    logger.error(f"{what}: all {attempts} attempts failed: {e}")
                    raise StoreError(f"{what} failed") from e

    def _first(self, what: str, query) -> Optional[Dict[str, Any]]:
        rows = self._retrying(what, query.limit(1).execute).data or []
        return rows[0] if rows else None

    def _transition(self, quote_id: str, from_statuses: Sequence[str], values: Dict[str, Any], owner_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Apply ``values`` only if the quote is currently in ``from_statuses``.

        Returns the updated row, or None if no row matched. Not retried: a
        lost response would make a successful update look like a lost race.
        """
        query = self.sb.table("quotes").update(values).eq("id", quote_id)
        if owner_id is not None:
            query = query.eq("owner_id", owner_id)
        if len(from_statuses) == 1:
            query = query.eq("status", from_statuses[0])
        else:
            query = query.in_("status", list(from_statuses))
        try:
            rows = query.execute().data or []
        except httpx.TransportError as e:
            logger.error(f"quote {quote_id} transition to {values.get('status')} failed: {e}")
            raise StoreError("quote update failed") from e
        return rows[0] if rows else None

    def _business_name(self, owner_id: str) -> Optional[str]:
        profile = self._first(
            "profile lookup",
            self.sb.table("profiles").select("business_name").eq("id", owner_id),
        )
        if not profile:
            raise NotFoundError("Business profile not found")
        return profile.get("business_name")

    # ──────────────────────────────────────────────────────────────────────────
    # Owner operations
    # ──────────────────────────────────────────────────────────────────────────
    def create_quote(self, owner_id: str, client_name: str, client_email: str, job_description: str, options: List[OptionIn]) -> Dict[str, Any]:
        client_row = self._retrying(
            "client upsert",
            lambda: self.sb.table("clients")
            .upsert({"owner_id": owner_id, "name": client_name, "email": client_email}, on_conflict="owner_id,email")
            .execute(),
        ).data[0]

        quote = (
            self.sb.table("quotes")
            .insert({
                "owner_id": owner_id,
                "client_id": client_row["id"],
                "job_description": job_description,
                "status": DRAFT,
                "unique_link_id": secrets.token_urlsafe(16),
            })
            .execute()
        ).data[0]

        rows = [
            {
                "quote_id": quote["id"],
                "title": opt.title,
                "description": opt.description,
                "price": opt.price,
                "option_order": i,
            }
            for i, opt in enumerate(options, start=1)
        ]
        try:
            inserted = self.sb.table("quote_options").insert(rows).execute().data or []
        except Exception:
            # a quote without options can never be accepted
            logger.error(f"options insert failed for quote {quote['id']}; removing quote")
            self.sb.table("quotes").delete().eq("id", quote["id"]).execute()
            raise
        inserted = sorted(inserted, key=lambda o: o["option_order"])

        logger.info(f"quote {quote['id']} created by {owner_id} with {len(inserted)} options")
        return {"quote": quote, "options": inserted}

    def list_quotes(self, owner_id: str) -> List[Dict[str, Any]]:
        rows = self._retrying(
            "quote list",
            lambda: self.sb.table("quotes")
            .select(QUOTE_WITH_RELATIONS)
            .eq("owner_id", owner_id)
            .order("created_at", desc=True)
            .execute(),
        ).data or []
        return [_sort_options(r) for r in rows]

    def send_quote(self, owner_id: str, quote_id: str) -> Dict[str, Any]:
        """Mark the quote sent. Re-sending a sent quote refreshes sent_at;
        accepted and paid quotes can no longer be sent."""
        updated = self._transition(quote_id, SENDABLE, {"status": SENT, "sent_at": _now()}, owner_id=owner_id)
        if updated:
            logger.info(f"quote {quote_id} sent by {owner_id}")
            return updated

        current = self._first(
            "quote lookup",
            self.sb.table("quotes").select("id,status").eq("id", quote_id).eq("owner_id", owner_id),
        )
        if not current:
            raise NotFoundError("Quote not found")
        logger.warning(f"quote {quote_id} send rejected: status is {current['status']}")
        raise InvalidStateError(f'Quote cannot be sent from "{current["status"]}" status')

    # ──────────────────────────────────────────────────────────────────────────
    # Public operations (keyed by unique link)
    # ──────────────────────────────────────────────────────────────────────────
    def get_public_quote(self, unique_link_id: str) -> Dict[str, Any]:
        quote = self._first(
            "public quote lookup",
            self.sb.table("quotes").select(QUOTE_WITH_RELATIONS).eq("unique_link_id", unique_link_id),
        )
        if not quote:
            raise NotFoundError("Quote not found")

        safe = {k: v for k, v in quote.items() if k != "owner_id"}
        safe["business_name"] = self._business_name(quote["owner_id"])
        return _sort_options(safe)

    def accept_quote(self, unique_link_id: str, option_id: str) -> str:
        quote = self._first(
            "public quote lookup",
            self.sb.table("quotes").select("*, clients(name, email)").eq("unique_link_id", unique_link_id),
        )
        if not quote:
            raise NotFoundError("Quote not found")
        if quote["status"] != SENT:
            logger.warning(f"quote {quote['id']} accept rejected: status is {quote['status']}")
            raise InvalidStateError('Quote is not in "sent" status')

        option = self._first(
            "option lookup",
            self.sb.table("quote_options").select("*").eq("id", option_id).eq("quote_id", quote["id"]),
        )
        if not option:
            raise NotFoundError("Option not found for this quote")

        business_name = self._business_name(quote["owner_id"])
        client = quote.get("clients") or {}
        frontend = self.settings.frontend_url

        session = self.checkout.create_session(
            name=f"{business_name} - {option['title']}",
            description=option.get("description") or quote.get("job_description"),
            amount_minor=to_minor_units(option["price"]),
            customer_email=client.get("email"),
            success_url=f"{frontend}/payment/success?quote_id={quote['id']}&session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{frontend}/q/{unique_link_id}?cancelled=true",
            metadata={
                "quote_id": str(quote["id"]),
                "option_id": str(option["id"]),
                "owner_id": str(quote["owner_id"]),
            },
        )
        logger.info(f"checkout session {session.id} created for quote {quote['id']} option {option['id']}")

        updated = self._transition(quote["id"], (SENT,), {
            "status": ACCEPTED,
            "accepted_at": _now(),
            "accepted_option_id": option["id"],
            "checkout_session_id": session.id,
        })
        if not updated:
            logger.warning(f"quote {quote['id']} was accepted concurrently; expiring session {session.id}")
            self.checkout.expire_session(session.id)
            raise InvalidStateError('Quote is not in "sent" status')

        logger.info(f"quote {quote['id']} accepted with option {option['id']}")
        return session.url

    # ──────────────────────────────────────────────────────────────────────────
    # Payment confirmation
    # ──────────────────────────────────────────────────────────────────────────
    def confirm_payment(self, quote_id: str, session_id: Optional[str] = None) -> Dict[str, Any]:
        """Move an accepted quote to paid after checking with Stripe that its
        checkout session was actually paid."""
        quote = self._first(
            "quote lookup",
            self.sb.table("quotes").select("id,status,checkout_session_id").eq("id", quote_id),
        )
        if not quote:
            raise NotFoundError("Quote not found")
        if quote["status"] == PAID:
            return quote
        if quote["status"] != ACCEPTED or not quote.get("checkout_session_id"):
            raise InvalidStateError('Quote is not in "accepted" status')
        if session_id and session_id != quote["checkout_session_id"]:
            raise PaymentNotVerifiedError("Checkout session does not match quote")

        session = self.checkout.retrieve_session(quote["checkout_session_id"])
        if session.payment_status != "paid" or session.metadata.get("quote_id") != str(quote["id"]):
            logger.warning(f"quote {quote_id} payment not verified: session {session.id} is {session.payment_status}")
            raise PaymentNotVerifiedError("Payment has not been completed")

        return self._mark_paid(quote["id"], session.id)

    def handle_checkout_completed(self, session) -> Optional[Dict[str, Any]]:
        """Webhook path: the event was already signature-verified."""
        if session.payment_status != "paid":
            logger.info(f"checkout session {session.id} completed but unpaid ({session.payment_status})")
            return None
        quote = self._first(
            "quote lookup",
            self.sb.table("quotes").select("id,status").eq("checkout_session_id", session.id),
        )
        if not quote:
            logger.warning(f"checkout session {session.id} matches no quote")
            return None
        if quote["status"] == PAID:
            return quote
        if quote["status"] != ACCEPTED:
            logger.warning(f"quote {quote['id']} paid while in {quote['status']} status; ignoring")
            return None
        return self._mark_paid(quote["id"], session.id)

    def _mark_paid(self, quote_id: str, session_id: str) -> Dict[str, Any]:
        updated = self._transition(quote_id, (ACCEPTED,), {"status": PAID, "paid_at": _now()})
        if updated:
            logger.info(f"quote {quote_id} paid via session {session_id}")
            return updated

        current = self._first("quote lookup", self.sb.table("quotes").select("id,status").eq("id", quote_id))
        if current and current["status"] == PAID:
            return current
        raise InvalidStateError('Quote is not in "accepted" status')
