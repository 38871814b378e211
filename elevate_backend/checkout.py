"""
Application-fee payment workflow.

Initiating a checkout only talks to the provider. Confirming re-reads the
provider session and marks the scholarship (and the application, when the
session names one) paid. The session id is the only client input trusted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from bson import ObjectId

from elevate_backend.db import DbClient
from elevate_backend.payments import CheckoutSession, PaymentProvider
from elevate_backend.schemas import CheckoutRequest, PaymentStatus

logger = logging.getLogger(__name__)

# Stripe charges these in whole units.
ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
        "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
    }
)

PAID = "paid"


class InvalidPaymentMetadata(ValueError):
    """The provider session does not reference a usable scholarship id."""


class ScholarshipNotFound(LookupError):
    pass


@dataclass
class PaymentConfirmation:
    success: bool
    payment_status: str
    scholarship_id: Optional[str] = None
    modified_count: int = 0

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "paymentStatus": self.payment_status,
            "scholarshipId": self.scholarship_id,
            "modifiedCount": self.modified_count,
        }


def to_minor_units(amount: float, currency: str = "usd") -> int:
    """Convert a fee to the provider's smallest currency unit, rounding half-up."""
    value = Decimal(str(amount))
    if currency.lower() not in ZERO_DECIMAL_CURRENCIES:
        value = value * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def create_checkout(
    provider: PaymentProvider,
    payload: CheckoutRequest,
    *,
    currency: str,
    client_domain: str,
) -> CheckoutSession:
    amount_minor = to_minor_units(payload.applicationFees, currency)
    if amount_minor <= 0:
        raise ValueError("applicationFees must be at least one minor currency unit")

    metadata = {"scholarshipId": payload.scholarshipId}
    if payload.applicationId:
        metadata["applicationId"] = payload.applicationId

    domain = client_domain.rstrip("/")
    session = provider.create_checkout_session(
        amount_minor=amount_minor,
        currency=currency.lower(),
        product_name=payload.scholarshipName or "Scholarship application fee",
        customer_email=payload.studentEmail,
        metadata=metadata,
        success_url=f"{domain}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{domain}/payment-cancelled",
    )
    logger.info(
        "Created checkout session %s for scholarship %s",
        session.session_id,
        payload.scholarshipId,
    )
    return session


def confirm_payment(
    db: DbClient, provider: PaymentProvider, session_id: str
) -> PaymentConfirmation:
    """
    Reconcile a provider session with the stored records.

    Safe to call repeatedly: a second confirmation of a paid session
    rewrites the same status.
    """
    session = provider.retrieve_session(session_id)
    if session.payment_status != PAID:
        return PaymentConfirmation(success=False, payment_status=session.payment_status)

    raw_id = session.metadata.get("scholarshipId")
    if not raw_id or not ObjectId.is_valid(raw_id):
        raise InvalidPaymentMetadata(f"session {session_id} has no valid scholarshipId")

    now = datetime.now(timezone.utc)
    fields = {"paymentStatus": PaymentStatus.PAID.value, "payAt": now}
    result = db.update_scholarship(ObjectId(raw_id), fields)
    if result.matched_count == 0:
        raise ScholarshipNotFound(raw_id)

    application_id = session.metadata.get("applicationId")
    if application_id and ObjectId.is_valid(application_id):
        db.update_application(ObjectId(application_id), fields)

    logger.info("Confirmed payment for scholarship %s (session %s)", raw_id, session_id)
    return PaymentConfirmation(
        success=True,
        payment_status=PAID,
        scholarship_id=raw_id,
        modified_count=result.modified_count,
    )
