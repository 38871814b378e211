"""
Payment provider abstraction for Stripe Checkout and in-memory testing.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import stripe


@dataclass
class CheckoutSession:
    session_id: str
    url: Optional[str]
    payment_status: str
    metadata: dict = field(default_factory=dict)


class PaymentProviderError(Exception):
    """Raised when the payment provider call fails."""


class SessionNotFoundError(PaymentProviderError):
    """Raised when the provider has no session with the given id."""


class PaymentProvider(Protocol):
    """Defines the operations the API needs from the payment provider."""

    def create_checkout_session(
        self,
        *,
        amount_minor: int,
        currency: str,
        product_name: str,
        customer_email: str,
        metadata: dict,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        ...

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        ...


@dataclass
class InMemoryPaymentProvider:
    """Test double for checkout sessions; sessions start unpaid."""

    base_url: str = "https://checkout.example.test/pay"
    sessions: Dict[str, CheckoutSession] = field(default_factory=dict)
    requests: list = field(default_factory=list)

    def create_checkout_session(
        self,
        *,
        amount_minor: int,
        currency: str,
        product_name: str,
        customer_email: str,
        metadata: dict,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        session_id = f"cs_test_{uuid.uuid4().hex}"
        self.requests.append(
            {
                "session_id": session_id,
                "amount_minor": amount_minor,
                "currency": currency,
                "product_name": product_name,
                "customer_email": customer_email,
                "metadata": dict(metadata),
                "success_url": success_url,
                "cancel_url": cancel_url,
            }
        )
        session = CheckoutSession(
            session_id=session_id,
            url=f"{self.base_url}/{session_id}",
            payment_status="unpaid",
            metadata=dict(metadata),
        )
        self.sessions[session_id] = session
        return session

    def mark_paid(self, session_id: str) -> None:
        self.sessions[session_id].payment_status = "paid"

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session


@dataclass
class StripePaymentProvider:
    """
    Stripe Checkout client. Sessions are one-off ``payment`` mode purchases.
    """

    api_key: str

    def _to_session(self, session) -> CheckoutSession:
        return CheckoutSession(
            session_id=session.id,
            url=getattr(session, "url", None),
            payment_status=session.payment_status,
            metadata=session.metadata.to_dict() if session.metadata else {},
        )

    def create_checkout_session(
        self,
        *,
        amount_minor: int,
        currency: str,
        product_name: str,
        customer_email: str,
        metadata: dict,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                mode="payment",
                line_items=[
                    {
                        "price_data": {
                            "currency": currency,
                            "unit_amount": amount_minor,
                            "product_data": {"name": product_name},
                        },
                        "quantity": 1,
                    }
                ],
                customer_email=customer_email,
                metadata=metadata,
                success_url=success_url,
                cancel_url=cancel_url,
            )
        except stripe.StripeError as exc:
            raise PaymentProviderError(str(exc)) from exc
        return self._to_session(session)

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)
        except stripe.InvalidRequestError as exc:
            if exc.code == "resource_missing":
                raise SessionNotFoundError(session_id) from exc
            raise PaymentProviderError(str(exc)) from exc
        except stripe.StripeError as exc:
            raise PaymentProviderError(str(exc)) from exc
        return self._to_session(session)
