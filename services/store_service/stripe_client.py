"""
Stripe client for payment intents, refunds and webhook verification.

Thin async wrapper over the official ``stripe`` library. Provides:
- Creating payment intents
- Retrieving payment intents
- Refunding a payment intent (full or partial)
- Verifying and decoding webhook events

Library errors are re-raised as ``StripeError`` so routers see one type.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

import stripe
from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)

settings = get_settings()


@dataclass
class PaymentIntent:
    """Subset of a Stripe PaymentIntent the store relies on."""

    id: str
    status: str  # requires_payment_method, processing, succeeded, canceled, ...
    amount: int  # in cents
    currency: str
    client_secret: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"

    @classmethod
    def from_api(cls, data) -> "PaymentIntent":
        return cls(
            id=data.get("id", ""),
            status=data.get("status", ""),
            amount=int(data.get("amount") or 0),
            currency=data.get("currency", "usd"),
            client_secret=data.get("client_secret"),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class Refund:
    """Result of refunding a payment intent."""

    id: str
    status: str  # pending, succeeded, failed, canceled
    amount: int  # in cents
    payment_intent: Optional[str] = None


class StripeError(Exception):
    """Base exception for Stripe API errors."""

    def __init__(
        self, message: str, status_code: int = None, response_data: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)

    @classmethod
    def from_library(cls, error: stripe.StripeError) -> "StripeError":
        return cls(
            message=error.user_message or str(error) or "Unknown Stripe error",
            status_code=error.http_status,
            response_data=error.json_body or {},
        )


class StripeClient:
    """Async client for the Stripe PaymentIntents and Refunds APIs."""

    def __init__(self, secret_key: str = None):
        self.secret_key = secret_key or settings.STRIPE_SECRET_KEY
        if not self.secret_key:
            raise StripeError("Payment processing is not configured", status_code=503)

    # =========================================================================
    # Payment intents
    # =========================================================================

    async def create_payment_intent(
        self,
        amount_cents: int,
        currency: str = None,
        metadata: Optional[dict[str, Any]] = None,
        receipt_email: Optional[str] = None,
    ) -> PaymentIntent:
        """
        Create a payment intent with automatic payment methods enabled.

        Args:
            amount_cents: Amount to charge in the smallest currency unit
            currency: ISO currency code, defaults to STRIPE_CURRENCY
            metadata: Key/value pairs stored on the intent
            receipt_email: Where Stripe sends the receipt

        Returns:
            PaymentIntent including the client secret for the browser
        """
        params: dict[str, Any] = {
            "amount": amount_cents,
            "currency": (currency or settings.STRIPE_CURRENCY).lower(),
            "automatic_payment_methods": {"enabled": True},
            "metadata": metadata or {},
        }
        if receipt_email:
            params["receipt_email"] = receipt_email

        try:
            intent = await stripe.PaymentIntent.create_async(
                api_key=self.secret_key, **params
            )
        except stripe.StripeError as e:
            logger.error("Stripe payment intent creation failed: %s", e)
            raise StripeError.from_library(e) from e
        return PaymentIntent.from_api(intent)

    async def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent:
        try:
            intent = await stripe.PaymentIntent.retrieve_async(
                intent_id, api_key=self.secret_key
            )
        except stripe.StripeError as e:
            logger.error("Stripe payment intent lookup failed: %s", e)
            raise StripeError.from_library(e) from e
        return PaymentIntent.from_api(intent)

    # =========================================================================
    # Refunds
    # =========================================================================

    async def create_refund(
        self, payment_intent_id: str, amount_cents: Optional[int] = None
    ) -> Refund:
        """
        Refund a payment intent. Omitting the amount refunds the full charge.
        """
        params: dict[str, Any] = {"payment_intent": payment_intent_id}
        if amount_cents is not None:
            params["amount"] = amount_cents

        try:
            refund = await stripe.Refund.create_async(api_key=self.secret_key, **params)
        except stripe.StripeError as e:
            logger.error("Stripe refund failed: %s", e)
            raise StripeError.from_library(e) from e
        return Refund(
            id=refund.get("id", ""),
            status=refund.get("status") or "pending",
            amount=int(refund.get("amount") or 0),
            payment_intent=refund.get("payment_intent"),
        )


# =========================================================================
# Webhooks
# =========================================================================


def construct_event(payload: bytes, signature_header: Optional[str], secret: str):
    """Verify and decode a webhook body. Raises StripeError on a bad signature."""
    if not signature_header or not secret:
        raise StripeError("Invalid Stripe signature", status_code=400)
    try:
        return stripe.Webhook.construct_event(payload, signature_header, secret)
    except stripe.SignatureVerificationError as e:
        raise StripeError("Invalid Stripe signature", status_code=400) from e
    except ValueError as e:
        raise StripeError("Invalid webhook payload", status_code=400) from e


def get_stripe_client() -> StripeClient:
    """Get a StripeClient instance."""
    return StripeClient()
