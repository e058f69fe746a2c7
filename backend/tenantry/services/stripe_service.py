import logging
from typing import Dict, Optional

import stripe

from tenantry.core.config import settings
from tenantry.core.errors import InvalidInput, UpstreamFailure

logger = logging.getLogger("tenantry.stripe")

stripe.api_key = settings.STRIPE_SECRET_KEY


def to_cents(amount: float) -> int:
    return int(round(amount * 100))


def create_customer(email: str, name: str, tenant_id: str) -> str:
    try:
        customer = stripe.Customer.create(email=email, name=name, metadata={"tenant_id": tenant_id})
    except stripe.StripeError as e:
        logger.error(f"Stripe customer creation failed for tenant {tenant_id}: {e}")
        raise UpstreamFailure("Failed to create customer account", detail=str(e))
    logger.info(f"Stripe customer {customer.id} created for tenant {tenant_id}")
    return customer.id


def attach_payment_method(payment_method_id: str, customer_id: str):
    try:
        return stripe.PaymentMethod.attach(payment_method_id, customer=customer_id)
    except stripe.StripeError as e:
        logger.error(f"Stripe attach failed for {payment_method_id}: {e}")
        raise UpstreamFailure("Failed to attach payment method to customer", detail=str(e))


def detach_payment_method(payment_method_id: str):
    try:
        return stripe.PaymentMethod.detach(payment_method_id)
    except stripe.StripeError as e:
        # already detached on Stripe's side; the local row can still go
        logger.warning(f"Stripe detach failed for {payment_method_id}: {e}")
        return None


def create_payment_intent(amount: float, payment_method_id: str, metadata: Dict[str, str],
                          customer_id: Optional[str] = None, return_url: Optional[str] = None):
    """
    Create and confirm a PaymentIntent. StripeError propagates to the caller,
    which decides how to mark the payment.
    """
    params = {
        "amount": to_cents(amount),
        "currency": "usd",
        "payment_method": payment_method_id,
        "confirm": True,
        "metadata": metadata,
    }
    if customer_id:
        params["customer"] = customer_id
    if return_url:
        params["return_url"] = return_url

    intent = stripe.PaymentIntent.create(**params)
    logger.info(f"PaymentIntent {intent.id} created, status {intent.status}")
    return intent


def construct_webhook_event(payload: bytes, signature: Optional[str]):
    if not signature:
        raise InvalidInput("No signature")
    if not settings.STRIPE_WEBHOOK_SECRET:
        raise UpstreamFailure(detail="STRIPE_WEBHOOK_SECRET is not set")
    try:
        return stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning(f"Stripe webhook signature verification failed: {e}")
        raise InvalidInput("Invalid signature")
