# services/payment_processing.py
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

import stripe
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from tenantry.core.config import settings
from tenantry.core.errors import InvalidState, NotFound, TenantryError, UpstreamFailure
from tenantry.models.tenant_model import Tenant
from tenantry.services import stripe_service
from tenantry.services.fees import calculate_processing_fee
from tenantry.services.moov import MoovClient
from tenantry.utils.firebase import firestore_run, get_document

logger = logging.getLogger("tenantry.payments")


class ChargeOutcome(BaseModel):
    status: str  # local payment status after the charge attempt
    processor_status: str
    stripe_payment_intent_id: Optional[str] = None
    moov_transfer_id: Optional[str] = None
    client_secret: Optional[str] = None
    requires_action: bool = False
    amount_charged: float
    processing_fee: float


async def _update_payment(db, payment_id: str, fields: dict):
    fields["updated_at"] = datetime.now(timezone.utc)
    await firestore_run(db.collection("payments").document(payment_id).update, fields)


async def charge_payment(db, moov: MoovClient, tenant: Tenant, payment: dict, method: dict,
                         metadata: Optional[Dict[str, str]] = None) -> ChargeOutcome:
    """
    Charge rent plus processing fee on ``method`` and record the result on
    the payment. Processor errors mark the payment failed and re-raise.
    """
    fee = calculate_processing_fee(payment["amount"], method["type"])
    meta = {"tenant_id": tenant.id, "payment_id": payment["_id"]}
    meta.update(metadata or {})
    now = datetime.now(timezone.utc)

    if method["type"] == "moov_ach":
        if not method.get("moov_payment_method_id"):
            raise InvalidState("Moov bank account is not linked")
        try:
            transfer = await moov.send_transfer(
                source_payment_method_id=method["moov_payment_method_id"],
                amount_cents=stripe_service.to_cents(fee.total_with_fee),
                description=f"Rent due {payment['due_date']}",
                metadata=meta,
            )
        except TenantryError:
            await _update_payment(db, payment["_id"], {"status": "failed"})
            raise

        transfer_id = transfer.get("transferID")
        await _update_payment(db, payment["_id"], {
            "status": "processing",
            "moov_transfer_id": transfer_id,
            "payment_method_id": method["_id"],
            "processing_fee": fee.amount,
        })
        return ChargeOutcome(
            status="processing",
            processor_status=transfer.get("status", "pending"),
            moov_transfer_id=transfer_id,
            amount_charged=fee.total_with_fee,
            processing_fee=fee.amount,
        )

    try:
        intent = await run_in_threadpool(
            stripe_service.create_payment_intent,
            fee.total_with_fee,
            method.get("stripe_payment_method_id"),
            meta,
            tenant.stripe_customer_id,
            f"{str(settings.FRONTEND_URL).rstrip('/')}/tenant/payment-history",
        )
    except stripe.StripeError as e:
        logger.error(f"Stripe charge failed for payment {payment['_id']}: {e}")
        await _update_payment(db, payment["_id"], {"status": "failed"})
        raise UpstreamFailure(
            getattr(e, "user_message", None) or "Payment processing failed. Please try again.",
            detail=str(e),
        )

    base = {
        "stripe_payment_intent_id": intent.id,
        "payment_method_id": method["_id"],
        "processing_fee": fee.amount,
    }
    outcome = dict(
        processor_status=intent.status,
        stripe_payment_intent_id=intent.id,
        amount_charged=fee.total_with_fee,
        processing_fee=fee.amount,
    )

    if intent.status == "succeeded":
        await _update_payment(db, payment["_id"], {**base, "status": "succeeded", "paid_at": now})
        return ChargeOutcome(status="succeeded", **outcome)

    if intent.status == "requires_action":
        # confirmation finishes in the browser, the webhook settles the status
        await _update_payment(db, payment["_id"], base)
        return ChargeOutcome(status=payment.get("status", "pending"), requires_action=True,
                             client_secret=intent.client_secret, **outcome)

    if intent.status == "processing":
        await _update_payment(db, payment["_id"], {**base, "status": "processing"})
        return ChargeOutcome(status="processing", **outcome)

    await _update_payment(db, payment["_id"], {**base, "status": "failed"})
    return ChargeOutcome(status="failed", **outcome)


async def process_tenant_payment(db, moov: MoovClient, tenant: Tenant, payment_id: str,
                                 payment_method_id: str) -> ChargeOutcome:
    payment = await get_document(db, "payments", payment_id)
    if (not payment or payment.get("tenant_id") != tenant.id
            or payment.get("status") not in ("pending", "failed")):
        raise NotFound("Payment not found or already processed")

    method = await get_document(db, "payment_methods", payment_method_id)
    if not method or method.get("tenant_id") != tenant.id:
        raise NotFound("Payment method not found")

    if payment["status"] == "failed":
        logger.info(f"Retrying failed payment {payment_id}")
        await _update_payment(db, payment_id, {
            "status": "pending",
            "stripe_payment_intent_id": None,
            "moov_transfer_id": None,
        })
        payment["status"] = "pending"

    outcome = await charge_payment(db, moov, tenant, payment, method)
    if outcome.status == "failed":
        raise InvalidState(
            f"Payment {outcome.processor_status}. Please try again or contact support.",
            detail=f"payment {payment_id} intent {outcome.stripe_payment_intent_id}",
        )
    return outcome
