# routers/webhooks.py
from datetime import date, datetime, timezone, timedelta
from fastapi import APIRouter, Depends, Header, Request
import hashlib
import hmac
import json
import logging

from tenantry.core.config import settings
from tenantry.core.errors import InvalidInput, UpstreamFailure
from tenantry.core.firebase import get_db
from tenantry.services import stripe_service
from tenantry.services.due_dates import next_due_date
from tenantry.services.payment_generation import generate_payment_for_tenant
from tenantry.services.reconciler import MOOV_STATUS_MAP
from tenantry.utils.firebase import find_one, firestore_run, get_document

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])
logger = logging.getLogger("tenantry.webhooks")

NEXT_PAYMENT_WINDOW_DAYS = 5
MOOV_TRANSFER_EVENTS = ("transfer.updated", "transfer.completed", "transfer.failed", "transfer.canceled")
SETTLED_STATUSES = ("succeeded", "failed")


async def _generate_next_if_due_soon(db, tenant_id: str, today: date = None):
    today = today or date.today()
    tenant = await get_document(db, "tenants", tenant_id)
    if not tenant or not tenant.get("property_id"):
        return None

    # the day after today, so the cycle just paid is not picked again
    due = next_due_date(int(tenant.get("payment_due_day") or 1), today + timedelta(days=1))
    if (due - today).days > NEXT_PAYMENT_WINDOW_DAYS:
        return None

    try:
        return await generate_payment_for_tenant(db, tenant_id, due)
    except Exception as e:
        logger.error(f"Next payment generation failed for tenant {tenant_id}: {e}")
        return None


# ========================================
# STRIPE
# ========================================
@router.post("/stripe")
async def stripe_webhook(request: Request, stripe_signature: str = Header(None), db=Depends(get_db)):
    payload = await request.body()
    stripe_service.construct_webhook_event(payload, stripe_signature)
    event = json.loads(payload)

    event_type = event.get("type")
    intent = (event.get("data") or {}).get("object") or {}
    payment_id = (intent.get("metadata") or {}).get("payment_id")
    now = datetime.now(timezone.utc)

    payment = await get_document(db, "payments", payment_id) if payment_id else None
    if payment_id and not payment:
        logger.warning(f"Stripe: no payment {payment_id} for {event_type} ({intent.get('id')})")
        return {"received": True}

    if event_type == "payment_intent.succeeded" and payment_id:
        await firestore_run(
            db.collection("payments").document(payment_id).update,
            {"status": "succeeded", "paid_at": now, "updated_at": now},
        )
        logger.info(f"Stripe: payment {payment_id} succeeded ({intent.get('id')})")
        await _generate_next_if_due_soon(db, payment["tenant_id"])

    elif event_type == "payment_intent.payment_failed" and payment_id:
        await firestore_run(
            db.collection("payments").document(payment_id).update,
            {"status": "failed", "updated_at": now},
        )
        logger.warning(f"Stripe: payment {payment_id} failed ({intent.get('id')})")

    else:
        logger.info(f"Stripe: unhandled event {event_type}")

    return {"received": True}


# ========================================
# MOOV
# ========================================
def verify_moov_signature(timestamp: str, nonce: str, webhook_id: str, signature: str) -> bool:
    if not settings.MOOV_WEBHOOK_SECRET:
        raise UpstreamFailure(detail="MOOV_WEBHOOK_SECRET is not set")
    if not (timestamp and nonce and webhook_id and signature):
        return False
    message = f"{timestamp}|{nonce}|{webhook_id}".encode("utf-8")
    expected = hmac.new(settings.MOOV_WEBHOOK_SECRET.encode("utf-8"), message, hashlib.sha512).hexdigest()
    return hmac.compare_digest(expected, signature)


@router.post("/moov")
async def moov_webhook(
    request: Request,
    x_timestamp: str = Header(None),
    x_nonce: str = Header(None),
    x_webhook_id: str = Header(None),
    x_signature: str = Header(None),
    db=Depends(get_db),
):
    if not verify_moov_signature(x_timestamp, x_nonce, x_webhook_id, x_signature):
        logger.warning("Invalid Moov webhook signature")
        raise InvalidInput("Invalid signature")

    body = await request.body()
    try:
        event = json.loads(body)
    except json.JSONDecodeError:
        logger.error("Invalid JSON in Moov webhook")
        raise InvalidInput("Invalid JSON")

    event_type = event.get("type")
    data = event.get("data") or {}

    if event_type not in MOOV_TRANSFER_EVENTS:
        logger.info(f"Moov: unhandled event {event_type}")
        return {"received": True}

    transfer_id = data.get("transferID")
    transfer_status = data.get("status") or event_type.split(".", 1)[1]
    payment = await find_one(db, "payments", ("moov_transfer_id", "==", transfer_id)) if transfer_id else None
    if not payment:
        logger.warning(f"Moov: no payment for transfer {transfer_id}")
        return {"received": True}

    new_status = MOOV_STATUS_MAP.get(transfer_status)
    if not new_status or new_status == payment.get("status"):
        return {"received": True}
    if payment.get("status") in SETTLED_STATUSES and new_status == "processing":
        logger.info(f"Moov: ignoring late {transfer_status} for settled payment {payment['_id']} (transfer {transfer_id})")
        return {"received": True}

    now = datetime.now(timezone.utc)
    fields = {"status": new_status, "updated_at": now}
    if transfer_status == "completed":
        fields["paid_at"] = now
    await firestore_run(db.collection("payments").document(payment["_id"]).update, fields)
    logger.info(f"Moov: payment {payment['_id']} -> {new_status} (transfer {transfer_id} {transfer_status})")

    return {"received": True}
