# services/reconciler.py
import logging
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from tenantry.core.errors import InvalidState, NotFound
from tenantry.services.moov import MoovClient, MoovError
from tenantry.utils.firebase import firestore_run, get_document

logger = logging.getLogger("tenantry.payments")

MOOV_STATUS_MAP = {
    "completed": "succeeded",
    "failed": "failed",
    "reversed": "failed",
    "canceled": "failed",
    "created": "processing",
    "pending": "processing",
    "queued": "processing",
}


class ReconcileResult(BaseModel):
    payment_id: str
    moov_transfer_id: str
    current_status: str
    transfer_status: str
    updated: bool
    transfer_details: dict


def local_status(transfer_status: str) -> str:
    try:
        return MOOV_STATUS_MAP[transfer_status]
    except KeyError:
        raise MoovError("get_transfer", f"unexpected transfer status {transfer_status!r}")


async def check_payment_status(db, moov: MoovClient, payment_id: str, tenant_id: str,
                               now: Optional[datetime] = None) -> ReconcileResult:
    """
    Pull the Moov transfer behind a payment and store its status if it moved.

    At most one write per call. The read and the write are separate calls,
    so a writer that lands in between is overwritten.
    """
    payment = await get_document(db, "payments", payment_id)
    if not payment or payment.get("tenant_id") != tenant_id:
        raise NotFound("Payment not found")

    transfer_id = payment.get("moov_transfer_id")
    if not transfer_id:
        raise InvalidState("This payment is not a Moov transfer")

    transfer = await moov.transfer_status(transfer_id)
    transfer_status = transfer.get("status")
    if not transfer_status:
        raise MoovError("get_transfer", "transfer payload has no status")

    new_status = local_status(transfer_status)
    updated = False

    if new_status != payment.get("status"):
        now = now or datetime.now(timezone.utc)
        await firestore_run(
            db.collection("payments").document(payment_id).update,
            {
                "status": new_status,
                "paid_at": now if transfer_status == "completed" else None,
                "updated_at": now,
            },
        )
        updated = True
        logger.info(f"Payment {payment_id} {payment.get('status')} -> {new_status} (moov {transfer_status})")
    else:
        logger.debug(f"Payment {payment_id} unchanged at {new_status}")

    return ReconcileResult(
        payment_id=payment_id,
        moov_transfer_id=transfer_id,
        current_status=new_status,
        transfer_status=transfer_status,
        updated=updated,
        transfer_details=transfer,
    )
