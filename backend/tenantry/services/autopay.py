# services/autopay.py
import calendar
import logging
from datetime import date, datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel

from tenantry.models.payment_model import Payment
from tenantry.models.tenant_model import Tenant
from tenantry.services.moov import MoovClient
from tenantry.services.payment_processing import charge_payment
from tenantry.utils.firebase import find_documents, firestore_run, get_document, new_id

logger = logging.getLogger("tenantry.autopay")


class AutoPayDetail(BaseModel):
    auto_payment_id: str
    tenant_name: str = "Unknown"
    status: Literal["processed", "processing", "skipped", "failed"]
    reason: Optional[str] = None
    amount: Optional[float] = None
    payment_id: Optional[str] = None


class AutoPayRun(BaseModel):
    day: int
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    details: List[AutoPayDetail] = []

    def record(self, detail: AutoPayDetail):
        self.details.append(detail)
        if detail.status in ("processed", "processing"):
            self.processed += 1
        elif detail.status == "skipped":
            self.skipped += 1
        else:
            self.failed += 1


def _month_bounds(today: date):
    last = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1).isoformat(), today.replace(day=last).isoformat()


async def _payment_for_month(db, tenant: dict, prop: Optional[dict], auto_payment: dict, today: date):
    """
    Returns (payment, skip_reason). A settled or in-flight payment this month
    means skip; a pending one is reused; otherwise one is created.
    """
    start, end = _month_bounds(today)
    this_month = await find_documents(
        db, "payments",
        ("tenant_id", "==", tenant["_id"]),
        ("due_date", ">=", start),
        ("due_date", "<=", end),
    )
    if any(p.get("status") in ("succeeded", "processing") for p in this_month):
        return None, "Payment already made this month"

    pending = [p for p in this_month if p.get("status") == "pending"]
    if pending:
        return pending[0], None

    if not prop or not prop.get("rent_amount"):
        raise ValueError("No rent amount set for property")

    last = calendar.monthrange(today.year, today.month)[1]
    due = today.replace(day=min(int(auto_payment["day_of_month"]), last))
    now = datetime.now(timezone.utc)
    payment = Payment(
        _id=new_id(),
        tenant_id=tenant["_id"],
        property_id=prop["_id"],
        amount=float(prop["rent_amount"]),
        status="pending",
        due_date=due.isoformat(),
        created_at=now,
        updated_at=now,
    )
    data = payment.model_dump(by_alias=True)
    await firestore_run(db.collection("payments").document(payment.id).set, data)
    logger.info(f"Created autopay payment {payment.id} for tenant {tenant['_id']}")
    return data, None


async def process_auto_payments(db, moov: MoovClient, today: Optional[date] = None) -> AutoPayRun:
    """Charge every active autopay scheduled for today's day of month."""
    today = today or date.today()
    run = AutoPayRun(day=today.day)

    auto_payments = await find_documents(
        db, "auto_payments",
        ("is_active", "==", True),
        ("day_of_month", "==", today.day),
    )
    logger.info(f"Processing {len(auto_payments)} auto payments for day {today.day}")

    for auto_payment in auto_payments:
        tenant = await get_document(db, "tenants", auto_payment.get("tenant_id"))
        method = await get_document(db, "payment_methods", auto_payment.get("payment_method_id"))
        if not tenant or not method:
            run.record(AutoPayDetail(
                auto_payment_id=auto_payment["_id"],
                status="failed",
                reason="Missing tenant or payment method data",
            ))
            continue

        tenant_name = f"{tenant.get('first_name', '')} {tenant.get('last_name', '')}".strip()
        try:
            prop = await get_document(db, "properties", tenant.get("property_id"))
            payment, skip_reason = await _payment_for_month(db, tenant, prop, auto_payment, today)
            if skip_reason:
                run.record(AutoPayDetail(auto_payment_id=auto_payment["_id"], tenant_name=tenant_name,
                                         status="skipped", reason=skip_reason))
                continue

            outcome = await charge_payment(db, moov, Tenant(**tenant), payment, method,
                                           metadata={"auto_payment": "true"})
            if outcome.status == "failed":
                run.record(AutoPayDetail(auto_payment_id=auto_payment["_id"], tenant_name=tenant_name,
                                         status="failed", reason=f"Payment {outcome.processor_status}",
                                         payment_id=payment["_id"]))
            else:
                run.record(AutoPayDetail(
                    auto_payment_id=auto_payment["_id"],
                    tenant_name=tenant_name,
                    status="processed" if outcome.status == "succeeded" else "processing",
                    amount=outcome.amount_charged,
                    payment_id=payment["_id"],
                ))
        except Exception as e:
            logger.error(f"Auto payment {auto_payment['_id']} for {tenant_name} failed: {e}")
            run.record(AutoPayDetail(auto_payment_id=auto_payment["_id"], tenant_name=tenant_name,
                                     status="failed", reason=getattr(e, "detail", None) or str(e)))

    logger.info(f"Autopay done: {run.processed} processed, {run.skipped} skipped, {run.failed} failed")
    return run
