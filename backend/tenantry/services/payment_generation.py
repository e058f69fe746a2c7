# services/payment_generation.py
import logging
from datetime import date, datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel

from tenantry.core.errors import InvalidState, NotFound
from tenantry.models.payment_model import Payment
from tenantry.services.due_dates import add_months, next_due_date
from tenantry.utils.firebase import (
    find_documents,
    find_one,
    firestore_run,
    get_document,
    new_id,
)

logger = logging.getLogger("tenantry.payments")


class GenerationResult(BaseModel):
    tenant_id: str
    tenant_name: str = ""
    due_date: str
    action: Literal["created", "already_exists", "error"]
    payment_id: Optional[str] = None
    message: str = ""
    error: Optional[str] = None


class GenerationSummary(BaseModel):
    checked: int
    generated: int
    existing: int
    errors: int
    results: List[GenerationResult]

    @property
    def error_details(self) -> List[GenerationResult]:
        return [r for r in self.results if r.action == "error"]


def _tenant_name(tenant: dict) -> str:
    return f"{tenant.get('first_name', '')} {tenant.get('last_name', '')}".strip()


async def generate_payment_for_tenant(db, tenant_id: str, due_date: date) -> GenerationResult:
    """
    Create the pending rent payment for ``tenant_id`` due on ``due_date``
    unless one already exists for that tenant and date.
    """
    tenant = await get_document(db, "tenants", tenant_id)
    if not tenant:
        raise NotFound(f"Tenant not found: {tenant_id}")
    if not tenant.get("property_id"):
        raise InvalidState(f"Tenant has no assigned property: {tenant_id}")

    prop = await get_document(db, "properties", tenant["property_id"])
    if not prop:
        raise NotFound(f"Property not found for tenant {tenant_id}")

    due = due_date.isoformat()
    existing = await find_one(
        db, "payments",
        ("tenant_id", "==", tenant_id),
        ("due_date", "==", due),
    )
    if existing:
        return GenerationResult(
            tenant_id=tenant_id,
            tenant_name=_tenant_name(tenant),
            due_date=due,
            action="already_exists",
            payment_id=existing["_id"],
            message="Payment already exists for this due date",
        )

    now = datetime.now(timezone.utc)
    payment = Payment(
        _id=new_id(),
        tenant_id=tenant_id,
        property_id=tenant["property_id"],
        amount=float(prop["rent_amount"]),
        status="pending",
        due_date=due,
        created_at=now,
        updated_at=now,
    )
    await firestore_run(
        db.collection("payments").document(payment.id).set,
        payment.model_dump(by_alias=True),
    )
    logger.info(f"Generated payment {payment.id} for tenant {tenant_id} due {due}")

    return GenerationResult(
        tenant_id=tenant_id,
        tenant_name=_tenant_name(tenant),
        due_date=due,
        action="created",
        payment_id=payment.id,
        message="Payment created successfully",
    )


async def _assigned_tenants(db) -> List[dict]:
    # Firestore has no "is not null" filter; "!=" None skips missing and null fields
    return await find_documents(db, "tenants", ("property_id", "!=", None))


async def _generate_or_record(db, tenant: dict, due_date: date) -> GenerationResult:
    try:
        return await generate_payment_for_tenant(db, tenant["_id"], due_date)
    except Exception as e:
        logger.error(f"Payment generation failed for tenant {tenant['_id']}: {e}")
        return GenerationResult(
            tenant_id=tenant["_id"],
            tenant_name=_tenant_name(tenant),
            due_date=due_date.isoformat(),
            action="error",
            error=getattr(e, "detail", None) or str(e),
        )


async def check_and_generate_missing_payments(db, today: Optional[date] = None) -> GenerationSummary:
    """
    Make sure every tenant with a property has a payment for the current
    cycle. One tenant failing does not stop the others.
    """
    today = today or date.today()
    tenants = await _assigned_tenants(db)
    results = []

    for tenant in tenants:
        try:
            due_date = next_due_date(int(tenant.get("payment_due_day") or 1), today)
        except Exception as e:
            results.append(GenerationResult(
                tenant_id=tenant["_id"],
                tenant_name=_tenant_name(tenant),
                due_date="",
                action="error",
                error=getattr(e, "detail", None) or str(e),
            ))
            continue
        results.append(await _generate_or_record(db, tenant, due_date))

    summary = GenerationSummary(
        checked=len(tenants),
        generated=sum(1 for r in results if r.action == "created"),
        existing=sum(1 for r in results if r.action == "already_exists"),
        errors=sum(1 for r in results if r.action == "error"),
        results=results,
    )
    logger.info(
        f"Checked {summary.checked} tenants: {summary.generated} generated, "
        f"{summary.existing} existing, {summary.errors} errors"
    )
    return summary


async def generate_upcoming_payments(db, months_ahead: int = 1, tenant_id: Optional[str] = None,
                                     today: Optional[date] = None) -> List[GenerationResult]:
    """Generate the next ``months_ahead`` cycles for one tenant or for all assigned tenants."""
    today = today or date.today()

    if tenant_id:
        tenant = await get_document(db, "tenants", tenant_id)
        if not tenant:
            raise NotFound("Tenant not found")
        if not tenant.get("property_id"):
            raise InvalidState("Tenant has no assigned property")
        tenants = [tenant]
    else:
        tenants = await _assigned_tenants(db)

    results = []
    for tenant in tenants:
        day = int(tenant.get("payment_due_day") or 1)
        first_cycle = next_due_date(day, today)
        for i in range(months_ahead):
            # step from the 1st so a clamped month does not swallow the next cycle
            due_date = next_due_date(day, add_months(first_cycle.replace(day=1), i))
            results.append(await _generate_or_record(db, tenant, due_date))
    return results
