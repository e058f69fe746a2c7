# routers/admin_payment_router.py
from fastapi import APIRouter, Body, Depends, Query
from typing import List, Optional
import logging

from tenantry.core.auth import require_admin
from tenantry.core.firebase import get_db
from tenantry.models.payment_model import GeneratePaymentsRequest, PaymentStatus
from tenantry.services.autopay import process_auto_payments
from tenantry.services.moov import MoovClient, get_moov_client
from tenantry.services.payment_generation import (
    check_and_generate_missing_payments,
    generate_upcoming_payments,
)
from tenantry.utils.firebase import find_documents, get_document

logger = logging.getLogger("tenantry.admin")

router = APIRouter(prefix="/admin", tags=["Admin Payments"], dependencies=[Depends(require_admin)])


# ==================== Payments ====================
@router.get("/payments")
async def list_payments(status: Optional[PaymentStatus] = Query(default=None), db=Depends(get_db)):
    filters = [("status", "==", status)] if status else []
    payments = await find_documents(db, "payments", *filters, order_by="due_date", descending=True)

    tenants, properties = {}, {}
    for payment in payments:
        tid, pid = payment.get("tenant_id"), payment.get("property_id")
        if tid not in tenants:
            tenants[tid] = await get_document(db, "tenants", tid)
        if pid not in properties:
            properties[pid] = await get_document(db, "properties", pid)
        payment["tenant"] = tenants[tid]
        payment["property"] = properties[pid]

    return {"payments": payments}


@router.post("/payments/check-missing")
async def check_missing_payments(db=Depends(get_db)):
    summary = await check_and_generate_missing_payments(db)
    return {
        "success": True,
        "summary": {
            "tenantsChecked": summary.checked,
            "paymentsGenerated": summary.generated,
            "existingPayments": summary.existing,
            "errors": summary.errors,
        },
        "details": [r.model_dump() for r in summary.results],
        "errorDetails": [r.model_dump() for r in summary.error_details],
    }


@router.post("/payments/generate")
async def generate_payments(payload: Optional[GeneratePaymentsRequest] = None, db=Depends(get_db)):
    payload = payload or GeneratePaymentsRequest()
    results = await generate_upcoming_payments(db, payload.months_ahead, payload.tenant_id)
    created = [r for r in results if r.action == "created"]
    logger.info(f"Generated {len(created)} payments ({len(results)} checked)")
    return {
        "success": True,
        "message": f"Generated {len(created)} payments",
        "generated": len(created),
        "results": [r.model_dump() for r in results],
    }


# ==================== Autopay ====================
@router.post("/auto-pay/process")
async def run_auto_payments(db=Depends(get_db), moov: MoovClient = Depends(get_moov_client)):
    run = await process_auto_payments(db, moov)
    return {
        "success": True,
        "processed": run.processed,
        "skipped": run.skipped,
        "failed": run.failed,
        "details": [d.model_dump() for d in run.details],
    }


# ==================== Moov account ====================
@router.post("/moov/capabilities")
async def request_moov_capabilities(
    capabilities: List[str] = Body(default=["collect-funds"], embed=True),
    account_id: Optional[str] = Body(default=None, embed=True),
    moov: MoovClient = Depends(get_moov_client),
):
    result = await moov.enable_capabilities(capabilities, account_id)
    logger.info(f"Requested Moov capabilities {capabilities} for {result.account_id}")
    return {
        "success": True,
        "account_id": result.account_id,
        "requested": result.requested,
        "response": result.response,
        "capabilities": result.current,
    }


@router.get("/moov/capabilities")
async def list_moov_capabilities(account_id: Optional[str] = Query(default=None),
                                 moov: MoovClient = Depends(get_moov_client)):
    return {"capabilities": await moov.capabilities(account_id)}
