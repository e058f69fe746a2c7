# routers/tenant_router.py
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool
import logging

from tenantry.core.auth import get_current_tenant
from tenantry.core.errors import InvalidInput, InvalidState, NotFound
from tenantry.core.firebase import get_db
from tenantry.models.payment_model import (
    AutoPayIn,
    AutoPayment,
    AutoPayUpdate,
    CheckStatusRequest,
    MoovBankIn,
    PaymentMethod,
    ProcessPaymentRequest,
    StripePaymentMethodIn,
)
from tenantry.models.tenant_model import Tenant
from tenantry.services import stripe_service
from tenantry.services.fees import calculate_processing_fee, format_fee_display
from tenantry.services.moov import MoovClient, get_moov_client
from tenantry.services.payment_processing import process_tenant_payment
from tenantry.services.reconciler import check_payment_status
from tenantry.utils.firebase import find_documents, find_one, firestore_run, get_document, new_id

logger = logging.getLogger("tenantry.tenant")

router = APIRouter(prefix="/tenant", tags=["Tenant"])


# ==================== Payments ====================
@router.get("/payments")
async def my_payments(tenant: Tenant = Depends(get_current_tenant), db=Depends(get_db)):
    payments = await find_documents(
        db, "payments", ("tenant_id", "==", tenant.id), order_by="due_date", descending=True
    )
    return {"payments": payments}


@router.get("/payments/fee")
async def fee_quote(amount: float = Query(...), kind: str = Query(...),
                    tenant: Tenant = Depends(get_current_tenant)):
    fee = calculate_processing_fee(amount, kind)
    return {**fee.model_dump(), "display": format_fee_display(fee)}


@router.post("/payments/process")
async def process_payment(payload: ProcessPaymentRequest, tenant: Tenant = Depends(get_current_tenant),
                          db=Depends(get_db), moov: MoovClient = Depends(get_moov_client)):
    outcome = await process_tenant_payment(db, moov, tenant, payload.payment_id, payload.payment_method_id)

    if outcome.requires_action:
        return {
            "success": False,
            "requiresAction": True,
            "clientSecret": outcome.client_secret,
            "message": "Additional authentication required",
        }

    return {
        "success": True,
        "status": outcome.status,
        "paymentIntentId": outcome.stripe_payment_intent_id,
        "transferId": outcome.moov_transfer_id,
        "amountCharged": outcome.amount_charged,
        "processingFee": outcome.processing_fee,
    }


@router.post("/payments/check-status")
async def check_status(payload: CheckStatusRequest, tenant: Tenant = Depends(get_current_tenant),
                       db=Depends(get_db), moov: MoovClient = Depends(get_moov_client)):
    result = await check_payment_status(db, moov, payload.payment_id, tenant.id)
    return {
        "success": True,
        "paymentId": result.payment_id,
        "transferId": result.moov_transfer_id,
        "currentStatus": result.current_status,
        "transferStatus": result.transfer_status,
        "updated": result.updated,
        "transferDetails": result.transfer_details,
    }


# ==================== Payment methods ====================
async def _is_first_method(db, tenant_id: str) -> bool:
    return await find_one(db, "payment_methods", ("tenant_id", "==", tenant_id)) is None


async def _save_method(db, method: PaymentMethod) -> dict:
    data = method.model_dump(by_alias=True)
    await firestore_run(db.collection("payment_methods").document(method.id).set, data)
    logger.info(f"Payment method {method.id} ({method.type}) saved for tenant {method.tenant_id}")
    return data


@router.get("/payment-methods")
async def my_payment_methods(tenant: Tenant = Depends(get_current_tenant), db=Depends(get_db)):
    methods = await find_documents(
        db, "payment_methods", ("tenant_id", "==", tenant.id), order_by="created_at", descending=True
    )
    return {"payment_methods": methods}


@router.post("/payment-methods")
async def add_stripe_payment_method(payload: StripePaymentMethodIn, tenant: Tenant = Depends(get_current_tenant),
                                    db=Depends(get_db)):
    customer_id = tenant.stripe_customer_id
    if not customer_id:
        user = await get_document(db, "users", tenant.user_id)
        customer_id = await run_in_threadpool(
            stripe_service.create_customer, user["email"] if user else None, tenant.full_name, tenant.id
        )
        await firestore_run(
            db.collection("tenants").document(tenant.id).update,
            {"stripe_customer_id": customer_id, "updated_at": datetime.now(timezone.utc)},
        )

    await run_in_threadpool(stripe_service.attach_payment_method, payload.stripe_payment_method_id, customer_id)

    method = PaymentMethod(
        _id=new_id(),
        tenant_id=tenant.id,
        type=payload.type,
        stripe_payment_method_id=payload.stripe_payment_method_id,
        last4=payload.last4,
        is_default=await _is_first_method(db, tenant.id),
    )
    return {"success": True, "payment_method": await _save_method(db, method)}


@router.post("/payment-methods/moov")
async def save_moov_bank_account(payload: MoovBankIn, tenant: Tenant = Depends(get_current_tenant),
                                 db=Depends(get_db)):
    if payload.moov_account_id and payload.moov_account_id != tenant.moov_account_id:
        await firestore_run(
            db.collection("tenants").document(tenant.id).update,
            {"moov_account_id": payload.moov_account_id, "updated_at": datetime.now(timezone.utc)},
        )

    method = PaymentMethod(
        _id=new_id(),
        tenant_id=tenant.id,
        type="moov_ach",
        moov_payment_method_id=payload.moov_payment_method_id,
        last4=payload.last4,
        bank_name=payload.bank_name,
        is_default=await _is_first_method(db, tenant.id),
    )
    return {"success": True, "payment_method": await _save_method(db, method)}


@router.delete("/payment-methods/{method_id}")
async def delete_payment_method(method_id: str, tenant: Tenant = Depends(get_current_tenant), db=Depends(get_db)):
    method = await get_document(db, "payment_methods", method_id)
    if not method or method.get("tenant_id") != tenant.id:
        raise NotFound("Payment method not found")

    in_use = await find_one(
        db, "auto_payments",
        ("payment_method_id", "==", method_id),
        ("is_active", "==", True),
    )
    if in_use:
        raise InvalidState("Cannot delete payment method used for auto-pay. Please disable auto-pay first.")

    if method.get("stripe_payment_method_id"):
        await run_in_threadpool(stripe_service.detach_payment_method, method["stripe_payment_method_id"])

    await firestore_run(db.collection("payment_methods").document(method_id).delete)
    logger.info(f"Payment method {method_id} deleted for tenant {tenant.id}")
    return {"success": True, "message": "Payment method deleted"}


# ==================== Autopay ====================
async def _own_method(db, tenant: Tenant, method_id: str) -> dict:
    method = await get_document(db, "payment_methods", method_id)
    if not method or method.get("tenant_id") != tenant.id:
        raise NotFound("Payment method not found")
    return method


@router.get("/auto-pay")
async def my_auto_pay(tenant: Tenant = Depends(get_current_tenant), db=Depends(get_db)):
    auto_payment = await find_one(db, "auto_payments", ("tenant_id", "==", tenant.id))
    if auto_payment:
        auto_payment["payment_method"] = await get_document(
            db, "payment_methods", auto_payment.get("payment_method_id")
        )
    return {"auto_payment": auto_payment}


@router.post("/auto-pay")
async def create_auto_pay(payload: AutoPayIn, tenant: Tenant = Depends(get_current_tenant), db=Depends(get_db)):
    if await find_one(db, "auto_payments", ("tenant_id", "==", tenant.id)):
        raise InvalidState("Auto-pay already exists. Update it instead.")

    await _own_method(db, tenant, payload.payment_method_id)

    auto_payment = AutoPayment(
        _id=new_id(),
        tenant_id=tenant.id,
        payment_method_id=payload.payment_method_id,
        day_of_month=payload.day_of_month,
    )
    data = auto_payment.model_dump(by_alias=True)
    await firestore_run(db.collection("auto_payments").document(auto_payment.id).set, data)
    logger.info(f"Auto-pay {auto_payment.id} set up for tenant {tenant.id} on day {payload.day_of_month}")
    return {"success": True, "auto_payment": data}


@router.put("/auto-pay/{auto_pay_id}")
async def update_auto_pay(auto_pay_id: str, payload: AutoPayUpdate, tenant: Tenant = Depends(get_current_tenant),
                          db=Depends(get_db)):
    auto_payment = await get_document(db, "auto_payments", auto_pay_id)
    if not auto_payment or auto_payment.get("tenant_id") != tenant.id:
        raise NotFound("Auto-pay not found")

    fields = payload.model_dump(exclude_none=True)
    if not fields:
        raise InvalidInput("Nothing to update")
    if "payment_method_id" in fields:
        await _own_method(db, tenant, fields["payment_method_id"])

    fields["updated_at"] = datetime.now(timezone.utc)
    await firestore_run(db.collection("auto_payments").document(auto_pay_id).update, fields)
    return {"success": True, "auto_payment": await get_document(db, "auto_payments", auto_pay_id)}


@router.delete("/auto-pay/{auto_pay_id}")
async def delete_auto_pay(auto_pay_id: str, tenant: Tenant = Depends(get_current_tenant), db=Depends(get_db)):
    auto_payment = await get_document(db, "auto_payments", auto_pay_id)
    if not auto_payment or auto_payment.get("tenant_id") != tenant.id:
        raise NotFound("Auto-pay not found")

    await firestore_run(db.collection("auto_payments").document(auto_pay_id).delete)
    logger.info(f"Auto-pay {auto_pay_id} removed for tenant {tenant.id}")
    return {"success": True, "message": "Auto-pay disabled"}
