# routers/tenant_admin_router.py
from datetime import datetime, timezone
from fastapi import APIRouter, Depends
import logging

from tenantry.core.auth import require_admin
from tenantry.core.config import settings
from tenantry.core.errors import InvalidInput, NotFound, InvalidState, UpstreamFailure
from tenantry.core.firebase import get_db
from tenantry.models.tenant_model import Tenant, TenantCreate, TenantUpdate
from tenantry.models.user_model import User
from tenantry.services.due_dates import next_due_date
from tenantry.services.payment_generation import generate_payment_for_tenant
from tenantry.utils.firebase import find_documents, find_one, firestore_run, get_document, new_id
from tenantry.utils.security import hash_password, password_problems

logger = logging.getLogger("tenantry.admin")

router = APIRouter(prefix="/admin/tenants", tags=["Tenants"], dependencies=[Depends(require_admin)])


async def _with_relations(db, tenant: dict) -> dict:
    user = await get_document(db, "users", tenant.get("user_id"))
    tenant["email"] = user.get("email") if user else None
    tenant["property"] = await get_document(db, "properties", tenant.get("property_id"))
    return tenant


async def _check_property(db, property_id):
    if property_id and not await get_document(db, "properties", property_id):
        raise InvalidInput("Assigned property does not exist")


@router.get("")
async def list_tenants(db=Depends(get_db)):
    tenants = await find_documents(db, "tenants", order_by="last_name")
    return {"tenants": [await _with_relations(db, t) for t in tenants]}


@router.get("/debug")
async def debug_tenants(db=Depends(get_db)):
    """Raw tenant documents for troubleshooting. 404 unless DEBUG is set."""
    if not settings.DEBUG:
        raise NotFound()
    tenants = await find_documents(db, "tenants")
    users = await find_documents(db, "users", ("role", "==", "tenant"))
    return {
        "tenant_count": len(tenants),
        "tenant_user_count": len(users),
        "tenants": tenants,
        "orphan_users": [u["email"] for u in users if u["_id"] not in {t.get("user_id") for t in tenants}],
    }


@router.post("")
async def create_tenant(payload: TenantCreate, db=Depends(get_db)):
    email = payload.email.lower().strip()
    problems = password_problems(payload.password)
    if problems:
        raise InvalidInput("Password does not meet requirements: " + "; ".join(problems))

    if await find_one(db, "users", ("email", "==", email)):
        raise InvalidInput("A user with this email already exists")

    property_id = payload.property_id if payload.property_id not in (None, "", "none") else None
    await _check_property(db, property_id)

    now = datetime.now(timezone.utc)
    user = User(
        _id=new_id(),
        email=email,
        password_hash=hash_password(payload.password),
        role="tenant",
        must_change_password=True,
        created_at=now,
        updated_at=now,
    )
    await firestore_run(db.collection("users").document(user.id).set, user.model_dump(by_alias=True))

    tenant = Tenant(
        _id=new_id(),
        user_id=user.id,
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
        property_id=property_id,
        payment_due_day=payload.payment_due_day,
        created_at=now,
        updated_at=now,
    )
    try:
        await firestore_run(db.collection("tenants").document(tenant.id).set, tenant.model_dump(by_alias=True))
    except Exception as e:
        logger.error(f"Tenant creation failed, rolling back user {user.id}: {e}")
        await firestore_run(db.collection("users").document(user.id).delete)
        raise UpstreamFailure("Failed to create tenant profile", detail=str(e))

    first_payment = None
    if property_id:
        try:
            result = await generate_payment_for_tenant(db, tenant.id, next_due_date(tenant.payment_due_day))
            first_payment = result.payment_id
            logger.info(f"Generated first payment for tenant {tenant.id} due {result.due_date}")
        except Exception as e:
            # the tenant exists either way; check-missing will pick it up
            logger.error(f"Failed to generate first payment for tenant {tenant.id}: {e}")

    logger.info(f"Tenant created: {tenant.id} ({email})")
    return {
        "success": True,
        "message": "Tenant created successfully",
        "tenant": tenant.model_dump(by_alias=True),
        "first_payment_id": first_payment,
    }


@router.get("/{tenant_id}")
async def get_tenant(tenant_id: str, db=Depends(get_db)):
    tenant = await get_document(db, "tenants", tenant_id)
    if not tenant:
        raise NotFound("Tenant not found")
    tenant = await _with_relations(db, tenant)
    tenant["payments"] = await find_documents(
        db, "payments", ("tenant_id", "==", tenant_id), order_by="due_date", descending=True
    )
    return {"tenant": tenant}


@router.put("/{tenant_id}")
async def update_tenant(tenant_id: str, payload: TenantUpdate, db=Depends(get_db)):
    tenant = await get_document(db, "tenants", tenant_id)
    if not tenant:
        raise NotFound("Tenant not found")

    email = payload.email.lower().strip()
    other = await find_one(db, "users", ("email", "==", email))
    if other and other["_id"] != tenant["user_id"]:
        raise InvalidInput("A user with this email already exists")

    property_id = payload.property_id if payload.property_id not in (None, "", "none") else None
    await _check_property(db, property_id)

    now = datetime.now(timezone.utc)
    await firestore_run(
        db.collection("users").document(tenant["user_id"]).update,
        {"email": email, "updated_at": now},
    )
    await firestore_run(
        db.collection("tenants").document(tenant_id).update,
        {
            "first_name": payload.first_name,
            "last_name": payload.last_name,
            "phone": payload.phone,
            "property_id": property_id,
            "payment_due_day": payload.payment_due_day,
            "updated_at": now,
        },
    )
    logger.info(f"Tenant updated: {tenant_id}")
    return {"success": True, "message": "Tenant updated successfully",
            "tenant": await get_document(db, "tenants", tenant_id)}


@router.post("/{tenant_id}/force-password-change")
async def force_password_change(tenant_id: str, db=Depends(get_db)):
    tenant = await get_document(db, "tenants", tenant_id)
    if not tenant:
        raise NotFound("Tenant not found")
    await firestore_run(
        db.collection("users").document(tenant["user_id"]).update,
        {"must_change_password": True, "updated_at": datetime.now(timezone.utc)},
    )
    return {"success": True, "message": "Tenant will be asked to change password on next login"}


@router.delete("/{tenant_id}")
async def delete_tenant(tenant_id: str, db=Depends(get_db)):
    tenant = await get_document(db, "tenants", tenant_id)
    if not tenant:
        raise NotFound("Tenant not found")

    if await find_one(db, "payments", ("tenant_id", "==", tenant_id)):
        raise InvalidState("Cannot delete tenant with existing payment history. Please archive the tenant instead.")

    batch = db.batch()
    for collection in ("auto_payments", "payment_methods"):
        for doc in await find_documents(db, collection, ("tenant_id", "==", tenant_id)):
            batch.delete(db.collection(collection).document(doc["_id"]))
    batch.delete(db.collection("tenants").document(tenant_id))
    batch.delete(db.collection("users").document(tenant["user_id"]))
    await firestore_run(batch.commit)

    logger.info(f"Tenant deleted: {tenant_id}")
    return {"success": True, "message": "Tenant deleted successfully"}
