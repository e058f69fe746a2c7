# routers/property_router.py
from datetime import datetime, timezone
from fastapi import APIRouter, Depends
import logging

from tenantry.core.auth import require_admin
from tenantry.core.errors import InvalidState, NotFound
from tenantry.core.firebase import get_db
from tenantry.models.property_model import Property, PropertyCreate
from tenantry.utils.firebase import find_documents, find_one, firestore_run, get_document, new_id

logger = logging.getLogger("tenantry.admin")

router = APIRouter(prefix="/admin/properties", tags=["Properties"], dependencies=[Depends(require_admin)])


@router.get("")
async def list_properties(db=Depends(get_db)):
    properties = await find_documents(db, "properties", order_by="address")
    return {"properties": properties}


@router.post("")
async def create_property(payload: PropertyCreate, db=Depends(get_db)):
    now = datetime.now(timezone.utc)
    prop = Property(_id=new_id(), created_at=now, updated_at=now, **payload.model_dump())
    await firestore_run(db.collection("properties").document(prop.id).set, prop.model_dump(by_alias=True))
    logger.info(f"Property created: {prop.id} ({prop.address})")
    return {"success": True, "message": "Property created successfully", "property": prop.model_dump(by_alias=True)}


@router.get("/{property_id}")
async def get_property(property_id: str, db=Depends(get_db)):
    prop = await get_document(db, "properties", property_id)
    if not prop:
        raise NotFound("Property not found")
    prop["tenants"] = await find_documents(db, "tenants", ("property_id", "==", property_id))
    return {"property": prop}


@router.put("/{property_id}")
async def update_property(property_id: str, payload: PropertyCreate, db=Depends(get_db)):
    if not await get_document(db, "properties", property_id):
        raise NotFound("Property not found")

    fields = payload.model_dump()
    fields["updated_at"] = datetime.now(timezone.utc)
    await firestore_run(db.collection("properties").document(property_id).update, fields)
    logger.info(f"Property updated: {property_id}")
    return {"success": True, "message": "Property updated successfully",
            "property": await get_document(db, "properties", property_id)}


@router.delete("/{property_id}")
async def delete_property(property_id: str, db=Depends(get_db)):
    if not await get_document(db, "properties", property_id):
        raise NotFound("Property not found")

    if await find_one(db, "payments", ("property_id", "==", property_id)):
        raise InvalidState(
            "Cannot delete property with existing payment history. "
            "Please unassign all tenants first and archive the property."
        )

    assigned = await find_documents(db, "tenants", ("property_id", "==", property_id))
    batch = db.batch()
    now = datetime.now(timezone.utc)
    for tenant in assigned:
        batch.update(db.collection("tenants").document(tenant["_id"]), {"property_id": None, "updated_at": now})
    batch.delete(db.collection("properties").document(property_id))
    await firestore_run(batch.commit)

    logger.info(f"Property deleted: {property_id} ({len(assigned)} tenants unassigned)")
    return {"success": True, "message": "Property deleted successfully", "unassigned_tenants": len(assigned)}
