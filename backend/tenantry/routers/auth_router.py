# routers/auth_router.py
from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
import logging

from tenantry.core.auth import encode_session, get_session
from tenantry.core.config import settings
from tenantry.core.errors import InvalidInput, NotFound, Unauthenticated
from tenantry.core.firebase import get_db
from tenantry.models.auth_model import ChangePasswordRequest, LoginRequest, SessionUser
from tenantry.models.user_model import User
from tenantry.utils.firebase import find_one, firestore_run, get_document
from tenantry.utils.security import hash_password, password_problems, verify_password

logger = logging.getLogger("tenantry.auth")

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login")
async def login(payload: LoginRequest, db=Depends(get_db)):
    email = payload.email.lower().strip()
    data = await find_one(db, "users", ("email", "==", email))

    if not data or not verify_password(payload.password, data.get("password_hash", "")):
        logger.info(f"Login failed for {email}")
        raise Unauthenticated("Invalid credentials")

    user = User(**data)
    token = encode_session(SessionUser(user_id=user.id, email=user.email, role=user.role))

    response = JSONResponse(user.public_dict())
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=settings.SESSION_MAX_AGE,
        httponly=True,
        secure=settings.ENVIRONMENT == "production",
        samesite="lax",
        path="/",
    )
    logger.info(f"Login OK | {user.email} | role={user.role}")
    return response


@router.post("/logout")
async def logout():
    response = JSONResponse({"success": True})
    response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")
    return response


@router.get("/me")
async def me(session: SessionUser = Depends(get_session), db=Depends(get_db)):
    data = await get_document(db, "users", session.user_id)
    if not data:
        raise Unauthenticated("User no longer exists")

    body = User(**data).public_dict()
    if session.role == "tenant":
        tenant = await find_one(db, "tenants", ("user_id", "==", session.user_id))
        if tenant and tenant.get("property_id"):
            tenant["property"] = await get_document(db, "properties", tenant["property_id"])
        body["tenant"] = tenant
    return body


@router.post("/change-password")
async def change_password(payload: ChangePasswordRequest, session: SessionUser = Depends(get_session),
                          db=Depends(get_db)):
    problems = password_problems(payload.new_password)
    if problems:
        raise InvalidInput("Password does not meet requirements: " + "; ".join(problems))

    data = await get_document(db, "users", session.user_id)
    if not data:
        raise NotFound("User not found")

    if not verify_password(payload.current_password, data.get("password_hash", "")):
        raise InvalidInput("Current password is incorrect")

    await firestore_run(
        db.collection("users").document(session.user_id).update,
        {
            "password_hash": hash_password(payload.new_password),
            "must_change_password": False,
            "updated_at": datetime.now(timezone.utc),
        },
    )
    logger.info(f"Password changed for {session.email}")
    return {"success": True, "message": "Password updated successfully"}
