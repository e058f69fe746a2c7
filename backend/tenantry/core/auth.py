# core/auth.py
from fastapi import Depends, Request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from pydantic import ValidationError
import logging

from tenantry.core.config import settings
from tenantry.core.errors import NotFound, Unauthenticated, Unauthorized
from tenantry.core.firebase import get_db
from tenantry.models.auth_model import SessionUser
from tenantry.models.tenant_model import Tenant
from tenantry.utils.firebase import find_one

logger = logging.getLogger("tenantry.auth")

SESSION_SALT = "tenantry-session"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.SECRET_KEY, salt=SESSION_SALT)


def encode_session(user: SessionUser) -> str:
    return _serializer().dumps(user.model_dump(mode="json"))


def decode_session(token: str) -> SessionUser:
    """
    Validate signature and age, then the payload shape.
    Raises Unauthenticated for anything that is not a live session.
    """
    try:
        data = _serializer().loads(token, max_age=settings.SESSION_MAX_AGE)
    except SignatureExpired:
        raise Unauthenticated("Session expired")
    except BadSignature:
        logger.warning("Rejected session cookie with bad signature")
        raise Unauthenticated("Invalid session")

    try:
        return SessionUser(**data)
    except (TypeError, ValidationError):
        raise Unauthenticated("Invalid session")


async def get_session(request: Request) -> SessionUser:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        raise Unauthenticated()
    return decode_session(token)


async def require_admin(session: SessionUser = Depends(get_session)) -> SessionUser:
    if session.role != "admin":
        raise Unauthorized(detail=f"user {session.user_id} is not an admin")
    return session


async def require_tenant(session: SessionUser = Depends(get_session)) -> SessionUser:
    if session.role != "tenant":
        raise Unauthorized(detail=f"user {session.user_id} is not a tenant")
    return session


async def get_current_tenant(
    session: SessionUser = Depends(require_tenant),
    db=Depends(get_db),
) -> Tenant:
    """Tenant profile owned by the session user."""
    data = await find_one(db, "tenants", ("user_id", "==", session.user_id))
    if not data:
        raise NotFound("Tenant profile not found")
    return Tenant(**data)
