"""
Shared fixtures for the Tenantry test suite.

Everything runs against the in-memory Firestore double in ``fakes`` and a
mocked Moov client, so no external service is contacted.
"""
import os

# Settings are read at import time; required keys must exist first.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("MOOV_ACCOUNT_ID", "platform-account")
os.environ.setdefault("MOOV_PUBLIC_KEY", "moov-public")
os.environ.setdefault("MOOV_SECRET_KEY", "moov-secret")
os.environ.setdefault("MOOV_DESTINATION_PAYMENT_METHOD_ID", "platform-wallet-pm")
os.environ.setdefault("MOOV_WEBHOOK_SECRET", "moov-webhook-secret")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_dummy")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from fakes import FakeFirestore, now
from tenantry.core.auth import encode_session
from tenantry.core.config import settings
from tenantry.core.firebase import get_db
from tenantry.models.auth_model import SessionUser
from tenantry.services.moov import MoovClient, get_moov_client
from tenantry.utils.security import hash_password

TENANT_PASSWORD = "Passw0rdOk"


# ---------------------------------------------------------------------------
# Core doubles
# ---------------------------------------------------------------------------

@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def moov():
    """MoovClient double; async methods are AsyncMocks."""
    client = MagicMock(spec=MoovClient)
    client.account_id = settings.MOOV_ACCOUNT_ID
    return client


@pytest.fixture
def app(db, moov):
    from main import app as fastapi_app

    fastapi_app.dependency_overrides[get_db] = lambda: db
    fastapi_app.dependency_overrides[get_moov_client] = lambda: moov
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

def seed_user(db, user_id, email, role="tenant", password=TENANT_PASSWORD, must_change_password=False):
    return db.put("users", user_id, {
        "email": email,
        "password_hash": hash_password(password),
        "role": role,
        "must_change_password": must_change_password,
        "created_at": now(),
        "updated_at": now(),
    })


def seed_property(db, property_id="prop-1", rent_amount=1200.0, address="12 Elm St"):
    return db.put("properties", property_id, {
        "address": address,
        "unit_number": None,
        "rent_amount": rent_amount,
        "created_at": now(),
        "updated_at": now(),
    })


def seed_tenant(db, tenant_id="tenant-1", user_id="user-t1", property_id="prop-1", due_day=1,
                first_name="Ada", last_name="Lovelace", **extra):
    data = {
        "user_id": user_id,
        "first_name": first_name,
        "last_name": last_name,
        "phone": None,
        "property_id": property_id,
        "payment_due_day": due_day,
        "stripe_customer_id": None,
        "moov_account_id": None,
        "created_at": now(),
        "updated_at": now(),
    }
    data.update(extra)
    return db.put("tenants", tenant_id, data)


def seed_payment(db, payment_id="pay-1", tenant_id="tenant-1", property_id="prop-1", amount=1200.0,
                 status="pending", due_date="2026-11-01", **extra):
    data = {
        "tenant_id": tenant_id,
        "property_id": property_id,
        "amount": amount,
        "processing_fee": None,
        "status": status,
        "moov_transfer_id": None,
        "stripe_payment_intent_id": None,
        "payment_method_id": None,
        "due_date": due_date,
        "paid_at": None,
        "created_at": now(),
        "updated_at": now(),
    }
    data.update(extra)
    return db.put("payments", payment_id, data)


def seed_method(db, method_id="pm-1", tenant_id="tenant-1", type="card", **extra):
    data = {
        "tenant_id": tenant_id,
        "type": type,
        "stripe_payment_method_id": "pm_stripe_123" if type != "moov_ach" else None,
        "moov_payment_method_id": "moov-pm-1" if type == "moov_ach" else None,
        "last4": "4242",
        "bank_name": None,
        "is_default": True,
        "created_at": now(),
    }
    data.update(extra)
    return db.put("payment_methods", method_id, data)


@pytest.fixture
def seeded(db):
    """One property, one tenant with a user account."""
    seed_property(db)
    seed_user(db, "user-t1", "ada@example.com")
    seed_tenant(db)
    return db


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

def login_as(client, user_id, email, role):
    token = encode_session(SessionUser(user_id=user_id, email=email, role=role))
    client.cookies.set(settings.SESSION_COOKIE_NAME, token)
    return client


@pytest.fixture
def admin_client(client, db):
    seed_user(db, "admin-1", "admin@example.com", role="admin")
    return login_as(client, "admin-1", "admin@example.com", "admin")


@pytest.fixture
def tenant_client(client, seeded):
    return login_as(client, "user-t1", "ada@example.com", "tenant")
