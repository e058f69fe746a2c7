"""Tests for the tenant API: payments, payment methods and autopay."""
from types import SimpleNamespace
from unittest.mock import patch

import pytest
import stripe

from conftest import login_as, seed_method, seed_payment, seed_tenant, seed_user
from tenantry.services.moov import MoovError


def intent(status="succeeded"):
    return SimpleNamespace(id="pi_1", status=status, client_secret="pi_1_secret")


@pytest.fixture
def create_intent():
    with patch("tenantry.services.stripe_service.create_payment_intent", return_value=intent()) as m:
        yield m


class TestMyPayments:

    def test_only_own_payments_newest_first(self, tenant_client, seeded):
        seed_user(seeded, "user-t2", "alan@example.com")
        seed_tenant(seeded, "tenant-2", user_id="user-t2")
        seed_payment(seeded, "p1", due_date="2026-09-01")
        seed_payment(seeded, "p2", due_date="2026-10-01")
        seed_payment(seeded, "other", tenant_id="tenant-2")

        payments = tenant_client.get("/api/tenant/payments").json()["payments"]

        assert [p["_id"] for p in payments] == ["p2", "p1"]

    def test_user_without_tenant_profile(self, client, db):
        seed_user(db, "u-x", "x@example.com")
        login_as(client, "u-x", "x@example.com", "tenant")
        assert client.get("/api/tenant/payments").status_code == 404


class TestFeeQuote:

    def test_card(self, tenant_client):
        body = tenant_client.get("/api/tenant/payments/fee", params={"amount": 100, "kind": "card"}).json()
        assert body["amount"] == 3.2
        assert body["total_with_fee"] == 103.2
        assert body["display"] == "Processing fee: $3.20 (2.9% + $0.30 processing fee)"

    def test_unknown_kind(self, tenant_client):
        resp = tenant_client.get("/api/tenant/payments/fee", params={"amount": 100, "kind": "cash"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Unsupported payment method type"


class TestProcessPayment:

    def test_card_success(self, tenant_client, seeded, create_intent):
        seed_payment(seeded)
        seed_method(seeded)

        resp = tenant_client.post("/api/tenant/payments/process",
                                  json={"payment_id": "pay-1", "payment_method_id": "pm-1"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "succeeded"
        assert body["amountCharged"] == 1235.10
        assert body["processingFee"] == 35.10
        row = seeded.row("payments", "pay-1")
        assert row["status"] == "succeeded"
        assert row["paid_at"] is not None
        assert row["stripe_payment_intent_id"] == "pi_1"
        assert create_intent.call_args.args[1] == "pm_stripe_123"

    def test_bank_debit_fee_is_capped(self, tenant_client, seeded, create_intent):
        seed_payment(seeded)
        seed_method(seeded, type="us_bank_account")

        body = tenant_client.post("/api/tenant/payments/process",
                                  json={"payment_id": "pay-1", "payment_method_id": "pm-1"}).json()

        assert body["processingFee"] == 5.0
        assert create_intent.call_args.args[0] == 1205.0

    def test_requires_action_returns_client_secret(self, tenant_client, seeded, create_intent):
        create_intent.return_value = intent("requires_action")
        seed_payment(seeded)
        seed_method(seeded)

        body = tenant_client.post("/api/tenant/payments/process",
                                  json={"payment_id": "pay-1", "payment_method_id": "pm-1"}).json()

        assert body["requiresAction"] is True
        assert body["clientSecret"] == "pi_1_secret"
        assert seeded.row("payments", "pay-1")["status"] == "pending"

    def test_stripe_processing(self, tenant_client, seeded, create_intent):
        create_intent.return_value = intent("processing")
        seed_payment(seeded)
        seed_method(seeded, type="us_bank_account")

        body = tenant_client.post("/api/tenant/payments/process",
                                  json={"payment_id": "pay-1", "payment_method_id": "pm-1"}).json()

        assert body["status"] == "processing"
        assert seeded.row("payments", "pay-1")["status"] == "processing"

    def test_declined_intent_marks_failed(self, tenant_client, seeded, create_intent):
        create_intent.return_value = intent("requires_payment_method")
        seed_payment(seeded)
        seed_method(seeded)

        resp = tenant_client.post("/api/tenant/payments/process",
                                  json={"payment_id": "pay-1", "payment_method_id": "pm-1"})

        assert resp.status_code == 400
        assert seeded.row("payments", "pay-1")["status"] == "failed"

    def test_stripe_exception_marks_failed(self, tenant_client, seeded, create_intent):
        create_intent.side_effect = stripe.StripeError("card_declined")
        seed_payment(seeded)
        seed_method(seeded)

        resp = tenant_client.post("/api/tenant/payments/process",
                                  json={"payment_id": "pay-1", "payment_method_id": "pm-1"})

        assert resp.status_code == 500
        assert seeded.row("payments", "pay-1")["status"] == "failed"

    def test_moov_ach_starts_transfer(self, tenant_client, seeded, moov, create_intent):
        seed_payment(seeded)
        seed_method(seeded, type="moov_ach")
        moov.send_transfer.return_value = {"transferID": "tr-1", "status": "created"}

        body = tenant_client.post("/api/tenant/payments/process",
                                  json={"payment_id": "pay-1", "payment_method_id": "pm-1"}).json()

        assert body["status"] == "processing"
        assert body["transferId"] == "tr-1"
        assert body["processingFee"] == 0
        row = seeded.row("payments", "pay-1")
        assert row["status"] == "processing"
        assert row["moov_transfer_id"] == "tr-1"
        kwargs = moov.send_transfer.call_args.kwargs
        assert kwargs["source_payment_method_id"] == "moov-pm-1"
        assert kwargs["amount_cents"] == 120000
        create_intent.assert_not_called()

    def test_moov_failure_marks_failed(self, tenant_client, seeded, moov):
        seed_payment(seeded)
        seed_method(seeded, type="moov_ach")
        moov.send_transfer.side_effect = MoovError("create_transfer", "HTTP 422", 422)

        resp = tenant_client.post("/api/tenant/payments/process",
                                  json={"payment_id": "pay-1", "payment_method_id": "pm-1"})

        assert resp.status_code == 500
        assert seeded.row("payments", "pay-1")["status"] == "failed"

    def test_failed_payment_can_be_retried(self, tenant_client, seeded, create_intent):
        seed_payment(seeded, status="failed", stripe_payment_intent_id="pi_old")
        seed_method(seeded)

        resp = tenant_client.post("/api/tenant/payments/process",
                                  json={"payment_id": "pay-1", "payment_method_id": "pm-1"})

        assert resp.status_code == 200
        statuses = [w[3].get("status") for w in seeded.writes_to("payments", "pay-1")]
        assert statuses == ["pending", "succeeded"]

    @pytest.mark.parametrize("status", ["succeeded", "processing"])
    def test_settled_payment_is_not_charged_again(self, tenant_client, seeded, create_intent, status):
        seed_payment(seeded, status=status)
        seed_method(seeded)

        resp = tenant_client.post("/api/tenant/payments/process",
                                  json={"payment_id": "pay-1", "payment_method_id": "pm-1"})

        assert resp.status_code == 404
        create_intent.assert_not_called()

    def test_someone_elses_method(self, tenant_client, seeded, create_intent):
        seed_payment(seeded)
        seed_method(seeded, tenant_id="tenant-2")

        resp = tenant_client.post("/api/tenant/payments/process",
                                  json={"payment_id": "pay-1", "payment_method_id": "pm-1"})

        assert resp.status_code == 404
        assert resp.json()["error"] == "Payment method not found"


class TestCheckStatus:

    def test_reconciles_moov_transfer(self, tenant_client, seeded, moov):
        seed_payment(seeded, status="processing", moov_transfer_id="tr-1")
        moov.transfer_status.return_value = {"transferID": "tr-1", "status": "completed"}

        body = tenant_client.post("/api/tenant/payments/check-status", json={"payment_id": "pay-1"}).json()

        assert body["currentStatus"] == "succeeded"
        assert body["transferStatus"] == "completed"
        assert body["updated"] is True
        assert seeded.row("payments", "pay-1")["status"] == "succeeded"

    def test_not_a_moov_payment(self, tenant_client, seeded, moov):
        seed_payment(seeded)
        resp = tenant_client.post("/api/tenant/payments/check-status", json={"payment_id": "pay-1"})
        assert resp.status_code == 400


class TestPaymentMethods:

    def test_add_card_creates_customer_once(self, tenant_client, seeded):
        with patch("tenantry.services.stripe_service.create_customer", return_value="cus_1") as create_customer, \
                patch("tenantry.services.stripe_service.attach_payment_method") as attach:
            first = tenant_client.post("/api/tenant/payment-methods", json={
                "stripe_payment_method_id": "pm_a", "type": "card", "last4": "4242"})
            second = tenant_client.post("/api/tenant/payment-methods", json={
                "stripe_payment_method_id": "pm_b", "type": "us_bank_account", "last4": "6789"})

        assert first.status_code == 200 and second.status_code == 200
        create_customer.assert_called_once_with("ada@example.com", "Ada Lovelace", "tenant-1")
        assert attach.call_count == 2
        assert seeded.row("tenants", "tenant-1")["stripe_customer_id"] == "cus_1"
        assert first.json()["payment_method"]["is_default"] is True
        assert second.json()["payment_method"]["is_default"] is False

    def test_save_moov_bank_account(self, tenant_client, seeded):
        resp = tenant_client.post("/api/tenant/payment-methods/moov", json={
            "moov_payment_method_id": "moov-pm-9", "last4": "0001", "bank_name": "First Bank",
            "moov_account_id": "acct-tenant",
        })

        method = resp.json()["payment_method"]
        assert method["type"] == "moov_ach"
        assert method["is_default"] is True
        assert seeded.row("tenants", "tenant-1")["moov_account_id"] == "acct-tenant"

    def test_bad_last4(self, tenant_client):
        resp = tenant_client.post("/api/tenant/payment-methods/moov",
                                  json={"moov_payment_method_id": "m", "last4": "12"})
        assert resp.status_code == 400

    def test_list(self, tenant_client, seeded):
        seed_method(seeded)
        methods = tenant_client.get("/api/tenant/payment-methods").json()["payment_methods"]
        assert [m["_id"] for m in methods] == ["pm-1"]

    def test_delete_detaches_stripe_method(self, tenant_client, seeded):
        seed_method(seeded)
        with patch("tenantry.services.stripe_service.detach_payment_method") as detach:
            resp = tenant_client.delete("/api/tenant/payment-methods/pm-1")

        assert resp.status_code == 200
        detach.assert_called_once_with("pm_stripe_123")
        assert seeded.row("payment_methods", "pm-1") is None

    def test_delete_refused_while_autopay_uses_it(self, tenant_client, seeded):
        seed_method(seeded)
        seeded.put("auto_payments", "ap-1", {"tenant_id": "tenant-1", "payment_method_id": "pm-1",
                                             "day_of_month": 1, "is_active": True})

        resp = tenant_client.delete("/api/tenant/payment-methods/pm-1")

        assert resp.status_code == 400
        assert seeded.row("payment_methods", "pm-1") is not None


class TestAutoPay:

    def test_create_get_update_delete(self, tenant_client, seeded):
        seed_method(seeded)
        seed_method(seeded, "pm-2", is_default=False)

        created = tenant_client.post("/api/tenant/auto-pay", json={"payment_method_id": "pm-1", "day_of_month": 3})
        assert created.status_code == 200
        auto_id = created.json()["auto_payment"]["_id"]

        fetched = tenant_client.get("/api/tenant/auto-pay").json()["auto_payment"]
        assert fetched["payment_method"]["_id"] == "pm-1"

        updated = tenant_client.put(f"/api/tenant/auto-pay/{auto_id}",
                                    json={"payment_method_id": "pm-2", "is_active": False})
        assert updated.json()["auto_payment"]["payment_method_id"] == "pm-2"
        assert seeded.row("auto_payments", auto_id)["is_active"] is False

        assert tenant_client.delete(f"/api/tenant/auto-pay/{auto_id}").status_code == 200
        assert tenant_client.get("/api/tenant/auto-pay").json()["auto_payment"] is None

    def test_only_one_per_tenant(self, tenant_client, seeded):
        seed_method(seeded)
        tenant_client.post("/api/tenant/auto-pay", json={"payment_method_id": "pm-1", "day_of_month": 3})
        resp = tenant_client.post("/api/tenant/auto-pay", json={"payment_method_id": "pm-1", "day_of_month": 4})
        assert resp.status_code == 400

    def test_method_must_be_own(self, tenant_client, seeded):
        seed_method(seeded, tenant_id="tenant-2")
        resp = tenant_client.post("/api/tenant/auto-pay", json={"payment_method_id": "pm-1", "day_of_month": 3})
        assert resp.status_code == 404

    def test_day_range(self, tenant_client, seeded):
        seed_method(seeded)
        resp = tenant_client.post("/api/tenant/auto-pay", json={"payment_method_id": "pm-1", "day_of_month": 0})
        assert resp.status_code == 400

    def test_empty_update(self, tenant_client, seeded):
        seeded.put("auto_payments", "ap-1", {"tenant_id": "tenant-1", "payment_method_id": "pm-1",
                                             "day_of_month": 1, "is_active": True})
        assert tenant_client.put("/api/tenant/auto-pay/ap-1", json={}).status_code == 400

    def test_other_tenants_autopay(self, tenant_client, seeded):
        seeded.put("auto_payments", "ap-9", {"tenant_id": "tenant-2", "payment_method_id": "pm-1",
                                             "day_of_month": 1, "is_active": True})
        assert tenant_client.delete("/api/tenant/auto-pay/ap-9").status_code == 404
