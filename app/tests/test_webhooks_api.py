"""
Integration tests for the Stripe webhook endpoint.
"""
import time

import pytest
from postgrest import APIError

from app.services.licenses.codes import LICENSE_CODE_PATTERN
from app.tests.factories import checkout_event, signature_header


def deliver(client, payload: bytes, header: str | None = None, path: str = "/webhook"):
    headers = {"Content-Type": "application/json"}
    headers["Stripe-Signature"] = header if header is not None else signature_header(payload)
    return client.post(path, content=payload, headers=headers)


class TestStripeWebhook:

    def test_checkout_completed_issues_license(self, client, fake_db, email_service):
        response = deliver(client, checkout_event())

        assert response.status_code == 200
        assert response.json() == {"received": True}
        licenses = fake_db.rows("licenses")
        assert len(licenses) == 1
        license = licenses[0]
        assert LICENSE_CODE_PATTERN.match(license["code"])
        assert license["status"] == "redeemed"
        assert license["metadata"]["stripe_session"] == "cs_test_123"
        assert license["product_id"] == "price_123"
        users = fake_db.rows("users")
        assert [u["email"] for u in users] == ["buyer@example.com"]
        assert license["user_id"] == users[0]["id"]
        assert len(fake_db.rows("redemptions")) == 1
        assert len(email_service.sent) == 1
        assert email_service.sent[0]["to"] == "buyer@example.com"
        assert license["code"] in email_service.sent[0]["text"]

    def test_duplicate_delivery_is_idempotent(self, client, fake_db, email_service):
        payload = checkout_event()
        deliver(client, payload)

        response = deliver(client, payload)

        assert response.status_code == 200
        assert response.json() == {"received": True, "duplicate": True}
        assert len(fake_db.rows("licenses")) == 1
        assert len(fake_db.rows("redemptions")) == 1
        assert len(email_service.sent) == 1

    def test_distinct_event_for_same_session_is_a_duplicate(self, client, fake_db):
        deliver(client, checkout_event(event_id="evt_1"))

        response = deliver(client, checkout_event(event_id="evt_2", event_type="checkout.session.async_payment_succeeded"))

        assert response.status_code == 200
        assert len(fake_db.rows("licenses")) == 1

    def test_existing_account_becomes_owner(self, client, fake_db):
        client.post("/register", json={"email": "buyer@example.com", "password": "longpass1"})

        deliver(client, checkout_event())

        users = fake_db.rows("users")
        assert len(users) == 1
        assert fake_db.rows("licenses")[0]["user_id"] == users[0]["id"]
        login = client.post("/login", json={"email": "buyer@example.com", "password": "longpass1"})
        assert login.json()["hasLicense"] is True

    def test_legacy_path(self, client, fake_db):
        response = deliver(client, checkout_event(), path="/stripe-webhook")

        assert response.status_code == 200
        assert len(fake_db.rows("licenses")) == 1

    def test_wrong_signature_is_rejected(self, client, fake_db):
        payload = checkout_event()

        response = deliver(client, payload, header=signature_header(payload, secret="whsec_other"))

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_signature"
        assert fake_db.rows("licenses") == []
        assert fake_db.rows("users") == []

    def test_tampered_body_is_rejected(self, client, fake_db):
        payload = checkout_event()
        header = signature_header(payload)
        tampered = payload.replace(b"buyer@example.com", b"thief@example.com")

        response = deliver(client, tampered, header=header)

        assert response.status_code == 400
        assert fake_db.rows("licenses") == []

    def test_reserialized_body_is_rejected(self, client, fake_db):
        payload = checkout_event()
        header = signature_header(payload)
        reformatted = payload.replace(b",", b", ")

        response = deliver(client, reformatted, header=header)

        assert response.status_code == 400
        assert fake_db.rows("licenses") == []

    def test_missing_signature_is_rejected(self, client, fake_db):
        response = client.post("/webhook", content=checkout_event(), headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert fake_db.rows("licenses") == []

    def test_stale_timestamp_is_rejected(self, client, fake_db):
        payload = checkout_event()

        response = deliver(client, payload, header=signature_header(payload, timestamp=int(time.time()) - 3600))

        assert response.status_code == 400
        assert fake_db.rows("licenses") == []

    def test_unrelated_event_is_acknowledged(self, client, fake_db):
        response = deliver(client, checkout_event(event_type="payment_intent.created"))

        assert response.status_code == 200
        assert response.json() == {"received": True, "ignored": True}
        assert fake_db.rows("licenses") == []

    def test_unpaid_session_is_acknowledged_without_license(self, client, fake_db):
        response = deliver(client, checkout_event(payment_status="unpaid"))

        assert response.status_code == 200
        assert fake_db.rows("licenses") == []

    def test_session_without_email_reserves_license(self, client, fake_db, email_service):
        response = deliver(client, checkout_event(email=None))

        assert response.status_code == 200
        license = fake_db.rows("licenses")[0]
        assert license["status"] == "reserved"
        assert license["user_id"] is None
        assert email_service.sent == []

    def test_email_failure_still_acknowledges(self, client, fake_db, email_service):
        email_service.fail = True

        response = deliver(client, checkout_event())

        assert response.status_code == 200
        assert len(fake_db.rows("licenses")) == 1

    @pytest.mark.parametrize("table, operation", [
        ("licenses", "select"),
        ("users", "insert"),
        ("rpc", "issue_license"),
    ])
    def test_store_failure_asks_for_redelivery(self, client, fake_db, email_service, table, operation):
        fake_db.fail_next(table, operation, APIError({"code": "08006", "message": "connection failure"}))
        payload = checkout_event()

        response = deliver(client, payload)

        assert response.status_code == 500
        assert response.json()["error"] == "webhook_processing_failed"
        assert fake_db.rows("licenses") == []
        assert fake_db.rows("redemptions") == []

        retry = deliver(client, payload)

        assert retry.status_code == 200
        assert len(fake_db.rows("licenses")) == 1
        assert retry.json() == {"received": True}
        assert len(fake_db.rows("redemptions")) == 1
        assert [mail["to"] for mail in email_service.sent] == ["buyer@example.com"]
        assert client.get("/has-license", params={"email": "buyer@example.com"}).json()["hasLicense"] is True

    def test_signed_but_malformed_payload_is_not_acknowledged(self, client, fake_db):
        payload = b'{"id": "evt_1", "type": "checkout.session.completed"}'

        response = deliver(client, payload)

        assert response.status_code == 500
        assert fake_db.rows("licenses") == []

    def test_purchase_email_cannot_be_registered_by_someone_else(self, client, fake_db):
        deliver(client, checkout_event())

        response = client.post("/register", json={"email": "buyer@example.com", "password": "attacker123"})

        assert response.status_code == 409
        assert fake_db.rows("users")[0]["password_hash"] is None
