import hashlib
import hmac
import json
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.core.config import settings
from app.endpoints.payment import verify_webhook_signature
from app.core.exceptions import InvalidWebhookSignature
from app.models.payment import Payment
from app.models.subscription import UserSubscription
from tests.helpers.factories import auth_headers


def _sign(payload: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()


class TestWebhookSignature:
    def test_unset_secret_accepts_anything(self):
        verify_webhook_signature(b"{}", None, None)

    def test_valid_signature_is_accepted(self):
        verify_webhook_signature(b'{"a": 1}', _sign(b'{"a": 1}', "whsec"), "whsec")

    @pytest.mark.parametrize("signature", [None, "", "deadbeef"])
    def test_bad_signature_is_rejected(self, signature):
        with pytest.raises(InvalidWebhookSignature):
            verify_webhook_signature(b'{"a": 1}', signature, "whsec")


class TestPaymentEndpoints:
    def _purchase(self, client: TestClient, user, plan, **overrides):
        body = {"plan_type": plan.type, "language": "en", "payment_method": "mtn_momo",
                "phone_number": "0781234567"}
        body.update(overrides)
        response = client.post("/subscriptions/purchase", headers=auth_headers(user), json=body)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    def test_initiate_completes_and_grants(self, client: TestClient, db_session: Session, user, plan_factory,
                                           fake_gateway):
        payment = self._purchase(client, user, plan_factory())

        response = client.post("/payments/initiate", headers=auth_headers(user), json={"payment_id": payment["id"]})

        assert response.status_code == 200, response.text
        data = response.json()["data"]
        assert data["status"] == "completed"
        assert data["metadata"]["plan_id"] is not None
        assert len(fake_gateway.calls) == 1
        assert db_session.query(UserSubscription).filter(UserSubscription.user_id == user.id).count() == 1

    def test_initiate_gateway_failure(self, client: TestClient, user, plan_factory, fake_gateway):
        payment = self._purchase(client, user, plan_factory())
        fake_gateway.fail_with("Insufficient balance", status_code=400)

        response = client.post("/payments/initiate", headers=auth_headers(user), json={"payment_id": payment["id"]})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "GATEWAY_ERROR"

        status = client.get(f"/payments/{payment['id']}/status", headers=auth_headers(user))
        assert status.json()["data"]["status"] == "failed"
        assert status.json()["data"]["error_message"] == "Insufficient balance"

    def test_initiate_for_someone_elses_payment(self, client: TestClient, user, user_factory, plan_factory):
        payment = self._purchase(client, user, plan_factory())

        response = client.post(
            "/payments/initiate", headers=auth_headers(user_factory()), json={"payment_id": payment["id"]}
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_signed_webhook_completes_the_payment(self, client: TestClient, db_session: Session, user,
                                                  plan_factory, monkeypatch):
        monkeypatch.setattr(settings, "PAYMENT_WEBHOOK_SECRET", "whsec")
        payment = self._purchase(client, user, plan_factory())
        db_session.query(Payment).filter(Payment.id == payment["id"]).update({Payment.transaction_id: "TX-HOOK"})
        db_session.commit()
        body = json.dumps({"transactionId": "TX-HOOK", "status": "success"}).encode()

        rejected = client.post("/payments/verify", content=body,
                               headers={"content-type": "application/json", "x-signature": "forged"})
        assert rejected.status_code == 401
        assert rejected.json()["error"]["code"] == "INVALID_WEBHOOK_SIGNATURE"

        headers = {"content-type": "application/json", "x-signature": _sign(body, "whsec")}
        accepted = client.post("/payments/verify", content=body, headers=headers)
        assert accepted.status_code == 200, accepted.text
        assert accepted.json()["data"]["status"] == "completed"

        replayed = client.post("/payments/verify", content=body, headers=headers)
        assert replayed.status_code == 200
        assert db_session.query(UserSubscription).filter(UserSubscription.user_id == user.id).count() == 1

    def test_webhook_with_malformed_body(self, client: TestClient):
        response = client.post("/payments/verify", content=b'{"status": "success"}',
                               headers={"content-type": "application/json"})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_cancel_then_history(self, client: TestClient, user, plan_factory):
        payment = self._purchase(client, user, plan_factory())

        cancelled = client.put(f"/payments/{payment['id']}/cancel", headers=auth_headers(user),
                               json={"reason": "Wrong plan"})
        assert cancelled.status_code == 200
        assert cancelled.json()["data"]["cancellation_reason"] == "Wrong plan"

        again = client.put(f"/payments/{payment['id']}/cancel", headers=auth_headers(user))
        assert again.status_code == 400
        assert again.json()["error"]["code"] == "PAYMENT_NOT_PENDING"

        history = client.get("/payments/history", headers=auth_headers(user), params={"status": "cancelled"})
        assert history.status_code == 200
        assert history.json()["data"]["total"] == 1

    def test_manual_verify_is_disabled_for_users(self, client: TestClient, user, plan_factory):
        payment = self._purchase(client, user, plan_factory())

        response = client.post(f"/payments/{payment['id']}/manual-verify", headers=auth_headers(user))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "MANUAL_VERIFY_DISABLED"

    def test_admin_manual_verify(self, client: TestClient, user, admin_user, plan_factory):
        payment = self._purchase(client, user, plan_factory())

        response = client.post(f"/payments/{payment['id']}/manual-verify", headers=auth_headers(admin_user))

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "completed"
