"""Tests for payment notifications: authenticity, lookup and idempotency.

Run with: pytest tests/test_webhooks.py -v
"""

import json

import pytest
from rest_framework.test import APIRequestFactory

from accounts.domain import Principal, PrincipalKind
from conftest import APP_TOKEN, ORGANIZER_TOKEN, WEBHOOK_SECRET, WEBHOOK_URL, group_request, make_modality
from payments.errors import WebhookSignatureError
from payments.signatures import compute_signature
from registrations import models
from registrations.domain import PaymentStatus, RegistrationStatus
from registrations.handlers import MercadoPagoWebhookView
from registrations.services.webhook_service import Notification, WebhookService

pytestmark = pytest.mark.django_db

TS = "1767225600"


def payment_notification(payment_id: str = "pay-1") -> Notification:
    return Notification(type="payment", action="payment.updated", payment_id=payment_id)


class TestWebhookService:
    def test_approved_payment_found_by_order_reference(self, container, gateway, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality, count=2))
        gateway.set_payment("pay-1", "approved", external_reference=receipt.order_reference)

        outcome = container.webhooks.handle(payment_notification(), request_id="req-1")

        assert outcome.result == "processed"
        assert outcome.registration.status is RegistrationStatus.CONFIRMED
        assert gateway.payment_reads == [(APP_TOKEN, "pay-1"), (ORGANIZER_TOKEN, "pay-1")]
        assert models.Registration.objects.filter(payment_id="pay-1").count() == 2

    def test_known_payment_read_with_organizer_token_only(self, container, gateway, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality))
        container.registrations.reconcile_payment(
            "pay-1", "in_process", external_reference=str(receipt.order_reference)
        )
        gateway.set_payment("pay-1", "approved", external_reference=receipt.order_reference)

        container.webhooks.handle(payment_notification())

        assert gateway.payment_reads == [(ORGANIZER_TOKEN, "pay-1")]

    def test_redelivery_is_skipped(self, container, gateway, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality))
        gateway.set_payment("pay-1", "approved", external_reference=receipt.order_reference)
        container.webhooks.handle(payment_notification(), request_id="req-1")
        reads = len(gateway.payment_reads)

        outcome = container.webhooks.handle(payment_notification(), request_id="req-1")

        assert outcome.result == "duplicate"
        assert len(gateway.payment_reads) == reads
        assert models.ProcessedWebhook.objects.filter(request_id="req-1").count() == 1

    def test_same_payment_new_delivery_is_idempotent(self, container, gateway, event):
        modality = make_modality(event, max_slots=5)
        receipt = container.registrations.create_group(group_request(event, modality))
        gateway.set_payment("pay-1", "approved", external_reference=receipt.order_reference)

        container.webhooks.handle(payment_notification(), request_id="req-1")
        container.webhooks.handle(payment_notification(), request_id="req-2")

        modality.refresh_from_db()
        assert modality.sold_slots == 1

    def test_non_payment_topics_ignored(self, container, gateway):
        outcome = container.webhooks.handle(Notification(type="merchant_order", action=None, payment_id="77"))

        assert outcome.result == "ignored"
        assert gateway.payment_reads == []

    def test_unknown_payment(self, container, gateway):
        gateway.set_payment("pay-404", "approved", external_reference=None)

        outcome = container.webhooks.handle(payment_notification("pay-404"), request_id="req-9")

        assert outcome.result == "unknown_payment"
        assert models.ProcessedWebhook.objects.filter(request_id="req-9").exists()

    def test_approved_retry_after_rejected_card(self, container, gateway, event):
        """A second payment on the same checkout confirms an order its first payment canceled."""
        modality = make_modality(event, max_slots=5)
        receipt = container.registrations.create_group(group_request(event, modality))
        gateway.set_payment("pay-1", "rejected", external_reference=receipt.order_reference)
        gateway.set_payment("pay-2", "approved", external_reference=receipt.order_reference)

        container.webhooks.handle(payment_notification("pay-1"), request_id="req-1")
        outcome = container.webhooks.handle(payment_notification("pay-2"), request_id="req-2")

        assert outcome.result == "processed"
        assert outcome.registration.status is RegistrationStatus.CONFIRMED
        row = models.Registration.objects.get(order_reference=receipt.order_reference)
        assert row.payment_id == "pay-2"
        assert row.payment_status == PaymentStatus.APPROVED.value
        assert row.cancel_reason is None
        modality.refresh_from_db()
        assert modality.sold_slots == 1

    def test_late_rejection_of_replaced_payment(self, container, gateway, event):
        modality = make_modality(event, max_slots=5)
        receipt = container.registrations.create_group(group_request(event, modality))
        gateway.set_payment("pay-1", "rejected", external_reference=receipt.order_reference)
        gateway.set_payment("pay-2", "approved", external_reference=receipt.order_reference)
        container.webhooks.handle(payment_notification("pay-1"), request_id="req-1")
        container.webhooks.handle(payment_notification("pay-2"), request_id="req-2")

        outcome = container.webhooks.handle(payment_notification("pay-1"), request_id="req-3")

        assert outcome.result == "unknown_payment"
        row = models.Registration.objects.get(order_reference=receipt.order_reference)
        assert row.status == RegistrationStatus.CONFIRMED.value
        modality.refresh_from_db()
        assert modality.sold_slots == 1

    def test_retry_after_participant_cancel_stays_canceled(self, container, gateway, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality))
        container.registrations.cancel_registration(
            str(receipt.primary.id),
            Principal(id=receipt.primary.participant_id, kind=PrincipalKind.PARTICIPANT, email="x@example.com"),
        )
        gateway.set_payment("pay-1", "rejected", external_reference=receipt.order_reference)
        gateway.set_payment("pay-2", "approved", external_reference=receipt.order_reference)

        container.webhooks.handle(payment_notification("pay-1"))
        outcome = container.webhooks.handle(payment_notification("pay-2"))

        assert outcome.result == "unknown_payment"
        row = models.Registration.objects.get(order_reference=receipt.order_reference)
        assert row.status == RegistrationStatus.CANCELED.value

    def test_conflict_is_acknowledged(self, container, gateway, event):
        modality = make_modality(event, max_slots=1)
        first = container.registrations.create_group(group_request(event, modality))
        second = container.registrations.create_group(group_request(event, modality, first=1))
        gateway.set_payment("pay-1", "approved", external_reference=first.order_reference)
        gateway.set_payment("pay-2", "approved", external_reference=second.order_reference)

        container.webhooks.handle(payment_notification("pay-1"))
        outcome = container.webhooks.handle(payment_notification("pay-2"))

        assert outcome.result == "conflict"
        assert outcome.code == "SOLD_OUT"


class TestSignature:
    def test_valid_signature(self, container):
        body = b'{"type": "payment"}'
        header = f"ts={TS},v1={compute_signature(WEBHOOK_SECRET, TS, WEBHOOK_URL, body)}"

        container.webhooks.verify(header, body, ["http://internal:8000/api/webhooks/mercadopago"])

    def test_tampered_body(self, container):
        header = f"ts={TS},v1={compute_signature(WEBHOOK_SECRET, TS, WEBHOOK_URL, b'original')}"

        with pytest.raises(WebhookSignatureError):
            container.webhooks.verify(header, b"tampered", [WEBHOOK_URL])

    @pytest.mark.parametrize("header", [None, "", "ts=123", "v1=abc", "garbage"])
    def test_missing_or_malformed_header(self, container, header):
        with pytest.raises(WebhookSignatureError):
            container.webhooks.verify(header, b"{}", [WEBHOOK_URL])

    def test_unsigned_allowed_only_without_secret_in_development(self, container, gateway):
        development = WebhookService(
            container.registrations, None, None, container.connections, gateway, allow_unsigned=True
        )
        development.verify(None, b"{}", [])

        production = WebhookService(container.registrations, None, None, container.connections, gateway)
        with pytest.raises(WebhookSignatureError):
            production.verify(None, b"{}", [])


class TestWebhookView:
    def _post(self, container, payload: dict, signed: bool = True, request_id: str = "req-1"):
        body = json.dumps(payload).encode()
        headers = {"HTTP_X_REQUEST_ID": request_id}
        if signed:
            signature = compute_signature(WEBHOOK_SECRET, TS, "http://testserver/api/webhooks/mercadopago", body)
            headers["HTTP_X_SIGNATURE"] = f"ts={TS},v1={signature}"
        request = APIRequestFactory().post(
            "/api/webhooks/mercadopago", body, content_type="application/json", **headers
        )
        return MercadoPagoWebhookView.as_view(webhooks=container.webhooks)(request)

    def test_confirms_registration(self, container, gateway, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality))
        gateway.set_payment("123456", "approved", external_reference=receipt.order_reference)

        response = self._post(container, {"type": "payment", "action": "payment.updated", "data": {"id": 123456}})

        assert response.status_code == 200
        assert response.data["result"] == "processed"
        assert response.data["status"] == "CONFIRMED"

    def test_unsigned_delivery_rejected(self, container):
        response = self._post(container, {"type": "payment", "data": {"id": "1"}}, signed=False)

        assert response.status_code == 401
        assert response.data["code"] == "WEBHOOK_SIGNATURE_INVALID"

    def test_payload_without_payment_id_acknowledged(self, container, gateway):
        response = self._post(container, {"action": "test.created"})

        assert response.status_code == 200
        assert response.data["result"] == "ignored"
        assert gateway.payment_reads == []

    def test_health_check(self, container):
        request = APIRequestFactory().get("/api/webhooks/mercadopago")
        response = MercadoPagoWebhookView.as_view(webhooks=container.webhooks)(request)
        assert response.status_code == 200
