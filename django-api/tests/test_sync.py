"""Tests for re-reading payments from the provider outside of notifications.

Run with: pytest tests/test_sync.py -v
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from rest_framework.test import APIRequestFactory

from conftest import ORGANIZER_TOKEN, group_request, make_event, make_modality, make_organizer
from events.domain import Money
from events.domain.errors import EventNotFoundError
from payments.errors import PaymentNotApprovedError, PaymentNotFoundError
from registrations import models
from registrations.domain import PaymentStatus, RegistrationStatus
from registrations.domain.errors import RegistrationNotFoundError
from registrations.handlers import PaymentSyncView, PendingPaymentsView, ProviderFeeView

pytestmark = pytest.mark.django_db


def backdate(receipt, delta: timedelta) -> None:
    models.Registration.objects.filter(order_reference=receipt.order_reference).update(
        created_at=receipt.primary.created_at - delta
    )


class TestPaymentSync:
    def test_missed_notification_confirms_order(self, container, gateway, organizer, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality, count=2))
        gateway.set_payment("pay-1", "approved", external_reference=receipt.order_reference, payment_method="pix")

        result = container.payment_sync.sync(organizer.id, registration_id=str(receipt.primary.id))

        assert result.result == "updated"
        assert result.payment_id == "pay-1"
        assert result.provider_status == "approved"
        assert result.registration.status is RegistrationStatus.CONFIRMED
        assert gateway.payment_reads == [(ORGANIZER_TOKEN, f"search:{receipt.order_reference}")]
        assert models.Registration.objects.filter(payment_id="pay-1", status="CONFIRMED").count() == 2

    def test_bound_payment_read_by_id(self, container, gateway, organizer, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality))
        container.registrations.reconcile_payment(
            "pay-1", "in_process", external_reference=str(receipt.order_reference)
        )
        gateway.set_payment("pay-1", "approved", external_reference=receipt.order_reference)

        result = container.payment_sync.sync(organizer.id, payment_id="pay-1")

        assert result.result == "updated"
        assert gateway.payment_reads == [(ORGANIZER_TOKEN, "pay-1")]

    def test_status_still_pending_is_unchanged(self, container, gateway, organizer, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality))
        container.registrations.reconcile_payment(
            "pay-1", "in_process", external_reference=str(receipt.order_reference)
        )
        gateway.set_payment("pay-1", "in_process", external_reference=receipt.order_reference)

        result = container.payment_sync.sync(organizer.id, registration_id=str(receipt.primary.id))

        assert result.result == "unchanged"
        assert result.registration.status is RegistrationStatus.PENDING

    def test_no_payment_at_provider(self, container, organizer, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality))

        with pytest.raises(PaymentNotFoundError):
            container.payment_sync.sync(organizer.id, registration_id=str(receipt.primary.id))

    def test_other_organizers_registration(self, container, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality))
        stranger = make_organizer("outra@example.com", "11222333000343")

        with pytest.raises(RegistrationNotFoundError):
            container.payment_sync.sync(stranger.id, registration_id=str(receipt.primary.id))

    def test_approved_retry_found_after_rejected_card(self, container, gateway, organizer, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality))
        container.registrations.reconcile_payment(
            "pay-1", "rejected", external_reference=str(receipt.order_reference)
        )
        gateway.set_payment("pay-1", "rejected", external_reference=receipt.order_reference)
        gateway.set_payment("pay-2", "approved", external_reference=receipt.order_reference)

        result = container.payment_sync.sync(organizer.id, registration_id=str(receipt.primary.id))

        assert result.result == "updated"
        assert result.payment_id == "pay-2"
        assert result.registration.status is RegistrationStatus.CONFIRMED
        assert result.registration.payment_status is PaymentStatus.APPROVED

    def test_sold_out_reported_as_conflict(self, container, gateway, organizer, event):
        modality = make_modality(event, name="10K", max_slots=1)
        first = container.registrations.create_group(group_request(event, modality))
        second = container.registrations.create_group(group_request(event, modality, first=1))
        container.registrations.reconcile_payment("pay-1", "approved", external_reference=str(first.order_reference))
        gateway.set_payment("pay-2", "approved", external_reference=second.order_reference)

        result = container.payment_sync.sync(organizer.id, registration_id=str(second.primary.id))

        assert result.result == "conflict"
        assert result.code == "SOLD_OUT"
        assert result.registration.status is RegistrationStatus.CANCELED


class TestPendingSync:
    def test_each_unpaid_order_checked_once(self, container, gateway, organizer, event, modality):
        expired = container.registrations.create_group(group_request(event, modality, count=2))
        backdate(expired, timedelta(hours=1))
        container.registrations.expire_pending()
        unreachable = container.registrations.create_group(group_request(event, modality, first=2))
        container.registrations.reconcile_payment(
            "pay-2", "in_process", external_reference=str(unreachable.order_reference)
        )
        unpaid = container.registrations.create_group(group_request(event, modality, first=3))
        gateway.set_payment("pay-1", "approved", external_reference=expired.order_reference)
        gateway.unreachable.add("pay-2")

        results = container.payment_sync.sync_pending(organizer.id)

        outcomes = {result.registration.order_reference: result.result for result in results}
        assert outcomes == {
            expired.order_reference: "updated",
            unreachable.order_reference: "error",
            unpaid.order_reference: "no_payment",
        }
        confirmed = models.Registration.objects.filter(order_reference=expired.order_reference, status="CONFIRMED")
        assert confirmed.count() == 2

    def test_recent_orders_only(self, container, gateway, organizer, event, modality):
        old = container.registrations.create_group(group_request(event, modality))
        backdate(old, timedelta(hours=5))
        recent = container.registrations.create_group(group_request(event, modality, first=1))

        results = container.payment_sync.sync_pending(organizer.id, within=timedelta(hours=2))

        assert [result.registration.order_reference for result in results] == [recent.order_reference]

    def test_nothing_pending_skips_provider(self, container, gateway, organizer, event, modality):
        assert container.payment_sync.sync_pending(organizer.id, event_id=str(event.id)) == []
        assert gateway.payment_reads == []

    def test_other_organizers_event(self, container, clock, organizer):
        stranger = make_organizer("outra@example.com", "11222333000343")
        event = make_event(stranger, clock.now, slug="evento-alheio")

        with pytest.raises(EventNotFoundError):
            container.payment_sync.sync_pending(organizer.id, event_id=str(event.id))


class TestProviderFeeRefresh:
    def test_fee_read_back_for_whole_order(self, container, gateway, organizer, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality, count=2))
        container.registrations.reconcile_payment("pay-1", "approved", external_reference=str(receipt.order_reference))
        gateway.set_payment(
            "pay-1", "approved", external_reference=receipt.order_reference, provider_fee=Decimal("9.98")
        )

        registration = container.payment_sync.refresh_provider_fee(organizer.id, str(receipt.primary.id))

        assert registration.provider_fee == Money(Decimal("9.98"))
        assert models.Registration.objects.filter(payment_id="pay-1", provider_fee=Decimal("9.98")).count() == 2

    def test_unpaid_registration(self, container, gateway, organizer, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality))

        with pytest.raises(PaymentNotApprovedError):
            container.payment_sync.refresh_provider_fee(organizer.id, str(receipt.primary.id))
        assert gateway.payment_reads == []


class TestSyncViews:
    def test_sync_status(self, container, gateway, event, modality, organizer_headers):
        receipt = container.registrations.create_group(group_request(event, modality))
        gateway.set_payment("pay-1", "approved", external_reference=receipt.order_reference)
        request = APIRequestFactory().post(
            "/api/payments/sync-status",
            {"registration_id": str(receipt.primary.id)},
            format="json",
            **organizer_headers,
        )

        response = PaymentSyncView.as_view(sync=container.payment_sync)(request)

        assert response.status_code == 200
        assert response.data["result"] == "updated"
        assert response.data["status"] == "CONFIRMED"
        assert response.data["payment_id"] == "pay-1"

    def test_sync_status_requires_a_target(self, container, organizer_headers):
        request = APIRequestFactory().post("/api/payments/sync-status", {}, format="json", **organizer_headers)

        response = PaymentSyncView.as_view(sync=container.payment_sync)(request)

        assert response.status_code == 400
        assert "registration_id" in response.data["details"]

    def test_sync_status_without_payment(self, container, event, modality, organizer_headers):
        receipt = container.registrations.create_group(group_request(event, modality))
        request = APIRequestFactory().post(
            "/api/payments/sync-status",
            {"registration_id": str(receipt.primary.id)},
            format="json",
            **organizer_headers,
        )

        response = PaymentSyncView.as_view(sync=container.payment_sync)(request)

        assert response.status_code == 404
        assert response.data["code"] == "PAYMENT_NOT_FOUND"

    def test_check_pending_summary(self, container, gateway, event, modality, organizer_headers):
        paid = container.registrations.create_group(group_request(event, modality))
        container.registrations.create_group(group_request(event, modality, first=1))
        gateway.set_payment("pay-1", "approved", external_reference=paid.order_reference)
        request = APIRequestFactory().post(
            f"/api/payments/check-pending?event_id={event.id}&hours_ago=24", **organizer_headers
        )

        response = PendingPaymentsView.as_view(sync=container.payment_sync)(request)

        assert response.status_code == 200
        assert response.data["checked"] == 2
        assert response.data["updated"] == 1
        assert {item["result"] for item in response.data["results"]} == {"updated", "no_payment"}

    def test_check_pending_rejects_bad_window(self, container, organizer_headers):
        request = APIRequestFactory().post("/api/payments/check-pending?hours_ago=0", **organizer_headers)

        response = PendingPaymentsView.as_view(sync=container.payment_sync)(request)

        assert response.status_code == 400
        assert "hours_ago" in response.data["details"]

    def test_recalculate_fee(self, container, gateway, event, modality, organizer_headers):
        receipt = container.registrations.create_group(group_request(event, modality))
        container.registrations.reconcile_payment("pay-1", "approved", external_reference=str(receipt.order_reference))
        gateway.set_payment(
            "pay-1", "approved", external_reference=receipt.order_reference, provider_fee=Decimal("4.99")
        )
        registration_id = str(receipt.primary.id)
        request = APIRequestFactory().post(f"/api/registrations/{registration_id}/recalculate-fee", **organizer_headers)

        response = ProviderFeeView.as_view(sync=container.payment_sync)(request, registration_id=registration_id)

        assert response.status_code == 200
        assert response.data["provider_fee"] == "4.99"

    def test_recalculate_fee_of_unpaid_registration(self, container, event, modality, organizer_headers):
        receipt = container.registrations.create_group(group_request(event, modality))
        registration_id = str(receipt.primary.id)
        request = APIRequestFactory().post(f"/api/registrations/{registration_id}/recalculate-fee", **organizer_headers)

        response = ProviderFeeView.as_view(sync=container.payment_sync)(request, registration_id=registration_id)

        assert response.status_code == 409
        assert response.data["code"] == "PAYMENT_NOT_APPROVED"
