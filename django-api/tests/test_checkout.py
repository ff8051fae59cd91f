"""Tests for checkout: registrations plus the provider preference.

Run with: pytest tests/test_checkout.py -v
"""

from decimal import Decimal

import pytest
from rest_framework.test import APIRequestFactory

from conftest import (
    ORGANIZER_TOKEN,
    WEBHOOK_URL,
    build_container,
    group_request,
    make_coupon,
    make_event,
    make_organizer,
)
from events import models as catalog
from payments.errors import PaymentsNotConfiguredError
from registrations import models
from registrations.handlers import CheckoutView

pytestmark = pytest.mark.django_db


def checkout_body(event, modality, **overrides) -> dict:
    body = {
        "event_id": str(event.id),
        "modality_id": str(modality.id),
        "participants": [
            {
                "email": "Maria@Example.com",
                "full_name": "Maria Silva",
                "cpf": "529.982.247-25",
                "phone": "(11) 98888-7777",
                "shirt_size": None,
            },
            {
                "email": "joao@example.com",
                "full_name": "João Souza",
                "cpf": "111.444.777-35",
                "phone": "(21) 97777-6666",
            },
        ],
        "terms_accepted": True,
        "privacy_accepted": True,
    }
    body.update(overrides)
    return body


class TestCheckoutService:
    def test_opens_one_preference_for_the_whole_group(self, container, gateway, event, modality):
        result = container.checkout.checkout(group_request(event, modality, count=3))

        assert len(gateway.preferences) == 1
        access_token, request = gateway.preferences[0]
        assert access_token == ORGANIZER_TOKEN
        assert request.external_reference == str(result.order_reference)
        assert request.notification_url == WEBHOOK_URL
        assert request.items[0].quantity == 3
        assert request.items[0].unit_price == Decimal("100.00")
        assert request.success_url == f"https://app.example.com/inscricao/sucesso?registration={result.primary.id}"
        assert request.marketplace_fee is None
        assert result.preference.id == "pref-1"

    def test_preference_id_stored_on_every_registration(self, container, event, modality):
        result = container.checkout.checkout(group_request(event, modality, count=2))

        stored = set(models.Registration.objects.filter(order_reference=result.order_reference).values_list(
            "preference_id", flat=True
        ))
        assert stored == {"pref-1"}

    def test_platform_fee_becomes_marketplace_fee(self, gateway, clock, event, modality):
        container = build_container(gateway, clock, platform_fee_percent=Decimal("10"))

        result = container.checkout.checkout(group_request(event, modality, count=2))

        _, request = gateway.preferences[0]
        assert request.items[0].unit_price == Decimal("110.00")
        assert request.marketplace_fee == Decimal("20.00")
        assert result.quote.total.amount == Decimal("220.00")
        assert result.primary.platform_fee.amount == Decimal("10.00")

    def test_unconnected_organizer_creates_nothing(self, container, clock):
        organizer = make_organizer("semconta@example.com", "11222333000343", connected=False)
        event = make_event(organizer, clock.now, slug="sem-pagamento")
        modality = catalog.Modality.objects.create(event=event, name="5K", price=Decimal("50.00"))

        with pytest.raises(PaymentsNotConfiguredError):
            container.checkout.checkout(group_request(event, modality))
        assert models.Registration.objects.count() == 0


class TestCheckoutView:
    def _post(self, container, body):
        request = APIRequestFactory().post("/api/checkout", body, format="json")
        return CheckoutView.as_view(checkout=container.checkout)(request)

    def test_created(self, container, event, modality, clock):
        make_coupon(event, clock.now, code="DESC10")

        response = self._post(container, checkout_body(event, modality, coupon_code=" desc10 "))

        assert response.status_code == 201
        assert response.data["checkout_url"] == "https://checkout.example.com/1"
        assert response.data["registration_number"] == 1
        assert response.data["payment_status"] == "pending"
        assert response.data["pricing"]["total"] == "180.00"
        assert response.data["pricing"]["coupon_code"] == "DESC10"
        assert len(response.data["registrations"]) == 2
        assert "expires_at" in response.data

    def test_participants_stored_normalized(self, container, event, modality):
        self._post(container, checkout_body(event, modality))

        participant = models.Registration.objects.get(registration_number=1).participant
        assert participant.cpf == "52998224725"
        assert participant.email == "maria@example.com"
        assert participant.phone == "11988887777"

    def test_empty_participant_list_rejected(self, container, event, modality):
        response = self._post(container, checkout_body(event, modality, participants=[]))

        assert response.status_code == 400
        assert response.data["code"] == "VALIDATION_ERROR"

    def test_invalid_cpf_rejected(self, container, event, modality):
        body = checkout_body(event, modality)
        body["participants"][0]["cpf"] = "111.111.111-11"

        response = self._post(container, body)

        assert response.status_code == 400
        assert "participants.0.cpf" in response.data["details"]

    def test_sold_out_is_a_conflict(self, container, event):
        modality = catalog.Modality.objects.create(event=event, name="VIP", price=Decimal("300"), max_slots=1)

        response = self._post(container, checkout_body(event, modality))

        assert response.status_code == 409
        assert response.data["code"] == "SOLD_OUT"
