"""Tests for the registration lifecycle against the ORM stores.

Run with: pytest tests/test_registrations.py -v
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import connection, connections

from accounts.domain import Principal, PrincipalKind
from conftest import group_request, make_coupon, make_kit, make_modality, profile
from events import models as catalog
from events.domain import Money, ShirtSize
from events.domain.errors import (
    CouponExhaustedError,
    EventNotOpenError,
    RegistrationClosedError,
    ShirtSizeRequiredError,
    ShirtSizeSoldOutError,
    SoldOutError,
)
from registrations import models
from registrations.domain import PaymentStatus, RegistrationStatus
from registrations.domain.commands import Attendee, GroupRequest, RegistrationRequest
from registrations.domain.errors import (
    AlreadyRegisteredError,
    DuplicateAttendeeError,
    GroupNotAllowedError,
    GroupTooLargeError,
    RegistrationNotCancelableError,
    RegistrationNotFoundError,
)
from registrations.services.registration_service import summarize
from registrations.services.webhook_service import Notification

pytestmark = pytest.mark.django_db


def approve(container, receipt, payment_id: str = "pay-1", status: str = "approved"):
    return container.registrations.reconcile_payment(
        payment_id, status, external_reference=str(receipt.order_reference)
    )


class TestCreateGroup:
    def test_creates_pending_registrations_with_sequential_numbers(self, container, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality, count=3))

        numbers = [registration.registration_number for registration in receipt.registrations]
        assert numbers == [1, 2, 3]
        assert {registration.order_reference for registration in receipt.registrations} == {receipt.order_reference}
        assert all(registration.status is RegistrationStatus.PENDING for registration in receipt.registrations)
        assert all(registration.payment_status is PaymentStatus.PENDING for registration in receipt.registrations)

    def test_numbers_continue_across_orders(self, container, event, modality):
        container.registrations.create_group(group_request(event, modality, count=2))
        receipt = container.registrations.create_group(group_request(event, modality, count=1, first=2))
        assert receipt.primary.registration_number == 3

    def test_creation_reserves_no_inventory(self, container, event, clock):
        modality = make_modality(event, max_slots=1)
        coupon = make_coupon(event, clock.now, max_uses=1)

        container.registrations.create_group(group_request(event, modality, coupon_code=coupon.code))
        container.registrations.create_group(group_request(event, modality, coupon_code=coupon.code, first=1))

        modality.refresh_from_db()
        coupon.refresh_from_db()
        assert modality.sold_slots == 0
        assert coupon.current_uses == 0
        assert models.Registration.objects.count() == 2

    def test_stores_unit_prices(self, container, event, modality, clock):
        make_coupon(event, clock.now, code="DESC10")
        receipt = container.registrations.create_group(
            group_request(event, modality, count=2, coupon_code="DESC10")
        )

        registration = receipt.primary
        assert registration.base_price == Money(Decimal("100.00"))
        assert registration.discount == Money(Decimal("10.00"))
        assert registration.total == Money(Decimal("90.00"))
        assert receipt.quote.total == Money(Decimal("180.00"))
        assert registration.coupon_id is not None

    def test_buyer_defaults_to_first_attendee(self, container, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality, count=2))
        first = receipt.registrations[0]
        assert all(registration.buyer_id == first.participant_id for registration in receipt.registrations)

    def test_duplicate_attendee_rejected(self, container, event, modality):
        attendee = Attendee(profile=profile(0))
        duplicated = GroupRequest(
            event_id=str(event.id), modality_id=str(modality.id), attendees=(attendee, attendee)
        )
        with pytest.raises(DuplicateAttendeeError):
            container.registrations.create_group(duplicated)

    def test_group_limits(self, container, event, modality):
        with pytest.raises(GroupTooLargeError):
            container.registrations.create_group(group_request(event, modality, count=6))

        catalog.Event.objects.filter(pk=event.pk).update(allow_group_reg=False)
        with pytest.raises(GroupNotAllowedError):
            container.registrations.create_group(group_request(event, modality, count=2))

    def test_draft_event_rejected(self, container, event, modality):
        catalog.Event.objects.filter(pk=event.pk).update(status=catalog.Event.Status.DRAFT)
        with pytest.raises(EventNotOpenError):
            container.registrations.create_group(group_request(event, modality))

    def test_closed_registration_window(self, container, event, modality, clock):
        clock.advance(timedelta(days=31))
        with pytest.raises(RegistrationClosedError):
            container.registrations.create_group(group_request(event, modality))

    def test_already_registered(self, container, event, modality):
        container.registrations.create_group(group_request(event, modality))
        with pytest.raises(AlreadyRegisteredError):
            container.registrations.create_group(group_request(event, modality))

    def test_expired_registration_frees_the_participant(self, container, event, modality, clock):
        container.registrations.create_group(group_request(event, modality))
        clock.advance(timedelta(minutes=31))
        container.registrations.expire_pending()

        receipt = container.registrations.create_group(group_request(event, modality))
        assert receipt.primary.registration_number == 2

    def test_shirt_size_required(self, container, event, modality):
        make_kit(event, {"M": 5}, shirt_required=True)
        with pytest.raises(ShirtSizeRequiredError):
            container.registrations.create_group(group_request(event, modality))

    def test_shirt_size_without_stock(self, container, event, modality):
        make_kit(event, {"M": 1})
        with pytest.raises(ShirtSizeSoldOutError):
            container.registrations.create_group(
                group_request(event, modality, count=2, sizes=[ShirtSize.M, ShirtSize.M])
            )


class TestCreateRegistration:
    def test_logged_in_participant_registers_themselves(self, container, event, modality):
        participant = container.accounts.register_participant(profile(4), "Senha123")[0]

        receipt = container.registrations.create_registration(
            RegistrationRequest(participant_id=participant.id, event_id=str(event.id), modality_id=str(modality.id))
        )

        assert receipt.registration.participant_id == participant.id
        assert receipt.registration.buyer_id == participant.id


class TestReconcilePayment:
    def test_approval_confirms_and_commits_inventory(self, container, event, clock):
        modality = make_modality(event, max_slots=10)
        coupon = make_coupon(event, clock.now, max_uses=10)
        receipt = container.registrations.create_group(
            group_request(event, modality, count=2, coupon_code=coupon.code)
        )

        primary = container.registrations.reconcile_payment(
            "pay-1",
            "approved",
            external_reference=str(receipt.order_reference),
            payment_method="credit_card",
            provider_fee=Decimal("3.99"),
        )

        assert primary.status is RegistrationStatus.CONFIRMED
        assert primary.payment_status is PaymentStatus.APPROVED
        assert primary.payment_id == "pay-1"
        assert primary.payment_method == "credit_card"
        assert primary.provider_fee == Money(Decimal("3.99"))
        assert primary.confirmed_at == clock.now
        modality.refresh_from_db()
        coupon.refresh_from_db()
        assert modality.sold_slots == 2
        assert coupon.current_uses == 2

    def test_repeated_approval_counts_once(self, container, event):
        modality = make_modality(event, max_slots=10)
        receipt = container.registrations.create_group(group_request(event, modality))

        approve(container, receipt)
        approve(container, receipt)
        container.registrations.reconcile_payment("pay-1", "approved")

        modality.refresh_from_db()
        assert modality.sold_slots == 1

    def test_pending_status_changes_nothing(self, container, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality))
        registration = approve(container, receipt, status="in_process")
        assert registration.status is RegistrationStatus.PENDING
        assert registration.payment_id == "pay-1"

    def test_unknown_payment(self, container):
        with pytest.raises(RegistrationNotFoundError):
            container.registrations.reconcile_payment("pay-404", "approved")

    def test_last_slot_goes_to_the_first_approved_payment(self, container, event):
        modality = make_modality(event, max_slots=1)
        first = container.registrations.create_group(group_request(event, modality))
        second = container.registrations.create_group(group_request(event, modality, first=1))

        approve(container, first, "pay-1")
        with pytest.raises(SoldOutError):
            approve(container, second, "pay-2")

        loser = models.Registration.objects.get(order_reference=second.order_reference)
        assert loser.status == RegistrationStatus.CANCELED.value
        assert loser.payment_status == PaymentStatus.APPROVED.value
        assert loser.cancel_reason == "SOLD_OUT"
        assert not loser.inventory_committed
        modality.refresh_from_db()
        assert modality.sold_slots == 1

    def test_capacity_holds_over_many_orders(self, container, event):
        modality = make_modality(event, max_slots=3)
        receipts = [
            container.registrations.create_group(group_request(event, modality, first=index)) for index in range(7)
        ]

        outcomes = []
        for index, receipt in enumerate(receipts):
            try:
                approve(container, receipt, f"pay-{index}")
                outcomes.append("confirmed")
            except SoldOutError:
                outcomes.append("sold_out")

        assert outcomes == ["confirmed"] * 3 + ["sold_out"] * 4
        modality.refresh_from_db()
        assert modality.sold_slots == 3
        assert models.Registration.objects.filter(status=RegistrationStatus.CONFIRMED.value).count() == 3

    def test_coupon_exhausted_at_confirmation(self, container, event, modality, clock):
        coupon = make_coupon(event, clock.now, max_uses=1)
        first = container.registrations.create_group(group_request(event, modality, coupon_code=coupon.code))
        second = container.registrations.create_group(
            group_request(event, modality, coupon_code=coupon.code, first=1)
        )

        approve(container, first, "pay-1")
        with pytest.raises(CouponExhaustedError):
            approve(container, second, "pay-2")

        coupon.refresh_from_db()
        assert coupon.current_uses == 1

    def test_shirt_stock_moves_at_confirmation(self, container, event, modality):
        kit = make_kit(event, {"M": 2, "G": 1})
        receipt = container.registrations.create_group(
            group_request(event, modality, count=2, sizes=[ShirtSize.M, ShirtSize.G])
        )

        approve(container, receipt)

        sizes = {size.size: (size.stock, size.sold) for size in kit.sizes.all()}
        assert sizes == {"M": (1, 1), "G": (0, 1)}

    def test_refund_reverses_confirmation_once(self, container, event, clock):
        modality = make_modality(event, max_slots=5)
        coupon = make_coupon(event, clock.now, max_uses=5)
        kit = make_kit(event, {"M": 3})
        receipt = container.registrations.create_group(
            group_request(event, modality, coupon_code=coupon.code, sizes=[ShirtSize.M])
        )
        approve(container, receipt)

        refunded = approve(container, receipt, status="refunded")
        again = approve(container, receipt, status="charged_back")

        assert refunded.status is RegistrationStatus.CANCELED
        assert refunded.payment_status is PaymentStatus.REFUNDED
        assert refunded.cancel_reason == "PAYMENT_REFUNDED"
        assert not refunded.inventory_committed
        assert again == refunded
        modality.refresh_from_db()
        coupon.refresh_from_db()
        size = kit.sizes.get(size="M")
        assert (modality.sold_slots, coupon.current_uses) == (0, 0)
        assert (size.stock, size.sold) == (3, 0)

    def test_refund_of_a_conflict_loser_releases_nothing(self, container, event):
        modality = make_modality(event, max_slots=1)
        first = container.registrations.create_group(group_request(event, modality))
        second = container.registrations.create_group(group_request(event, modality, first=1))
        approve(container, first, "pay-1")
        with pytest.raises(SoldOutError):
            approve(container, second, "pay-2")

        loser = approve(container, second, "pay-2", status="refunded")

        assert loser.payment_status is PaymentStatus.REFUNDED
        assert loser.cancel_reason == "SOLD_OUT"
        modality.refresh_from_db()
        assert modality.sold_slots == 1

    def test_rejection_cancels_unpaid_order(self, container, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality, count=2))

        registration = approve(container, receipt, status="rejected")

        assert registration.status is RegistrationStatus.CANCELED
        assert registration.payment_status is PaymentStatus.REJECTED
        assert registration.cancel_reason == "PAYMENT_REJECTED"
        assert models.Registration.objects.filter(status=RegistrationStatus.CANCELED.value).count() == 2

    def test_late_approval_confirms_expired_registration(self, container, event, modality, clock):
        receipt = container.registrations.create_group(group_request(event, modality))
        clock.advance(timedelta(minutes=45))
        assert container.registrations.expire_pending() == 1

        registration = approve(container, receipt)

        assert registration.status is RegistrationStatus.CONFIRMED

    def test_approval_after_participant_cancel_is_ignored(self, container, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality))
        principal = Principal(id=receipt.primary.participant_id, kind=PrincipalKind.PARTICIPANT, email="x@example.com")
        container.registrations.cancel_registration(str(receipt.primary.id), principal)

        registration = approve(container, receipt)

        assert registration.status is RegistrationStatus.CANCELED
        modality.refresh_from_db()
        assert modality.sold_slots == 0


class TestExpiry:
    def test_only_stale_pending_registrations_expire(self, container, event, modality, clock):
        stale = container.registrations.create_group(group_request(event, modality))
        approve(container, container.registrations.create_group(group_request(event, modality, first=1)))
        clock.advance(timedelta(minutes=31))

        assert container.registrations.expire_pending() == 1
        assert container.registrations.expire_pending() == 0
        row = models.Registration.objects.get(order_reference=stale.order_reference)
        assert row.status == RegistrationStatus.EXPIRED.value

    def test_fresh_registrations_survive(self, container, event, modality, clock):
        container.registrations.create_group(group_request(event, modality))
        clock.advance(timedelta(minutes=5))
        assert container.registrations.expire_pending() == 0


class TestCancel:
    def _principal(self, participant_id) -> Principal:
        return Principal(id=participant_id, kind=PrincipalKind.PARTICIPANT, email="runner@example.com")

    def test_participant_cancels_pending_registration(self, container, event, modality, clock):
        receipt = container.registrations.create_group(group_request(event, modality))

        canceled = container.registrations.cancel_registration(
            str(receipt.primary.id), self._principal(receipt.primary.participant_id)
        )

        assert canceled.status is RegistrationStatus.CANCELED
        assert canceled.cancel_reason == "CANCELED_BY_PARTICIPANT"
        assert canceled.canceled_at == clock.now

    def test_organizer_cancels_pending_registration(self, container, event, modality, organizer):
        receipt = container.registrations.create_group(group_request(event, modality))
        principal = Principal(id=organizer.id, kind=PrincipalKind.USER, email=organizer.email)

        canceled = container.registrations.cancel_registration(str(receipt.primary.id), principal)

        assert canceled.cancel_reason == "CANCELED_BY_ORGANIZER"

    def test_confirmed_registration_not_cancelable(self, container, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality))
        approve(container, receipt)

        with pytest.raises(RegistrationNotCancelableError):
            container.registrations.cancel_registration(
                str(receipt.primary.id), self._principal(receipt.primary.participant_id)
            )

    def test_stranger_cannot_see_registration(self, container, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality))
        stranger = container.accounts.register_participant(profile(5), "Senha123")[0]

        with pytest.raises(RegistrationNotFoundError):
            container.registrations.cancel_registration(str(receipt.primary.id), self._principal(stranger.id))


class TestListings:
    def test_event_listing_and_summary(self, container, event, modality, organizer):
        confirmed = container.registrations.create_group(group_request(event, modality, count=2))
        container.registrations.create_group(group_request(event, modality, first=2))
        approve(container, confirmed)

        listed_event, details = container.registrations.list_for_event(organizer.id, str(event.id))
        summary = summarize(details)

        assert listed_event.name == event.name
        assert [detail.registration.registration_number for detail in details] == [1, 2, 3]
        assert (summary.total, summary.confirmed, summary.pending) == (3, 2, 1)
        assert summary.revenue == Money(Decimal("200.00"))

    def test_participant_sees_registrations_they_bought(self, container, event, modality):
        receipt = container.registrations.create_group(group_request(event, modality, count=2))

        details = container.registrations.list_for_participant(receipt.primary.buyer_id)

        assert len(details) == 2
        assert details[0].event_slug == event.slug


class TestEndToEnd:
    def test_single_slot_sold_through_the_webhook(self, container, gateway, event):
        """A pays for the only slot; B is turned away afterwards."""
        modality = make_modality(event, price=Decimal("50.00"), max_slots=1)

        first = container.registrations.create_group(group_request(event, modality))
        assert first.primary.status is RegistrationStatus.PENDING
        assert first.primary.total == Money(Decimal("50.00"))

        gateway.set_payment("pay-a", "approved", external_reference=first.order_reference)
        outcome = container.webhooks.handle(Notification(type="payment", action="payment.created", payment_id="pay-a"))
        assert outcome.registration.status is RegistrationStatus.CONFIRMED
        modality.refresh_from_db()
        assert modality.sold_slots == 1

        with pytest.raises(SoldOutError):
            container.registrations.create_group(group_request(event, modality, first=1))

    def test_exhausted_coupon_blocks_creation(self, container, event, modality, clock):
        coupon = make_coupon(event, clock.now, max_uses=3, current_uses=3)

        with pytest.raises(CouponExhaustedError):
            container.registrations.create_group(group_request(event, modality, coupon_code=coupon.code))
        assert not models.Registration.objects.exists()


@pytest.mark.skipif(connection.vendor != "postgresql", reason="needs row locks; SQLite serializes writers")
@pytest.mark.django_db(transaction=True)
class TestConcurrentConfirmation:
    def test_capacity_never_oversold(self, container, event):
        capacity, extra = 3, 4
        modality = make_modality(event, max_slots=capacity)
        receipts = [
            container.registrations.create_group(group_request(event, modality, first=index))
            for index in range(capacity + extra)
        ]
        barrier = threading.Barrier(len(receipts))

        def confirm(index: int) -> str:
            try:
                barrier.wait()
                approve(container, receipts[index], f"pay-{index}")
                return "confirmed"
            except SoldOutError:
                return "sold_out"
            finally:
                connections.close_all()

        with ThreadPoolExecutor(max_workers=len(receipts)) as pool:
            outcomes = list(pool.map(confirm, range(len(receipts))))

        assert outcomes.count("confirmed") == capacity
        assert outcomes.count("sold_out") == extra
        modality.refresh_from_db()
        assert modality.sold_slots == capacity
