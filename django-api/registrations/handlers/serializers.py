"""Request contracts and response shapes for checkout and registrations."""

from rest_framework import serializers

from accounts.domain import ParticipantProfile
from accounts.handlers.serializers import ParticipantFieldsSerializer
from events.domain import ShirtSize
from events.handlers.serializers import MONEY, PriceQuoteSerializer
from registrations.domain.commands import (
    Attendee,
    GroupRequest,
    RegistrationExtras,
    RegistrationRequest,
)

SHIRT_SIZES = [size.value for size in ShirtSize]
MONEY_FIELD = serializers.DecimalField(**MONEY)


def _shirt_size(value: str | None) -> ShirtSize | None:
    return ShirtSize(value) if value else None


class ExtrasSerializer(serializers.Serializer):
    emergency_contact = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    emergency_phone = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)
    medical_info = serializers.CharField(max_length=2000, required=False, allow_blank=True, allow_null=True)
    team_name = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    terms_accepted = serializers.BooleanField(default=False)
    privacy_accepted = serializers.BooleanField(default=False)

    def to_extras(self) -> RegistrationExtras:
        data = self.validated_data
        return RegistrationExtras(
            emergency_contact=data.get("emergency_contact") or None,
            emergency_phone=data.get("emergency_phone") or None,
            medical_info=data.get("medical_info") or None,
            team_name=data.get("team_name") or None,
            terms_accepted=data["terms_accepted"],
            privacy_accepted=data["privacy_accepted"],
        )


class AttendeeSerializer(ParticipantFieldsSerializer):
    shirt_size = serializers.ChoiceField(choices=SHIRT_SIZES, required=False, allow_null=True)


class CheckoutSerializer(ExtrasSerializer):
    """Public checkout: attendees are identified by their personal data."""

    event_id = serializers.UUIDField()
    modality_id = serializers.UUIDField()
    participants = AttendeeSerializer(many=True, allow_empty=False, max_length=100)
    coupon_code = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)
    buyer = ParticipantFieldsSerializer(required=False, allow_null=True)

    def to_request(self) -> GroupRequest:
        data = self.validated_data
        attendees = tuple(
            Attendee(
                profile=ParticipantFieldsSerializer().to_profile(item),
                shirt_size=_shirt_size(item.get("shirt_size")),
            )
            for item in data["participants"]
        )
        buyer: ParticipantProfile | None = None
        if data.get("buyer"):
            buyer = ParticipantFieldsSerializer().to_profile(data["buyer"])
        return GroupRequest(
            event_id=str(data["event_id"]),
            modality_id=str(data["modality_id"]),
            attendees=attendees,
            coupon_code=(data.get("coupon_code") or "").strip().upper() or None,
            buyer=buyer,
            extras=self.to_extras(),
        )


class RegistrationCreateSerializer(ExtrasSerializer):
    """Logged-in participant registering themselves; terms must be accepted."""

    event_id = serializers.UUIDField()
    modality_id = serializers.UUIDField()
    coupon_code = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)
    shirt_size = serializers.ChoiceField(choices=SHIRT_SIZES, required=False, allow_null=True)

    def validate_terms_accepted(self, value: bool) -> bool:
        if not value:
            raise serializers.ValidationError("The terms of use must be accepted.")
        return value

    def validate_privacy_accepted(self, value: bool) -> bool:
        if not value:
            raise serializers.ValidationError("The privacy policy must be accepted.")
        return value

    def to_request(self, participant_id) -> RegistrationRequest:
        data = self.validated_data
        return RegistrationRequest(
            participant_id=participant_id,
            event_id=str(data["event_id"]),
            modality_id=str(data["modality_id"]),
            coupon_code=(data.get("coupon_code") or "").strip().upper() or None,
            shirt_size=_shirt_size(data.get("shirt_size")),
            extras=self.to_extras(),
        )


class RegistrationCheckSerializer(serializers.Serializer):
    """Query string of GET /api/registrations/check."""

    event_id = serializers.UUIDField()
    modality_id = serializers.UUIDField()


class PaymentSyncSerializer(serializers.Serializer):
    registration_id = serializers.UUIDField(required=False)
    payment_id = serializers.CharField(max_length=64, required=False)

    def validate(self, attrs: dict) -> dict:
        if not attrs.get("registration_id") and not attrs.get("payment_id"):
            raise serializers.ValidationError({"registration_id": ["registration_id or payment_id is required."]})
        return attrs


class PendingSyncSerializer(serializers.Serializer):
    """Query string of POST /api/payments/check-pending."""

    event_id = serializers.UUIDField(required=False)
    hours_ago = serializers.IntegerField(min_value=1, required=False)


class WebhookDataSerializer(serializers.Serializer):
    id = serializers.CharField()


class WebhookSerializer(serializers.Serializer):
    """Provider notification body; ids arrive as strings or numbers."""

    id = serializers.CharField(required=False)
    type = serializers.CharField()
    action = serializers.CharField(required=False, allow_blank=True)
    live_mode = serializers.BooleanField(required=False)
    data = WebhookDataSerializer()


# Responses


class RegistrationSerializer(serializers.Serializer):
    """Serializer for Registration domain model."""

    id = serializers.UUIDField(source="id.value")
    registration_number = serializers.IntegerField()
    order_reference = serializers.UUIDField()
    event_id = serializers.UUIDField(source="event_id.value")
    modality_id = serializers.UUIDField(source="modality_id.value")
    participant_id = serializers.UUIDField()
    buyer_id = serializers.UUIDField()
    status = serializers.CharField(source="status.value")
    payment_status = serializers.CharField(source="payment_status.value")
    payment_method = serializers.CharField(allow_null=True)
    base_price = serializers.DecimalField(source="base_price.amount", **MONEY)
    discount = serializers.DecimalField(source="discount.amount", **MONEY)
    subtotal = serializers.DecimalField(source="subtotal.amount", **MONEY)
    platform_fee = serializers.DecimalField(source="platform_fee.amount", **MONEY)
    total = serializers.DecimalField(source="total.amount", **MONEY)
    provider_fee = serializers.DecimalField(source="provider_fee.amount", allow_null=True, **MONEY)
    shirt_size = serializers.CharField(source="shirt_size.value", allow_null=True)
    team_name = serializers.CharField(allow_null=True)
    cancel_reason = serializers.CharField(allow_null=True)
    confirmed_at = serializers.DateTimeField(allow_null=True)
    canceled_at = serializers.DateTimeField(allow_null=True)
    created_at = serializers.DateTimeField()


class AttendeeContactSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    full_name = serializers.CharField()
    email = serializers.EmailField()
    cpf = serializers.CharField()
    phone = serializers.CharField()


class RegistrationDetailSerializer(serializers.Serializer):
    registration = RegistrationSerializer()
    participant = AttendeeContactSerializer()
    event_name = serializers.CharField()
    event_slug = serializers.CharField()
    event_date = serializers.DateTimeField()
    modality_name = serializers.CharField()
    coupon_code = serializers.CharField(allow_null=True)


class PublicRegistrationSerializer(serializers.Serializer):
    """Status page data; reachable by anyone holding the registration id."""

    registration = RegistrationSerializer()
    participant_name = serializers.CharField(source="participant.full_name")
    event_name = serializers.CharField()
    event_date = serializers.DateTimeField()
    modality_name = serializers.CharField()
    coupon_code = serializers.CharField(allow_null=True)


class RegistrationSummarySerializer(serializers.Serializer):
    total = serializers.IntegerField()
    pending = serializers.IntegerField()
    confirmed = serializers.IntegerField()
    canceled = serializers.IntegerField()
    expired = serializers.IntegerField()
    revenue = serializers.DecimalField(source="revenue.amount", **MONEY)


class CheckoutResultSerializer(serializers.Serializer):
    order_reference = serializers.UUIDField()
    registration_id = serializers.UUIDField(source="primary.id.value")
    registration_number = serializers.IntegerField(source="primary.registration_number")
    registrations = RegistrationSerializer(many=True)
    payment_status = serializers.CharField(source="primary.payment_status.value")
    pricing = PriceQuoteSerializer(source="quote")
    preference_id = serializers.CharField(source="preference.id")
    checkout_url = serializers.CharField(source="preference.checkout_url")
    sandbox_checkout_url = serializers.CharField(source="preference.sandbox_checkout_url", allow_null=True)


class SyncResultSerializer(serializers.Serializer):
    registration_id = serializers.UUIDField(source="registration.id.value")
    registration_number = serializers.IntegerField(source="registration.registration_number")
    result = serializers.CharField()
    status = serializers.CharField(source="registration.status.value")
    payment_status = serializers.CharField(source="registration.payment_status.value")
    payment_id = serializers.CharField(allow_null=True)
    provider_status = serializers.CharField(allow_null=True)
    code = serializers.CharField(allow_null=True)


class KnownParticipantSerializer(serializers.Serializer):
    """A participant as prefilled into a new checkout."""

    id = serializers.UUIDField(source="participant.id")
    full_name = serializers.CharField(source="participant.full_name")
    email = serializers.EmailField(source="participant.email")
    cpf = serializers.CharField(source="participant.cpf")
    phone = serializers.CharField(source="participant.phone")
    birth_date = serializers.DateField(source="participant.birth_date", allow_null=True)
    gender = serializers.CharField(source="participant.gender.value")
    shirt_size = serializers.CharField(source="shirt_size.value", allow_null=True)


class AlertSerializer(serializers.Serializer):
    level = serializers.CharField()
    message = serializers.CharField()


class UpcomingEventSerializer(serializers.Serializer):
    id = serializers.UUIDField(source="id.value")
    name = serializers.CharField()
    event_date = serializers.DateTimeField()
    registrations = serializers.IntegerField()


class DashboardStatsSerializer(serializers.Serializer):
    def to_representation(self, stats) -> dict:
        return {
            "events": {
                "total": stats.events_total,
                "published": stats.events_published,
                "draft": stats.events_draft,
            },
            "registrations": {
                **RegistrationSummarySerializer(stats.registrations).data,
                "recent": stats.registrations_recent,
            },
            "revenue": {
                "gross": MONEY_FIELD.to_representation(stats.gross_revenue.amount),
                "provider_fees": MONEY_FIELD.to_representation(stats.provider_fees.amount),
                "net": MONEY_FIELD.to_representation(stats.net_revenue.amount),
            },
            "upcoming_event": UpcomingEventSerializer(stats.upcoming_event).data if stats.upcoming_event else None,
            "alerts": AlertSerializer(stats.alerts, many=True).data,
        }

