"""Serializers: request contracts for the catalog and response shapes for domain models.

Input serializers produce typed drafts (create) or partial change dicts
(update) carrying domain values; output serializers read domain models.
"""

import re
from decimal import Decimal
from typing import Any

from rest_framework import serializers

from events.domain import BatchType, DiscountType, EventStatus, KitItem, ShirtSize
from events.domain.commands import BatchDraft, CouponDraft, EventDraft, KitDraft, ModalityDraft

ENUM_FIELDS = {"status": EventStatus, "type": BatchType, "discount_type": DiscountType}
CENT = Decimal("0.01")
MONEY = {"max_digits": 10, "decimal_places": 2}


def to_domain_values(data: dict[str, Any]) -> dict[str, Any]:
    """Convert validated primitives into the values drafts and stores expect."""
    values = {}
    for key, value in data.items():
        if key in ENUM_FIELDS and value is not None:
            value = ENUM_FIELDS[key](value)
        elif key == "modality_ids":
            value = tuple(value)
        elif key == "items":
            value = tuple(KitItem(**item) for item in value)
        elif key == "sizes":
            value = {ShirtSize(entry["size"]): entry["stock"] for entry in value}
        values[key] = value
    return values


class CatalogInputSerializer(serializers.Serializer):
    draft_class: type = None

    def to_draft(self):
        return self.draft_class(**to_domain_values(self.validated_data))

    def to_changes(self) -> dict[str, Any]:
        return to_domain_values(self.validated_data)


class LocationSerializer(serializers.Serializer):
    venue_name = serializers.CharField(max_length=200, required=False)
    street = serializers.CharField(max_length=200)
    number = serializers.CharField(max_length=20)
    complement = serializers.CharField(max_length=100, required=False, allow_blank=True)
    neighborhood = serializers.CharField(max_length=100)
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(min_length=2, max_length=2)
    cep = serializers.RegexField(r"^\d{5}-?\d{3}$")
    latitude = serializers.FloatField(min_value=-90, max_value=90, required=False)
    longitude = serializers.FloatField(min_value=-180, max_value=180, required=False)

    def validate_state(self, value: str) -> str:
        return value.upper()

    def validate_cep(self, value: str) -> str:
        return re.sub(r"\D", "", value)


class EventInputSerializer(CatalogInputSerializer):
    draft_class = EventDraft

    name = serializers.CharField(min_length=3, max_length=200)
    description = serializers.CharField(min_length=10)
    short_description = serializers.CharField(max_length=200, required=False, allow_null=True)
    event_date = serializers.DateTimeField()
    registration_start = serializers.DateTimeField()
    registration_end = serializers.DateTimeField()
    location = LocationSerializer(required=False, allow_null=True)
    banner_url = serializers.URLField(max_length=500, required=False, allow_null=True)
    max_registrations = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    allow_group_reg = serializers.BooleanField(required=False)
    max_group_size = serializers.IntegerField(min_value=1, max_value=100, required=False)
    status = serializers.ChoiceField(choices=[EventStatus.DRAFT.value, EventStatus.PUBLISHED.value], required=False)


class EventUpdateSerializer(EventInputSerializer):
    status = serializers.ChoiceField(choices=[status.value for status in EventStatus], required=False)


class ModalityInputSerializer(CatalogInputSerializer):
    draft_class = ModalityDraft

    name = serializers.CharField(min_length=1, max_length=100)
    description = serializers.CharField(max_length=500, required=False, allow_null=True, allow_blank=True)
    price = serializers.DecimalField(min_value=CENT, **MONEY)
    max_slots = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    order = serializers.IntegerField(min_value=0, required=False)
    active = serializers.BooleanField(required=False)


class BatchInputSerializer(CatalogInputSerializer):
    draft_class = BatchDraft

    name = serializers.CharField(min_length=1, max_length=100)
    type = serializers.ChoiceField(choices=[batch_type.value for batch_type in BatchType])
    start_date = serializers.DateTimeField(required=False, allow_null=True)
    end_date = serializers.DateTimeField(required=False, allow_null=True)
    max_sales = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    price = serializers.DecimalField(min_value=Decimal("0"), required=False, allow_null=True, **MONEY)
    discount_type = serializers.ChoiceField(
        choices=[discount.value for discount in DiscountType], required=False, allow_null=True
    )
    discount_value = serializers.DecimalField(min_value=CENT, required=False, allow_null=True, **MONEY)
    active = serializers.BooleanField(required=False)


class CouponInputSerializer(CatalogInputSerializer):
    draft_class = CouponDraft

    code = serializers.CharField(min_length=3, max_length=20)
    discount_type = serializers.ChoiceField(choices=[discount.value for discount in DiscountType])
    discount_value = serializers.DecimalField(min_value=CENT, **MONEY)
    start_date = serializers.DateTimeField()
    end_date = serializers.DateTimeField()
    max_uses = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    modality_ids = serializers.ListField(child=serializers.UUIDField(), required=False)
    min_purchase = serializers.DecimalField(min_value=CENT, required=False, allow_null=True, **MONEY)
    active = serializers.BooleanField(required=False)

    def validate_code(self, value: str) -> str:
        code = value.strip().upper()
        if not re.fullmatch(r"[A-Z0-9]+", code):
            raise serializers.ValidationError("Code must contain only letters and digits.")
        return code


class CouponUpdateSerializer(CouponInputSerializer):
    code = None


class KitItemSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=1)
    included = serializers.BooleanField(default=True)


class KitSizeInputSerializer(serializers.Serializer):
    size = serializers.ChoiceField(choices=[size.value for size in ShirtSize])
    stock = serializers.IntegerField(min_value=0)


class KitInputSerializer(CatalogInputSerializer):
    draft_class = KitDraft

    items = KitItemSerializer(many=True, required=False)
    include_shirt = serializers.BooleanField(required=False)
    shirt_required = serializers.BooleanField(required=False)
    sizes = KitSizeInputSerializer(many=True, required=False)

    def validate_sizes(self, value: list[dict]) -> list[dict]:
        sizes = [entry["size"] for entry in value]
        if len(sizes) != len(set(sizes)):
            raise serializers.ValidationError("Each size can be listed once.")
        return value


class PriceQuoteRequestSerializer(serializers.Serializer):
    code = serializers.CharField(required=False, allow_blank=True)
    modality_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, max_value=100, default=1)


class EventListQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=100, default=10)
    status = serializers.ChoiceField(choices=[status.value for status in EventStatus], required=False)
    search = serializers.CharField(required=False, allow_blank=True)


# Responses


class EventSerializer(serializers.Serializer):
    """Serializer for Event domain model."""

    id = serializers.UUIDField(source="id.value")
    name = serializers.CharField()
    slug = serializers.CharField()
    description = serializers.CharField()
    short_description = serializers.CharField(allow_null=True)
    event_date = serializers.DateTimeField()
    registration_start = serializers.DateTimeField()
    registration_end = serializers.DateTimeField()
    status = serializers.CharField(source="status.value")
    location = serializers.JSONField(allow_null=True)
    banner_url = serializers.CharField(allow_null=True)
    max_registrations = serializers.IntegerField(allow_null=True)
    allow_group_reg = serializers.BooleanField()
    max_group_size = serializers.IntegerField()
    published_at = serializers.DateTimeField(allow_null=True)
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


class DiscountSerializer(serializers.Serializer):
    type = serializers.CharField(source="type.value")
    value = serializers.DecimalField(**MONEY)


class ModalitySerializer(serializers.Serializer):
    """Serializer for Modality domain model."""

    id = serializers.UUIDField(source="id.value")
    event_id = serializers.UUIDField(source="event_id.value")
    name = serializers.CharField()
    description = serializers.CharField(allow_null=True)
    price = serializers.DecimalField(source="price.amount", **MONEY)
    max_slots = serializers.IntegerField(source="max_slots.value", allow_null=True)
    sold_slots = serializers.IntegerField()
    available_slots = serializers.IntegerField(allow_null=True)
    is_sold_out = serializers.SerializerMethodField()
    order = serializers.IntegerField()
    active = serializers.BooleanField()

    def get_is_sold_out(self, modality) -> bool:
        return not modality.has_slots()


class BatchSerializer(serializers.Serializer):
    id = serializers.UUIDField(source="id.value")
    name = serializers.CharField()
    type = serializers.CharField(source="type.value")
    start_date = serializers.DateTimeField(allow_null=True)
    end_date = serializers.DateTimeField(allow_null=True)
    max_sales = serializers.IntegerField(allow_null=True)
    current_sales = serializers.IntegerField()
    price = serializers.DecimalField(source="price.amount", allow_null=True, **MONEY)
    discount = DiscountSerializer(allow_null=True)
    active = serializers.BooleanField()


class CouponSerializer(serializers.Serializer):
    id = serializers.UUIDField(source="id.value")
    code = serializers.CharField()
    discount = DiscountSerializer()
    start_date = serializers.DateTimeField()
    end_date = serializers.DateTimeField()
    max_uses = serializers.IntegerField(allow_null=True)
    current_uses = serializers.IntegerField()
    modality_ids = serializers.SerializerMethodField()
    min_purchase = serializers.DecimalField(source="min_purchase.amount", allow_null=True, **MONEY)
    active = serializers.BooleanField()

    def get_modality_ids(self, coupon) -> list[str]:
        return [str(modality_id) for modality_id in coupon.modality_ids]


class KitSizeSerializer(serializers.Serializer):
    size = serializers.CharField(source="size.value")
    stock = serializers.IntegerField()
    sold = serializers.IntegerField()


class KitSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    items = serializers.SerializerMethodField()
    include_shirt = serializers.BooleanField()
    shirt_required = serializers.BooleanField()
    sizes = KitSizeSerializer(many=True)

    def get_items(self, kit) -> list[dict]:
        return [{"name": item.name, "included": item.included} for item in kit.items]


class PriceQuoteSerializer(serializers.Serializer):
    modality_id = serializers.UUIDField(source="modality_id.value")
    quantity = serializers.IntegerField()
    base_price = serializers.DecimalField(source="base_price.amount", **MONEY)
    batch_discount = serializers.DecimalField(source="batch_discount.amount", **MONEY)
    coupon_discount = serializers.DecimalField(source="coupon_discount.amount", **MONEY)
    unit_price = serializers.DecimalField(source="unit_price.amount", **MONEY)
    subtotal = serializers.DecimalField(source="subtotal.amount", **MONEY)
    platform_fee = serializers.DecimalField(source="platform_fee.amount", **MONEY)
    total = serializers.DecimalField(source="total.amount", **MONEY)
    applied_batch_id = serializers.UUIDField(source="applied_batch_id.value", allow_null=True)
    applied_coupon_id = serializers.UUIDField(source="applied_coupon_id.value", allow_null=True)
    batch_name = serializers.CharField(allow_null=True)
    coupon_code = serializers.CharField(allow_null=True)


class EventDetailSerializer(serializers.Serializer):
    """Public event page."""

    event = EventSerializer()
    modalities = ModalitySerializer(many=True)
    current_batch = BatchSerializer(allow_null=True)
    kit = KitSerializer(allow_null=True)
    registration_open = serializers.BooleanField()


class EventPageSerializer(serializers.Serializer):
    items = EventSerializer(many=True)
    total = serializers.IntegerField()
    page = serializers.IntegerField()
    limit = serializers.IntegerField()
    pages = serializers.IntegerField()
