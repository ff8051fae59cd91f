"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
Counter limits are also enforced as check constraints.
"""

import uuid

from django.db import models
from django.db.models import F, Q


class DiscountType(models.TextChoices):
    PERCENTAGE = "PERCENTAGE", "Percentage"
    FIXED = "FIXED", "Fixed amount"


class Event(models.Model):
    """Persistence model for events."""

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        PUBLISHED = "PUBLISHED", "Published"
        PAUSED = "PAUSED", "Paused"
        SOLD_OUT = "SOLD_OUT", "Sold out"
        FINISHED = "FINISHED", "Finished"
        CANCELLED = "CANCELLED", "Cancelled"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organizer = models.ForeignKey("accounts.Organizer", on_delete=models.PROTECT, related_name="events")
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True)
    description = models.TextField()
    short_description = models.CharField(max_length=200, blank=True, null=True)
    event_date = models.DateTimeField()
    registration_start = models.DateTimeField()
    registration_end = models.DateTimeField()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    location = models.JSONField(blank=True, null=True)
    banner_url = models.URLField(max_length=500, blank=True, null=True)
    max_registrations = models.PositiveIntegerField(blank=True, null=True)
    allow_group_reg = models.BooleanField(default=True)
    max_group_size = models.PositiveSmallIntegerField(default=10)
    published_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["organizer", "-created_at"]),
            models.Index(fields=["status"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(registration_start__lt=F("registration_end")),
                name="event_registration_window_valid",
            ),
        ]

    def __str__(self) -> str:
        return self.name


class Modality(models.Model):
    """Persistence model for modalities (ticket categories)."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="modalities")
    name = models.CharField(max_length=100)
    description = models.CharField(max_length=500, blank=True, null=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    max_slots = models.PositiveIntegerField(blank=True, null=True)
    sold_slots = models.PositiveIntegerField(default=0)
    order = models.PositiveIntegerField(default=0)
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["order", "created_at"]
        indexes = [
            models.Index(fields=["event", "order"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(max_slots__isnull=True) | Q(sold_slots__lte=F("max_slots")),
                name="modality_sold_within_capacity",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.event.name} - {self.name}"


class Batch(models.Model):
    """Persistence model for pricing batches."""

    class Type(models.TextChoices):
        DATE = "DATE", "Date window"
        VOLUME = "VOLUME", "Sales volume"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="batches")
    name = models.CharField(max_length=100)
    type = models.CharField(max_length=10, choices=Type.choices)
    start_date = models.DateTimeField(blank=True, null=True)
    end_date = models.DateTimeField(blank=True, null=True)
    max_sales = models.PositiveIntegerField(blank=True, null=True)
    current_sales = models.PositiveIntegerField(default=0)
    price = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    discount_type = models.CharField(max_length=20, choices=DiscountType.choices, blank=True, null=True)
    discount_value = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "batches"
        ordering = ["start_date", "created_at"]
        indexes = [
            models.Index(fields=["event", "active"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(max_sales__isnull=True) | Q(current_sales__lte=F("max_sales")),
                name="batch_sales_within_limit",
            ),
        ]

    def __str__(self) -> str:
        return self.name


class Coupon(models.Model):
    """Persistence model for discount coupons."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="coupons")
    code = models.CharField(max_length=20)
    discount_type = models.CharField(max_length=20, choices=DiscountType.choices)
    discount_value = models.DecimalField(max_digits=10, decimal_places=2)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    max_uses = models.PositiveIntegerField(blank=True, null=True)
    current_uses = models.PositiveIntegerField(default=0)
    modality_ids = models.JSONField(default=list, blank=True)
    min_purchase = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["event", "code"], name="coupon_code_unique_per_event"),
            models.CheckConstraint(
                condition=Q(max_uses__isnull=True) | Q(current_uses__lte=F("max_uses")),
                name="coupon_uses_within_limit",
            ),
        ]

    def __str__(self) -> str:
        return self.code


class Kit(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.OneToOneField(Event, on_delete=models.CASCADE, related_name="kit")
    items = models.JSONField(default=list, blank=True)
    include_shirt = models.BooleanField(default=True)
    shirt_required = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Kit - {self.event.name}"


class KitSize(models.Model):
    """Shirt stock for one size; ``stock`` is what is left to sell."""

    class Size(models.TextChoices):
        PP = "PP"
        P = "P"
        M = "M"
        G = "G"
        GG = "GG"
        XG = "XG"

    kit = models.ForeignKey(Kit, on_delete=models.CASCADE, related_name="sizes")
    size = models.CharField(max_length=2, choices=Size.choices)
    stock = models.PositiveIntegerField(default=0)
    sold = models.PositiveIntegerField(default=0)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["kit", "size"], name="kit_size_unique"),
            models.CheckConstraint(condition=Q(stock__gte=0), name="kit_size_stock_non_negative"),
        ]

    def __str__(self) -> str:
        return f"{self.size}: {self.stock}"
