"""Django ORM models (persistence layer) for registrations.

Domain logic lives in domain/. Catalog rows are referenced with PROTECT so
an event with registrations cannot be deleted.
"""

import uuid

from django.db import models
from django.db.models import Q


class Registration(models.Model):
    """Persistence model for registrations."""

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        CONFIRMED = "CONFIRMED", "Confirmed"
        CANCELED = "CANCELED", "Canceled"
        EXPIRED = "EXPIRED", "Expired"

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"
        REFUNDED = "refunded", "Refunded"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey("events.Event", on_delete=models.PROTECT, related_name="registrations")
    modality = models.ForeignKey("events.Modality", on_delete=models.PROTECT, related_name="registrations")
    participant = models.ForeignKey(
        "accounts.Participant", on_delete=models.PROTECT, related_name="registrations"
    )
    buyer = models.ForeignKey("accounts.Participant", on_delete=models.PROTECT, related_name="purchases")
    coupon = models.ForeignKey(
        "events.Coupon", on_delete=models.PROTECT, related_name="registrations", blank=True, null=True
    )
    batch = models.ForeignKey(
        "events.Batch", on_delete=models.PROTECT, related_name="registrations", blank=True, null=True
    )
    registration_number = models.PositiveIntegerField()
    order_reference = models.UUIDField(db_index=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(max_length=10, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    payment_id = models.CharField(max_length=64, blank=True, null=True, db_index=True)
    preference_id = models.CharField(max_length=128, blank=True, null=True)
    payment_method = models.CharField(max_length=32, blank=True, null=True)

    base_price = models.DecimalField(max_digits=10, decimal_places=2)
    discount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    subtotal = models.DecimalField(max_digits=10, decimal_places=2)
    platform_fee = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=10, decimal_places=2)
    provider_fee = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)

    shirt_size = models.CharField(max_length=2, blank=True, null=True)
    emergency_contact = models.CharField(max_length=100, blank=True, null=True)
    emergency_phone = models.CharField(max_length=20, blank=True, null=True)
    medical_info = models.TextField(blank=True, null=True)
    team_name = models.CharField(max_length=100, blank=True, null=True)
    terms_accepted = models.BooleanField(default=False)
    privacy_accepted = models.BooleanField(default=False)

    inventory_committed = models.BooleanField(default=False)
    cancel_reason = models.CharField(max_length=64, blank=True, null=True)
    confirmed_at = models.DateTimeField(blank=True, null=True)
    canceled_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["participant", "-created_at"]),
            models.Index(fields=["status", "payment_status"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["event", "registration_number"],
                name="registration_number_unique_per_event",
            ),
            models.CheckConstraint(
                condition=Q(inventory_committed=False) | Q(status="CONFIRMED"),
                name="registration_inventory_only_when_confirmed",
            ),
        ]

    def __str__(self) -> str:
        return f"#{self.registration_number} ({self.status})"


class ProcessedWebhook(models.Model):
    """Provider delivery ids already handled."""

    request_id = models.CharField(max_length=128, unique=True)
    payment_id = models.CharField(max_length=64, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.request_id
