"""Django ORM models (persistence layer) for organizers and participants."""

import uuid

from django.db import models


class Organizer(models.Model):
    """Persistence model for organizer accounts."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)
    password = models.CharField(max_length=128)
    full_name = models.CharField(max_length=100)
    cpf_cnpj = models.CharField(max_length=14, unique=True)
    phone = models.CharField(max_length=20)
    mp_connected = models.BooleanField(default=False)
    mp_user_id = models.CharField(max_length=64, blank=True, null=True)
    mp_access_token = models.TextField(blank=True, null=True)
    mp_refresh_token = models.TextField(blank=True, null=True)
    mp_token_expires_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return self.email


class Participant(models.Model):
    """Persistence model for attendees."""

    class Gender(models.TextChoices):
        MALE = "MALE", "Male"
        FEMALE = "FEMALE", "Female"
        OTHER = "OTHER", "Other"
        NOT_INFORMED = "NOT_INFORMED", "Not informed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField()
    password = models.CharField(max_length=128, blank=True, null=True)
    full_name = models.CharField(max_length=100)
    cpf = models.CharField(max_length=11, unique=True)
    phone = models.CharField(max_length=20)
    birth_date = models.DateField(blank=True, null=True)
    gender = models.CharField(max_length=20, choices=Gender.choices, default=Gender.NOT_INFORMED)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["email"]),
        ]

    def __str__(self) -> str:
        return self.full_name
