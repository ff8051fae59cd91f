"""Django ORM implementation of the AccountStore."""

from uuid import UUID

from django.db import IntegrityError, transaction

from accounts import models
from accounts.domain import (
    Gender,
    Organizer,
    OrganizerSignup,
    Participant,
    ParticipantProfile,
    PaymentConnection,
)
from accounts.domain.errors import DocumentTakenError, OrganizerNotFoundError, ParticipantNotFoundError
from accounts.stores.interfaces import AccountStore


def to_organizer(row: models.Organizer) -> Organizer:
    return Organizer(
        id=row.id,
        email=row.email,
        full_name=row.full_name,
        cpf_cnpj=row.cpf_cnpj,
        phone=row.phone,
        payment=PaymentConnection(
            connected=row.mp_connected,
            provider_user_id=row.mp_user_id,
            encrypted_access_token=row.mp_access_token,
            encrypted_refresh_token=row.mp_refresh_token,
            expires_at=row.mp_token_expires_at,
        ),
        created_at=row.created_at,
    )


def to_participant(row: models.Participant) -> Participant:
    return Participant(
        id=row.id,
        email=row.email,
        full_name=row.full_name,
        cpf=row.cpf,
        phone=row.phone,
        birth_date=row.birth_date,
        gender=Gender(row.gender),
        has_password=bool(row.password),
        created_at=row.created_at,
    )


class DjangoAccountStore(AccountStore):
    """Relational account store using Django ORM."""

    def get_organizer(self, organizer_id: UUID) -> Organizer | None:
        row = models.Organizer.objects.filter(pk=organizer_id).first()
        return to_organizer(row) if row else None

    def get_organizer_credentials(self, email: str) -> tuple[Organizer, str] | None:
        row = models.Organizer.objects.filter(email__iexact=email).first()
        return (to_organizer(row), row.password) if row else None

    def organizer_conflicts(self, email: str, cpf_cnpj: str) -> tuple[bool, bool]:
        return (
            models.Organizer.objects.filter(email__iexact=email).exists(),
            models.Organizer.objects.filter(cpf_cnpj=cpf_cnpj).exists(),
        )

    def create_organizer(self, signup: OrganizerSignup, password_hash: str) -> Organizer:
        row = models.Organizer.objects.create(
            email=signup.email,
            password=password_hash,
            full_name=signup.full_name,
            cpf_cnpj=signup.cpf_cnpj,
            phone=signup.phone,
        )
        return to_organizer(row)

    def save_payment_connection(self, organizer_id: UUID, connection: PaymentConnection) -> Organizer:
        updated = models.Organizer.objects.filter(pk=organizer_id).update(
            mp_connected=connection.connected,
            mp_user_id=connection.provider_user_id,
            mp_access_token=connection.encrypted_access_token,
            mp_refresh_token=connection.encrypted_refresh_token,
            mp_token_expires_at=connection.expires_at,
        )
        if not updated:
            raise OrganizerNotFoundError()
        return to_organizer(models.Organizer.objects.get(pk=organizer_id))

    def get_participant(self, participant_id: UUID) -> Participant | None:
        row = models.Participant.objects.filter(pk=participant_id).first()
        return to_participant(row) if row else None

    def get_participant_by_cpf(self, cpf: str) -> Participant | None:
        row = models.Participant.objects.filter(cpf=cpf).first()
        return to_participant(row) if row else None

    def get_participant_credentials(self, email: str) -> tuple[Participant, str] | None:
        row = (
            models.Participant.objects.filter(email__iexact=email, password__isnull=False)
            .exclude(password="")
            .order_by("created_at")
            .first()
        )
        return (to_participant(row), row.password) if row else None

    def create_participant(self, profile: ParticipantProfile, password_hash: str | None) -> Participant:
        try:
            with transaction.atomic():
                row = models.Participant.objects.create(
                    password=password_hash,
                    **self._profile_fields(profile),
                )
        except IntegrityError as exc:
            raise DocumentTakenError() from exc
        return to_participant(row)

    def set_participant_password(self, participant_id: UUID, password_hash: str) -> Participant:
        if not models.Participant.objects.filter(pk=participant_id).update(password=password_hash):
            raise ParticipantNotFoundError()
        return to_participant(models.Participant.objects.get(pk=participant_id))

    def get_or_create_participants(self, profiles: list[ParticipantProfile]) -> list[Participant]:
        participants = []
        for profile in profiles:
            fields = self._profile_fields(profile)
            cpf = fields.pop("cpf")
            row, _ = models.Participant.objects.get_or_create(cpf=cpf, defaults=fields)
            participants.append(to_participant(row))
        return participants

    @staticmethod
    def _profile_fields(profile: ParticipantProfile) -> dict:
        return {
            "email": profile.email,
            "full_name": profile.full_name,
            "cpf": profile.cpf,
            "phone": profile.phone,
            "birth_date": profile.birth_date,
            "gender": profile.gender.value,
        }
