"""Account service - sign-up, login and token refresh for both principal kinds."""

from uuid import UUID

import structlog
from django.contrib.auth.hashers import check_password, make_password

from accounts.domain import (
    Organizer,
    OrganizerSignup,
    Participant,
    ParticipantProfile,
    Principal,
    PrincipalKind,
    TokenPair,
)
from accounts.domain.errors import (
    DocumentTakenError,
    EmailTakenError,
    InvalidCredentialsError,
    OrganizerNotFoundError,
    ParticipantNotFoundError,
    TokenInvalidError,
)
from accounts.services.token_service import TokenService
from accounts.stores.interfaces import AccountStore

logger = structlog.get_logger(__name__)


class AccountService:
    """Service for credential handling."""

    def __init__(self, store: AccountStore, tokens: TokenService) -> None:
        self._store = store
        self._tokens = tokens

    def register_organizer(self, signup: OrganizerSignup) -> tuple[Organizer, TokenPair]:
        """Create an organizer account and log it in.

        Raises:
            EmailTakenError: If the email is already registered.
            DocumentTakenError: If the CPF/CNPJ is already registered.
        """
        email_taken, document_taken = self._store.organizer_conflicts(signup.email, signup.cpf_cnpj)
        if email_taken:
            raise EmailTakenError()
        if document_taken:
            raise DocumentTakenError()

        organizer = self._store.create_organizer(signup, make_password(signup.password))
        logger.info("organizer_registered", organizer_id=str(organizer.id))
        return organizer, self._tokens.issue(self._principal_for(organizer))

    def login_organizer(self, email: str, password: str) -> tuple[Organizer, TokenPair]:
        found = self._store.get_organizer_credentials(email)
        if found is None or not check_password(password, found[1]):
            logger.info("organizer_login_failed")
            raise InvalidCredentialsError()
        organizer = found[0]
        return organizer, self._tokens.issue(self._principal_for(organizer))

    def register_participant(self, profile: ParticipantProfile, password: str) -> tuple[Participant, TokenPair]:
        """Create a participant account.

        A participant created earlier by someone else's checkout (no password yet)
        is claimed by setting its password.
        """
        existing = self._store.get_participant_by_cpf(profile.cpf)
        if existing is not None:
            if existing.has_password:
                raise DocumentTakenError()
            participant = self._store.set_participant_password(existing.id, make_password(password))
        else:
            participant = self._store.create_participant(profile, make_password(password))
        logger.info("participant_registered", participant_id=str(participant.id))
        return participant, self._tokens.issue(self._principal_for(participant))

    def login_participant(self, email: str, password: str) -> tuple[Participant, TokenPair]:
        found = self._store.get_participant_credentials(email)
        if found is None or not check_password(password, found[1]):
            raise InvalidCredentialsError()
        participant = found[0]
        return participant, self._tokens.issue(self._principal_for(participant))

    def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a new pair, if the account still exists."""
        principal = self._tokens.verify_refresh(refresh_token)
        if principal.is_organizer:
            account = self._store.get_organizer(principal.id)
        else:
            account = self._store.get_participant(principal.id)
        if account is None:
            raise TokenInvalidError()
        return self._tokens.issue(self._principal_for(account))

    def get_organizer(self, organizer_id: UUID) -> Organizer:
        organizer = self._store.get_organizer(organizer_id)
        if organizer is None:
            raise OrganizerNotFoundError()
        return organizer

    def get_participant(self, participant_id: UUID) -> Participant:
        participant = self._store.get_participant(participant_id)
        if participant is None:
            raise ParticipantNotFoundError()
        return participant

    @staticmethod
    def _principal_for(account: Organizer | Participant) -> Principal:
        kind = PrincipalKind.USER if isinstance(account, Organizer) else PrincipalKind.PARTICIPANT
        return Principal(id=account.id, kind=kind, email=account.email)
