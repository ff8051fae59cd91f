"""HTTP handlers for sign-up, login, refresh and the current principal.

Handlers parse and validate input, call the AccountService and shape the
response; domain errors are rendered by the project exception handler.
"""

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.domain import Organizer, Participant, TokenPair
from accounts.handlers.serializers import (
    LoginSerializer,
    OrganizerSerializer,
    OrganizerSignupSerializer,
    ParticipantSerializer,
    ParticipantSignupSerializer,
    RefreshSerializer,
    TokenPairSerializer,
)
from accounts.services.account_service import AccountService


def _session_payload(account: Organizer | Participant, tokens: TokenPair) -> dict:
    key, serializer = (
        ("user", OrganizerSerializer) if isinstance(account, Organizer) else ("participant", ParticipantSerializer)
    )
    return {key: serializer(account).data, **TokenPairSerializer(tokens).data}


class AccountView(APIView):
    service: AccountService = None


class OrganizerRegisterView(AccountView):
    """Handler for POST /api/auth/register"""

    def post(self, request: Request) -> Response:
        serializer = OrganizerSignupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        organizer, tokens = self.service.register_organizer(serializer.to_signup())
        return Response(_session_payload(organizer, tokens), status=status.HTTP_201_CREATED)


class OrganizerLoginView(AccountView):
    """Handler for POST /api/auth/login"""

    def post(self, request: Request) -> Response:
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        organizer, tokens = self.service.login_organizer(**serializer.validated_data)
        return Response(_session_payload(organizer, tokens))


class ParticipantRegisterView(AccountView):
    """Handler for POST /api/auth/participant/register"""

    def post(self, request: Request) -> Response:
        serializer = ParticipantSignupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        participant, tokens = self.service.register_participant(
            serializer.to_profile(), serializer.validated_data["password"]
        )
        return Response(_session_payload(participant, tokens), status=status.HTTP_201_CREATED)


class ParticipantLoginView(AccountView):
    """Handler for POST /api/auth/participant/login"""

    def post(self, request: Request) -> Response:
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        participant, tokens = self.service.login_participant(**serializer.validated_data)
        return Response(_session_payload(participant, tokens))


class RefreshView(AccountView):
    """Handler for POST /api/auth/refresh"""

    def post(self, request: Request) -> Response:
        serializer = RefreshSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tokens = self.service.refresh(serializer.validated_data["refresh_token"])
        return Response(TokenPairSerializer(tokens).data)


class MeView(AccountView):
    """Handler for GET /api/auth/me"""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        principal = request.user
        if principal.is_organizer:
            return Response({"user": OrganizerSerializer(self.service.get_organizer(principal.id)).data})
        participant = self.service.get_participant(principal.id)
        return Response({"participant": ParticipantSerializer(participant).data})
