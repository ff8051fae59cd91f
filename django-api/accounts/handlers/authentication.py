"""DRF authentication and permission classes for bearer tokens."""

import typing as t

from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.permissions import BasePermission
from rest_framework.request import Request

from accounts.domain import Principal
from accounts.domain.errors import TokenInvalidError
from accounts.services.token_service import TokenService

KEYWORD = b"bearer"


class BearerTokenAuthentication(BaseAuthentication):
    """Resolve ``Authorization: Bearer <access token>`` to a ``Principal``.

    Requests without the header stay anonymous; a present but bad token
    fails the request with ``TOKEN_INVALID`` or ``TOKEN_EXPIRED``.
    """

    def __init__(self, tokens: TokenService | None = None) -> None:
        self._tokens = tokens

    def authenticate(self, request: Request) -> tuple[Principal, str] | None:
        header = get_authorization_header(request).split()
        if not header or header[0].lower() != KEYWORD:
            return None
        if len(header) != 2:
            raise TokenInvalidError()
        try:
            token = header[1].decode("utf-8")
        except UnicodeError as exc:
            raise TokenInvalidError() from exc

        tokens = self._tokens or TokenService.from_settings()
        return tokens.verify_access(token), token

    def authenticate_header(self, request: Request) -> str:
        return 'Bearer realm="api"'


class IsOrganizer(BasePermission):
    message = "Organizer authentication required"

    def has_permission(self, request: Request, view: t.Any) -> bool:
        return bool(request.user and request.user.is_organizer)


class IsParticipant(BasePermission):
    message = "Participant authentication required"

    def has_permission(self, request: Request, view: t.Any) -> bool:
        return bool(request.user and request.user.is_participant)
