"""Issues and verifies access and refresh tokens for both principal kinds."""

from datetime import datetime, timedelta
from typing import Callable
from uuid import UUID

import jwt
from django.conf import settings
from django.utils import timezone
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from accounts.domain import Principal, PrincipalKind, TokenPair
from accounts.domain.errors import TokenExpiredError, TokenInvalidError

ACCESS = "access"
REFRESH = "refresh"


class TokenService:
    """HS256 JWTs: short-lived access tokens, longer-lived refresh tokens."""

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._secrets = {ACCESS: access_secret, REFRESH: refresh_secret}
        self._ttls = {ACCESS: access_ttl, REFRESH: refresh_ttl}
        self._algorithm = algorithm
        self._clock = clock

    @classmethod
    def from_settings(cls) -> "TokenService":
        return cls(
            access_secret=settings.JWT_SECRET,
            refresh_secret=settings.JWT_REFRESH_SECRET,
            access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_TTL_MINUTES),
            refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_TTL_DAYS),
            algorithm=settings.JWT_ALGORITHM,
        )

    def issue(self, principal: Principal) -> TokenPair:
        return TokenPair(
            access_token=self._encode(principal, ACCESS),
            refresh_token=self._encode(principal, REFRESH),
        )

    def verify_access(self, token: str) -> Principal:
        """Return the principal of a valid access token.

        Raises:
            TokenExpiredError: If the token is past its expiry.
            TokenInvalidError: If the token is malformed, forged or not an access token.
        """
        return self._decode(token, ACCESS)

    def verify_refresh(self, token: str) -> Principal:
        return self._decode(token, REFRESH)

    def _encode(self, principal: Principal, token_type: str) -> str:
        issued_at = self._clock()
        payload = {
            "sub": str(principal.id),
            "kind": principal.kind.value,
            "email": principal.email,
            "type": token_type,
            "iat": issued_at,
            "exp": issued_at + self._ttls[token_type],
        }
        return jwt.encode(payload, self._secrets[token_type], algorithm=self._algorithm)

    def _decode(self, token: str, token_type: str) -> Principal:
        try:
            payload = jwt.decode(
                token,
                self._secrets[token_type],
                algorithms=[self._algorithm],
                options={"require": ["sub", "kind", "type", "exp"]},
            )
        except ExpiredSignatureError as exc:
            raise TokenExpiredError() from exc
        except InvalidTokenError as exc:
            raise TokenInvalidError() from exc

        if payload["type"] != token_type:
            raise TokenInvalidError()
        try:
            return Principal(
                id=UUID(payload["sub"]),
                kind=PrincipalKind(payload["kind"]),
                email=payload.get("email", ""),
            )
        except ValueError as exc:
            raise TokenInvalidError() from exc
