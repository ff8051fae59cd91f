"""Domain errors for the accounts module."""

from common.errors import AuthError, ConflictError, ErrorCode, NotFoundError


class InvalidCredentialsError(AuthError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.INVALID_CREDENTIALS, message="Invalid email or password")


class TokenExpiredError(AuthError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.TOKEN_EXPIRED, message="Token expired")


class TokenInvalidError(AuthError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.TOKEN_INVALID, message="Invalid token")


class EmailTakenError(ConflictError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.EMAIL_TAKEN, message="Email already registered")


class DocumentTakenError(ConflictError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.DOCUMENT_TAKEN, message="CPF/CNPJ already registered")


class OrganizerNotFoundError(NotFoundError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.ORGANIZER_NOT_FOUND, message="Account not found")


class ParticipantNotFoundError(NotFoundError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.PARTICIPANT_NOT_FOUND, message="Participant not found")
