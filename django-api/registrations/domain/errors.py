"""Domain errors for the registrations module."""

from common.errors import ConflictError, ErrorCode, NotFoundError, ValidationError


class RegistrationNotFoundError(NotFoundError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.REGISTRATION_NOT_FOUND, message="Registration not found")


class AlreadyRegisteredError(ConflictError):
    """Raised when the participant already holds an active registration in the modality."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_REGISTERED,
            message="Participant already has a registration for this modality",
        )


class GroupNotAllowedError(ValidationError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.GROUP_NOT_ALLOWED, message="This event does not accept group registrations")


class GroupTooLargeError(ValidationError):
    def __init__(self, limit: int) -> None:
        super().__init__(
            code=ErrorCode.GROUP_TOO_LARGE,
            message=f"At most {limit} participants per purchase",
        )


class DuplicateAttendeeError(ValidationError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message="Each participant can only be listed once",
            details={"participants": ["Duplicate CPF."]},
        )


class RegistrationNumberConflictError(ConflictError):
    """Raised when two transactions allocate the same number; the caller can retry."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_NUMBER_CONFLICT,
            message="Could not allocate a registration number, please retry",
        )


class RegistrationNotCancelableError(ConflictError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_NOT_CANCELABLE,
            message="Only pending registrations can be canceled",
        )
