"""Domain errors for the events module (catalog and pricing)."""

from common.errors import ConflictError, ErrorCode, NotFoundError, ValidationError


class EventNotFoundError(NotFoundError):
    """Raised when an event is absent or not owned by the caller."""

    def __init__(self) -> None:
        super().__init__(code=ErrorCode.EVENT_NOT_FOUND, message="Event not found")


class EventNotOpenError(ValidationError):
    """Raised when pricing or registering against an event that is not published."""

    def __init__(self) -> None:
        super().__init__(code=ErrorCode.EVENT_NOT_OPEN, message="Event is not open for registration")


class RegistrationClosedError(ValidationError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.REGISTRATION_CLOSED, message="Registration period is closed")


class EventHasRegistrationsError(ConflictError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.EVENT_HAS_REGISTRATIONS,
            message="Events with registrations cannot be deleted",
        )


class ModalityNotFoundError(NotFoundError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.MODALITY_NOT_FOUND, message="Modality not found")


class BatchNotFoundError(NotFoundError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.BATCH_NOT_FOUND, message="Batch not found")


class CouponNotFoundError(NotFoundError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.COUPON_NOT_FOUND, message="Coupon not found")


class CouponCodeTakenError(ConflictError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.COUPON_CODE_TAKEN, message="Coupon code already exists for this event")


class KitNotFoundError(NotFoundError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.KIT_NOT_FOUND, message="Kit not found")


class KitAlreadyExistsError(ConflictError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.KIT_ALREADY_EXISTS, message="Event already has a kit")


class InUseError(ConflictError):
    """Raised when deleting something registrations still point to."""

    def __init__(self) -> None:
        super().__init__(code=ErrorCode.IN_USE, message="Resource is referenced by registrations")


class SoldOutError(ConflictError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.SOLD_OUT, message="Modality is sold out")


class BatchSoldOutError(ConflictError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.BATCH_SOLD_OUT, message="Pricing batch is sold out")


class CouponInactiveError(ValidationError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.COUPON_INACTIVE, message="Coupon is not active")


class CouponExpiredError(ValidationError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.COUPON_EXPIRED, message="Coupon is outside its validity period")


class CouponExhaustedError(ConflictError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.COUPON_EXHAUSTED, message="Coupon has no remaining uses")


class CouponNotApplicableError(ValidationError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.COUPON_NOT_APPLICABLE, message="Coupon is not valid for this modality")


class CouponMinimumPurchaseError(ValidationError):
    def __init__(self, minimum: str) -> None:
        super().__init__(
            code=ErrorCode.COUPON_MINIMUM_PURCHASE,
            message=f"Coupon requires a minimum purchase of R$ {minimum}",
        )


class ShirtSizeRequiredError(ValidationError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.SHIRT_SIZE_REQUIRED, message="Shirt size is required")


class ShirtSizeUnavailableError(ValidationError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.SHIRT_SIZE_UNAVAILABLE, message="Shirt size is not offered")


class ShirtSizeSoldOutError(ConflictError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.SHIRT_SIZE_SOLD_OUT, message="Shirt size is sold out")
