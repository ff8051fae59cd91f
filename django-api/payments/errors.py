"""Domain errors for the payment provider integration."""

from common.errors import AuthError, ConflictError, ErrorCode, NotFoundError, UpstreamError, ValidationError


class PaymentProviderError(UpstreamError):
    """Raised when the provider is unreachable or rejects a request."""

    def __init__(self, detail: str = "") -> None:
        super().__init__(
            code=ErrorCode.PAYMENT_PROVIDER_UNAVAILABLE,
            message="Payment provider unavailable",
        )
        self.detail = detail


class PaymentsNotConfiguredError(ConflictError):
    """Raised when an organizer has no usable provider connection."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.PAYMENTS_NOT_CONFIGURED,
            message="The organizer has not connected a payment account",
        )


class InvalidOAuthStateError(ValidationError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message="Invalid or expired authorization state",
            details={"state": ["Invalid or expired."]},
        )


class WebhookSignatureError(AuthError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.WEBHOOK_SIGNATURE_INVALID,
            message="Invalid webhook signature",
        )


class PaymentNotFoundError(NotFoundError):
    """Raised when the provider has no payment for a registration yet."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.PAYMENT_NOT_FOUND,
            message="No payment found for this registration",
        )


class PaymentNotApprovedError(ConflictError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.PAYMENT_NOT_APPROVED,
            message="Only approved payments have provider fees",
        )
