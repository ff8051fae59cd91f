"""DRF exception handler mapping domain errors to HTTP responses."""

import typing as t

import structlog
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from common.errors import AuthError, DomainError, ErrorCode

logger = structlog.get_logger(__name__)

BEARER_CHALLENGE = 'Bearer realm="api"'


def _flatten_details(detail: t.Any) -> dict[str, list[str]]:
    if isinstance(detail, dict):
        flat: dict[str, list[str]] = {}
        for key, value in detail.items():
            if isinstance(value, dict):
                for nested_key, nested_value in _flatten_details(value).items():
                    flat[f"{key}.{nested_key}"] = nested_value
            elif isinstance(value, list):
                flat[str(key)] = [str(item) for item in value if not isinstance(item, dict)]
                for index, item in enumerate(value):
                    if isinstance(item, dict):
                        for nested_key, nested_value in _flatten_details(item).items():
                            flat[f"{key}.{index}.{nested_key}"] = nested_value
                if not flat[str(key)]:
                    del flat[str(key)]
            else:
                flat[str(key)] = [str(value)]
        return flat
    if isinstance(detail, list):
        return {"non_field_errors": [str(item) for item in detail]}
    return {"non_field_errors": [str(detail)]}


def domain_exception_handler(exc: Exception, context: dict[str, t.Any]) -> Response | None:
    """Render every error as ``{"code", "message"[, "details"]}``."""
    if isinstance(exc, DomainError):
        if exc.http_status >= 500:
            logger.error("upstream_failure", code=exc.code.value, error=exc.message)
        response = Response(exc.as_payload(), status=exc.http_status)
        if isinstance(exc, AuthError):
            response["WWW-Authenticate"] = BEARER_CHALLENGE
        return response

    if isinstance(exc, exceptions.ValidationError):
        return Response(
            {
                "code": ErrorCode.VALIDATION_ERROR.value,
                "message": "Invalid data",
                "details": _flatten_details(exc.detail),
            },
            status=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        code = ErrorCode.TOKEN_MISSING if isinstance(exc, exceptions.NotAuthenticated) else ErrorCode.TOKEN_INVALID
        response = Response(
            {"code": code.value, "message": str(exc.detail)},
            status=status.HTTP_401_UNAUTHORIZED,
        )
        response["WWW-Authenticate"] = BEARER_CHALLENGE
        return response

    if isinstance(exc, exceptions.PermissionDenied):
        return Response(
            {"code": ErrorCode.FORBIDDEN.value, "message": str(exc.detail)},
            status=status.HTTP_403_FORBIDDEN,
        )

    response = exception_handler(exc, context)
    if response is not None:
        code = exc.default_code if isinstance(exc, exceptions.APIException) else "not_found"
        response.data = {"code": code.upper(), "message": str(response.data.get("detail", ""))}
        return response

    view = context.get("view")
    logger.exception("internal_server_error", view=type(view).__name__ if view else None)
    return Response(
        {"code": ErrorCode.INTERNAL_ERROR.value, "message": "Internal server error"},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
