"""Database helpers shared by the stores."""

import functools
import typing as t

import structlog
from django.db import InterfaceError, OperationalError, close_old_connections

from common.errors import ErrorCode, UpstreamError

logger = structlog.get_logger(__name__)

P = t.ParamSpec("P")
R = t.TypeVar("R")

TRANSIENT_ERRORS = (OperationalError, InterfaceError)


def retry_on_transient_error(func: t.Callable[P, R]) -> t.Callable[P, R]:
    """Retry ``func`` once on a dropped connection, then raise ``UpstreamError``.

    Only wrap calls that open their own transaction: retrying inside an
    outer ``atomic`` block would replay half a transaction.
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return func(*args, **kwargs)
        except TRANSIENT_ERRORS as exc:
            logger.warning("database_transient_error_retry", operation=func.__qualname__, error=str(exc))
            close_old_connections()
        try:
            return func(*args, **kwargs)
        except TRANSIENT_ERRORS as exc:
            logger.error("database_unavailable", operation=func.__qualname__, error=str(exc))
            raise UpstreamError(
                code=ErrorCode.DATABASE_UNAVAILABLE,
                message="Service temporarily unavailable",
            ) from exc

    return wrapper
