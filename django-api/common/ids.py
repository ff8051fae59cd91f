"""Parsing of identifiers received from clients."""

import typing as t

from common.errors import InvalidIdError

T = t.TypeVar("T")


class _FromString(t.Protocol[T]):
    def from_string(self, value: str) -> T: ...


def parse_id(id_type: _FromString[T], value: t.Any, field_name: str = "id") -> T:
    """Build a typed id from client input.

    Raises:
        InvalidIdError: If ``value`` is not a valid UUID.
    """
    try:
        return id_type.from_string(value)
    except (ValueError, TypeError, AttributeError):
        raise InvalidIdError(field_name) from None
