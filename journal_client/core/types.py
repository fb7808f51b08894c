"""Commonly used typing helpers."""

from __future__ import annotations

import re
from typing import Any, TypeAlias, TypeVar, Union

from pydantic_core import core_schema

from .exceptions import Error, IdentifierError

T = TypeVar("T")

# Result type: either a value of type ``T`` or an ``Error`` instance.
Result: TypeAlias = Union[T, Error]

ID_MIN = -(2**63)
ID_MAX = 2**63 - 1

_DECIMAL_RE = re.compile(r"-?[0-9]+")


class Id(int):
    """Signed 64-bit entity identifier assigned by the server.

    A distinct ``int`` subclass so identifiers are never confused with
    ordinary numbers. Pydantic fields typed ``Id`` accept an ``int`` or a
    decimal string and serialize back to the string in JSON mode.
    """

    def __new__(cls, value: int) -> "Id":
        if isinstance(value, bool) or not isinstance(value, int):
            raise IdentifierError(f"Identifier must be an integer, got {type(value).__name__}")
        if not ID_MIN <= value <= ID_MAX:
            raise IdentifierError(f"Identifier {value} is outside the 64-bit range")
        return super().__new__(cls, value)

    @classmethod
    def parse(cls, value: Any) -> "Id":
        """Build an identifier from an ``Id``, an ``int`` or a decimal string.

        Floats are rejected: a float cannot carry every 64-bit value exactly.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            if not _DECIMAL_RE.fullmatch(value):
                raise IdentifierError(f"Not a decimal identifier: {value!r}")
            return cls(int(value))
        return cls(value)

    def __repr__(self) -> str:
        return f"Id({int.__repr__(self)})"

    def __str__(self) -> str:
        return int.__repr__(self)

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            _validate_id,
            serialization=core_schema.plain_serializer_function_ser_schema(
                str, when_used="json"
            ),
        )


def _validate_id(value: Any) -> Id:
    try:
        return Id.parse(value)
    except IdentifierError as exc:
        # pydantic only reports ValueError as a field error
        raise ValueError(str(exc)) from exc


__all__ = ["Result", "Error", "Id", "ID_MIN", "ID_MAX"]
