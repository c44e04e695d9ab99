"""Sort values for search_after pagination cursors.

A search hit's "sort" field holds one value per sort key, e.g.

    [1676432653945685122, "21432243", "88.999", true, 3.14, null]

Decoding keeps every integer literal exact (a float-based decoder would turn
1676432653945685122 into 1676432653945685248), keeps quoted numerals as
strings, and preserves nested arrays/objects as opaque values. The decoded
sequence is re-encoded unchanged as the next request's "search_after".

Numeric classification policy: a literal containing '.', 'e' or 'E' is a
float, anything else is a signed 64-bit integer. An integral value written in
exponent form (1e3) is therefore a float.
"""

import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, List, Optional, Sequence, Union

from pydantic_core import core_schema

from ..errors import DecodeError, SortDecodeError

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class SortKind(str, Enum):
    """Kind tag of a single sort value."""
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    BOOL = "bool"
    NULL = "null"
    OPAQUE = "opaque"


class NumberLiteral(str):
    """Raw text of a JSON number, captured before any numeric conversion."""

    @property
    def is_float(self) -> bool:
        return "." in self or "e" in self or "E" in self


def _reject_constant(name: str):
    raise ValueError(f"invalid JSON number constant: {name}")


def loads_deferred(data: Union[str, bytes, bytearray]) -> Any:
    """json.loads with every numeric literal left as a NumberLiteral."""
    return json.loads(
        data,
        parse_int=NumberLiteral,
        parse_float=NumberLiteral,
        parse_constant=_reject_constant,
    )


def _literal_excerpt(raw: str, limit: int = 32) -> str:
    return raw if len(raw) <= limit else raw[:limit] + "..."


def natural(value: Any, index: Optional[int] = None) -> Any:
    """Convert NumberLiterals anywhere inside value to int/float.

    Raises:
        SortDecodeError: For a float that is not finite, or an integer literal
                         longer than the interpreter converts
    """
    if isinstance(value, NumberLiteral):
        if value.is_float:
            return parse_float64(value, index)
        try:
            return int(value)
        except ValueError:
            raise SortDecodeError(index, _literal_excerpt(value), "convert to int failed: literal too long")
    if isinstance(value, float):
        return check_float64(value, index)
    if isinstance(value, list):
        return [natural(item, index) for item in value]
    if isinstance(value, dict):
        return {key: natural(item, index) for key, item in value.items()}
    return value


def parse_int64(raw: str, index: Optional[int] = None) -> int:
    """Parse raw integer text, raising SortDecodeError outside int64."""
    try:
        number = int(raw)
    except ValueError:
        raise SortDecodeError(index, raw, "convert to int64 failed")
    if not INT64_MIN <= number <= INT64_MAX:
        raise SortDecodeError(index, raw, "convert to int64 failed: value out of range")
    return number


def check_float64(number: float, index: Optional[int] = None) -> float:
    """Reject NaN and infinity, which have no JSON encoding."""
    if math.isinf(number) or math.isnan(number):
        raise SortDecodeError(index, repr(number), "convert to float64 failed: value out of range")
    return number


def parse_float64(raw: str, index: Optional[int] = None) -> float:
    """Parse raw numeric text as float64, rejecting overflow to infinity."""
    try:
        number = float(raw)
    except (ValueError, OverflowError):
        raise SortDecodeError(index, _literal_excerpt(raw), "convert to float64 failed")
    if math.isinf(number) or math.isnan(number):
        raise SortDecodeError(index, _literal_excerpt(raw), "convert to float64 failed: value out of range")
    return number


@dataclass(frozen=True)
class SortValue:
    """A single tagged sort value.

    Attributes:
        kind: Which of the six kinds this value is
        value: Python payload (int, float, str, bool, None, or list/dict for OPAQUE)
    """
    kind: SortKind
    value: Any

    @classmethod
    def from_literal(cls, raw: str, index: Optional[int] = None) -> "SortValue":
        """Classify raw JSON number text.

        Integers that overflow int64 fall back to float; if that also fails
        the element is rejected.
        """
        if NumberLiteral(raw).is_float:
            return cls(SortKind.FLOAT, parse_float64(raw, index))
        try:
            return cls(SortKind.INT, parse_int64(raw, index))
        except SortDecodeError:
            return cls(SortKind.FLOAT, parse_float64(raw, index))

    @classmethod
    def from_python(cls, value: Any, index: Optional[int] = None) -> "SortValue":
        """Classify an already-decoded Python value."""
        if isinstance(value, SortValue):
            return value
        if isinstance(value, NumberLiteral):
            return cls.from_literal(value, index)
        if value is None:
            return cls(SortKind.NULL, None)
        # bool before int: bool is an int subclass
        if isinstance(value, bool):
            return cls(SortKind.BOOL, value)
        if isinstance(value, int):
            if INT64_MIN <= value <= INT64_MAX:
                return cls(SortKind.INT, value)
            try:
                number = float(value)
            except OverflowError:
                raise SortDecodeError(index, f"<{value.bit_length()}-bit integer>", "convert to float64 failed")
            return cls(SortKind.FLOAT, number)
        if isinstance(value, float):
            return cls(SortKind.FLOAT, check_float64(value, index))
        if isinstance(value, str):
            return cls(SortKind.STRING, value)
        if isinstance(value, (list, tuple, dict)):
            return cls(SortKind.OPAQUE, natural(list(value) if isinstance(value, tuple) else value, index))
        raise SortDecodeError(index, repr(value), f"unsupported sort value type {type(value).__name__}")

    def to_json(self) -> str:
        return json.dumps(self.value, allow_nan=False)


class SortValues:
    """Ordered sequence of sort values.

    Append-only until clear() is called; order is the sort-key tuple order.

    Usage:
        # Decode a hit's sort field
        cursor = SortValues.from_json(b'[1676432653945685122, "a", 3.14]')

        # Build a cursor by hand
        cursor = SortValues().push(1676432653945685122).push("a")
        body["search_after"] = cursor.to_list()
    """

    __slots__ = ("_items",)

    def __init__(self, values: Optional[Sequence[Any]] = None):
        self._items: List[SortValue] = []
        for value in values or ():
            self.push(value)

    @classmethod
    def from_json(
        cls,
        data: Union[str, bytes, bytearray],
        signature: Optional[str] = None
    ) -> "SortValues":
        """Decode a JSON sort array.

        Args:
            data: JSON text of the array
            signature: Optional per-position type signature (e.g. "isf");
                       see esbridge.sort.typed

        Raises:
            DecodeError: If data is not JSON or not an array
            SortDecodeError: If an element cannot be classified
        """
        if signature is not None:
            from .typed import decode_typed
            return decode_typed(data, signature)

        try:
            parsed = loads_deferred(data)
        except ValueError as e:
            raise DecodeError(f"invalid sort JSON: {e}", body=_as_bytes(data)) from e

        return cls.from_parsed(parsed, data)

    @classmethod
    def from_parsed(cls, parsed: Any, data: Any = b"") -> "SortValues":
        if parsed is None:
            return cls()
        if not isinstance(parsed, list):
            raise DecodeError(
                f"sort value must be a JSON array, got {'number' if isinstance(parsed, NumberLiteral) else type(parsed).__name__}",
                body=_as_bytes(data),
            )
        result = cls()
        for idx, element in enumerate(parsed):
            result._items.append(SortValue.from_python(element, idx))
        return result

    def push(self, value: Any) -> "SortValues":
        """Append a value and return self for chaining."""
        self._items.append(SortValue.from_python(value, len(self._items)))
        return self

    def clear(self) -> None:
        self._items.clear()

    def values(self) -> List[Any]:
        """Plain Python values in order; empty list when nothing was decoded."""
        return [item.value for item in self._items]

    def kinds(self) -> List[SortKind]:
        return [item.kind for item in self._items]

    def items(self) -> List[SortValue]:
        return list(self._items)

    def last(self) -> Optional[SortValue]:
        return self._items[-1] if self._items else None

    def len(self) -> int:
        return len(self._items)

    def to_list(self) -> List[Any]:
        return self.values()

    def to_json(self) -> str:
        """Encode as a JSON array.

        Raises:
            ValueError: If a float value is NaN or infinite
        """
        return json.dumps(self.values(), allow_nan=False)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[SortValue]:
        return iter(self._items)

    def __getitem__(self, index: int) -> SortValue:
        return self._items[index]

    def __bool__(self) -> bool:
        return bool(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SortValues):
            return self._items == other._items
        return NotImplemented

    def __repr__(self) -> str:
        return f"SortValues({self.values()!r})"

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        """Validate from a JSON array (or SortValues) and serialize back to a list."""
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda v: v.to_list(), when_used="always"
            ),
        )

    @classmethod
    def _validate(cls, value: Any) -> "SortValues":
        if isinstance(value, SortValues):
            return value
        if isinstance(value, tuple):
            value = list(value)
        return cls.from_parsed(value)


def _as_bytes(data: Any) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    return b""
